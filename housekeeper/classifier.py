from typing import Dict, Iterable, Mapping

from .default_rules import DEFAULT_CATEGORY_EXTENSIONS
from .errors import ConfigError
from .models import Category


def normalize_extension(ext: str) -> str:
    ext = (ext or "").strip().lower()
    if ext and not ext.startswith("."):
        # Be kind: auto-fix missing dot
        ext = "." + ext
    return ext


class CategoryTable:
    """Holds extension→Category mapping, validated so each extension maps once."""
    def __init__(self, table: Mapping[Category, Iterable[str]] = DEFAULT_CATEGORY_EXTENSIONS,
                 overrides: Mapping[str, str] | None = None):
        self.map: Dict[str, Category] = {}
        for category, exts in table.items():
            if category is Category.UNKNOWN:
                raise ConfigError("Extensions cannot be mapped to the unknown category")
            for raw in exts:
                ext = normalize_extension(raw)
                if not ext:
                    raise ConfigError(f"Empty extension listed under {category.value}")
                if ext in self.map:
                    raise ConfigError(
                        f"Extension {ext} mapped to both {self.map[ext].value} and {category.value}"
                    )
                self.map[ext] = category
        if overrides:
            self._apply_overrides(overrides)

    def _apply_overrides(self, overrides: Mapping[str, str]):
        for raw, name in overrides.items():
            ext = normalize_extension(raw)
            if not ext:
                raise ConfigError("Override with empty extension")
            try:
                category = Category.from_name(name)
            except ValueError as e:
                raise ConfigError(str(e)) from None
            if category is Category.UNKNOWN:
                # explicit opt-out: leave files with this extension alone
                self.map.pop(ext, None)
            else:
                self.map[ext] = category

    def classify(self, extension: str) -> Category:
        ext = normalize_extension(extension)
        if not ext:
            return Category.UNKNOWN
        return self.map.get(ext, Category.UNKNOWN)


_DEFAULT_TABLE = CategoryTable()


def classify(extension: str) -> Category:
    return _DEFAULT_TABLE.classify(extension)

