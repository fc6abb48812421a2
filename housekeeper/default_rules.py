from .models import Category

# Simple, opinionated defaults. Each extension belongs to exactly one category.
DEFAULT_CATEGORY_EXTENSIONS = {
    Category.DOCUMENT: (
        ".pdf", ".doc", ".docx", ".odt", ".rtf", ".txt", ".md",
        ".xls", ".xlsx", ".ods", ".csv",
        ".ppt", ".pptx", ".odp", ".pages", ".numbers", ".key", ".epub",
    ),
    Category.PHOTO: (
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tif", ".tiff",
        ".webp", ".heic", ".raw", ".cr2", ".nef", ".dng",
    ),
    Category.MUSIC: (
        ".mp3", ".flac", ".wav", ".aac", ".m4a", ".ogg", ".oga",
        ".wma", ".aiff", ".aif", ".alac", ".opus",
    ),
}

# macOS resource-fork folder left behind by archive tools
MACOS_METADATA_DIR = "__MACOSX"
DEFAULT_DUPLICATES_DIR = "Duplicates"
# in-flight copies are written under this prefix inside the destination folder
PARTIAL_PREFIX = ".hk-partial-"
