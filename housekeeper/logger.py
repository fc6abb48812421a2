import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .retry import retry

console = Console()
err_console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class ResilientFileHandler(logging.Handler):
    """
    Appends plain log lines to a file. Each write is retried a few times;
    when it still fails the line is dropped and a console warning is shown
    once, so a broken log file never stops a run.
    """
    def __init__(self, path: Path, attempts: int = 3, backoff: float = 0.05):
        super().__init__()
        self.path = Path(path)
        self.attempts = attempts
        self.backoff = backoff
        self.warned = False
        self.setFormatter(logging.Formatter(LOG_FORMAT))

    def _write(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        try:
            retry(lambda: self._write(line), attempts=self.attempts, backoff=self.backoff)
        except OSError as e:
            if not self.warned:
                self.warned = True
                err_console.print(
                    f"[yellow]Warning: cannot write log file {self.path} ({e}); "
                    "continuing with console logging only."
                )


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> logging.Logger:
    root = logging.getLogger("housekeeper")
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    console_handler = RichHandler(console=err_console, show_path=False, markup=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(console_handler)

    if log_file:
        file_handler = ResilientFileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
    root.propagate = False
    return root
