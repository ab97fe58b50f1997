from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_GREEN = "\033[32m"
_BLUE = "\033[34m"
_YELLOW = "\033[33m"
_RED = "\033[31m"
_RESET = "\033[0m"


def default_log_path() -> str:
    state_home = os.environ.get("XDG_STATE_HOME") or str(Path.home() / ".local" / "state")
    return str(Path(state_home) / "dotfiles-bootstrap" / "bootstrap.log")


def log_success(logger: logging.Logger, msg: str, *args: object) -> None:
    logger.log(SUCCESS, msg, *args)


class ConsoleFormatter(logging.Formatter):
    """Short `[+] message` lines, colored by level when the stream is a tty."""

    _STYLES = {
        logging.DEBUG: ("[.]", _BLUE),
        logging.INFO: ("[i]", _BLUE),
        SUCCESS: ("[+]", _GREEN),
        logging.WARNING: ("[~]", _YELLOW),
        logging.ERROR: ("[!]", _RED),
        logging.CRITICAL: ("[!]", _RED),
    }

    def __init__(self, *, color: bool) -> None:
        super().__init__(fmt="%(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        tag, color = self._STYLES.get(record.levelno, ("[?]", ""))
        text = f"{tag} {super().format(record)}"
        if self.color and color:
            return f"{color}{text}{_RESET}"
        return text


def _want_color(stream) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return bool(getattr(stream, "isatty", lambda: False)())


def configure_logging(
    log_path: Optional[str] = None,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    The log file always records DEBUG and up (every command run and its
    output); the console shows `level` and up.

    If the requested file cannot be opened we fall back to a file in the
    working directory and keep going.

    Returns the actual file path being used.
    """

    log_path = log_path or default_log_path()
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_dotfiles_configured", False):
        return getattr(logger, "_dotfiles_log_path", log_path)

    chosen_path = log_path
    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: logging.Handler
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        fallback = str(Path.cwd() / "dotfiles-bootstrap.log")
        file_handler = logging.FileHandler(fallback, encoding="utf-8")
        chosen_path = fallback
    file_handler.setFormatter(fmt)
    file_handler.setLevel(logging.DEBUG)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ConsoleFormatter(color=_want_color(sys.stderr)))
        console.setLevel(level)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_dotfiles_configured", True)
    setattr(logger, "_dotfiles_log_path", chosen_path)

    logging.getLogger(__name__).debug(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
