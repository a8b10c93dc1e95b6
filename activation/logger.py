# activation/logger.py
"""
Logging for the activation package.

Call setup_logging() once at startup (the app and the CLI do); use
get_logger(__name__) everywhere else. When a log directory is configured the
decision trail is also appended to debug_activation.log.
"""
import logging
import os
from pathlib import Path
from typing import Optional

from activation.config import DEBUG_LOG_FILENAME, ENV_LOG_DIR, ENV_LOG_LEVEL

ROOT_NAME = "activation"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"
_setup_done = False


def _level_from_env() -> int:
    raw = os.environ.get(ENV_LOG_LEVEL, "").strip().upper()
    return getattr(logging, raw, logging.INFO)


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(path, encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(formatter)
    return fh


def setup_logging(
    level: Optional[int] = None,
    log_dir: Optional[os.PathLike | str] = None,
    use_console: bool = True,
) -> Optional[Path]:
    """
    Configure the activation root logger. Idempotent.
    Returns the debug log file path when one is attached.
    """
    global _setup_done
    root = logging.getLogger(ROOT_NAME)
    if _setup_done:
        for h in root.handlers:
            if isinstance(h, logging.FileHandler):
                return Path(h.baseFilename)
        return None

    if level is None:
        level = _level_from_env()
    root.setLevel(level)
    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)

    if use_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(formatter)
        root.addHandler(console)

    if log_dir is None:
        log_dir = os.environ.get(ENV_LOG_DIR) or None
    log_file = None
    if log_dir is not None:
        log_file = Path(log_dir) / DEBUG_LOG_FILENAME
        root.addHandler(_file_handler(log_file, level, formatter))

    _setup_done = True
    return log_file


def get_logger(name: str) -> logging.Logger:
    """Return a logger under activation.* (e.g. activation.engine)."""
    if name != ROOT_NAME and not name.startswith(ROOT_NAME + "."):
        name = f"{ROOT_NAME}.{name}"
    return logging.getLogger(name)
