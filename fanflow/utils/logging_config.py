"""
Logging configuration for fanflow.

One file handler (always on) plus a quiet stdout handler on the root logger.
Calling setup_logging again replaces and closes the handlers it installed before.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

LOG_PATH = Path("fanflow_data") / "fanflow.log"
DEFAULT_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

# marks handlers owned by setup_logging
_OWNED_ATTR = "_fanflow_handler"


class _FsyncFileHandler(logging.FileHandler):
    """File handler that fsyncs after each flush when FANFLOW_LOG_FSYNC is set."""

    def __init__(self, filename, *, fsync: bool = False):
        super().__init__(filename, mode="a", encoding="utf-8")
        self._fsync = fsync

    def flush(self):
        super().flush()
        if self._fsync and self.stream is not None:
            try:
                os.fsync(self.stream.fileno())
            except (OSError, ValueError):
                pass


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() not in ("", "0", "false", "no")


def _level(name: str) -> int:
    return getattr(logging, name.upper())


def _release_handlers(root: logging.Logger) -> None:
    for h in list(root.handlers):
        root.removeHandler(h)
        if getattr(h, _OWNED_ATTR, False):
            h.close()


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    console_level: Optional[str] = None,
) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path (default fanflow_data/fanflow.log)
        format_string: Custom format string
        console_level: Level for the stdout handler (default WARNING)

    Returns:
        The "fanflow" logger
    """
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    log_path = LOG_PATH if log_file is None else Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(_level(level))
    _release_handlers(root)

    fh = _FsyncFileHandler(log_path, fsync=_env_flag("FANFLOW_LOG_FSYNC"))
    fh.setLevel(_level(level))

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(_level(console_level or "WARNING"))

    for h in (fh, ch):
        h.setFormatter(formatter)
        setattr(h, _OWNED_ATTR, True)
        root.addHandler(h)

    return logging.getLogger("fanflow")
