"""
Logging setup for the Archive Vault backend.

Console output is always on; a detailed UTF-8 log file is optional. Import
outcomes are logged at INFO, per-archive failures at ERROR with traceback,
search internals at DEBUG.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union
import os

DEFAULT_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DEFAULT_LOG_FILE = Path("logs") / "archive_vault.log"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# jieba prints dictionary loading chatter at DEBUG/INFO on first use
THIRD_PARTY_LEVELS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.INFO,
    "uvicorn.error": logging.INFO,
    "httpx": logging.WARNING,
    "jieba": logging.WARNING,
}


def setup_logging(
    log_level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[Union[str, Path]] = None,
    enable_file_logging: bool = True
) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path (defaults to logs/archive_vault.log)
        enable_file_logging: Also write every record at DEBUG to log_file
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if enable_file_logging else numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, datefmt="%H:%M:%S"))
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        path = Path(log_file) if log_file else DEFAULT_LOG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    for name, level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with __name__."""
    return logging.getLogger(name)
