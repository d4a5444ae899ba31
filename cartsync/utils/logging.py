# cartsync/utils/logging.py
import logging
import sys

from cartsync.utils.settings import LOG_LEVEL

logger = logging.getLogger("cartsync")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)

# bez duplikatow w root loggerze
logger.propagate = False


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger pakietu; nazwa modulu doklejana jako dziecko 'cartsync'."""
    if not name:
        return logger
    if name.startswith("cartsync."):
        return logging.getLogger(name)
    return logging.getLogger(f"cartsync.{name}")
