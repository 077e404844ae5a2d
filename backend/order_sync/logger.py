import logging
import sys
from pythonjsonlogger import jsonlogger

from .config import settings

def setup_logger(name: str = "order_sync", level: str = "INFO") -> logging.Logger:
    """
    Configure structured JSON logging for the service.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)

    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger

logger = setup_logger(level=settings.LOG_LEVEL)
