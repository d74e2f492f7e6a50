# stableswap/utils/logger.py

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    """Returns a module logger. Handlers are configured once by setup_logging()."""
    return logging.getLogger(name)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configures the root logger for command line runs."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
    )
    # httpx logs every RPC request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
