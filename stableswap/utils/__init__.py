# stableswap/utils/__init__.py

from .logger import get_logger, setup_logging
from .retry import poll_until

__all__ = [
    "get_logger",
    "setup_logging",
    "poll_until",
]
