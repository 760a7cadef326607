"""Process-wide logging configuration"""
import logging
from typing import Optional

from mindwell.config import LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler and level (defaults to LOG_LEVEL)"""
    level_name = (level or LOG_LEVEL).upper()
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, level_name, logging.INFO)
    )
