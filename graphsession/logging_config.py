import logging
import sys
from typing import Optional, Union

import structlog

from .config_manager import LoggingConfig


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    # Call this from the application's entrypoint; importing graphsession never does.
    if level is None:
        level = LoggingConfig().get_log_level()
    elif isinstance(level, str):
        level = LoggingConfig(level=level).get_log_level()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
