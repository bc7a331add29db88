import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from . import config

HANDLER_NAME = 'appraiser-json'


def setup_logger(level: Optional[str] = None) -> None:
    """Log JSON lines to stderr from the root logger.

    Calling this again replaces the handler installed by the previous call,
    so repeated CLI invocations in one process do not duplicate output.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == HANDLER_NAME:
            root.removeHandler(handler)
    logHandler = logging.StreamHandler(sys.stderr)
    logHandler.set_name(HANDLER_NAME)
    formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s',
                                         rename_fields={'levelname': 'level', 'asctime': 'timestamp'})
    logHandler.setFormatter(formatter)
    root.addHandler(logHandler)
    root.setLevel((level or config.LOGLEVEL).upper())
