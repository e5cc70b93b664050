"""Logging that works both inside Prefect runs and in plain scripts/tests."""
import sys

from loguru import logger as loguru_logger
from prefect import get_run_logger
from prefect.exceptions import MissingContextError


def get_logger():
    """
    Get a logger for the current context.

    Returns:
        - Prefect run logger if running in a flow/task context
        - loguru logger otherwise (tests, plain module calls)
    """
    try:
        return get_run_logger()
    except MissingContextError:
        return loguru_logger


def configure_logging(level: str = "INFO"):
    """Replace loguru's default sink with a single stdout sink at `level`."""
    loguru_logger.remove()
    loguru_logger.add(sys.stdout, level=level.upper())
    return loguru_logger
