"""
Component logging helpers for the chat server.

Every component logs under the ``chat_server`` namespace so the handlers
configured for the package apply to all of them.
"""

import logging
from typing import Optional

from .logging_manager import LOGGER_NAMESPACE
from .logging_manager import setup_logging as _setup_logging


def _qualify(component_name: str) -> str:
    if component_name == LOGGER_NAMESPACE or component_name.startswith(
        LOGGER_NAMESPACE + "."
    ):
        return component_name
    return f"{LOGGER_NAMESPACE}.{component_name}"


def setup_logging(
    component_name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for a server component.

    Args:
        component_name: Name of the component (e.g. 'store', 'websocket_relay')
        log_level: Level for this logger only. If None the package level
                  applies: Development=DEBUG, Staging=INFO, Production=WARNING
        log_file: Log file used when the YAML configuration is missing

    Returns:
        logging.Logger: Configured logger instance
    """
    return _setup_logging(_qualify(component_name), log_level, log_file)


def get_logger(component_name: str) -> logging.Logger:
    """Get the logger of a component without configuring it."""
    return logging.getLogger(_qualify(component_name))

