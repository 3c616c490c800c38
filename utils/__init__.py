"""
Utils Module
Logging and shared exceptions
"""
from .logger import setup_logger, get_logger
from .exceptions import (
    RegWatchError,
    ConfigurationError,
    SearchError,
    StorageError,
    LLMError,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "RegWatchError",
    "ConfigurationError",
    "SearchError",
    "StorageError",
    "LLMError",
]
