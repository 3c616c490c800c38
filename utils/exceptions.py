"""
Custom Exceptions
"""


class RegWatchError(Exception):
    """Base error for the regulatory watch pipeline"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(RegWatchError):
    """Missing or invalid configuration"""
    pass


class SearchError(RegWatchError):
    """Search provider call failed"""

    def __init__(self, message: str, source: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.source = source


class StorageError(RegWatchError):
    """Persistence call failed"""
    pass


class LLMError(RegWatchError):
    """LLM call failed"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider
