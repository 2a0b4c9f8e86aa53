"""
Mini-App Registry Common Utilities

Shared error types, logging and decorators.
"""

from .exceptions import (
    RegistryError, ValidationError, InvalidUrlError, ManifestError, DuplicateAppError,
    AppNotFoundError, OnboardingError, StorageError, CapabilityError,
    ConfigError, InvalidConfigError,
)
from .decorators import handle_errors, timed
from .logging_config import setup_logging, LogContext

__all__ = [
    # Exceptions
    "RegistryError", "ValidationError", "InvalidUrlError", "ManifestError", "DuplicateAppError",
    "AppNotFoundError", "OnboardingError", "StorageError", "CapabilityError",
    "ConfigError", "InvalidConfigError",
    # Decorators
    "handle_errors", "timed",
    # Logging
    "setup_logging", "LogContext",
]
