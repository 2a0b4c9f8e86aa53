"""
Mini-App Registry Exception Hierarchy

Provides clear, actionable error messages with structured information
for logging, user feedback, and programmatic error handling.
"""

from typing import Optional, Dict, Any


class RegistryError(Exception):
    """
    Base exception for all registry errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context as key-value pairs
        cause: Original exception that caused this error
        recoverable: Whether the error is recoverable
        field: Form field the error belongs to, if any
    """

    field: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable

    def __str__(self):
        parts = [f"[{self.code}] {self.message}"]
        if self.details:
            parts.append(f"(details: {self.details})")
        if self.cause:
            parts.append(f"caused by: {self.cause}")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }
        if self.field:
            data["field"] = self.field
        return data


# =============================================================================
# Validation errors
# =============================================================================

class ValidationError(RegistryError):
    """Base for errors shown against the app URL field."""
    field = "url"


class InvalidUrlError(ValidationError):
    """URL is not a syntactically valid http(s) address."""
    def __init__(self, url: str):
        super().__init__(
            "Invalid URL",
            code="INVALID_URL",
            details={"url": url},
        )


class ManifestError(ValidationError):
    """App manifest could not be fetched or lacks required fields."""
    def __init__(self, url: str, reason: str, cause: Optional[Exception] = None):
        super().__init__(
            f"The app doesn't support mini-app functionality: {reason}",
            code="MANIFEST_UNSUPPORTED",
            details={"url": url, "reason": reason},
            cause=cause,
        )


class DuplicateAppError(ValidationError):
    """App URL is already present in the list."""
    def __init__(self, url: str, existing_id: Optional[int] = None):
        super().__init__(
            "This app is already in the list",
            code="DUPLICATE_APP",
            details={"url": url, "existing_id": existing_id},
        )


class AppNotFoundError(RegistryError):
    """No custom app with the given id."""
    def __init__(self, app_id: int, chain_id: str):
        super().__init__(
            f"Custom app {app_id} not found on chain {chain_id}",
            code="APP_NOT_FOUND",
            details={"app_id": app_id, "chain_id": chain_id},
        )


class OnboardingError(RegistryError):
    """Submission attempted while the acceptance gate is closed."""
    def __init__(self, reason: str, url: Optional[str] = None):
        super().__init__(
            f"Cannot add app: {reason}",
            code="ONBOARDING_BLOCKED",
            details={"url": url, "reason": reason},
        )


# =============================================================================
# Storage errors
# =============================================================================

class StorageError(RegistryError):
    """Persistence failed."""
    def __init__(self, path: str, operation: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Failed to {operation} {path}",
            code="STORAGE_FAILED",
            details={"path": path, "operation": operation},
            cause=cause,
            recoverable=False,
        )


class CapabilityError(RegistryError):
    """A capability store could not apply a change."""
    def __init__(self, store: str, origin: str, cause: Optional[Exception] = None):
        super().__init__(
            f"Capability store '{store}' failed for {origin}",
            code="CAPABILITY_FAILED",
            details={"store": store, "origin": origin},
            cause=cause,
        )


# =============================================================================
# Configuration errors
# =============================================================================

class ConfigError(RegistryError):
    """Base for configuration errors."""
    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration."""
    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration: {field}={value}: {reason}",
            code="INVALID_CONFIG",
            details={"field": field, "value": str(value), "reason": reason},
        )
