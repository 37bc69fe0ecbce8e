"""
Billing exceptions.

Every error raised by the billing orchestrator derives from BillingError so
route handlers can map the whole family to HTTP responses in one place.
"""
from typing import Any, Dict, Optional


class BillingError(Exception):
    """Base exception for all billing errors."""

    def __init__(self, message: str, code: str = "BILLING_ERROR", details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(BillingError):
    """
    Raised when static setup is missing or invalid.

    Examples:
        - Plan key not present in the registry
        - Empty price identifier for a plan/cadence/provider combination
    """

    def __init__(self, message: str, code: str = "CONFIGURATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, details=details)


class MissingCredentialsError(ConfigurationError):
    """Raised when a server-held secret or client id is absent."""

    def __init__(self, message: str, provider: Optional[str] = None, environment: Optional[str] = None):
        details = {}
        if provider:
            details["provider"] = provider
        if environment:
            details["environment"] = environment
        super().__init__(message=message, code="MISSING_CREDENTIALS", details=details)


class InvalidRequestError(BillingError):
    """Raised when caller input is malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_REQUEST",
            details={"field": field} if field else {},
        )
        self.field = field


class UpstreamAuthError(BillingError):
    """
    Raised when a provider's token endpoint rejects the credential exchange.

    Attributes:
        status_code: HTTP status returned by the provider (0 on transport failure)
        body: Raw response body, kept for operators
    """

    def __init__(self, message: str, status_code: int = 0, body: str = ""):
        super().__init__(
            message=message,
            code="UPSTREAM_AUTH_ERROR",
            details={"status_code": status_code, "body": body},
        )
        self.status_code = status_code
        self.body = body


class UpstreamBillingError(BillingError):
    """Raised when the checkout provider rejects a billing call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            code="UPSTREAM_BILLING_ERROR",
            details={"status_code": status_code} if status_code is not None else {},
        )
        self.status_code = status_code


class SdkLoadError(BillingError):
    """Raised when the client-side provider script fails to load."""

    def __init__(self, message: str = "Failed to load PayPal SDK", src: Optional[str] = None):
        super().__init__(message=message, code="SDK_LOAD_ERROR", details={"src": src} if src else {})
        self.src = src


class ProviderCallbackError(BillingError):
    """
    Raised when the client SDK reports a runtime error.

    The provider's error object is kept untouched in `error`.
    """

    def __init__(self, error: Any):
        super().__init__(message=f"Provider reported an error: {error}", code="PROVIDER_CALLBACK_ERROR")
        self.error = error
