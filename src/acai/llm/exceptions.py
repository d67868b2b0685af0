"""Exceptions for the provider abstraction layer.

Public API (the "studs"):
    ConfigurationError: Missing or invalid provider configuration
    ProviderSpecError: Malformed or unknown "provider/model" specifier
    UnsupportedRoleError: Message role a vendor cannot express
    BackendError: Base exception for runtime backend failures
    BackendTransportError: Connection, DNS or timeout failure
    RequestError: Non-success response from a vendor
    ServiceUnavailableError: Vendor 5xx response (retryable by the caller)
    NoMessageError: Success response without a usable message
    TurnLimitExceededError: Agent loop ran past its turn budget
"""


class ConfigurationError(Exception):
    """Provider configuration is missing or invalid (e.g. no API key).

    Raised when a backend is constructed, before any network activity.
    """

    pass


class ProviderSpecError(ValueError):
    """A "provider/model" specifier could not be parsed."""

    pass


class UnsupportedRoleError(ValueError):
    """A message role has no equivalent in the vendor's wire format."""

    pass


class BackendError(Exception):
    """Base exception for all runtime backend errors."""

    pass


class BackendTransportError(BackendError):
    """The HTTP request could not be completed (connection, DNS, timeout)."""

    pass


class RequestError(BackendError):
    """The vendor answered with an error or an unusable response.

    Attributes:
        status_code: HTTP status of the failed response, when known
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ServiceUnavailableError(RequestError):
    """Vendor returned a 5xx status. This error is typically retryable."""

    def __init__(
        self, message: str = "Service unavailable. Try again.", status_code: int | None = None
    ) -> None:
        super().__init__(message, status_code)


class NoMessageError(RequestError):
    """Vendor returned a success status but no message could be parsed."""

    def __init__(self, message: str = "No message. Try again.", status_code: int | None = None) -> None:
        super().__init__(message, status_code)


class TurnLimitExceededError(BackendError):
    """The agent loop made more model round trips than allowed."""

    pass


__all__ = [
    "ConfigurationError",
    "ProviderSpecError",
    "UnsupportedRoleError",
    "BackendError",
    "BackendTransportError",
    "RequestError",
    "ServiceUnavailableError",
    "NoMessageError",
    "TurnLimitExceededError",
]
