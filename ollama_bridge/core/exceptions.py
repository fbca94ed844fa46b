"""Core exceptions for the bridge."""


class ProxyError(Exception):
    """Base exception for bridge errors.

    Every error raised while serving a request is reported to that request's
    caller only. ``status_code`` and ``error_type`` shape the error envelope
    returned to the client.
    """

    status_code: int = 500
    error_type: str = "api_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(ProxyError):
    """Raised when an incoming Messages request body cannot be parsed."""

    status_code = 400
    error_type = "invalid_request_error"

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(message)
        self.code = code


class MethodNotAllowedError(ProxyError):
    """Raised when the Messages endpoint is called with a method other than POST."""

    status_code = 405
    error_type = "invalid_request_error"

    def __init__(self, method: str) -> None:
        super().__init__(f"Method {method} not allowed")
        self.method = method


class BackendUnreachableError(ProxyError):
    """Raised when the backend cannot be reached (dial or transport failure)."""


class BackendDecodeError(ProxyError):
    """Raised when the backend response is not JSON or has an unexpected shape."""


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""
