"""Error taxonomy shared by the gateway, the HTTP layer and the client stores."""

from typing import Any, Optional


class WatchAuthError(Exception):
    """Base error. ``status_code`` is the HTTP status class it maps to."""

    status_code: int = 500
    default_message: str = "Operation failed"

    def __init__(self, message: Optional[str] = None, detail: Any = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class ValidationError(WatchAuthError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(WatchAuthError):
    """Target record does not exist."""

    status_code = 404
    default_message = "Not found"


class BackendError(WatchAuthError):
    """Database, network or provider failure."""

    status_code = 500
    default_message = "Backend operation failed"


class UnknownError(WatchAuthError):
    """Unexpected exception caught at a boundary."""

    status_code = 500
    default_message = "Internal server error"
