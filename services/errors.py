"""Domain errors raised by the analysis, chat, and session services."""

from typing import Optional


class InvalidInput(ValueError):
    """Raised for bad uploads or missing request fields."""


class UpstreamModelError(RuntimeError):
    """Raised when the external model call fails, times out, or returns a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"Upstream model error ({self.status_code}): {self.message}"
        return f"Upstream model error: {self.message}"


class ModelResponseUnparseable(ValueError):
    """Raised when model text cannot be coerced into the expected JSON shape.

    The raw text is kept for logging only and must never be returned to clients.
    """

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class SessionNotFound(KeyError):
    """Raised by controllers when a session id is unknown or expired."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session {self.session_id} not found or expired"
