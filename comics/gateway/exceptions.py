from typing import Any

from comics.contracts import PanelStatus


class APIError(Exception):
    """Base exception for all API errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {"status": PanelStatus.ERROR.value, "message": str(self)}


class InvalidPanelError(APIError):
    """Raised for a malformed identity, an unknown style or an unusable frame body - maps to HTTP 400.

    Raised before the job registry or the store is touched.
    """

    status_code = 400


class FrameTooLargeError(APIError):
    """Raised when an uploaded frame exceeds the configured size limit - maps to HTTP 413."""

    status_code = 413

    def __init__(self, size: int, limit: int, *, message: str | None = None):
        super().__init__(message or f"Frame too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class SynthesisError(Exception):
    """External image synthesis or the upload that follows it failed.

    Never leaves the pipeline: it is recorded as the job's error message.
    """
