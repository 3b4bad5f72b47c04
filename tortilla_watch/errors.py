"""
API error codes and their HTTP status mapping.

Every failure returned to clients is a JSON body of the form
``{"error": "<code>"}`` (optionally with a human ``message``), where
``<code>`` is one of the stable codes below.
"""
from typing import Optional

ERROR_STATUS = {
    # Validation
    "missing_required_fields": 400,
    "fingerprint_required": 400,
    "invalid_request": 400,
    "invalid_vote_type": 400,
    "invalid_vote_counts": 400,
    "rating_out_of_range": 400,
    "invalid_rating_values": 400,
    "comment_too_long": 400,
    "tortilla_not_available": 400,
    "invalid_image_type": 400,
    "image_too_large": 400,
    "invalid_reaction": 400,
    # Not found / gone
    "rating_not_found": 404,
    "batch_not_found": 404,
    "batch_expired": 410,
    # Rate / consensus limits
    "rate_limited": 429,
    "rate_limited_consecutive_outage": 429,
    "already_rated_today": 429,
    # Server side
    "database_error": 500,
    "image_upload_failed": 500,
    "internal_server_error": 500,
}


class APIError(Exception):
    """Raised by routers to return a stable error code to the client."""

    def __init__(self, error: str, message: Optional[str] = None):
        super().__init__(error)
        self.error = error
        self.message = message
        self.status_code = ERROR_STATUS.get(error, 500)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body

    @classmethod
    def from_result(cls, result: dict) -> "APIError":
        """Build from a service result dict carrying an ``error`` key."""
        return cls(result["error"], result.get("message"))
