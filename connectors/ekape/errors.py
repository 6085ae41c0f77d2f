"""EKAPE API exceptions."""

from core.errors import MeatDeskError


class EkapeApiError(MeatDeskError):
    """Base exception for grading API errors."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class EkapeNotFoundError(EkapeApiError):
    """No grading record exists for the traceability number (404)."""
    def __init__(self, message: str, response_body: str = ""):
        super().__init__(message, 404, response_body)


class EkapeResponseError(EkapeApiError):
    """Malformed response or a non-success resultCode."""
    def __init__(self, message: str, result_code: str = "", response_body: str = ""):
        super().__init__(message, 502, response_body)
        self.result_code = result_code


class EkapeRateLimitError(EkapeApiError):
    """Rate limit exceeded (429)."""
    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message, 429)
        self.retry_after = retry_after
