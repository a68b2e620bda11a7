"""
Exceptions raised by the Slack client layer
"""
from typing import Optional, Dict, Any


class SlackError(Exception):
    """Base exception for Slack client failures"""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        self.message = message
        self.endpoint = endpoint
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "endpoint": self.endpoint,
        }


class SlackRequestError(SlackError):
    """Raised when the HTTP request itself fails (transport error or non-2xx status)"""

    def __init__(self, message: str, endpoint: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, endpoint)
        self.status_code = status_code


class SlackRateLimitedError(SlackRequestError):
    """Raised when Slack answers with HTTP 429"""

    def __init__(self, endpoint: str, retry_after: Optional[float] = None):
        message = f"Slack rate limit hit on {endpoint}"
        if retry_after is not None:
            message += f" (retry after {retry_after:g}s)"
        super().__init__(message, endpoint, status_code=429)
        self.retry_after = retry_after


class SlackAuthError(SlackError):
    """Raised when credentials are present but malformed or rejected"""
    pass
