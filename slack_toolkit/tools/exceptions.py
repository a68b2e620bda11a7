"""
Custom exceptions for the tool execution framework

Each exception carries the ErrorCode that ends up in the failed
ToolExecutionResult, so handlers can raise instead of building results.
"""
from typing import Optional, Dict, Any, List

from .schemas import ErrorCode


class ToolError(Exception):
    """Base exception for all tool-related errors"""
    error_code: ErrorCode = ErrorCode.EXECUTION_ERROR

    def __init__(self,
                 message: str,
                 tool_name: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None,
                 error_code: Optional[ErrorCode] = None):
        self.message = message
        self.tool_name = tool_name
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization"""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code.value,
            "message": self.message,
            "tool_name": self.tool_name,
            "details": self.details
        }


class ToolNotFoundError(ToolError):
    """Raised when a requested tool is not registered"""
    error_code = ErrorCode.TOOL_NOT_FOUND

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' not found", tool_name)


class ToolExecutionError(ToolError):
    """Raised when a tool execution fails"""

    def __init__(self,
                 message: str,
                 tool_name: Optional[str] = None,
                 original_error: Optional[Exception] = None,
                 error_code: Optional[ErrorCode] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__

        super().__init__(message, tool_name, details, error_code)
        self.original_error = original_error


class ToolValidationError(ToolError):
    """Raised when tool parameters fail validation"""
    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str, tool_name: Optional[str] = None, validation_errors: Optional[List[str]] = None):
        details = {"validation_errors": validation_errors or []}
        super().__init__(message, tool_name, details)
        self.validation_errors = validation_errors or []


class ToolTimeoutError(ToolError):
    """Raised when a tool execution exceeds its deadline"""
    error_code = ErrorCode.TOOL_TIMEOUT

    def __init__(self, tool_name: str, timeout_seconds: float):
        super().__init__(
            f"Tool '{tool_name}' execution timed out after {timeout_seconds} seconds",
            tool_name,
            {"timeout_seconds": timeout_seconds}
        )
        self.timeout_seconds = timeout_seconds


class ToolConfigurationError(ToolError):
    """Raised when a tool definition or class map is invalid"""

    def __init__(self, message: str, tool_name: Optional[str] = None, config_errors: Optional[List[str]] = None):
        details = {"config_errors": config_errors or []}
        super().__init__(f"Tool '{tool_name}' configuration error: {message}", tool_name, details)
        self.config_errors = config_errors or []


class AuthRequiredError(ToolError):
    """Raised when a tool needs Slack credentials and none are configured"""
    error_code = ErrorCode.AUTH_REQUIRED

    def __init__(self, tool_name: Optional[str] = None):
        super().__init__(
            "Slack authentication required. Set SLACK_XOXC_TOKEN, SLACK_XOXD_TOKEN and SLACK_TEAM_DOMAIN.",
            tool_name
        )


class AuthError(ToolError):
    """Raised when credentials are malformed or rejected by Slack"""
    error_code = ErrorCode.AUTH_ERROR


class RateLimitExceededError(ToolError):
    """Raised when a tool is called more often than its rate limit allows"""
    error_code = ErrorCode.RATE_LIMITED

    def __init__(self, tool_name: str, max_calls: int, window_ms: int, retry_after_ms: Optional[int] = None):
        super().__init__(
            f"Rate limit exceeded for tool '{tool_name}': {max_calls} calls per {window_ms}ms",
            tool_name,
            {"max_calls": max_calls, "window_ms": window_ms, "retry_after_ms": retry_after_ms}
        )
        self.retry_after_ms = retry_after_ms
