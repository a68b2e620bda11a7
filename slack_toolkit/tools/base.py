"""
Base tool classes and optional capabilities for the tool execution framework

A tool is a long-lived object bound to one ToolDefinition. Per-call state
belongs in the ToolContext or in locals of execute_impl, never on the
instance, because one instance serves concurrent calls.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Type, List

from pydantic import BaseModel, ValidationError

from ..config.settings import CollectionSettings
from ..slack.client import SlackClient
from ..slack.errors import SlackAuthError, SlackRateLimitedError, SlackRequestError
from ..slack.threads import SlackApiError
from .exceptions import ToolError, ToolValidationError, AuthRequiredError, AuthError
from .schemas import (
    ToolDefinition, ToolContext, ToolExecutionResult, ToolValidationResult, ErrorCode
)

logger = logging.getLogger(__name__)

# Slack `error` strings that mean the credentials are unusable
AUTH_FAILURES = {"invalid_auth", "not_authed", "token_revoked", "token_expired", "account_inactive"}


def format_validation_errors(error: ValidationError) -> List[str]:
    """Flatten a pydantic ValidationError into readable messages"""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{location}: {message}" if location else message)
    return messages


class ToolHandler(ABC):
    """Minimal contract every tool fulfils"""

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        pass

    @abstractmethod
    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolExecutionResult:
        """
        Execute the tool

        Args:
            args: Raw arguments from the caller
            context: Per-call execution context

        Returns:
            ToolExecutionResult: Never raises for handled failures
        """
        pass


class SupportsValidation(ABC):
    """Capability: validate raw arguments before execution"""

    @abstractmethod
    def validate(self, args: Dict[str, Any]) -> ToolValidationResult:
        pass


class SupportsCleanup(ABC):
    """Capability: release resources when the registry shuts down"""

    @abstractmethod
    async def cleanup(self) -> None:
        pass


class BaseTool(ToolHandler):
    """
    Common execution flow for Slack tools

    Subclasses implement execute_impl(). Exceptions raised there are mapped
    to error codes: ToolError subclasses carry their own code, Slack HTTP
    failures become API_ERROR / RATE_LIMITED / AUTH_ERROR, anything else
    becomes EXECUTION_ERROR.
    """
    params_model: Optional[Type[BaseModel]] = None

    def __init__(self,
                 definition: ToolDefinition,
                 client: Optional[SlackClient] = None,
                 collection_settings: Optional[CollectionSettings] = None,
                 auth_error: Optional[str] = None):
        self._definition = definition
        self.client = client
        self.collection_settings = collection_settings or CollectionSettings()
        self.auth_error = auth_error
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    @property
    def name(self) -> str:
        return self._definition.name

    def require_client(self) -> SlackClient:
        """Return the Slack client, or raise AUTH_ERROR / AUTH_REQUIRED when there is none"""
        if self.client is None:
            if self.auth_error:
                raise AuthError(self.auth_error, self.name)
            raise AuthRequiredError(self.name)
        return self.client

    def parse_params(self, args: Dict[str, Any]) -> Any:
        """Turn raw args into the tool's parameter model"""
        if self.params_model is None:
            return dict(args or {})
        try:
            return self.params_model.model_validate(args or {})
        except ValidationError as e:
            errors = format_validation_errors(e)
            raise ToolValidationError(f"Validation failed: {'; '.join(errors)}", self.name, errors)

    @abstractmethod
    async def execute_impl(self, params: Any, context: ToolContext) -> ToolExecutionResult:
        pass

    async def execute(self, args: Dict[str, Any], context: ToolContext) -> ToolExecutionResult:
        start_time = time.perf_counter()

        try:
            params = self.parse_params(args)
            if self.definition.requires_auth:
                self.require_client()
            result = await self.execute_impl(params, context)

        except ToolError as e:
            self._logger.info(f"[{context.trace_id}] {self.name} failed with {e.error_code.value}: {e.message}")
            result = ToolExecutionResult.error_result(e.message, e.error_code)

        except SlackRateLimitedError as e:
            self._logger.warning(f"[{context.trace_id}] {self.name} hit Slack rate limit: {e.message}")
            result = ToolExecutionResult.error_result(e.message, ErrorCode.RATE_LIMITED)

        except SlackAuthError as e:
            result = ToolExecutionResult.error_result(e.message, ErrorCode.AUTH_ERROR)

        except SlackRequestError as e:
            self._logger.warning(f"[{context.trace_id}] {self.name} request failed: {e.message}")
            result = ToolExecutionResult.error_result(e.message, ErrorCode.API_ERROR)

        except SlackApiError as e:
            code = ErrorCode.AUTH_ERROR if e.error in AUTH_FAILURES else ErrorCode.API_ERROR
            result = ToolExecutionResult.error_result(str(e), code)

        except Exception as e:
            self._logger.error(f"[{context.trace_id}] Unexpected error in tool '{self.name}': {e}", exc_info=True)
            result = ToolExecutionResult.error_result(f"Tool '{self.name}' execution failed: {e}", ErrorCode.EXECUTION_ERROR)

        return result.with_timing((time.perf_counter() - start_time) * 1000)

    def api_error(self, response: Dict[str, Any], action: str, api_calls: int = 1) -> ToolExecutionResult:
        """Build the failed result for a Slack response with ok: false"""
        error = response.get("error", "unknown_error")
        code = ErrorCode.AUTH_ERROR if error in AUTH_FAILURES else ErrorCode.API_ERROR
        return ToolExecutionResult.error_result(f"Failed to {action}: {error}", code, api_calls=api_calls)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', category='{self.definition.category}')"


class ValidatedTool(BaseTool, SupportsValidation):
    """BaseTool whose arguments are checked against params_model before execution"""

    def check_params(self, params: Any) -> List[str]:
        """Extra checks that need more than one field; override in subclasses"""
        return []

    def validate(self, args: Dict[str, Any]) -> ToolValidationResult:
        if self.params_model is None:
            return ToolValidationResult()
        try:
            params = self.params_model.model_validate(args or {})
        except ValidationError as e:
            return ToolValidationResult(errors=format_validation_errors(e))
        return ToolValidationResult(errors=self.check_params(params))

    def parse_params(self, args: Dict[str, Any]) -> Any:
        params = super().parse_params(args)
        errors = self.check_params(params)
        if errors:
            raise ToolValidationError(f"Validation failed: {'; '.join(errors)}", self.name, errors)
        return params
