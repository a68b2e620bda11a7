"""
Tool registry and execution pipeline

Every call goes through the same steps: admission (concurrency gate, tool
lookup, per-tool rate limit), context creation, before-middleware,
argument validation, handler execution under a deadline, metrics,
after-middleware and finally the response envelope.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Any, Type, Tuple

from ..config.settings import Settings, RegistrySettings, get_settings
from ..slack.auth import SlackAuth
from ..slack.client import SlackClient
from ..slack.errors import SlackAuthError
from .base import BaseTool, SupportsValidation, SupportsCleanup
from .exceptions import ToolNotFoundError, ToolTimeoutError, RateLimitExceededError
from .definitions import get_default_definitions, PRODUCTION_TOOL_NAMES
from .factory import ToolFactory
from .metrics import MetricsStore
from .middleware import MiddlewareChain, ToolMiddleware, create_default_middleware
from .rate_limit import ConcurrencyGate, SlidingWindowRateLimiter
from .schemas import (
    ToolDefinition, ToolContext, ToolExecutionResult, ToolCallResponse, ToolMetrics, ErrorCode
)

logger = logging.getLogger(__name__)

OVERLOADED_MESSAGE = "Maximum concurrent executions exceeded. Please try again later."


class ToolRegistry:
    """Holds the active tools and runs calls against them"""

    def __init__(self,
                 factory: ToolFactory,
                 registry_settings: Optional[RegistrySettings] = None,
                 middleware: Optional[List[ToolMiddleware]] = None,
                 rate_limiter: Optional[SlidingWindowRateLimiter] = None):
        self.factory = factory
        self.settings = registry_settings or RegistrySettings()
        self._tools: Dict[str, BaseTool] = {}
        self.metrics = MetricsStore()
        self.middleware = MiddlewareChain(middleware)
        self.gate = ConcurrencyGate(self.settings.max_concurrent_executions)
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self._initialized = False

    def initialize(self, definitions: Optional[List[ToolDefinition]] = None) -> None:
        """
        Load tools through the factory

        Args:
            definitions: Definitions to load; the production set when omitted
        """
        if self._initialized:
            logger.warning("Tool registry already initialized")
            return

        loaded, failed = self.factory.load_tools_from_definitions(
            definitions if definitions is not None else get_default_definitions()
        )
        for tool in loaded:
            self.register_tool(tool)

        if failed:
            logger.warning(f"Failed to load tools: {', '.join(failed)}")

        if definitions is None:
            missing = [name for name in PRODUCTION_TOOL_NAMES if name not in self._tools]
            if missing:
                logger.warning(f"Production tools missing from registry: {', '.join(missing)}")

        self._initialized = True
        logger.info(f"Tool registry initialized with {len(self._tools)} tools")

    def register_tool(self, tool: BaseTool) -> None:
        name = tool.definition.name
        if name in self._tools and self._tools[name] is not tool:
            logger.info(f"Replacing registered tool '{name}'")
        self._tools[name] = tool

    def unregister_tool(self, name: str) -> None:
        if self._tools.pop(name, None) is None:
            logger.warning(f"Tool '{name}' not found for unregistration")

    def register_middleware(self, middleware: ToolMiddleware) -> None:
        self.middleware.add(middleware)
        logger.debug(f"Registered middleware '{middleware.name}' (priority {middleware.priority})")

    def get_tool(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def get_tools(self) -> List[Dict[str, Any]]:
        """Listing of every registered tool: name, description, inputSchema"""
        return [tool.definition.to_listing() for tool in self._tools.values()]

    def get_tool_names(self) -> List[str]:
        return list(self._tools.keys())

    async def run_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> ToolExecutionResult:
        """Run one call through the pipeline and return the internal result"""
        if not self.gate.try_acquire():
            logger.warning(f"Rejected call to '{name}': {self.gate.in_flight} executions in flight")
            return ToolExecutionResult.error_result(OVERLOADED_MESSAGE, ErrorCode.OVERLOADED)

        try:
            tool = self._tools.get(name)
            if tool is None:
                error = ToolNotFoundError(name)
                return ToolExecutionResult.error_result(error.message, error.error_code)

            definition = tool.definition
            if self.settings.enable_rate_limits:
                retry_after_ms = self.rate_limiter.acquire(name, definition.rate_limit)
                if retry_after_ms is not None:
                    limit = definition.rate_limit
                    error = RateLimitExceededError(name, limit.max_calls, limit.window_ms, retry_after_ms)
                    logger.info(f"Rate limit hit for tool '{name}', retry in {retry_after_ms}ms")
                    return ToolExecutionResult.error_result(error.message, error.error_code)

            context = ToolContext(tool_name=name)
            call_args = args if args is not None else {}

            await self.middleware.run_before(context, call_args)

            result = await self._execute(tool, call_args, context)
            if result.metadata.execution_time == 0:
                result.with_timing(context.elapsed_ms())

            if self.settings.enable_metrics:
                self.metrics.record(name, result)

            await self.middleware.run_after(context, result)
            return result

        finally:
            self.gate.release()

    async def _execute(self, tool: BaseTool, args: Any, context: ToolContext) -> ToolExecutionResult:
        if not isinstance(args, dict):
            return ToolExecutionResult.error_result("Tool arguments must be an object", ErrorCode.VALIDATION_ERROR)

        if isinstance(tool, SupportsValidation):
            try:
                validation = tool.validate(args)
            except Exception as e:
                logger.warning(f"[{context.trace_id}] Validator for '{context.tool_name}' raised: {e}")
                return ToolExecutionResult.error_result(f"Validation failed: {e}", ErrorCode.VALIDATION_ERROR)
            if not validation.is_valid:
                return ToolExecutionResult.error_result(
                    f"Validation failed: {'; '.join(validation.errors)}",
                    ErrorCode.VALIDATION_ERROR,
                )

        timeout = tool.definition.timeout_seconds or self.settings.default_timeout_seconds
        try:
            return await asyncio.wait_for(tool.execute(args, context), timeout=timeout)
        except asyncio.TimeoutError:
            error = ToolTimeoutError(context.tool_name, timeout)
            logger.warning(f"[{context.trace_id}] {error.message}")
            return ToolExecutionResult.error_result(error.message, error.error_code)
        except Exception as e:
            logger.error(f"[{context.trace_id}] Tool '{context.tool_name}' raised: {e}", exc_info=True)
            return ToolExecutionResult.error_result(str(e) or type(e).__name__, ErrorCode.EXECUTION_ERROR)

    async def execute_tool(self, name: str, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run a call and return the orchestrator envelope {content, isError}"""
        result = await self.run_tool(name, args)
        return ToolCallResponse.from_result(result).to_dict()

    def get_tool_metrics(self, name: Optional[str] = None) -> Dict[str, Any]:
        if name is not None:
            metrics = self.metrics.get(name)
            return metrics.model_dump(mode="json") if metrics else ToolMetrics().model_dump(mode="json")
        return self.metrics.snapshot()

    def reset_metrics(self, name: Optional[str] = None) -> None:
        self.metrics.reset(name)
        logger.info(f"Reset metrics for {name or 'all tools'}")

    def get_stats(self) -> Dict[str, Any]:
        category_counts: Dict[str, int] = {}
        for tool in self._tools.values():
            category = tool.definition.category
            category_counts[category] = category_counts.get(category, 0) + 1

        return {
            "total_tools": len(self._tools),
            "categories": category_counts,
            "in_flight": self.gate.in_flight,
            "max_concurrent_executions": self.gate.max_in_flight,
            "middleware": [m.name for m in self.middleware],
            "execution_totals": self.metrics.totals(),
            "factory": self.factory.get_stats(),
        }

    async def cleanup(self) -> None:
        """Run each tool's cleanup hook; failures are logged and skipped"""
        for tool in self._tools.values():
            if isinstance(tool, SupportsCleanup):
                try:
                    await tool.cleanup()
                except Exception as e:
                    logger.warning(f"Cleanup failed for tool '{tool.definition.name}': {e}")
        logger.info("Tool registry cleanup completed")

    @property
    def client(self) -> Optional[SlackClient]:
        return self.factory.client

    async def close(self) -> None:
        """Clean up tools and close the shared Slack client"""
        await self.cleanup()
        if self.factory.client is not None:
            await self.factory.client.aclose()


def create_slack_client(settings: Settings) -> Tuple[Optional[SlackClient], Optional[str]]:
    """
    Build a Slack client from configured credentials

    Returns:
        (client, auth_error): client is None when credentials are missing or malformed
    """
    auth = SlackAuth(settings.slack)
    try:
        tokens = auth.extract_tokens()
    except SlackAuthError as e:
        logger.error(f"Slack credentials rejected: {e.message}")
        return None, e.message

    if tokens is None:
        logger.warning("Slack credentials not configured; tools requiring auth will report AUTH_REQUIRED")
        return None, None

    return SlackClient.from_settings(tokens, settings.slack), None


def build_registry(settings: Optional[Settings] = None,
                   client: Optional[SlackClient] = None,
                   tool_classes: Optional[Dict[str, Type[BaseTool]]] = None,
                   definitions: Optional[List[ToolDefinition]] = None) -> ToolRegistry:
    """
    Assemble a ready-to-use registry

    Args:
        settings: Application settings; the global settings when omitted
        client: Slack client to share between tools; built from settings when omitted
        tool_classes: Name to implementation map; the production tools when omitted
        definitions: Definitions to load; the production set when omitted
    """
    settings = settings or get_settings()

    auth_error = None
    if client is None:
        client, auth_error = create_slack_client(settings)

    if tool_classes is None:
        from .implementations import get_default_tool_classes
        tool_classes = get_default_tool_classes()

    factory = ToolFactory(
        tool_classes,
        client=client,
        collection_settings=settings.collection,
        auth_error=auth_error,
    )

    registry = ToolRegistry(factory, settings.registry, create_default_middleware(settings.registry.enable_tracing))
    registry.initialize(definitions)
    return registry
