"""
Middleware hooks around tool execution

Hooks are advisory: a failing hook is logged and skipped, it never changes
the outcome of the call.
"""
import logging
import time
from abc import ABC
from typing import Dict, Any, List, Optional

from .schemas import ToolContext, ToolExecutionResult

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = {"token", "password", "secret", "key", "auth", "xoxc", "xoxd", "cookie"}
REDACTED = "[REDACTED]"


def sanitize_args(args: Any) -> Any:
    """Copy of args with credential-looking fields redacted"""
    if not isinstance(args, dict):
        return args
    sanitized: Dict[str, Any] = {}
    for name, value in args.items():
        lowered = str(name).lower()
        if lowered in SENSITIVE_FIELDS or lowered.endswith("_token"):
            sanitized[name] = REDACTED
        elif isinstance(value, dict):
            sanitized[name] = sanitize_args(value)
        else:
            sanitized[name] = value
    return sanitized


class ToolMiddleware(ABC):
    """Base middleware; override the hooks you need"""
    name: str = "middleware"
    priority: int = 0

    async def before(self, context: ToolContext, args: Dict[str, Any]) -> None:
        pass

    async def after(self, context: ToolContext, result: ToolExecutionResult) -> None:
        pass


class LoggingMiddleware(ToolMiddleware):
    """Logs each call with sanitized arguments and its outcome"""
    name = "logging"
    priority = 100

    async def before(self, context: ToolContext, args: Dict[str, Any]) -> None:
        logger.debug(f"[{context.trace_id}] Starting tool '{context.tool_name}' with args {sanitize_args(args)}")

    async def after(self, context: ToolContext, result: ToolExecutionResult) -> None:
        elapsed = context.elapsed_ms()
        if result.success:
            logger.info(
                f"[{context.trace_id}] Tool '{context.tool_name}' completed in {elapsed:.1f}ms "
                f"(api_calls={result.metadata.api_calls})"
            )
        else:
            code = result.error_code.value if result.error_code else None
            logger.warning(f"[{context.trace_id}] Tool '{context.tool_name}' failed in {elapsed:.1f}ms: [{code}] {result.error}")


class PerformanceMiddleware(ToolMiddleware):
    """Tracks wall time per tool and warns about slow calls"""
    name = "performance"
    priority = 90

    def __init__(self, slow_threshold_ms: float = 5000.0):
        self.slow_threshold_ms = slow_threshold_ms
        self._timings: Dict[str, Dict[str, float]] = {}

    async def before(self, context: ToolContext, args: Dict[str, Any]) -> None:
        context.metadata["perf_start"] = time.perf_counter()

    async def after(self, context: ToolContext, result: ToolExecutionResult) -> None:
        started = context.metadata.get("perf_start")
        if started is None:
            return
        elapsed_ms = (time.perf_counter() - started) * 1000

        stats = self._timings.setdefault(context.tool_name, {"calls": 0, "total_ms": 0.0, "min_ms": float("inf"), "max_ms": 0.0})
        stats["calls"] += 1
        stats["total_ms"] += elapsed_ms
        stats["min_ms"] = min(stats["min_ms"], elapsed_ms)
        stats["max_ms"] = max(stats["max_ms"], elapsed_ms)

        if elapsed_ms > self.slow_threshold_ms:
            logger.warning(f"[{context.trace_id}] Slow tool execution: '{context.tool_name}' took {elapsed_ms:.0f}ms")

    def get_timings(self) -> Dict[str, Dict[str, float]]:
        result = {}
        for tool_name, stats in self._timings.items():
            result[tool_name] = {
                "calls": stats["calls"],
                "average_ms": stats["total_ms"] / stats["calls"] if stats["calls"] else 0.0,
                "min_ms": stats["min_ms"] if stats["calls"] else 0.0,
                "max_ms": stats["max_ms"],
            }
        return result


class MiddlewareChain:
    """Ordered collection of middleware, highest priority first"""

    def __init__(self, middleware: Optional[List[ToolMiddleware]] = None):
        self._middleware: List[ToolMiddleware] = []
        for item in middleware or []:
            self.add(item)

    def add(self, middleware: ToolMiddleware) -> None:
        self._middleware.append(middleware)
        self._middleware.sort(key=lambda m: m.priority, reverse=True)

    def __iter__(self):
        return iter(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)

    async def run_before(self, context: ToolContext, args: Dict[str, Any]) -> None:
        for middleware in self._middleware:
            try:
                await middleware.before(context, args)
            except Exception as e:
                logger.warning(f"[{context.trace_id}] Middleware '{middleware.name}' before-hook failed: {e}")

    async def run_after(self, context: ToolContext, result: ToolExecutionResult) -> None:
        for middleware in self._middleware:
            try:
                await middleware.after(context, result)
            except Exception as e:
                logger.warning(f"[{context.trace_id}] Middleware '{middleware.name}' after-hook failed: {e}")


def create_default_middleware(enable_tracing: bool = True) -> List[ToolMiddleware]:
    middleware: List[ToolMiddleware] = [PerformanceMiddleware()]
    if enable_tracing:
        middleware.append(LoggingMiddleware())
    return middleware
