"""
Tools package for the Slack toolkit

Provides the tool execution framework: definitions and schemas, a factory
that pairs definitions with implementations, and a registry that runs each
call through admission control, middleware, validation, a deadline and
metrics before returning a uniform response envelope.
"""

# Core base classes and capabilities
from .base import (
    BaseTool,
    ValidatedTool,
    ToolHandler,
    SupportsValidation,
    SupportsCleanup,
)

# Factory and registry
from .factory import ToolFactory
from .registry import ToolRegistry, build_registry

# Middleware, metrics and admission control
from .middleware import ToolMiddleware, LoggingMiddleware, PerformanceMiddleware, MiddlewareChain
from .metrics import MetricsStore
from .rate_limit import ConcurrencyGate, SlidingWindowRateLimiter

# Schemas and data models
from .schemas import (
    ErrorCode,
    ToolCategory,
    RateLimitConfig,
    ToolDefinition,
    ToolContext,
    ToolExecutionResult,
    ToolValidationResult,
    ToolCallResponse,
    ToolMetrics,
)

# Exception classes
from .exceptions import (
    ToolError,
    ToolNotFoundError,
    ToolValidationError,
    ToolExecutionError,
    ToolTimeoutError,
    ToolConfigurationError,
    AuthRequiredError,
    AuthError,
    RateLimitExceededError,
)

__all__ = [
    # Base framework classes
    'BaseTool',
    'ValidatedTool',
    'ToolHandler',
    'SupportsValidation',
    'SupportsCleanup',

    # Factory and registry
    'ToolFactory',
    'ToolRegistry',
    'build_registry',

    # Middleware, metrics and admission control
    'ToolMiddleware',
    'LoggingMiddleware',
    'PerformanceMiddleware',
    'MiddlewareChain',
    'MetricsStore',
    'ConcurrencyGate',
    'SlidingWindowRateLimiter',

    # Schemas
    'ErrorCode',
    'ToolCategory',
    'RateLimitConfig',
    'ToolDefinition',
    'ToolContext',
    'ToolExecutionResult',
    'ToolValidationResult',
    'ToolCallResponse',
    'ToolMetrics',

    # Exceptions
    'ToolError',
    'ToolNotFoundError',
    'ToolValidationError',
    'ToolExecutionError',
    'ToolTimeoutError',
    'ToolConfigurationError',
    'AuthRequiredError',
    'AuthError',
    'RateLimitExceededError',
]
