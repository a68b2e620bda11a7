"""
Tool schemas using Pydantic for validation and serialization
"""
import json
import re
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, Field, model_validator, computed_field


class ErrorCode(str, Enum):
    """Stable error tags carried by failed tool results"""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    RATE_LIMITED = "RATE_LIMITED"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    API_ERROR = "API_ERROR"
    SEARCH_ERROR = "SEARCH_ERROR"
    OVERLOADED = "OVERLOADED"
    TOOL_TIMEOUT = "TOOL_TIMEOUT"
    CHANNEL_NOT_FOUND = "CHANNEL_NOT_FOUND"
    NOT_IN_CHANNEL = "NOT_IN_CHANNEL"
    MESSAGE_NOT_FOUND = "MESSAGE_NOT_FOUND"
    CANT_UPDATE_MESSAGE = "CANT_UPDATE_MESSAGE"
    CANT_DELETE_MESSAGE = "CANT_DELETE_MESSAGE"


class ToolCategory(str, Enum):
    """Known tool categories"""
    MESSAGING = "messaging"
    REACTIONS = "reactions"
    CHANNELS = "channels"
    CONVERSATIONS = "conversations"
    USERS = "users"
    SEARCH = "search"
    DATA_COLLECTION = "data_collection"
    SYSTEM = "system"


class RateLimitConfig(BaseModel):
    """Per-tool sliding window limit"""
    max_calls: int = Field(..., description="Calls allowed inside one window")
    window_ms: int = Field(default=60_000, description="Window length in milliseconds")

    model_config = {"frozen": True}

    @classmethod
    def per_minute(cls, rpm: int) -> "RateLimitConfig":
        return cls(max_calls=rpm, window_ms=60_000)

    @property
    def is_enforceable(self) -> bool:
        return self.max_calls > 0 and self.window_ms > 0


class ToolDefinition(BaseModel):
    """
    Static description of a tool

    The input_schema is JSON Schema advertised to callers; runtime
    validation is done by each tool's parameter model. Category is kept as
    a plain string so that unknown values surface during validation
    instead of failing construction.
    """
    name: str = Field(..., description="Tool name")
    description: str = Field(..., description="Tool description")
    input_schema: Any = Field(default_factory=lambda: {"type": "object", "properties": {}})
    category: str = Field(..., description="Tool category")
    tags: List[Any] = Field(default_factory=list)
    requires_auth: bool = Field(default=True)
    rate_limit: Optional[RateLimitConfig] = Field(default=None)
    timeout_seconds: Optional[float] = Field(default=None, description="Per-call deadline override")

    model_config = {"frozen": True}

    def to_listing(self) -> Dict[str, Any]:
        """Shape advertised to orchestrators"""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def cache_key(self) -> str:
        return f"{self.name}:{self.category}:{json.dumps(self.input_schema, sort_keys=True, default=str)}"


def generate_trace_id() -> str:
    return f"trace_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class ToolContext(BaseModel):
    """Per-call execution context; never shared between calls"""
    tool_name: str = Field(..., description="Name of the tool being executed")
    trace_id: str = Field(default_factory=generate_trace_id)
    start_time: float = Field(default_factory=time.perf_counter, description="Monotonic start time")
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def elapsed_ms(self) -> float:
        return max(0.0, (time.perf_counter() - self.start_time) * 1000)


class ExecutionMetadata(BaseModel):
    """Bookkeeping attached to every result"""
    execution_time: float = Field(default=0.0, ge=0, description="Milliseconds")
    api_calls: int = Field(default=0, ge=0)
    cache_hits: int = Field(default=0, ge=0)


class ToolExecutionResult(BaseModel):
    """Uniform outcome of a tool call"""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    metadata: ExecutionMetadata = Field(default_factory=ExecutionMetadata)

    @model_validator(mode="after")
    def check_failure_fields(self):
        """A failed result always carries a message and a code"""
        if not self.success:
            if not self.error:
                raise ValueError("Failed results must include an error message")
            if self.error_code is None:
                self.error_code = ErrorCode.EXECUTION_ERROR
        return self

    @classmethod
    def success_result(cls, data: Any, api_calls: int = 0, cache_hits: int = 0) -> "ToolExecutionResult":
        return cls(success=True, data=data, metadata=ExecutionMetadata(api_calls=api_calls, cache_hits=cache_hits))

    @classmethod
    def error_result(cls,
                     error: str,
                     error_code: ErrorCode = ErrorCode.EXECUTION_ERROR,
                     data: Optional[Any] = None,
                     api_calls: int = 0) -> "ToolExecutionResult":
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            data=data,
            metadata=ExecutionMetadata(api_calls=api_calls),
        )

    def with_timing(self, execution_time_ms: float) -> "ToolExecutionResult":
        self.metadata.execution_time = max(0.0, execution_time_ms)
        return self

    def to_text(self) -> str:
        """Render the result as the text block of the response envelope"""
        if self.success:
            if isinstance(self.data, str):
                return self.data
            return json.dumps(self.data, default=str)
        code = self.error_code.value if self.error_code else ErrorCode.EXECUTION_ERROR.value
        return f"Error [{code}]: {self.error}"


class ToolValidationResult(BaseModel):
    """Outcome of definition or parameter validation"""
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


class ContentBlock(BaseModel):
    type: str = "text"
    text: str


class ToolCallResponse(BaseModel):
    """Envelope returned to orchestrators"""
    content: List[ContentBlock]
    is_error: bool = Field(default=False, alias="isError")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_result(cls, result: ToolExecutionResult) -> "ToolCallResponse":
        return cls(content=[ContentBlock(text=result.to_text())], is_error=not result.success)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ToolMetrics(BaseModel):
    """Per-tool counters kept by the registry"""
    execution_count: int = 0
    total_execution_time: float = 0.0
    error_count: int = 0
    last_executed: Optional[datetime] = None
    cache_hit_rate: float = 0.0
    total_cache_hits: int = 0
    error_codes: Dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def average_execution_time(self) -> float:
        if self.execution_count == 0:
            return 0.0
        return self.total_execution_time / self.execution_count

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.execution_count == 0:
            return 0.0
        return (self.execution_count - self.error_count) / self.execution_count * 100


CHANNEL_PATTERN = r"^[CGD][A-Z0-9]+$"
USER_PATTERN = r"^[UW][A-Z0-9]+$"
TS_PATTERN = r"^\d+(\.\d+)?$"


def check_pattern(value: str, pattern: str, label: str) -> str:
    if not re.match(pattern, value):
        raise ValueError(f"Invalid {label} format: {value}")
    return value
