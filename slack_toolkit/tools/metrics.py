"""
Per-tool execution metrics
"""
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from .schemas import ToolMetrics, ToolExecutionResult


class MetricsStore:
    """
    Counters per tool name, updated once per completed call

    Updates happen synchronously inside the event loop, so concurrent calls
    never interleave within a single record().
    """

    def __init__(self):
        self._metrics: Dict[str, ToolMetrics] = {}

    def record(self, tool_name: str, result: ToolExecutionResult) -> ToolMetrics:
        metrics = self._metrics.setdefault(tool_name, ToolMetrics())
        metrics.execution_count += 1
        metrics.total_execution_time += result.metadata.execution_time
        metrics.total_cache_hits += result.metadata.cache_hits
        metrics.last_executed = datetime.now(timezone.utc)

        if not result.success:
            metrics.error_count += 1
            code = result.error_code.value if result.error_code else "UNKNOWN"
            metrics.error_codes[code] = metrics.error_codes.get(code, 0) + 1

        metrics.cache_hit_rate = metrics.total_cache_hits / metrics.execution_count
        return metrics

    def get(self, tool_name: str) -> Optional[ToolMetrics]:
        return self._metrics.get(tool_name)

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Serializable copy of all metrics"""
        return {name: metrics.model_dump(mode="json") for name, metrics in self._metrics.items()}

    def reset(self, tool_name: Optional[str] = None) -> None:
        if tool_name:
            self._metrics.pop(tool_name, None)
        else:
            self._metrics.clear()

    def totals(self) -> Dict[str, Any]:
        executions = sum(m.execution_count for m in self._metrics.values())
        errors = sum(m.error_count for m in self._metrics.values())
        total_time = sum(m.total_execution_time for m in self._metrics.values())
        return {
            "total_executions": executions,
            "total_errors": errors,
            "error_rate": (errors / executions) if executions else 0.0,
            "average_execution_time": (total_time / executions) if executions else 0.0,
        }
