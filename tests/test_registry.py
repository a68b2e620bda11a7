"""Tests for the registry execution pipeline."""
import asyncio
import json
from typing import Dict, List, Type

import pytest

from slack_toolkit.config.settings import RegistrySettings
from slack_toolkit.tools.base import BaseTool, SupportsCleanup, ValidatedTool
from slack_toolkit.tools.definitions import PRODUCTION_TOOL_NAMES
from slack_toolkit.tools.factory import ToolFactory
from slack_toolkit.tools.implementations import get_default_tool_classes
from slack_toolkit.tools.middleware import ToolMiddleware
from slack_toolkit.tools.registry import ToolRegistry, build_registry, OVERLOADED_MESSAGE
from slack_toolkit.tools.schemas import ErrorCode, RateLimitConfig, ToolDefinition, ToolExecutionResult


class EchoTool(BaseTool):
    async def execute_impl(self, params, context):
        return ToolExecutionResult.success_result({"echo": params})


class BlockingTool(BaseTool):
    """Waits until the test opens its event"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.event = asyncio.Event()

    async def execute_impl(self, params, context):
        await self.event.wait()
        return ToolExecutionResult.success_result("released")


class SleepyTool(BaseTool):
    async def execute_impl(self, params, context):
        await asyncio.sleep(params.get("seconds", 1))
        return ToolExecutionResult.success_result("woke up")


class FailingTool(BaseTool):
    async def execute_impl(self, params, context):
        raise RuntimeError("kaboom")


class EscapingTool(BaseTool):
    """Raises past BaseTool's own error mapping"""

    async def execute(self, args, context):
        raise RuntimeError("escaped")

    async def execute_impl(self, params, context):
        pass


class BrokenValidatorTool(ValidatedTool):
    def validate(self, args):
        raise RuntimeError("validator crashed")

    async def execute_impl(self, params, context):
        return ToolExecutionResult.success_result("unreachable")


class CleanupTool(EchoTool, SupportsCleanup):
    cleaned: List[str] = []

    async def cleanup(self):
        if self.name == "bad_cleanup":
            raise RuntimeError("cleanup failed")
        CleanupTool.cleaned.append(self.name)


def definition(name: str, **overrides) -> ToolDefinition:
    fields = {"name": name, "description": f"{name} tool", "category": "system", "requires_auth": False}
    fields.update(overrides)
    return ToolDefinition(**fields)


def make_registry(classes: Dict[str, Type[BaseTool]], definitions: List[ToolDefinition], **settings) -> ToolRegistry:
    registry = ToolRegistry(ToolFactory(classes), RegistrySettings(**settings))
    registry.initialize(definitions)
    return registry


def envelope_text(envelope) -> str:
    return envelope["content"][0]["text"]


class TestRunTool:
    async def test_success_envelope(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        envelope = await registry.execute_tool("echo", {"x": 1})
        assert envelope["isError"] is False
        assert json.loads(envelope_text(envelope)) == {"echo": {"x": 1}}

    async def test_missing_args_become_empty_object(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        result = await registry.run_tool("echo")
        assert result.data == {"echo": {}}

    async def test_unknown_tool(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        envelope = await registry.execute_tool("nope", {})
        assert envelope["isError"] is True
        assert envelope_text(envelope) == "Error [TOOL_NOT_FOUND]: Tool 'nope' not found"
        assert registry.get_tool_metrics() == {}

    async def test_non_object_args(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        result = await registry.run_tool("echo", ["not", "an", "object"])
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    async def test_tool_exception_is_execution_error(self):
        registry = make_registry({"fail": FailingTool}, [definition("fail")])
        result = await registry.run_tool("fail", {})
        assert result.error_code == ErrorCode.EXECUTION_ERROR
        assert "kaboom" in result.error

    async def test_exception_escaping_tool_is_contained(self):
        registry = make_registry({"escape": EscapingTool}, [definition("escape")])
        result = await registry.run_tool("escape", {})
        assert result.error_code == ErrorCode.EXECUTION_ERROR
        assert result.error == "escaped"
        assert registry.gate.in_flight == 0

    async def test_crashing_validator_is_validation_error(self):
        registry = make_registry({"check": BrokenValidatorTool}, [definition("check")])
        result = await registry.run_tool("check", {})
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert "validator crashed" in result.error

    async def test_execution_time_is_recorded(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        result = await registry.run_tool("echo", {})
        assert result.metadata.execution_time >= 0


class TestAdmission:
    async def test_overloaded_when_gate_is_full(self):
        registry = make_registry({"block": BlockingTool}, [definition("block")], max_concurrent_executions=2)
        tool = registry.get_tool("block")

        running = [asyncio.create_task(registry.run_tool("block", {})) for _ in range(2)]
        for _ in range(10):
            await asyncio.sleep(0)
        assert registry.gate.in_flight == 2

        rejected = await registry.run_tool("block", {})
        assert rejected.error_code == ErrorCode.OVERLOADED
        assert rejected.error == OVERLOADED_MESSAGE

        tool.event.set()
        results = await asyncio.gather(*running)
        assert all(result.success for result in results)
        assert registry.gate.in_flight == 0

        metrics = registry.get_tool_metrics("block")
        assert metrics["execution_count"] == 2
        assert metrics["error_count"] == 0

    async def test_rate_limited_after_max_calls(self):
        registry = make_registry(
            {"echo": EchoTool},
            [definition("echo", rate_limit=RateLimitConfig(max_calls=2, window_ms=60_000))],
        )
        assert (await registry.run_tool("echo", {})).success
        assert (await registry.run_tool("echo", {})).success

        envelope = await registry.execute_tool("echo", {})
        assert envelope["isError"] is True
        assert envelope_text(envelope).startswith("Error [RATE_LIMITED]: Rate limit exceeded for tool 'echo'")
        assert registry.get_tool_metrics("echo")["execution_count"] == 2

    async def test_rate_limits_can_be_disabled(self):
        registry = make_registry(
            {"echo": EchoTool},
            [definition("echo", rate_limit=RateLimitConfig(max_calls=1, window_ms=60_000))],
            enable_rate_limits=False,
        )
        for _ in range(3):
            assert (await registry.run_tool("echo", {})).success

    async def test_timeout_uses_definition_deadline(self):
        registry = make_registry({"sleepy": SleepyTool}, [definition("sleepy", timeout_seconds=0.05)])
        result = await registry.run_tool("sleepy", {"seconds": 5})
        assert result.error_code == ErrorCode.TOOL_TIMEOUT
        assert "timed out after 0.05 seconds" in result.error
        assert registry.get_tool_metrics("sleepy")["error_codes"] == {"TOOL_TIMEOUT": 1}

    async def test_timeout_falls_back_to_default(self):
        registry = make_registry({"sleepy": SleepyTool}, [definition("sleepy")], default_timeout_seconds=0.05)
        result = await registry.run_tool("sleepy", {"seconds": 5})
        assert result.error_code == ErrorCode.TOOL_TIMEOUT


class RecordingMiddleware(ToolMiddleware):
    def __init__(self, name: str, priority: int, log: List[str]):
        self.name = name
        self.priority = priority
        self.log = log

    async def before(self, context, args):
        self.log.append(f"before:{self.name}")

    async def after(self, context, result):
        self.log.append(f"after:{self.name}")


class BrokenMiddleware(ToolMiddleware):
    name = "broken"
    priority = 200

    async def before(self, context, args):
        raise RuntimeError("before hook failed")

    async def after(self, context, result):
        raise RuntimeError("after hook failed")


class TestMiddleware:
    async def test_hooks_run_in_priority_order(self):
        log: List[str] = []
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        registry.register_middleware(RecordingMiddleware("low", 1, log))
        registry.register_middleware(RecordingMiddleware("high", 50, log))

        await registry.run_tool("echo", {})
        assert log == ["before:high", "before:low", "after:high", "after:low"]

    async def test_failing_hooks_do_not_change_outcome(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        registry.register_middleware(BrokenMiddleware())
        result = await registry.run_tool("echo", {"x": 1})
        assert result.success
        assert result.data == {"echo": {"x": 1}}


class TestMetricsAndLifecycle:
    async def test_metrics_track_success_and_failure(self):
        registry = make_registry(
            {"echo": EchoTool, "fail": FailingTool},
            [definition("echo"), definition("fail")],
        )
        await registry.run_tool("echo", {})
        await registry.run_tool("echo", {})
        await registry.run_tool("fail", {})

        echo = registry.get_tool_metrics("echo")
        assert echo["execution_count"] == 2
        assert echo["success_rate"] == 100.0

        fail = registry.get_tool_metrics("fail")
        assert fail["error_count"] == 1
        assert fail["error_codes"] == {"EXECUTION_ERROR": 1}

        stats = registry.get_stats()
        assert stats["total_tools"] == 2
        assert stats["execution_totals"]["total_executions"] == 3
        assert stats["execution_totals"]["total_errors"] == 1

        registry.reset_metrics("echo")
        assert registry.get_tool_metrics("echo")["execution_count"] == 0
        assert "fail" in registry.get_tool_metrics()

    async def test_metrics_can_be_disabled(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")], enable_metrics=False)
        await registry.run_tool("echo", {})
        assert registry.get_tool_metrics() == {}

    async def test_cleanup_is_best_effort(self):
        CleanupTool.cleaned = []
        registry = make_registry(
            {"bad_cleanup": CleanupTool, "good_cleanup": CleanupTool},
            [definition("bad_cleanup"), definition("good_cleanup")],
        )
        await registry.cleanup()
        assert CleanupTool.cleaned == ["good_cleanup"]

    def test_register_and_unregister(self):
        registry = make_registry({"echo": EchoTool}, [definition("echo")])
        assert registry.get_tool_names() == ["echo"]
        assert registry.get_tools() == [definition("echo").to_listing()]

        registry.unregister_tool("echo")
        assert registry.get_tool("echo") is None
        registry.unregister_tool("echo")


class TestBuildRegistry:
    def test_loads_every_production_tool(self, registry):
        assert sorted(registry.get_tool_names()) == sorted(PRODUCTION_TOOL_NAMES)
        listing = registry.get_tools()
        assert all(set(entry) == {"name", "description", "inputSchema"} for entry in listing)

    def test_tracing_toggles_logging_middleware(self, slack_client, make_settings):
        traced = build_registry(make_settings(registry={"enable_tracing": True}), client=slack_client)
        quiet = build_registry(make_settings(registry={"enable_tracing": False}), client=slack_client)
        assert [m.name for m in traced.middleware] == ["logging", "performance"]
        assert [m.name for m in quiet.middleware] == ["performance"]

    async def test_missing_credentials_report_auth_required(self, make_settings):
        factory = ToolFactory(get_default_tool_classes())
        registry = ToolRegistry(factory, make_settings().registry)
        registry.initialize()

        result = await registry.run_tool("post_message", {"channel": "C123", "text": "hi"})
        assert result.error_code == ErrorCode.AUTH_REQUIRED
        assert "SLACK_XOXC_TOKEN" in result.error

    async def test_malformed_credentials_report_auth_error(self, make_settings):
        factory = ToolFactory(get_default_tool_classes(), auth_error="Invalid token format")
        registry = ToolRegistry(factory, make_settings().registry)
        registry.initialize()

        result = await registry.run_tool("get_user_profile", {"user_id": "U123"})
        assert result.error_code == ErrorCode.AUTH_ERROR
        assert result.error == "Invalid token format"

    async def test_validation_runs_before_auth(self, make_settings):
        factory = ToolFactory(get_default_tool_classes())
        registry = ToolRegistry(factory, make_settings().registry)
        registry.initialize()

        result = await registry.run_tool("post_message", {"channel": "general", "text": "hi"})
        assert result.error_code == ErrorCode.VALIDATION_ERROR

    async def test_close_releases_client(self, registry, slack_client):
        await registry.close()
        assert slack_client._http.is_closed


@pytest.mark.parametrize("name", ["echo", "ECHO"])
async def test_lookup_is_exact(name):
    registry = make_registry({"echo": EchoTool}, [definition("echo")])
    result = await registry.run_tool(name, {})
    assert result.success == (name == "echo")
