"""Tests for ToolFactory: instance caching and definition validation."""
import pytest

from slack_toolkit.tools.base import BaseTool
from slack_toolkit.tools.definitions import get_default_definitions, PRODUCTION_TOOL_NAMES
from slack_toolkit.tools.exceptions import ToolConfigurationError
from slack_toolkit.tools.factory import ToolFactory
from slack_toolkit.tools.implementations import get_default_tool_classes
from slack_toolkit.tools.schemas import RateLimitConfig, ToolDefinition, ToolExecutionResult


class EchoTool(BaseTool):
    async def execute_impl(self, params, context):
        return ToolExecutionResult.success_result(params)


def echo_definition(**overrides) -> ToolDefinition:
    fields = {"name": "echo", "description": "Echo arguments", "category": "system"}
    fields.update(overrides)
    return ToolDefinition(**fields)


class TestCreateTool:
    def test_unknown_name_returns_none(self):
        factory = ToolFactory()
        assert factory.create_tool(echo_definition()) is None

    def test_instances_are_cached(self):
        factory = ToolFactory({"echo": EchoTool})
        first = factory.create_tool(echo_definition())
        second = factory.create_tool(echo_definition())
        assert isinstance(first, EchoTool)
        assert first is second
        assert factory.get_tool("echo") is first

    def test_invalid_definition_returns_none(self):
        factory = ToolFactory({"echo": EchoTool})
        assert factory.create_tool(echo_definition(category="bogus")) is None
        assert factory.get_tool("echo") is None

    def test_tools_receive_shared_client_and_auth_error(self):
        sentinel = object()
        factory = ToolFactory({"echo": EchoTool}, client=sentinel, auth_error="bad tokens")
        tool = factory.create_tool(echo_definition())
        assert tool.client is sentinel
        assert tool.auth_error == "bad tokens"

    def test_register_rejects_non_tools(self):
        factory = ToolFactory()
        with pytest.raises(ToolConfigurationError):
            factory.register_tool_class("echo", dict)

    def test_register_replaces_cached_instance(self):
        factory = ToolFactory({"echo": EchoTool})
        first = factory.create_tool(echo_definition())

        class OtherEcho(EchoTool):
            pass

        factory.register_tool_class("echo", OtherEcho)
        assert factory.has_tool_class("echo")
        second = factory.create_tool(echo_definition())
        assert isinstance(second, OtherEcho)
        assert second is not first

    def test_load_tools_reports_failures(self):
        factory = ToolFactory({"echo": EchoTool})
        loaded, failed = factory.load_tools_from_definitions([
            echo_definition(),
            echo_definition(name="missing"),
        ])
        assert [tool.name for tool in loaded] == ["echo"]
        assert failed == ["missing"]

    def test_lookup_by_category_and_stats(self):
        factory = ToolFactory({"echo": EchoTool})
        factory.create_tool(echo_definition())
        assert [t.name for t in factory.get_tools_by_category("system")] == ["echo"]
        assert factory.get_tools_by_category("search") == []

        stats = factory.get_stats()
        assert stats["registered_classes"] == 1
        assert stats["cached_instances"] == 1
        assert stats["category_counts"] == {"system": 1}

        factory.clear_caches()
        assert factory.get_all_tools() == []


class TestValidateDefinition:
    def test_valid_definition(self):
        result = ToolFactory().validate_definition(echo_definition())
        assert result.is_valid
        assert result.warnings == []

    def test_validation_is_cached(self):
        factory = ToolFactory()
        factory.validate_definition(echo_definition())
        factory.validate_definition(echo_definition())
        assert factory.get_stats()["validation_cache_size"] == 1

    def test_cached_result_is_not_shared_with_callers(self):
        factory = ToolFactory()
        first = factory.validate_definition(echo_definition())
        first.warnings.append("caller note")
        first.errors.append("caller error")

        second = factory.validate_definition(echo_definition())
        assert second.warnings == []
        assert second.is_valid

    @pytest.mark.parametrize("overrides, message", [
        ({"name": ""}, "Tool name is required"),
        ({"description": ""}, "Tool description is required"),
        ({"category": "bogus"}, "Invalid tool category: bogus"),
        ({"input_schema": None}, "Tool input schema is required"),
        ({"input_schema": "object"}, "Input schema must be an object"),
        ({"input_schema": {"properties": {}}}, "Input schema must have a type property"),
        ({"tags": ["ok", 3]}, "Tags must be an array of strings"),
    ])
    def test_errors(self, overrides, message):
        result = ToolFactory().validate_definition(echo_definition(**overrides))
        assert not result.is_valid
        assert message in result.errors

    def test_rate_limit_warnings_do_not_invalidate(self):
        factory = ToolFactory()
        result = factory.validate_definition(echo_definition(rate_limit=RateLimitConfig(max_calls=0, window_ms=0)))
        assert result.is_valid
        assert "Rate limit max_calls should be positive" in result.warnings
        assert "Rate limit window_ms should be positive" in result.warnings

        result = factory.validate_definition(echo_definition(rate_limit=RateLimitConfig(max_calls=5000)))
        assert result.is_valid
        assert any("very high" in warning for warning in result.warnings)


class TestProductionDefinitions:
    def test_every_production_definition_is_valid(self):
        factory = ToolFactory()
        for definition in get_default_definitions():
            result = factory.validate_definition(definition)
            assert result.is_valid, (definition.name, result.errors)

    def test_every_production_tool_has_an_implementation(self):
        names = [definition.name for definition in get_default_definitions()]
        assert sorted(names) == sorted(PRODUCTION_TOOL_NAMES)
        assert set(get_default_tool_classes()) == set(PRODUCTION_TOOL_NAMES)
