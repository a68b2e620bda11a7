"""
Tool factory: pairs definitions with implementation classes and caches instances
"""
import logging
from typing import Dict, List, Optional, Type, Tuple, Any

from ..config.settings import CollectionSettings
from ..slack.client import SlackClient
from .base import BaseTool
from .exceptions import ToolConfigurationError
from .schemas import ToolDefinition, ToolValidationResult, ToolCategory

logger = logging.getLogger(__name__)

MAX_REASONABLE_CALLS = 1000


class ToolFactory:
    """
    Creates tool instances from definitions

    Instances are cached by tool name and reused for every call. Definition
    validation results are cached by name, category and schema so repeated
    validation of the same definition is free.
    """

    def __init__(self,
                 tool_classes: Optional[Dict[str, Type[BaseTool]]] = None,
                 client: Optional[SlackClient] = None,
                 collection_settings: Optional[CollectionSettings] = None,
                 auth_error: Optional[str] = None):
        self._tool_classes: Dict[str, Type[BaseTool]] = dict(tool_classes or {})
        self._instances: Dict[str, BaseTool] = {}
        self._validation_cache: Dict[str, ToolValidationResult] = {}
        self.client = client
        self.collection_settings = collection_settings or CollectionSettings()
        self.auth_error = auth_error

    def register_tool_class(self, name: str, tool_class: Type[BaseTool]) -> None:
        """Map a tool name to its implementation class"""
        if not (isinstance(tool_class, type) and issubclass(tool_class, BaseTool)):
            raise ToolConfigurationError("Tool class must inherit from BaseTool", name)
        if name in self._tool_classes and self._tool_classes[name] is not tool_class:
            logger.info(f"Replacing implementation for tool '{name}' with {tool_class.__name__}")
        self._tool_classes[name] = tool_class
        self._instances.pop(name, None)

    def has_tool_class(self, name: str) -> bool:
        return name in self._tool_classes

    def create_tool(self, definition: ToolDefinition) -> Optional[BaseTool]:
        """
        Return the cached instance for a definition, creating it if needed

        Returns:
            BaseTool, or None when no class is registered or the definition is invalid
        """
        cached = self._instances.get(definition.name)
        if cached is not None:
            return cached

        tool_class = self._tool_classes.get(definition.name)
        if tool_class is None:
            logger.warning(f"No implementation registered for tool '{definition.name}'")
            return None

        validation = self.validate_definition(definition)
        for warning in validation.warnings:
            logger.warning(f"Tool '{definition.name}': {warning}")
        if not validation.is_valid:
            logger.error(f"Invalid definition for tool '{definition.name}': {'; '.join(validation.errors)}")
            return None

        try:
            tool = tool_class(
                definition,
                client=self.client,
                collection_settings=self.collection_settings,
                auth_error=self.auth_error,
            )
        except Exception as e:
            logger.error(f"Failed to create tool '{definition.name}': {e}", exc_info=True)
            return None

        self._instances[definition.name] = tool
        logger.debug(f"Created tool instance {tool!r}")
        return tool

    def validate_definition(self, definition: ToolDefinition) -> ToolValidationResult:
        """Check a definition for structural problems; results are cached"""
        key = self._cache_key(definition)
        cached = self._validation_cache.get(key)
        if cached is not None:
            return cached.model_copy(deep=True)

        errors: List[str] = []
        warnings: List[str] = []

        if not definition.name:
            errors.append("Tool name is required")
        if not definition.description:
            errors.append("Tool description is required")
        if definition.input_schema is None:
            errors.append("Tool input schema is required")
        if not definition.category:
            errors.append("Tool category is required")

        if definition.category and definition.category not in {c.value for c in ToolCategory}:
            errors.append(f"Invalid tool category: {definition.category}")

        schema = definition.input_schema
        if schema is not None:
            if not isinstance(schema, dict):
                errors.append("Input schema must be an object")
            elif "type" not in schema:
                errors.append("Input schema must have a type property")

        if not isinstance(definition.tags, list) or not all(isinstance(tag, str) for tag in definition.tags):
            errors.append("Tags must be an array of strings")

        if definition.rate_limit is not None:
            if definition.rate_limit.max_calls <= 0:
                warnings.append("Rate limit max_calls should be positive")
            if definition.rate_limit.window_ms <= 0:
                warnings.append("Rate limit window_ms should be positive")
            if definition.rate_limit.max_calls > MAX_REASONABLE_CALLS:
                warnings.append(f"Rate limit max_calls is very high ({definition.rate_limit.max_calls})")

        result = ToolValidationResult(errors=errors, warnings=warnings)
        self._validation_cache[key] = result
        return result.model_copy(deep=True)

    def load_tools_from_definitions(self, definitions: List[ToolDefinition]) -> Tuple[List[BaseTool], List[str]]:
        """
        Create tools for a list of definitions

        Returns:
            (created tools, names that failed)
        """
        loaded: List[BaseTool] = []
        failed: List[str] = []
        for definition in definitions:
            tool = self.create_tool(definition)
            if tool is None:
                failed.append(definition.name)
            else:
                loaded.append(tool)

        logger.info(f"Loaded {len(loaded)} tools from definitions ({len(failed)} failed)")
        return loaded, failed

    def get_tool(self, name: str) -> Optional[BaseTool]:
        return self._instances.get(name)

    def get_all_tools(self) -> List[BaseTool]:
        return list(self._instances.values())

    def get_tools_by_category(self, category: str) -> List[BaseTool]:
        return [tool for tool in self._instances.values() if tool.definition.category == category]

    def clear_caches(self) -> None:
        self._instances.clear()
        self._validation_cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        category_counts: Dict[str, int] = {}
        for tool in self._instances.values():
            category = tool.definition.category
            category_counts[category] = category_counts.get(category, 0) + 1

        return {
            "registered_classes": len(self._tool_classes),
            "cached_instances": len(self._instances),
            "validation_cache_size": len(self._validation_cache),
            "category_counts": category_counts,
        }

    @staticmethod
    def _cache_key(definition: ToolDefinition) -> str:
        return definition.cache_key()
