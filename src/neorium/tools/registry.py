"""Tool registry: schemas advertised to the model plus optional handlers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from neorium.tools.base import Tool
from neorium.types import ToolHandler, ToolSchema

_logger = logging.getLogger(__name__)


class ToolRegistry:
    """Named tool schemas with optional executable handlers.

    ``tools`` is always available for ``request.tools``.  ``handlers`` is
    ``None`` while nothing is executable; in that case the completion loop
    hands tool-call requests back to the caller unexecuted.
    """

    def __init__(self) -> None:
        self._schemas: dict[str, ToolSchema] = {}
        self._handlers: dict[str, ToolHandler] = {}

    @classmethod
    def from_tools(
        cls, tools: Iterable[Tool], schemas_only: bool = False,
    ) -> ToolRegistry:
        """Build a registry from :class:`Tool` instances.

        With ``schemas_only=True`` the tools are advertised but not executable.
        """
        registry = cls()
        for tool in tools:
            registry.register_tool(tool, executable=not schemas_only)
        return registry

    def register(
        self,
        schemas: Iterable[ToolSchema | Mapping[str, Any]],
        handlers: Mapping[str, ToolHandler] | None = None,
    ) -> ToolRegistry:
        """Register raw schemas and, optionally, handlers keyed by tool name.

        All-or-nothing: the registry is unchanged when any schema or
        handler is rejected.
        """
        batch: dict[str, ToolSchema] = {}
        for raw in schemas:
            schema = (
                raw if isinstance(raw, ToolSchema)
                else ToolSchema.model_validate(raw)
            )
            if schema.name in self._schemas or schema.name in batch:
                raise ValueError(f"Tool already registered: {schema.name}")
            batch[schema.name] = schema
        new_handlers = dict(handlers or {})
        for name in new_handlers:
            if name not in self._schemas and name not in batch:
                raise ValueError(f"Handler for unregistered tool: {name}")

        for schema in batch.values():
            self._add_schema(schema)
        self._handlers.update(new_handlers)
        return self

    def register_tool(self, tool: Tool, executable: bool = True) -> ToolRegistry:
        """Register a :class:`Tool` instance."""
        self._add_schema(tool.to_schema())
        if executable:
            self._handlers[tool.name] = tool
        return self

    def _add_schema(self, schema: ToolSchema) -> None:
        if schema.name in self._schemas:
            raise ValueError(f"Tool already registered: {schema.name}")
        self._schemas[schema.name] = schema
        _logger.debug("Registered tool schema: %s", schema.name)

    @property
    def tools(self) -> list[ToolSchema]:
        return list(self._schemas.values())

    @property
    def handlers(self) -> dict[str, ToolHandler] | None:
        if not self._handlers:
            return None
        return dict(self._handlers)

    def get(self, name: str) -> ToolSchema | None:
        return self._schemas.get(name)

    def tool_names(self) -> list[str]:
        return list(self._schemas.keys())

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas
