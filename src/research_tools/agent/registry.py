"""Tool registry built on Pydantic v2 argument models."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from time import perf_counter
from typing import Any, Protocol, runtime_checkable

from langchain_core.tools import StructuredTool
from pydantic import BaseModel

from research_tools.errors import InvalidArgumentError, ToolNotFoundError, is_user_facing
from research_tools.types import CallToolResult, TextContent, ToolDescriptor, ToolTrace

logger = logging.getLogger(__name__)


@runtime_checkable
class ResearchTool(Protocol):
    """One tool variant: a declared interface plus its execution logic."""

    name: str
    args_schema: type[BaseModel]

    def describe(self) -> ToolDescriptor:
        """Name, description and input schema for capability discovery."""

    async def execute(self, arguments: Mapping[str, Any] | None) -> list[TextContent]:
        """Run the tool; raise a `ResearchToolsError` on failure."""


class ToolRegistry:
    """Routes tool calls by name and exports tool descriptors."""

    def __init__(self) -> None:
        self._tools: dict[str, ResearchTool] = {}
        self._observer: Callable[[ToolTrace], None] | None = None

    def register(self, tool: ResearchTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def set_observer(self, observer: Callable[[ToolTrace], None] | None) -> None:
        """Set an optional callback invoked after each tool execution."""
        self._observer = observer

    def list_tools(self) -> list[ToolDescriptor]:
        return [tool.describe() for tool in self._tools.values()]

    def get(self, name: str) -> ResearchTool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    async def dispatch(
        self, name: str, arguments: Mapping[str, Any] | None
    ) -> list[TextContent]:
        """Execute the tool called *name*, propagating its errors."""
        tool = self.get(name)
        start = perf_counter()
        output: list[TextContent] = []
        failed = True
        try:
            output = await tool.execute(arguments)
            failed = False
            return output
        finally:
            self._notify(tool.name, arguments, output, perf_counter() - start, failed)

    async def call_tool(
        self, name: str, arguments: Mapping[str, Any] | None
    ) -> CallToolResult:
        """Dispatcher-facing entry point: failures become error results.

        Only user-facing errors are converted; anything else is a bug and
        propagates.
        """
        try:
            content = await self.dispatch(name, arguments)
        except Exception as exc:
            if not is_user_facing(exc):
                raise
            if isinstance(exc, InvalidArgumentError):
                logger.debug("Rejected arguments for %s: %s", name, exc)
            else:
                logger.warning("Tool %s failed: %s", name, exc)
            return CallToolResult(content=[TextContent(text=str(exc))], is_error=True)
        return CallToolResult(content=content)

    def as_langchain_tools(self) -> list[StructuredTool]:
        tools: list[StructuredTool] = []
        for tool in self._tools.values():
            descriptor = tool.describe()
            tools.append(
                StructuredTool.from_function(
                    name=descriptor.name,
                    description=descriptor.description,
                    args_schema=tool.args_schema,
                    coroutine=self._build_coroutine(descriptor.name),
                )
            )
        return tools

    def _build_coroutine(self, name: str) -> Callable[..., Any]:
        async def _callable(**kwargs: Any) -> str:
            content = await self.dispatch(name, kwargs)
            return "\n".join(block.text for block in content)

        return _callable

    def _notify(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        output: list[TextContent],
        elapsed_s: float,
        failed: bool,
    ) -> None:
        if self._observer is None:
            return
        preview = "\n".join(block.text for block in output)
        trace = ToolTrace(
            name=name,
            input_payload=dict(arguments) if isinstance(arguments, Mapping) else {},
            output_preview=preview[:320],
            latency_ms=elapsed_s * 1000.0,
            is_error=failed,
        )
        try:
            self._observer(trace)
        except Exception:
            # Observers never change a tool's outcome.
            logger.warning("Tool observer failed for %s", name, exc_info=True)


def input_schema_for(model: type[BaseModel]) -> dict[str, Any]:
    """Flat JSON schema for a string-argument model.

    Only `type`, `description` and `enum` are emitted per property so the
    schema stays stable across Pydantic releases.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []
    for name, field in model.model_fields.items():
        prop: dict[str, Any] = {"type": "string"}
        if field.description:
            prop["description"] = field.description
        extra = field.json_schema_extra
        if isinstance(extra, dict) and "enum" in extra:
            prop["enum"] = list(extra["enum"])
        properties[name] = prop
        if field.is_required():
            required.append(name)
    return {"type": "object", "properties": properties, "required": required}
