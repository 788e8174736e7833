"""Registry that exposes memory tools to an agent loop."""

import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from cubicmem.tools.base import Tool


@dataclass
class ToolCallStats:
    """Running totals for one tool."""

    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0


class ToolRegistry:
    """Name-indexed tools with parameter validation and per-tool call stats."""

    def __init__(self):
        self._tools: dict[str, Tool] = {}
        self._stats: dict[str, ToolCallStats] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            logger.warning(f"Replacing already registered tool {tool.name}")
        self._tools[tool.name] = tool
        self._stats.setdefault(tool.name, ToolCallStats())

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)
        self._stats.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        """Function-calling schemas for every registered tool."""
        return [tool.to_schema() for tool in self._tools.values()]

    async def execute(self, name: str, params: dict[str, Any]) -> str:
        """
        Validate ``params`` against the tool's schema and run it.

        Never raises: unknown tools, invalid parameters and tool crashes all
        come back as an ``Error: ...`` string the model can read.
        """
        tool = self._tools.get(name)
        if tool is None:
            return f"Error: Tool '{name}' not found"

        stats = self._stats[name]
        errors = tool.validate_params(params)
        if errors:
            stats.failures += 1
            return f"Error: Invalid parameters: {'; '.join(errors)}"

        start = time.perf_counter()
        try:
            result = await tool.execute(**params)
        except Exception as e:
            logger.exception(f"Tool {name} failed")
            stats.failures += 1
            result = f"Error executing {name}: {e}"
        elapsed_ms = (time.perf_counter() - start) * 1000

        stats.calls += 1
        stats.total_ms += elapsed_ms
        logger.debug(f"Tool {name} finished in {elapsed_ms:.1f}ms")
        return result

    def get_call_stats(self) -> dict[str, ToolCallStats]:
        """Copy of the per-tool call totals."""
        return {name: ToolCallStats(s.calls, s.failures, s.total_ms) for name, s in self._stats.items()}

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
