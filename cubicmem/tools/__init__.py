"""Agent tools module."""

from cubicmem.tools.base import Tool
from cubicmem.tools.memory import create_memory_tools, register_memory_tools
from cubicmem.tools.registry import ToolCallStats, ToolRegistry

__all__ = ["Tool", "ToolCallStats", "ToolRegistry", "create_memory_tools", "register_memory_tools"]
