"""Memory tools: let an agent remember, recall, search, edit and forget facts."""

import json
from typing import Any

from cubicmem.errors import CubicMemError
from cubicmem.memory.repository import AgentMemoryRepository
from cubicmem.memory.types import MemorySearchOptions
from cubicmem.tools.base import Tool
from cubicmem.tools.registry import ToolRegistry


def _dump(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)


def _error(e: Exception) -> str:
    return _dump({"error": str(e)})


class _MemoryTool(Tool):
    def __init__(self, repository: AgentMemoryRepository):
        self._repository = repository


class MemoryRememberTool(_MemoryTool):
    """Store a new sentence-sized fact."""

    @property
    def name(self) -> str:
        return "memory_remember"

    @property
    def description(self) -> str:
        return (
            "Store a short fact about the user or the task for future recall. "
            "At least one tag is required (e.g. ['preference', 'project'])."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "sentence": {"type": "string", "description": "The fact to remember", "minLength": 1},
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Tags to categorize this fact (at least one)",
                },
                "importance": {
                    "type": "number",
                    "description": "Importance from 0 (trivial) to 1 (critical)",
                    "minimum": 0,
                    "maximum": 1,
                },
            },
            "required": ["sentence", "tags"],
        }

    async def execute(self, sentence: str, tags: list[str], importance: float | None = None, **kwargs: Any) -> str:
        try:
            memory_id = await self._repository.remember(sentence, importance, tags)
        except CubicMemError as e:
            return _error(e)
        return _dump({"success": True, "id": memory_id})


class MemoryRecallTool(_MemoryTool):
    """Fetch one memory by id."""

    @property
    def name(self) -> str:
        return "memory_recall"

    @property
    def description(self) -> str:
        return "Recall a specific memory by its id."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"id": {"type": "string", "description": "Memory id"}},
            "required": ["id"],
        }

    async def execute(self, id: str, **kwargs: Any) -> str:
        memory = await self._repository.recall(id)
        if memory is None:
            return _dump({"found": False})
        return _dump({"found": True, "memory": memory.to_dict()})


class MemorySearchTool(_MemoryTool):
    """Search memories by content and tags."""

    @property
    def name(self) -> str:
        return "memory_search"

    @property
    def description(self) -> str:
        return (
            "Search stored memories. Filter by text (substring or regex) and tags "
            "(all of a list, or a regex matching any tag). Results are sorted by "
            "importance then recency unless told otherwise."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "content": {"type": "string", "description": "Substring the sentence must contain"},
                "content_regex": {"type": "string", "description": "Case-insensitive regex on the sentence"},
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Memory must carry all of these tags",
                },
                "tags_regex": {"type": "string", "description": "Case-insensitive regex matching any tag"},
                "sort_by": {"type": "string", "enum": ["importance", "timestamp", "both"]},
                "sort_order": {"type": "string", "enum": ["asc", "desc"]},
                "limit": {"type": "integer", "minimum": 1, "maximum": 100, "default": 10},
            },
        }

    async def execute(
        self,
        content: str | None = None,
        content_regex: str | None = None,
        tags: list[str] | None = None,
        tags_regex: str | None = None,
        sort_by: str = "both",
        sort_order: str = "desc",
        limit: int = 10,
        **kwargs: Any,
    ) -> str:
        options = MemorySearchOptions(
            content=content,
            content_regex=content_regex,
            tags=tags,
            tags_regex=tags_regex,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
        )
        try:
            memories = await self._repository.search(options)
        except CubicMemError as e:
            return _error(e)
        return _dump({"count": len(memories), "memories": [m.to_dict() for m in memories]})


class MemoryEditTool(_MemoryTool):
    """Edit content, importance or tags of an existing memory."""

    @property
    def name(self) -> str:
        return "memory_edit"

    @property
    def description(self) -> str:
        return (
            "Edit an existing memory. Provide any of: sentence, importance, tags "
            "(replaces all tags), add_tag, remove_tag. A memory must keep at least one tag."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Memory id"},
                "sentence": {"type": "string", "minLength": 1},
                "importance": {"type": "number", "minimum": 0, "maximum": 1},
                "tags": {"type": "array", "items": {"type": "string"}},
                "add_tag": {"type": "string", "minLength": 1},
                "remove_tag": {"type": "string", "minLength": 1},
            },
            "required": ["id"],
        }

    async def execute(
        self,
        id: str,
        sentence: str | None = None,
        importance: float | None = None,
        tags: list[str] | None = None,
        add_tag: str | None = None,
        remove_tag: str | None = None,
        **kwargs: Any,
    ) -> str:
        repo = self._repository
        applied: dict[str, bool] = {}
        try:
            if sentence is not None:
                applied["sentence"] = await repo.edit_content(id, sentence)
            if importance is not None:
                applied["importance"] = await repo.edit_importance(id, importance)
            if tags is not None:
                applied["tags"] = await repo.replace_tags(id, tags)
            if add_tag is not None:
                applied["add_tag"] = await repo.add_tag(id, add_tag)
            if remove_tag is not None:
                applied["remove_tag"] = await repo.remove_tag(id, remove_tag)
        except CubicMemError as e:
            return _dump({"error": str(e), "applied": applied})
        if not applied:
            return _dump({"error": "Nothing to edit"})
        return _dump({"id": id, "applied": applied})


class MemoryForgetTool(_MemoryTool):
    """Delete a memory from both tiers."""

    @property
    def name(self) -> str:
        return "memory_forget"

    @property
    def description(self) -> str:
        return "Permanently forget a memory by id."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {"id": {"type": "string", "description": "Memory id"}},
            "required": ["id"],
        }

    async def execute(self, id: str, **kwargs: Any) -> str:
        return _dump({"deleted": await self._repository.forget(id)})


class MemoryShortTermTool(_MemoryTool):
    """List the memories currently in the short-term window."""

    @property
    def name(self) -> str:
        return "memory_short_term"

    @property
    def description(self) -> str:
        return "List memories in short-term context, most recently used first."

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs: Any) -> str:
        memories = self._repository.get_short_term_memories()
        return _dump({"count": len(memories), "memories": [m.to_dict() for m in memories]})


class MemoryStatsTool(_MemoryTool):
    """Report store size and short-term occupancy."""

    @property
    def name(self) -> str:
        return "memory_stats"

    @property
    def description(self) -> str:
        return "Show how many memories are stored and how full short-term memory is."

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    async def execute(self, **kwargs: Any) -> str:
        stats = await self._repository.get_stats()
        return _dump(stats.to_dict())


def create_memory_tools(repository: AgentMemoryRepository) -> list[Tool]:
    return [
        MemoryRememberTool(repository),
        MemoryRecallTool(repository),
        MemorySearchTool(repository),
        MemoryEditTool(repository),
        MemoryForgetTool(repository),
        MemoryShortTermTool(repository),
        MemoryStatsTool(repository),
    ]


def register_memory_tools(registry: ToolRegistry, repository: AgentMemoryRepository) -> ToolRegistry:
    for tool in create_memory_tools(repository):
        registry.register(tool)
    return registry
