import json
from typing import Any

import pytest

from cubicmem.tools import Tool, ToolRegistry, create_memory_tools, register_memory_tools


class SampleTool(Tool):
    @property
    def name(self) -> str:
        return "sample"

    @property
    def description(self) -> str:
        return "sample tool"

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 2},
                "count": {"type": "integer", "minimum": 1, "maximum": 10},
                "mode": {"type": "string", "enum": ["fast", "full"]},
                "meta": {
                    "type": "object",
                    "properties": {
                        "tag": {"type": "string"},
                        "flags": {"type": "array", "items": {"type": "string"}},
                    },
                    "required": ["tag"],
                },
            },
            "required": ["query", "count"],
        }

    async def execute(self, **kwargs: Any) -> str:
        return "ok"


class ExplodingTool(SampleTool):
    @property
    def name(self) -> str:
        return "exploding"

    async def execute(self, **kwargs: Any) -> str:
        raise RuntimeError("kaboom")


@pytest.fixture
def registry(repository) -> ToolRegistry:
    return register_memory_tools(ToolRegistry(), repository)


async def call(registry: ToolRegistry, name: str, **params: Any) -> dict[str, Any]:
    return json.loads(await registry.execute(name, params))


# ============================================================================
# Parameter validation
# ============================================================================


def test_validate_params_missing_required() -> None:
    errors = SampleTool().validate_params({"query": "hi"})
    assert "missing required count" in "; ".join(errors)


def test_validate_params_type_and_range() -> None:
    tool = SampleTool()
    errors = tool.validate_params({"query": "hi", "count": 0})
    assert any("count must be >= 1" in e for e in errors)

    errors = tool.validate_params({"query": "hi", "count": "2"})
    assert any("count should be integer" in e for e in errors)

    errors = tool.validate_params({"query": "hi", "count": True})
    assert any("count should be integer" in e for e in errors)


def test_validate_params_enum_and_min_length() -> None:
    errors = SampleTool().validate_params({"query": "h", "count": 2, "mode": "slow"})
    assert any("query must be at least 2 chars" in e for e in errors)
    assert any("mode must be one of" in e for e in errors)


def test_validate_params_nested_object_and_array() -> None:
    errors = SampleTool().validate_params({"query": "hi", "count": 2, "meta": {"flags": [1, "ok"]}})
    assert any("missing required meta.tag" in e for e in errors)
    assert any("meta.flags[0] should be string" in e for e in errors)


def test_validate_params_ignores_unknown_fields() -> None:
    assert SampleTool().validate_params({"query": "hi", "count": 2, "extra": "x"}) == []


def test_to_schema() -> None:
    schema = SampleTool().to_schema()
    assert schema["type"] == "function"
    assert schema["function"]["name"] == "sample"
    assert schema["function"]["parameters"]["required"] == ["query", "count"]


# ============================================================================
# Registry
# ============================================================================


@pytest.mark.asyncio
async def test_registry_unknown_tool() -> None:
    assert await ToolRegistry().execute("nope", {}) == "Error: Tool 'nope' not found"


@pytest.mark.asyncio
async def test_registry_rejects_invalid_params() -> None:
    reg = ToolRegistry()
    reg.register(SampleTool())
    result = await reg.execute("sample", {"query": "hi"})
    assert result.startswith("Error: Invalid parameters")


@pytest.mark.asyncio
async def test_registry_reports_tool_failure() -> None:
    reg = ToolRegistry()
    reg.register(ExplodingTool())
    result = await reg.execute("exploding", {"query": "hi", "count": 1})
    assert result == "Error executing exploding: kaboom"


@pytest.mark.asyncio
async def test_registry_tracks_call_stats() -> None:
    reg = ToolRegistry()
    reg.register(SampleTool())
    reg.register(ExplodingTool())

    await reg.execute("sample", {"query": "hi", "count": 1})
    await reg.execute("sample", {"query": "hi"})
    await reg.execute("exploding", {"query": "hi", "count": 1})

    stats = reg.get_call_stats()
    assert (stats["sample"].calls, stats["sample"].failures) == (1, 1)
    assert (stats["exploding"].calls, stats["exploding"].failures) == (1, 1)
    assert stats["sample"].total_ms >= 0


def test_registry_bookkeeping() -> None:
    reg = ToolRegistry()
    reg.register(SampleTool())
    assert reg.has("sample") and "sample" in reg and len(reg) == 1
    assert reg.get("sample").name == "sample"
    reg.unregister("sample")
    assert reg.get("sample") is None
    assert reg.tool_names == []


@pytest.mark.asyncio
async def test_memory_tools_are_registered(registry: ToolRegistry) -> None:
    assert registry.tool_names == [
        "memory_remember",
        "memory_recall",
        "memory_search",
        "memory_edit",
        "memory_forget",
        "memory_short_term",
        "memory_stats",
    ]
    assert len(registry.get_definitions()) == 7


@pytest.mark.asyncio
async def test_create_memory_tools_returns_fresh_instances(repository) -> None:
    first = create_memory_tools(repository)
    second = create_memory_tools(repository)
    assert all(a is not b for a, b in zip(first, second))


# ============================================================================
# Memory tools
# ============================================================================


@pytest.mark.asyncio
async def test_remember_and_recall_tools(registry: ToolRegistry) -> None:
    stored = await call(registry, "memory_remember", sentence="User likes jazz", tags=["music"], importance=0.7)
    assert stored["success"] is True

    recalled = await call(registry, "memory_recall", id=stored["id"])
    assert recalled["found"] is True
    assert recalled["memory"]["sentence"] == "User likes jazz"
    assert recalled["memory"]["importance"] == 0.7

    assert await call(registry, "memory_recall", id="mem_missing") == {"found": False}


@pytest.mark.asyncio
async def test_remember_tool_reports_validation_errors(registry: ToolRegistry) -> None:
    result = await call(registry, "memory_remember", sentence="User likes jazz", tags=[])
    assert "at least one tag" in result["error"]


@pytest.mark.asyncio
async def test_remember_tool_schema_rejects_out_of_range_importance(registry: ToolRegistry) -> None:
    result = await registry.execute("memory_remember", {"sentence": "x", "tags": ["a"], "importance": 3})
    assert "importance must be <= 1" in result


@pytest.mark.asyncio
async def test_search_tool(registry: ToolRegistry) -> None:
    await call(registry, "memory_remember", sentence="User codes in Go", tags=["programming"], importance=0.9)
    await call(registry, "memory_remember", sentence="User plays chess", tags=["hobby"], importance=0.3)

    result = await call(registry, "memory_search", tags=["programming"])
    assert result["count"] == 1
    assert result["memories"][0]["sentence"] == "User codes in Go"

    result = await call(registry, "memory_search", sort_by="importance", sort_order="asc", limit=1)
    assert [m["sentence"] for m in result["memories"]] == ["User plays chess"]


@pytest.mark.asyncio
async def test_edit_tool(registry: ToolRegistry) -> None:
    memory_id = (await call(registry, "memory_remember", sentence="User lives in Rome", tags=["location"]))["id"]

    result = await call(
        registry, "memory_edit", id=memory_id, sentence="User lives in Milan", importance=0.8, add_tag="home"
    )
    assert result == {"id": memory_id, "applied": {"sentence": True, "importance": True, "add_tag": True}}

    memory = (await call(registry, "memory_recall", id=memory_id))["memory"]
    assert memory["sentence"] == "User lives in Milan"
    assert set(memory["tags"]) == {"location", "home"}


@pytest.mark.asyncio
async def test_edit_tool_refuses_last_tag_removal(registry: ToolRegistry) -> None:
    memory_id = (await call(registry, "memory_remember", sentence="User lives in Rome", tags=["location"]))["id"]

    result = await call(registry, "memory_edit", id=memory_id, remove_tag="location")
    assert "at least one tag" in result["error"]
    assert result["applied"] == {}


@pytest.mark.asyncio
async def test_edit_tool_nothing_to_edit(registry: ToolRegistry) -> None:
    assert await call(registry, "memory_edit", id="mem_x") == {"error": "Nothing to edit"}


@pytest.mark.asyncio
async def test_forget_short_term_and_stats_tools(registry: ToolRegistry) -> None:
    memory_id = (await call(registry, "memory_remember", sentence="User is left handed", tags=["personal"]))["id"]

    short_term = await call(registry, "memory_short_term")
    assert short_term["count"] == 1
    assert short_term["memories"][0]["id"] == memory_id

    stats = await call(registry, "memory_stats")
    assert stats["total_memories"] == 1
    assert stats["short_term_word_count"] == 4

    assert await call(registry, "memory_forget", id=memory_id) == {"deleted": True}
    assert await call(registry, "memory_forget", id=memory_id) == {"deleted": False}
    assert (await call(registry, "memory_stats"))["total_memories"] == 0
