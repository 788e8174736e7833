"""Shared fixtures for memory tests."""

import pytest
import pytest_asyncio

from cubicmem.config.schema import MemoryConfig
from cubicmem.memory import AgentMemoryRepository, LRUShortTermMemory, MemoryItem, SQLiteMemory


def make_item(memory_id: str, sentence: str, importance: float = 0.5, tags=None, timestamp: int = 1_000) -> MemoryItem:
    """Build a MemoryItem with a fixed id and timestamp."""
    return MemoryItem(
        id=memory_id,
        sentence=sentence,
        importance=importance,
        tags=list(tags or ["test"]),
        timestamp=timestamp,
    )


@pytest.fixture
def item_factory():
    return make_item


@pytest_asyncio.fixture
async def store():
    """Initialized in-memory SQLite store."""
    s = SQLiteMemory()
    await s.initialize()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def file_store(tmp_path):
    """Initialized file-backed SQLite store."""
    s = SQLiteMemory(tmp_path / "data" / "memories.db")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def cache():
    return LRUShortTermMemory(max_word_count=1000)


@pytest_asyncio.fixture
async def repository(store, cache):
    """Repository over a real in-memory store and a 1000-word cache."""
    repo = AgentMemoryRepository(store, cache, MemoryConfig(short_term_max_words=1000))
    await repo.initialize()
    return repo
