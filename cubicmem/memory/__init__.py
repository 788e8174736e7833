"""
Two-tier agent memory for cubicmem.

A word-budgeted LRU cache (short-term) in front of a normalized SQLite store
(long-term), fronted by AgentMemoryRepository.
"""

from cubicmem.config.schema import MemoryConfig
from cubicmem.memory.base import PersistentMemory, ShortTermMemory
from cubicmem.memory.lru import LRUShortTermMemory
from cubicmem.memory.repository import AgentMemoryRepository
from cubicmem.memory.sqlite_store import SQLiteMemory
from cubicmem.memory.types import MemoryItem, MemorySearchOptions, MemoryStats, StoreStats
from cubicmem.memory.utils import (
    build_search_predicate,
    count_words,
    create_sort_key,
    generate_memory_id,
    matches_search_criteria,
    sort_memories,
    validate_memory_input,
    validate_tags,
)

__all__ = [
    "AgentMemoryRepository",
    "LRUShortTermMemory",
    "MemoryItem",
    "MemorySearchOptions",
    "MemoryStats",
    "PersistentMemory",
    "SQLiteMemory",
    "ShortTermMemory",
    "StoreStats",
    "build_search_predicate",
    "count_words",
    "create_default_memory_repository",
    "create_memory_repository",
    "create_sort_key",
    "create_sqlite_memory_repository",
    "generate_memory_id",
    "matches_search_criteria",
    "sort_memories",
    "validate_memory_input",
    "validate_tags",
]


async def create_memory_repository(config: MemoryConfig | None = None) -> AgentMemoryRepository:
    """
    Factory: build and initialize a repository from a MemoryConfig.

    Args:
        config: Optional MemoryConfig. Defaults to an in-memory database with a
            2000-word short-term budget.

    Returns:
        An initialized AgentMemoryRepository.
    """
    config = config or MemoryConfig()
    repository = AgentMemoryRepository(
        SQLiteMemory(config.db_path),
        LRUShortTermMemory(config.short_term_max_words),
        config,
    )
    await repository.initialize()
    return repository


async def create_default_memory_repository(
    max_words: int = 2000, default_importance: float = 0.5
) -> AgentMemoryRepository:
    """In-memory SQLite storage; nothing survives the process."""
    return await create_memory_repository(
        MemoryConfig(short_term_max_words=max_words, default_importance=default_importance)
    )


async def create_sqlite_memory_repository(
    db_path: str = "./memories.db", max_words: int = 2000, default_importance: float = 0.5
) -> AgentMemoryRepository:
    """File-backed SQLite storage."""
    return await create_memory_repository(
        MemoryConfig(short_term_max_words=max_words, default_importance=default_importance, db_path=str(db_path))
    )
