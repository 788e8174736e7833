"""Agent memory repository: one CRUD + search API over the cache and the store."""

from loguru import logger

from cubicmem.config.schema import MemoryConfig
from cubicmem.errors import MemoryValidationError, TagInvariantError
from cubicmem.memory.base import PersistentMemory, ShortTermMemory
from cubicmem.memory.types import MemoryItem, MemorySearchOptions, MemoryStats
from cubicmem.memory.utils import (
    build_search_predicate,
    normalize_tags,
    sort_memories,
    validate_importance,
    validate_memory_input,
    validate_search_options,
    validate_sentence,
    validate_tags,
)


class AgentMemoryRepository:
    """
    Two-tier memory for an agent.

    Writes go to the persistent store first, then to the short-term cache, so
    the cache only ever holds memories the store also knows about. Reads check
    the cache first and re-populate it from the store on a miss.

    Each memory is in one of three states from the repository's point of view:
    absent, persisted-only (evicted or never recalled) or persisted+cached.
    """

    def __init__(
        self,
        long_term: PersistentMemory,
        short_term: ShortTermMemory,
        config: MemoryConfig | None = None,
    ):
        self._long_term = long_term
        self._short_term = short_term
        self._config = config or MemoryConfig(short_term_max_words=short_term.get_max_word_count())

    @property
    def config(self) -> MemoryConfig:
        return self._config.model_copy()

    async def initialize(self) -> None:
        await self._long_term.initialize()

    async def close(self) -> None:
        await self._long_term.close()

    async def __aenter__(self) -> "AgentMemoryRepository":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    # -- Create / read --

    async def remember(self, sentence: str, importance: float | None, tags: list[str]) -> str:
        """
        Store a new memory and return its id.

        Raises:
            MemoryValidationError: listing every violated rule; nothing is written.
            StorageError: if the store rejects the write.
        """
        errors = validate_memory_input(sentence, importance, tags)
        if errors:
            raise MemoryValidationError(errors)

        memory = MemoryItem.create(
            sentence=sentence,
            importance=self._config.default_importance if importance is None else importance,
            tags=tags,
        )
        await self._long_term.store(memory)
        self._cache(memory)
        logger.debug(f"Remembered {memory.id}: {memory.sentence[:50]}")
        return memory.id

    async def recall(self, memory_id: str) -> MemoryItem | None:
        """Return the memory, preferring the cache. Unknown ids return None."""
        memory = self._short_term.get(memory_id)
        if memory is not None:
            return memory

        memory = await self._long_term.retrieve(memory_id)
        if memory is None:
            return None
        self._cache(memory)
        return memory

    async def search(self, options: MemorySearchOptions | None = None) -> list[MemoryItem]:
        """
        Search the store and overlay cache-resident memories.

        Cached copies win on id collisions. The merged set is re-filtered with
        the full predicate, re-sorted with the requested order and limited, so
        the result is sorted and matching regardless of which tier it came from.
        Returned memories are loaded into the cache, like a recall.
        """
        options = options or MemorySearchOptions()
        errors = validate_search_options(options)
        if errors:
            raise MemoryValidationError(errors, prefix="Invalid search options")

        merged: dict[str, MemoryItem] = {m.id: m for m in await self._long_term.search(options)}
        for memory in self._short_term.get_all():
            merged[memory.id] = memory

        predicate = build_search_predicate(options)
        results = [m for m in merged.values() if predicate(m)]
        results = sort_memories(results, options.sort_by, options.sort_order)
        if options.limit:
            results = results[: options.limit]

        # Every hit becomes resident; caching in reverse leaves the top result most recent.
        for memory in reversed(results):
            self._cache(memory)
        return results

    def get_short_term_memories(self) -> list[MemoryItem]:
        """Cache contents, most recently used first, for prompt assembly."""
        return self._short_term.get_all()

    async def add_to_short_term_memory(self, memory_id: str) -> bool:
        """Load a persisted memory into the cache. False if the id is unknown."""
        return await self.recall(memory_id) is not None

    # -- Edits --

    async def edit_importance(self, memory_id: str, importance: float) -> bool:
        errors = validate_importance(importance)
        if errors:
            raise MemoryValidationError(errors, prefix="Invalid importance")
        if not await self._long_term.update(memory_id, importance=importance):
            return False
        await self._refresh_cached(memory_id)
        return True

    async def edit_content(self, memory_id: str, sentence: str) -> bool:
        errors = validate_sentence(sentence)
        if errors:
            raise MemoryValidationError(errors, prefix="Invalid content")
        sentence = sentence.strip()
        if not await self._long_term.update(memory_id, sentence=sentence):
            return False
        await self._refresh_cached(memory_id)
        return True

    async def add_tag(self, memory_id: str, tag: str) -> bool:
        """Add one tag. False if the memory is unknown or already carries the tag."""
        tag = self._clean_tag(tag)
        current = await self._current(memory_id)
        if current is None or tag in current.tags:
            return False
        return await self._write_tags(memory_id, current.tags + [tag])

    async def remove_tag(self, memory_id: str, tag: str) -> bool:
        """
        Remove one tag. False if the memory is unknown or lacks the tag.

        Raises:
            TagInvariantError: if it is the memory's last tag; nothing changes.
        """
        tag = self._clean_tag(tag)
        current = await self._current(memory_id)
        if current is None or tag not in current.tags:
            return False
        remaining = [t for t in current.tags if t != tag]
        if not remaining:
            raise TagInvariantError(f"Cannot remove tag '{tag}' - memory must have at least one tag")
        return await self._write_tags(memory_id, remaining)

    async def replace_tags(self, memory_id: str, tags: list[str]) -> bool:
        errors = validate_tags(tags)
        if errors:
            raise MemoryValidationError(errors, prefix="Invalid tags")
        return await self._write_tags(memory_id, normalize_tags(tags))

    # -- Delete --

    async def forget(self, memory_id: str) -> bool:
        """Remove from both tiers. Returns whether the store had the memory."""
        self._short_term.remove(memory_id)
        return await self._long_term.delete(memory_id)

    def clear_short_term(self) -> None:
        """Empty the cache; persisted memories are untouched."""
        self._short_term.clear()

    # -- Introspection --

    async def get_stats(self) -> MemoryStats:
        total = await self._long_term.count()
        current = self._short_term.get_current_word_count()
        maximum = self._short_term.get_max_word_count()
        return MemoryStats(
            total_memories=total,
            short_term_count=len(self._short_term.get_all()),
            short_term_word_count=current,
            short_term_max_words=maximum,
            short_term_utilization=(current / maximum) * 100 if maximum > 0 else 0.0,
        )

    # -- Internals --

    def _cache(self, memory: MemoryItem) -> None:
        evicted = self._short_term.put(memory)
        if evicted is not None:
            logger.debug(f"Short-term memory full, {evicted.id} is now persisted-only")

    async def _current(self, memory_id: str) -> MemoryItem | None:
        """Latest state without touching recency: cached copy if resident, else the store's."""
        cached = self._short_term.peek(memory_id)
        if cached is not None:
            return cached
        return await self._long_term.retrieve(memory_id)

    async def _write_tags(self, memory_id: str, tags: list[str]) -> bool:
        if not await self._long_term.update(memory_id, tags=tags):
            return False
        await self._refresh_cached(memory_id)
        return True

    async def _refresh_cached(self, memory_id: str) -> None:
        """After a persisted edit, replace a resident copy with the stored row (timestamp included)."""
        if memory_id not in self._short_term:
            return
        fresh = await self._long_term.retrieve(memory_id)
        if fresh is None:
            self._short_term.remove(memory_id)
        else:
            self._cache(fresh)

    @staticmethod
    def _clean_tag(tag: str) -> str:
        if not isinstance(tag, str) or not tag.strip():
            raise MemoryValidationError(["Tag must be a non-empty string"], prefix="Invalid tag")
        return tag.strip()
