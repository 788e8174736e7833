"""Abstract interfaces for the two memory tiers."""

from abc import ABC, abstractmethod

from cubicmem.memory.types import MemoryItem, MemorySearchOptions


class PersistentMemory(ABC):
    """
    Durable long-term store, the source of truth for every memory.

    All methods are coroutines; implementations serialize access to their own
    connection internally.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Open the backing storage and create the schema if needed."""
        ...

    @abstractmethod
    async def store(self, memory: MemoryItem) -> None:
        """
        Persist a new memory with its tags atomically.

        Raises:
            StorageError: if the id already exists or the write fails.
        """
        ...

    @abstractmethod
    async def retrieve(self, memory_id: str) -> MemoryItem | None:
        """Return the memory or None if absent."""
        ...

    @abstractmethod
    async def search(self, options: MemorySearchOptions) -> list[MemoryItem]:
        """Filter, sort and limit memories."""
        ...

    @abstractmethod
    async def update(
        self,
        memory_id: str,
        *,
        sentence: str | None = None,
        importance: float | None = None,
        tags: list[str] | None = None,
    ) -> bool:
        """
        Update the provided fields and refresh the timestamp.

        Returns:
            True if a row changed, False if the id is unknown or nothing was given.
        """
        ...

    @abstractmethod
    async def delete(self, memory_id: str) -> bool:
        """Delete a memory and purge orphaned tags. Returns True if it existed."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...


class ShortTermMemory(ABC):
    """Bounded in-process cache tier. Synchronous; used from a single event loop."""

    @abstractmethod
    def get(self, memory_id: str) -> MemoryItem | None:
        """Return a copy of the cached memory and mark it most recently used."""
        ...

    @abstractmethod
    def put(self, memory: MemoryItem) -> MemoryItem | None:
        """Insert or replace a memory. Returns the first evicted memory, if any."""
        ...

    @abstractmethod
    def remove(self, memory_id: str) -> MemoryItem | None:
        ...

    @abstractmethod
    def get_all(self) -> list[MemoryItem]:
        """All resident memories, most recently used first."""
        ...

    @abstractmethod
    def get_current_word_count(self) -> int:
        ...

    @abstractmethod
    def get_max_word_count(self) -> int:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def __contains__(self, memory_id: str) -> bool:
        return self.peek(memory_id) is not None

    def peek(self, memory_id: str) -> MemoryItem | None:
        """Look up without touching recency. Defaults to scanning get_all()."""
        for memory in self.get_all():
            if memory.id == memory_id:
                return memory
        return None

    def __len__(self) -> int:
        return len(self.get_all())
