"""Word-budgeted LRU cache for short-term memory."""

from collections import OrderedDict

from loguru import logger

from cubicmem.memory.base import ShortTermMemory
from cubicmem.memory.types import MemoryItem
from cubicmem.memory.utils import count_words


class LRUShortTermMemory(ShortTermMemory):
    """
    Keeps the most recently used memories resident, bounded by total word count.

    Entries live in an OrderedDict (hash map over a doubly linked list): the
    last entry is the most recently used, the first is the eviction candidate.
    Each entry remembers its own word count so removal never re-counts.
    """

    def __init__(self, max_word_count: int = 2000):
        if max_word_count < 0:
            raise ValueError("max_word_count must be >= 0")
        self._max_word_count = max_word_count
        self._entries: OrderedDict[str, tuple[MemoryItem, int]] = OrderedDict()
        self._current_word_count = 0

    def get(self, memory_id: str) -> MemoryItem | None:
        entry = self._entries.get(memory_id)
        if entry is None:
            return None
        self._entries.move_to_end(memory_id)
        return entry[0].copy()

    def peek(self, memory_id: str) -> MemoryItem | None:
        entry = self._entries.get(memory_id)
        return entry[0].copy() if entry else None

    def put(self, memory: MemoryItem) -> MemoryItem | None:
        words = count_words(memory.sentence)
        existing = self._entries.get(memory.id)
        if existing is not None:
            self._current_word_count -= existing[1]
        self._entries[memory.id] = (memory.copy(), words)
        self._entries.move_to_end(memory.id)
        self._current_word_count += words
        return self._evict_if_needed()

    def remove(self, memory_id: str) -> MemoryItem | None:
        entry = self._entries.pop(memory_id, None)
        if entry is None:
            return None
        self._current_word_count -= entry[1]
        return entry[0]

    def get_all(self) -> list[MemoryItem]:
        return [item.copy() for item, _ in reversed(self._entries.values())]

    def get_current_word_count(self) -> int:
        return self._current_word_count

    def get_max_word_count(self) -> int:
        return self._max_word_count

    def clear(self) -> None:
        self._entries.clear()
        self._current_word_count = 0

    def __contains__(self, memory_id: str) -> bool:
        return memory_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_if_needed(self) -> MemoryItem | None:
        """Drop LRU entries until under budget. Returns the first one evicted."""
        first_evicted: MemoryItem | None = None
        while self._current_word_count > self._max_word_count and self._entries:
            memory_id, (item, words) = self._entries.popitem(last=False)
            self._current_word_count -= words
            logger.debug(f"Evicted {memory_id} from short-term memory ({words} words)")
            if first_evicted is None:
                first_evicted = item
        return first_evicted
