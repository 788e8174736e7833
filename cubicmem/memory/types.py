"""Types for the memory system."""

from dataclasses import dataclass, field, replace
from typing import Literal

from cubicmem.errors import MemoryValidationError
from cubicmem.memory.utils import generate_memory_id, normalize_tags, now_ms, validate_memory_input

SortBy = Literal["importance", "timestamp", "both"]
SortOrder = Literal["asc", "desc"]


@dataclass
class MemoryItem:
    """
    A single tagged, scored sentence.

    Construction validates the whole contract (non-empty sentence, importance
    in [0, 1], at least one non-empty tag) and raises MemoryValidationError
    listing every violation.
    """

    id: str
    sentence: str
    importance: float
    tags: list[str]
    timestamp: int = field(default_factory=now_ms)

    def __post_init__(self) -> None:
        errors = validate_memory_input(self.sentence, self.importance, self.tags)
        if not self.id or not isinstance(self.id, str):
            errors.append("Memory id must be a non-empty string")
        if errors:
            raise MemoryValidationError(errors)
        self.sentence = self.sentence.strip()
        self.importance = float(self.importance)
        self.tags = normalize_tags(self.tags)

    @classmethod
    def create(cls, sentence: str, importance: float, tags: list[str]) -> "MemoryItem":
        """Build a new item with a fresh id and the current timestamp."""
        return cls(id=generate_memory_id(), sentence=sentence, importance=importance, tags=list(tags))

    def copy(self, **changes) -> "MemoryItem":
        """Independent copy; the tags list is never shared."""
        changes.setdefault("tags", list(self.tags))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sentence": self.sentence,
            "importance": self.importance,
            "tags": list(self.tags),
            "timestamp": self.timestamp,
        }


@dataclass
class MemorySearchOptions:
    """Search criteria shared by the store and the repository."""

    content: str | None = None  # substring of sentence
    content_regex: str | None = None  # case-insensitive regex on sentence
    tags: list[str] | None = None  # must carry ALL of these
    tags_regex: str | None = None  # case-insensitive regex, ANY tag may match
    sort_by: SortBy = "both"
    sort_order: SortOrder = "desc"
    limit: int | None = None


@dataclass
class MemoryStats:
    """Repository statistics: store count plus cache occupancy."""

    total_memories: int
    short_term_count: int
    short_term_word_count: int
    short_term_max_words: int
    short_term_utilization: float  # percentage

    def to_dict(self) -> dict:
        return {
            "total_memories": self.total_memories,
            "short_term_count": self.short_term_count,
            "short_term_word_count": self.short_term_word_count,
            "short_term_max_words": self.short_term_max_words,
            "short_term_utilization": self.short_term_utilization,
        }


@dataclass
class StoreStats:
    """Persistent store statistics."""

    total_memories: int
    database_size: int  # SQLite page count, 0 for in-memory databases
    tag_count: int
    oldest_memory: MemoryItem | None = None
    newest_memory: MemoryItem | None = None
