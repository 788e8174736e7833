"""Pure helpers for the memory system: word counting, validation, sorting, matching."""

from __future__ import annotations

import json
import re
import secrets
import time
from typing import TYPE_CHECKING, Any, Callable, Iterable

from loguru import logger

if TYPE_CHECKING:
    from cubicmem.memory.types import MemoryItem, MemorySearchOptions

SORT_FIELDS = ("importance", "timestamp", "both")
SORT_ORDERS = ("asc", "desc")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_memory_id() -> str:
    """Generate a unique memory id: ``mem_<base36 ms>_<6 random base36 chars>``."""
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"mem_{_to_base36(now_ms())}_{random_part}"


def count_words(value: Any) -> int:
    """
    Count whitespace-separated words, the token-count proxy for the cache budget.

    Non-string values are stringified with sorted keys first, so the same
    content always yields the same count.
    """
    if value is None:
        return 0
    text = value if isinstance(value, str) else json.dumps(value, sort_keys=True, default=str)
    return len(text.split())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_importance(importance: Any) -> list[str]:
    if not _is_number(importance) or not 0.0 <= importance <= 1.0:
        return ["Memory importance must be a number between 0 and 1"]
    return []


def validate_tags(tags: Any) -> list[str]:
    """Validate a tag collection. Tags are mandatory and must be non-empty strings."""
    if not isinstance(tags, (list, tuple)):
        return ["Memory tags must be an array of strings"]
    if len(tags) == 0:
        return ["Memory tags cannot be empty - at least one tag is required"]
    if any(not isinstance(tag, str) or not tag.strip() for tag in tags):
        return ["All memory tags must be non-empty strings"]
    return []


def validate_sentence(sentence: Any) -> list[str]:
    if not isinstance(sentence, str) or not sentence.strip():
        return ["Memory sentence is required and cannot be empty"]
    return []


def validate_memory_input(sentence: Any, importance: Any, tags: Any) -> list[str]:
    """Collect every violated rule for a new memory. ``importance=None`` means "use default"."""
    errors = validate_sentence(sentence)
    if importance is not None:
        errors.extend(validate_importance(importance))
    errors.extend(validate_tags(tags))
    return errors


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Strip tags, drop duplicates and sort, so every tier reports the same order."""
    return sorted({tag.strip() for tag in tags})


def validate_search_options(options: MemorySearchOptions) -> list[str]:
    """Collect every problem with ``options`` before any row is read."""
    errors: list[str] = []
    for name in ("content", "content_regex", "tags_regex"):
        value = getattr(options, name)
        if value is not None and not isinstance(value, str):
            errors.append(f"{name} must be a string")
    if options.sort_by not in SORT_FIELDS:
        errors.append(f"sort_by must be one of {', '.join(SORT_FIELDS)}")
    if options.sort_order not in SORT_ORDERS:
        errors.append(f"sort_order must be one of {', '.join(SORT_ORDERS)}")
    if options.limit is not None and (
        not isinstance(options.limit, int) or isinstance(options.limit, bool) or options.limit < 0
    ):
        errors.append("limit must be a non-negative integer")
    if options.tags is not None and (
        not isinstance(options.tags, (list, tuple))
        or any(not isinstance(tag, str) or not tag.strip() for tag in options.tags)
    ):
        errors.append("tags must be an array of non-empty strings")
    return errors


def compile_pattern(pattern: str) -> re.Pattern | None:
    """Compile a case-insensitive pattern; an invalid pattern yields None (matches nothing)."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.warning(f"Invalid regex pattern {pattern!r}: {e}")
        return None


def create_sort_key(sort_by: str = "both") -> Callable[[MemoryItem], tuple]:
    """
    Build a sort key for memories.

    ``both`` sorts by importance first, timestamp as tiebreaker.
    """
    if sort_by == "importance":
        return lambda m: (m.importance,)
    if sort_by == "timestamp":
        return lambda m: (m.timestamp,)
    return lambda m: (m.importance, m.timestamp)


def sort_memories(memories: Iterable[MemoryItem], sort_by: str = "both", sort_order: str = "desc") -> list[MemoryItem]:
    return sorted(memories, key=create_sort_key(sort_by), reverse=sort_order == "desc")


def build_search_predicate(options: MemorySearchOptions) -> Callable[[MemoryItem], bool]:
    """
    Compile the content/tag criteria of ``options`` into a single predicate.

    Patterns are compiled once. An invalid pattern makes its criterion match
    nothing, so the predicate rejects everything instead of raising mid-query.
    """
    content_pattern = compile_pattern(options.content_regex) if options.content_regex else None
    tags_pattern = compile_pattern(options.tags_regex) if options.tags_regex else None
    required_tags = [tag.strip() for tag in options.tags or []]

    def predicate(memory: MemoryItem) -> bool:
        if options.content and options.content not in memory.sentence:
            return False
        if options.content_regex and (content_pattern is None or not content_pattern.search(memory.sentence)):
            return False
        if required_tags and not all(tag in memory.tags for tag in required_tags):
            return False
        if options.tags_regex and (tags_pattern is None or not any(tags_pattern.search(t) for t in memory.tags)):
            return False
        return True

    return predicate


def matches_search_criteria(memory: MemoryItem, options: MemorySearchOptions) -> bool:
    """Check a single memory against every content/tag criterion in ``options``."""
    return build_search_predicate(options)(memory)
