"""Shared error types for cubicmem.

Absence of a memory is a normal outcome and is reported as ``None``/``False``.
Only malformed input, broken invariants and storage failures raise.
"""


class CubicMemError(Exception):
    """Base error for cubicmem."""


class MemoryValidationError(CubicMemError, ValueError):
    """Input failed validation. Carries every violated rule, not just the first."""

    def __init__(self, errors: list[str], prefix: str = "Invalid memory input"):
        self.errors = list(errors)
        super().__init__(f"{prefix}: {', '.join(self.errors)}")


class TagInvariantError(CubicMemError):
    """Operation would leave a memory with zero tags."""


class StorageError(CubicMemError):
    """Persistent store failed (constraint violation, I/O, not initialized)."""
