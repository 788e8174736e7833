"""SQLite long-term memory store with normalized tags."""

import asyncio
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from loguru import logger

from cubicmem.errors import MemoryValidationError, StorageError
from cubicmem.memory.base import PersistentMemory
from cubicmem.memory.types import MemoryItem, MemorySearchOptions, StoreStats
from cubicmem.memory.utils import (
    build_search_predicate,
    normalize_tags,
    now_ms,
    validate_importance,
    validate_search_options,
    validate_sentence,
    validate_tags,
)

MEMORY_DB = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS memories (
        id TEXT PRIMARY KEY,
        sentence TEXT NOT NULL,
        importance REAL NOT NULL CHECK (importance >= 0 AND importance <= 1),
        timestamp INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        text TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS memory_tags (
        memory_id TEXT NOT NULL REFERENCES memories(id) ON DELETE CASCADE,
        tag_id INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
        PRIMARY KEY (memory_id, tag_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_memories_timestamp ON memories(timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_memories_importance ON memories(importance)",
    "CREATE INDEX IF NOT EXISTS idx_memory_tags_tag ON memory_tags(tag_id)",
)

_PURGE_ORPHAN_TAGS = "DELETE FROM tags WHERE id NOT IN (SELECT DISTINCT tag_id FROM memory_tags)"

_ORDER_COLUMNS = {
    "importance": ("importance",),
    "timestamp": ("timestamp",),
    "both": ("importance", "timestamp"),
}


class SQLiteMemory(PersistentMemory):
    """
    Durable memory storage in SQLite.

    Schema: memories(id, sentence, importance, timestamp), tags(id, text UNIQUE),
    memory_tags(memory_id, tag_id) with ON DELETE CASCADE from memories.
    Every multi-statement write runs in one BEGIN IMMEDIATE transaction and is
    rolled back as a whole on failure. Blocking sqlite calls run in a worker
    thread; a single connection is shared under a lock.
    """

    def __init__(self, db_path: str | Path = MEMORY_DB):
        self.db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    # -- Lifecycle --

    async def initialize(self) -> None:
        await asyncio.to_thread(self._initialize)

    def _initialize(self) -> None:
        with self._lock:
            if self._conn is not None:
                return
            if self.db_path != MEMORY_DB:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA foreign_keys=ON")
                if self.db_path != MEMORY_DB:
                    conn.execute("PRAGMA journal_mode=WAL")
                for statement in _SCHEMA:
                    conn.execute(statement)
            except sqlite3.Error as e:
                raise StorageError(f"Failed to initialize memory store at {self.db_path}: {e}") from e
            self._conn = conn
            logger.debug(f"SQLite memory store ready at {self.db_path}")

    async def close(self) -> None:
        await asyncio.to_thread(self._close)

    def _close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    # -- Helpers --

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("SQLiteMemory not initialized. Call initialize() first.")
        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run a block atomically; any failure rolls back every statement in it."""
        with self._lock:
            conn = self._connection()
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StorageError(str(e)) from e
            except Exception:
                self._rollback(conn)
                raise

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        """Serialize a read on the shared connection; sqlite failures surface as StorageError."""
        with self._lock:
            conn = self._connection()
            try:
                yield conn
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    @staticmethod
    def _link_tags(conn: sqlite3.Connection, memory_id: str, tags: list[str]) -> None:
        for tag in tags:
            conn.execute("INSERT OR IGNORE INTO tags (text) VALUES (?)", (tag,))
            tag_id = conn.execute("SELECT id FROM tags WHERE text = ?", (tag,)).fetchone()["id"]
            conn.execute(
                "INSERT OR IGNORE INTO memory_tags (memory_id, tag_id) VALUES (?, ?)",
                (memory_id, tag_id),
            )

    @staticmethod
    def _tags_for(conn: sqlite3.Connection, memory_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT t.text FROM tags t JOIN memory_tags mt ON mt.tag_id = t.id "
            "WHERE mt.memory_id = ? ORDER BY t.text",
            (memory_id,),
        ).fetchall()
        return [r["text"] for r in rows]

    def _row_to_item(self, conn: sqlite3.Connection, row: sqlite3.Row) -> MemoryItem:
        return MemoryItem(
            id=row["id"],
            sentence=row["sentence"],
            importance=row["importance"],
            tags=self._tags_for(conn, row["id"]),
            timestamp=row["timestamp"],
        )

    # -- CRUD --

    async def store(self, memory: MemoryItem) -> None:
        await asyncio.to_thread(self._store, memory)

    def _store(self, memory: MemoryItem) -> None:
        try:
            with self._transaction() as conn:
                conn.execute(
                    "INSERT INTO memories (id, sentence, importance, timestamp) VALUES (?, ?, ?, ?)",
                    (memory.id, memory.sentence, memory.importance, memory.timestamp),
                )
                self._link_tags(conn, memory.id, memory.tags)
        except StorageError as e:
            raise StorageError(f"Failed to store memory {memory.id}: {e}") from e.__cause__

    async def retrieve(self, memory_id: str) -> MemoryItem | None:
        return await asyncio.to_thread(self._retrieve, memory_id)

    def _retrieve(self, memory_id: str) -> MemoryItem | None:
        with self._reading() as conn:
            row = conn.execute(
                "SELECT id, sentence, importance, timestamp FROM memories WHERE id = ?",
                (memory_id,),
            ).fetchone()
            return self._row_to_item(conn, row) if row else None

    async def update(
        self,
        memory_id: str,
        *,
        sentence: str | None = None,
        importance: float | None = None,
        tags: list[str] | None = None,
    ) -> bool:
        return await asyncio.to_thread(self._update, memory_id, sentence, importance, tags)

    def _update(
        self,
        memory_id: str,
        sentence: str | None,
        importance: float | None,
        tags: list[str] | None,
    ) -> bool:
        errors: list[str] = []
        if sentence is not None:
            errors.extend(validate_sentence(sentence))
        if importance is not None:
            errors.extend(validate_importance(importance))
        if tags is not None:
            errors.extend(validate_tags(tags))
        if errors:
            raise MemoryValidationError(errors, prefix="Invalid memory update")

        assignments: list[str] = []
        params: list[object] = []
        if sentence is not None:
            assignments.append("sentence = ?")
            params.append(sentence.strip())
        if importance is not None:
            assignments.append("importance = ?")
            params.append(float(importance))
        if not assignments and tags is None:
            return False

        # MAX keeps the per-item timestamp monotonic even if the clock steps back.
        assignments.append("timestamp = MAX(timestamp, ?)")
        params.extend([now_ms(), memory_id])

        with self._transaction() as conn:
            cursor = conn.execute(f"UPDATE memories SET {', '.join(assignments)} WHERE id = ?", params)
            if cursor.rowcount == 0:
                return False
            if tags is not None:
                conn.execute("DELETE FROM memory_tags WHERE memory_id = ?", (memory_id,))
                self._link_tags(conn, memory_id, normalize_tags(tags))
                conn.execute(_PURGE_ORPHAN_TAGS)
        return True

    async def delete(self, memory_id: str) -> bool:
        return await asyncio.to_thread(self._delete, memory_id)

    def _delete(self, memory_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            deleted = cursor.rowcount > 0
            if deleted:
                purged = conn.execute(_PURGE_ORPHAN_TAGS).rowcount
                logger.debug(f"Deleted memory {memory_id}, purged {purged} orphaned tags")
        return deleted

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)

    def _count(self) -> int:
        with self._reading() as conn:
            return conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]

    # -- Search --

    async def search(self, options: MemorySearchOptions) -> list[MemoryItem]:
        errors = validate_search_options(options)
        if errors:
            raise MemoryValidationError(errors, prefix="Invalid search options")
        return await asyncio.to_thread(self._search, options)

    def _search(self, options: MemorySearchOptions) -> list[MemoryItem]:
        where: list[str] = []
        params: list[object] = []

        if options.content:
            where.append("instr(sentence, ?) > 0")
            params.append(options.content)

        for tag in options.tags or []:
            where.append(
                "EXISTS (SELECT 1 FROM memory_tags mt JOIN tags t ON t.id = mt.tag_id "
                "WHERE mt.memory_id = memories.id AND t.text = ?)"
            )
            params.append(tag.strip())

        direction = "ASC" if options.sort_order == "asc" else "DESC"
        order = ", ".join(f"{col} {direction}" for col in _ORDER_COLUMNS[options.sort_by])

        sql = "SELECT id, sentence, importance, timestamp FROM memories"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {order}, id"

        # Regex criteria are applied after the query, so the limit has to wait for them.
        needs_post_filter = bool(options.content_regex or options.tags_regex)
        if options.limit and not needs_post_filter:
            sql += " LIMIT ?"
            params.append(options.limit)

        with self._reading() as conn:
            rows = conn.execute(sql, params).fetchall()
            memories = [self._row_to_item(conn, row) for row in rows]

        if needs_post_filter:
            predicate = build_search_predicate(options)
            memories = [m for m in memories if predicate(m)]
            if options.limit:
                memories = memories[: options.limit]
        return memories

    # -- Administration --

    async def vacuum(self) -> None:
        await asyncio.to_thread(self._vacuum)

    def _vacuum(self) -> None:
        with self._lock:
            try:
                self._connection().execute("VACUUM")
            except sqlite3.Error as e:
                raise StorageError(f"VACUUM failed: {e}") from e

    async def get_stats(self) -> StoreStats:
        return await asyncio.to_thread(self._get_stats)

    def _get_stats(self) -> StoreStats:
        with self._reading() as conn:
            total = conn.execute("SELECT COUNT(*) FROM memories").fetchone()[0]
            tag_count = conn.execute("SELECT COUNT(*) FROM tags").fetchone()[0]
            database_size = 0
            if self.db_path != MEMORY_DB:
                database_size = conn.execute("PRAGMA page_count").fetchone()[0]

            select = "SELECT id, sentence, importance, timestamp FROM memories ORDER BY timestamp {}, id LIMIT 1"
            oldest = conn.execute(select.format("ASC")).fetchone()
            newest = conn.execute(select.format("DESC")).fetchone()
            return StoreStats(
                total_memories=total,
                database_size=database_size,
                tag_count=tag_count,
                oldest_memory=self._row_to_item(conn, oldest) if oldest else None,
                newest_memory=self._row_to_item(conn, newest) if newest else None,
            )
