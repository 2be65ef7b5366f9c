"""
SQLite metadata index for a Markdown vault.

Holds one row per note plus the tags it carries and the ``[[links]]`` it
makes. The database lives at ``<base_dir>/markdown_data.db`` and outlives
editor sessions, so every write runs in a ``BEGIN IMMEDIATE`` transaction:
two editors on the same vault never interleave a half-replaced file.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence, TypeVar

from vault_editor.errors import EditorError, StoreIOError, StoreWriteConflict
from vault_editor.runtime import telemetry

from .models import (
    BacklinkRecord,
    Candidate,
    FileRecord,
    TagCount,
    link_target,
    name_key,
    normalize_tag,
    rank_candidates,
)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT NOT NULL UNIQUE,
    display_name TEXT NOT NULL,
    name_key TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_files_name_key ON files(name_key);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS file_tags (
    file_id INTEGER NOT NULL REFERENCES files(id) ON DELETE CASCADE,
    tag_id INTEGER NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    UNIQUE(file_id, tag_id)
);
CREATE INDEX IF NOT EXISTS idx_file_tags_tag ON file_tags(tag_id);

CREATE TABLE IF NOT EXISTS backlinks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_file_id INTEGER NOT NULL REFERENCES files(id) ON DELETE CASCADE,
    target_name TEXT NOT NULL,
    target_key TEXT NOT NULL,
    resolved_file_id INTEGER REFERENCES files(id) ON DELETE SET NULL,
    UNIQUE(source_file_id, target_name)
);
CREATE INDEX IF NOT EXISTS idx_backlinks_target_key ON backlinks(target_key);
CREATE INDEX IF NOT EXISTS idx_backlinks_resolved ON backlinks(resolved_file_id);
"""

DEFAULT_BUSY_TIMEOUT_S = 2.0

LOGGER_NAME = "vault_editor.index"

T = TypeVar("T")


def _is_locked(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return "locked" in message or "busy" in message


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def retry_on_conflict(write: Callable[[], T], *, operation: str) -> T:
    """Run a store write; a busy write lock gets exactly one more attempt.

    A second ``StoreWriteConflict`` propagates to the caller.
    """

    try:
        return write()
    except StoreWriteConflict:
        telemetry.record_event(
            "store.conflict_retry", level="warning", data={"operation": operation}
        )
    return write()


class MetadataStore:
    """
    Tags and backlinks of every note in one vault.

    Paths inside ``base_dir`` are stored relative to it (POSIX separators);
    anything else is stored as an absolute path.

    Dangling links: a backlink whose target has no file yet keeps
    ``resolved_file_id = NULL``. When the target file is removed or renamed
    away, its incoming links go back to dangling rather than disappearing,
    and a later file with a matching name picks them up again.
    """

    def __init__(
        self,
        db_path: Path,
        *,
        base_dir: Optional[Path] = None,
        busy_timeout_s: float = DEFAULT_BUSY_TIMEOUT_S,
    ):
        self._db_path = Path(db_path)
        self._base_dir = Path(base_dir) if base_dir else self._db_path.parent
        self._busy_timeout_s = busy_timeout_s
        self._conn: Optional[sqlite3.Connection] = None
        self._depth = 0
        self._init_db()

    @property
    def path(self) -> Path:
        return self._db_path

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _init_db(self) -> None:
        """Open the database, check it, and create missing tables."""

        try:
            self._conn = sqlite3.connect(
                str(self._db_path),
                timeout=self._busy_timeout_s,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._check_integrity()
            self._migrate()
        except StoreIOError:
            self.close()
            raise
        except sqlite3.Error as exc:
            self.close()
            raise StoreIOError(str(self._db_path), str(exc)) from exc

    def _check_integrity(self) -> None:
        rows = self._require_conn().execute("PRAGMA quick_check").fetchall()
        verdict = rows[0][0] if rows else "no result"
        if verdict != "ok":
            raise StoreIOError(str(self._db_path), f"integrity check failed: {verdict}")

    def _migrate(self) -> None:
        conn = self._require_conn()
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        if version > SCHEMA_VERSION:
            raise StoreIOError(
                str(self._db_path),
                f"schema version {version} is newer than supported {SCHEMA_VERSION}",
            )
        if version == SCHEMA_VERSION:
            return
        conn.executescript(SCHEMA)
        conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreIOError(str(self._db_path), "store is closed")
        return self._conn

    @contextmanager
    def transaction(self, operation: str = "write") -> Iterator[sqlite3.Connection]:
        """Run a block under the database write lock.

        Nested calls join the outermost transaction. A lock that cannot be
        taken within the busy timeout raises ``StoreWriteConflict``.
        """

        conn = self._require_conn()
        if self._depth:
            self._depth += 1
            try:
                yield conn
            finally:
                self._depth -= 1
            return

        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise self._translate(operation, exc) from exc

        self._depth = 1
        try:
            yield conn
        except sqlite3.Error as exc:
            self._rollback(conn, operation)
            raise self._translate(operation, exc) from exc
        except BaseException:
            self._rollback(conn, operation)
            raise
        else:
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._rollback(conn, operation)
                raise self._translate(operation, exc) from exc
        finally:
            self._depth = 0

    def _translate(self, operation: str, exc: sqlite3.Error) -> EditorError:
        """A busy lock is a conflict worth retrying; anything else is I/O."""

        if isinstance(exc, sqlite3.OperationalError) and _is_locked(exc):
            return StoreWriteConflict(operation, str(exc))
        return StoreIOError(str(self._db_path), str(exc))

    def _rollback(self, conn: sqlite3.Connection, operation: str) -> None:
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as exc:
            telemetry.get_logger(LOGGER_NAME).warning(
                f"rollback after {operation} failed: {exc}"
            )

    def _query(self, sql: str, params: Sequence[object] = ()) -> list[sqlite3.Row]:
        try:
            return self._require_conn().execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StoreIOError(str(self._db_path), str(exc)) from exc

    def _query_one(
        self, sql: str, params: Sequence[object] = ()
    ) -> Optional[sqlite3.Row]:
        rows = self._query(sql, params)
        return rows[0] if rows else None

    # -- paths ------------------------------------------------------------

    def relative_path(self, path: str | Path) -> str:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._base_dir / candidate
        candidate = candidate.resolve()
        try:
            return candidate.relative_to(self._base_dir.resolve()).as_posix()
        except ValueError:
            return str(candidate)

    def absolute_path(self, record: FileRecord) -> Path:
        stored = Path(record.path)
        return stored if stored.is_absolute() else self._base_dir / stored

    # -- writes -----------------------------------------------------------

    def upsert_file(self, path: str | Path) -> int:
        """Return the id for ``path``, creating the row if needed."""

        rel = self.relative_path(path)
        display = Path(rel).stem
        key = name_key(rel)
        with telemetry.span(
            "store::upsert_file", component="store", metadata={"path": rel}
        ), self.transaction("upsert_file") as conn:
            row = conn.execute("SELECT id FROM files WHERE path = ?", (rel,)).fetchone()
            if row:
                file_id = int(row["id"])
                conn.execute(
                    "UPDATE files SET display_name = ?, name_key = ? WHERE id = ?",
                    (display, key, file_id),
                )
            else:
                cursor = conn.execute(
                    "INSERT INTO files (path, display_name, name_key) VALUES (?, ?, ?)",
                    (rel, display, key),
                )
                file_id = int(cursor.lastrowid)
            self._resolve_incoming(conn, file_id, key)
            return file_id

    def replace_file_tags(self, file_id: int, names: Iterable[str]) -> None:
        """Make ``file_id`` carry exactly ``names``; drop tags nobody uses."""

        wanted = {normalize_tag(name) for name in names} - {""}
        with telemetry.span(
            "store::replace_file_tags",
            component="store",
            metadata={"file_id": file_id, "count": len(wanted)},
        ), self.transaction("replace_file_tags") as conn:
            current = {
                row["name"]: int(row["id"])
                for row in conn.execute(
                    """
                    SELECT t.id, t.name FROM file_tags ft
                    JOIN tags t ON t.id = ft.tag_id
                    WHERE ft.file_id = ?
                    """,
                    (file_id,),
                )
            }
            for name in sorted(wanted - current.keys()):
                conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (name,))
                tag_id = conn.execute(
                    "SELECT id FROM tags WHERE name = ?", (name,)
                ).fetchone()["id"]
                conn.execute(
                    "INSERT OR IGNORE INTO file_tags (file_id, tag_id) VALUES (?, ?)",
                    (file_id, tag_id),
                )
            for name in current.keys() - wanted:
                conn.execute(
                    "DELETE FROM file_tags WHERE file_id = ? AND tag_id = ?",
                    (file_id, current[name]),
                )
            self._collect_orphan_tags(conn)

    def replace_file_backlinks(self, file_id: int, targets: Iterable[str]) -> None:
        """Make ``file_id`` link to exactly ``targets``."""

        wanted = {target for target in (link_target(t) for t in targets) if target}
        with telemetry.span(
            "store::replace_file_backlinks",
            component="store",
            metadata={"file_id": file_id, "count": len(wanted)},
        ), self.transaction("replace_file_backlinks") as conn:
            current = {
                row["target_name"]: int(row["id"])
                for row in conn.execute(
                    "SELECT id, target_name FROM backlinks WHERE source_file_id = ?",
                    (file_id,),
                )
            }
            for target in sorted(wanted - current.keys()):
                key = name_key(target)
                conn.execute(
                    """
                    INSERT INTO backlinks
                        (source_file_id, target_name, target_key, resolved_file_id)
                    VALUES (?, ?, ?, ?)
                    """,
                    (file_id, target, key, self._lookup_key(conn, key)),
                )
            for target in current.keys() - wanted:
                conn.execute("DELETE FROM backlinks WHERE id = ?", (current[target],))
            own = conn.execute(
                "SELECT name_key FROM files WHERE id = ?", (file_id,)
            ).fetchone()
            if own:
                self._resolve_incoming(conn, file_id, own["name_key"])

    def apply_scan(
        self, path: str | Path, tags: Iterable[str], links: Iterable[str]
    ) -> int:
        """Record one scan result atomically; returns the file id."""

        with telemetry.span(
            "store::apply_scan", component="store", metadata={"path": str(path)}
        ), self.transaction("apply_scan"):
            file_id = self.upsert_file(path)
            self.replace_file_tags(file_id, tags)
            self.replace_file_backlinks(file_id, links)
            return file_id

    def remove_file(self, path: str | Path) -> bool:
        """Forget a file; links pointing at it become dangling."""

        rel = self.relative_path(path)
        with telemetry.span(
            "store::remove_file", component="store", metadata={"path": rel}
        ), self.transaction("remove_file") as conn:
            row = conn.execute("SELECT id FROM files WHERE path = ?", (rel,)).fetchone()
            if row is None:
                return False
            file_id = int(row["id"])
            conn.execute(
                "UPDATE backlinks SET resolved_file_id = NULL WHERE resolved_file_id = ?",
                (file_id,),
            )
            conn.execute("DELETE FROM file_tags WHERE file_id = ?", (file_id,))
            conn.execute("DELETE FROM backlinks WHERE source_file_id = ?", (file_id,))
            conn.execute("DELETE FROM files WHERE id = ?", (file_id,))
            self._collect_orphan_tags(conn)
            return True

    def rename_file(self, old_path: str | Path, new_path: str | Path) -> Optional[int]:
        """Move a file row to ``new_path``, keeping its tags and outgoing links.

        Links that named the old file go back to dangling unless they also
        match the new name; links naming the new name now resolve to it.
        """

        old_rel = self.relative_path(old_path)
        new_rel = self.relative_path(new_path)
        display = Path(new_rel).stem
        key = name_key(new_rel)
        with telemetry.span(
            "store::rename_file",
            component="store",
            metadata={"old": old_rel, "new": new_rel},
        ), self.transaction("rename_file") as conn:
            row = conn.execute(
                "SELECT id FROM files WHERE path = ?", (old_rel,)
            ).fetchone()
            if row is None:
                return None
            file_id = int(row["id"])
            clash = conn.execute(
                "SELECT id FROM files WHERE path = ?", (new_rel,)
            ).fetchone()
            if clash is not None:
                conn.execute(
                    "UPDATE backlinks SET resolved_file_id = NULL WHERE resolved_file_id = ?",
                    (clash["id"],),
                )
                conn.execute("DELETE FROM files WHERE id = ?", (clash["id"],))
            conn.execute(
                "UPDATE files SET path = ?, display_name = ?, name_key = ? WHERE id = ?",
                (new_rel, display, key, file_id),
            )
            conn.execute(
                """
                UPDATE backlinks SET resolved_file_id = NULL
                WHERE resolved_file_id = ? AND target_key != ?
                """,
                (file_id, key),
            )
            self._resolve_incoming(conn, file_id, key)
            self._collect_orphan_tags(conn)
            return file_id

    def _resolve_incoming(
        self, conn: sqlite3.Connection, file_id: int, key: str
    ) -> None:
        conn.execute(
            """
            UPDATE backlinks SET resolved_file_id = ?
            WHERE target_key = ? AND resolved_file_id IS NULL
            """,
            (file_id, key),
        )

    def _lookup_key(self, conn: sqlite3.Connection, key: str) -> Optional[int]:
        row = conn.execute(
            "SELECT id FROM files WHERE name_key = ? ORDER BY id LIMIT 1", (key,)
        ).fetchone()
        return int(row["id"]) if row else None

    def _collect_orphan_tags(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            "DELETE FROM tags WHERE id NOT IN (SELECT DISTINCT tag_id FROM file_tags)"
        )

    # -- reads ------------------------------------------------------------

    def get_file(self, file_id: int) -> Optional[FileRecord]:
        row = self._query_one(
            "SELECT id, path, display_name FROM files WHERE id = ?", (file_id,)
        )
        return self._file(row) if row else None

    def find_file(self, path: str | Path) -> Optional[FileRecord]:
        row = self._query_one(
            "SELECT id, path, display_name FROM files WHERE path = ?",
            (self.relative_path(path),),
        )
        return self._file(row) if row else None

    def find_file_by_name(self, name: str) -> Optional[FileRecord]:
        """Resolve a link target the way backlinks resolve it."""

        row = self._query_one(
            """
            SELECT id, path, display_name FROM files
            WHERE name_key = ? ORDER BY id LIMIT 1
            """,
            (name_key(link_target(name)),),
        )
        return self._file(row) if row else None

    def query_tags(self, prefix: str = "") -> list[str]:
        """Tag names containing ``prefix``, most used first."""

        return [tag.name for tag in self.all_tags(prefix)]

    def all_tags(self, prefix: str = "") -> list[TagCount]:
        rows = self._query(
            r"""
            SELECT t.name, COUNT(ft.file_id) AS usage FROM tags t
            LEFT JOIN file_tags ft ON ft.tag_id = t.id
            WHERE t.name LIKE ? ESCAPE '\'
            GROUP BY t.id
            ORDER BY usage DESC, t.name ASC
            """,
            (_like_pattern(normalize_tag(prefix)),),
        )
        return [TagCount(name=row["name"], count=int(row["usage"])) for row in rows]

    def tags_for_file(self, file_id: int) -> list[str]:
        rows = self._query(
            """
            SELECT t.name FROM file_tags ft JOIN tags t ON t.id = ft.tag_id
            WHERE ft.file_id = ? ORDER BY t.name
            """,
            (file_id,),
        )
        return [row["name"] for row in rows]

    def files_with_tag(self, name: str) -> list[FileRecord]:
        rows = self._query(
            """
            SELECT f.id, f.path, f.display_name FROM files f
            JOIN file_tags ft ON ft.file_id = f.id
            JOIN tags t ON t.id = ft.tag_id
            WHERE t.name = ?
            ORDER BY f.display_name, f.path
            """,
            (normalize_tag(name),),
        )
        return [self._file(row) for row in rows]

    def query_backlinks_to(self, file_id: int) -> list[FileRecord]:
        """Files that link to ``file_id``."""

        rows = self._query(
            """
            SELECT DISTINCT f.id, f.path, f.display_name FROM backlinks b
            JOIN files f ON f.id = b.source_file_id
            WHERE b.resolved_file_id = ?
            ORDER BY f.display_name, f.path
            """,
            (file_id,),
        )
        return [self._file(row) for row in rows]

    def backlinks_from(self, file_id: int) -> list[BacklinkRecord]:
        rows = self._query(
            """
            SELECT source_file_id, target_name, resolved_file_id FROM backlinks
            WHERE source_file_id = ? ORDER BY target_name
            """,
            (file_id,),
        )
        return [
            BacklinkRecord(
                source_file_id=int(row["source_file_id"]),
                target_name=row["target_name"],
                resolved_file_id=row["resolved_file_id"],
            )
            for row in rows
        ]

    def search_files(self, query: str, *, limit: int = 50) -> list[FileRecord]:
        rows = self._query(
            r"""
            SELECT id, path, display_name FROM files
            WHERE display_name LIKE ? ESCAPE '\' OR path LIKE ? ESCAPE '\'
            ORDER BY display_name, path
            LIMIT ?
            """,
            (_like_pattern(query.strip()), _like_pattern(query.strip()), limit),
        )
        return [self._file(row) for row in rows]

    def query_autocomplete_candidates(
        self, kind: str, prefix: str, *, limit: int = 10
    ) -> list[Candidate]:
        """Ranked ``tag`` or ``file`` candidates for a partial token."""

        if kind == "tag":
            rows = self._query(
                r"""
                SELECT t.name AS name, COUNT(ft.file_id) AS usage FROM tags t
                LEFT JOIN file_tags ft ON ft.tag_id = t.id
                WHERE t.name LIKE ? ESCAPE '\'
                GROUP BY t.id
                """,
                (_like_pattern(normalize_tag(prefix)),),
            )
            found = [
                Candidate(
                    kind="tag",
                    name=row["name"],
                    usage=int(row["usage"]),
                    insert_text=f"#{row['name']}",
                )
                for row in rows
            ]
            return rank_candidates(found, normalize_tag(prefix), limit)
        if kind == "file":
            rows = self._query(
                r"""
                SELECT f.display_name AS name, COUNT(b.id) AS usage FROM files f
                LEFT JOIN backlinks b ON b.resolved_file_id = f.id
                WHERE f.display_name LIKE ? ESCAPE '\'
                GROUP BY f.id
                ORDER BY usage DESC
                """,
                (_like_pattern(prefix),),
            )
            found = [
                Candidate(
                    kind="file",
                    name=row["name"],
                    usage=int(row["usage"]),
                    insert_text=f"[[{row['name']}]]",
                )
                for row in rows
            ]
            # names only linked so far; rank_candidates keeps the real file on a tie
            dangling = self._query(
                r"""
                SELECT MIN(target_name) AS name, COUNT(*) AS usage FROM backlinks
                WHERE resolved_file_id IS NULL AND target_name LIKE ? ESCAPE '\'
                GROUP BY target_key
                """,
                (_like_pattern(prefix),),
            )
            found.extend(
                Candidate(
                    kind="file",
                    name=row["name"],
                    usage=int(row["usage"]),
                    insert_text=f"[[{row['name']}]]",
                    detail="unresolved",
                )
                for row in dangling
            )
            return rank_candidates(found, prefix, limit)
        raise ValueError(f"Unknown candidate kind '{kind}'")

    def counts(self) -> dict[str, int]:
        return {
            table: int(self._query(f"SELECT COUNT(*) FROM {table}")[0][0])
            for table in ("files", "tags", "file_tags", "backlinks")
        }

    def _file(self, row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            id=int(row["id"]), path=row["path"], display_name=row["display_name"]
        )

    def close(self) -> None:
        """Close the database connection."""

        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


__all__ = ["MetadataStore", "SCHEMA_VERSION", "retry_on_conflict"]
