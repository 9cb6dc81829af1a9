from __future__ import annotations

import json
import logging
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from sctrack.domain.errors import StorageError
from sctrack.repositories import selector

log = logging.getLogger("sctrack.ledger")


class SqliteLedger:
    """World state kept in a single SQLite key/value table."""

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        try:
            return sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open ledger at {self.db_path}: {exc}") from exc

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = None
        try:
            cur = conn.cursor()
            current_version = self._schema_version(cur)

            migrations = [
                (1, self._migration_v1_world_state),
            ]
            pending = [(v, m) for v, m in migrations if v > current_version]
            if not pending:
                conn.commit()
                return

            backup_path = self._create_pre_migration_backup()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            for version, migration in pending:
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
            log.info("ledger_migrated path=%s version=%s", self.db_path, pending[-1][0])
        except sqlite3.Error as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise StorageError(
                "Ledger migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    @staticmethod
    def _schema_version(cur: sqlite3.Cursor) -> int:
        # Read-only, so a brand-new file is still empty when the backup runs.
        cur.execute("SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_migrations'")
        if cur.fetchone() is None:
            return 0
        cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
        return int(cur.fetchone()[0])

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_world_state(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS world_state (
                key TEXT PRIMARY KEY NOT NULL CHECK(length(key) > 0),
                value BLOB NOT NULL
            )
            """
        )

    # ---------- Accessor contract ----------
    def get(self, key: str) -> Optional[bytes]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT value FROM world_state WHERE key = ?", (key,))
            row = cur.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Ledger read failed for key {key!r}: {exc}") from exc
        finally:
            conn.close()
        return bytes(row[0]) if row else None

    def put(self, key: str, value: bytes) -> None:
        if not key:
            raise StorageError("Ledger keys must be non-empty.")
        conn = self._conn()
        try:
            conn.execute(
                "INSERT OR REPLACE INTO world_state (key, value) VALUES (?, ?)",
                (key, sqlite3.Binary(bytes(value))),
            )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Ledger write failed for key {key!r}: {exc}") from exc
        finally:
            conn.close()

    def range_scan(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                "SELECT key, value FROM world_state WHERE key >= ? AND key < ? ORDER BY key",
                (start_key, end_key),
            )
            rows = cur.fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Ledger range scan failed: {exc}") from exc
        finally:
            conn.close()
        return iter([(str(k), bytes(v)) for k, v in rows])

    def query(self, selector_expression: str) -> Iterator[tuple[str, bytes]]:
        try:
            parsed = selector.parse_query(selector_expression)
        except ValueError as exc:
            raise StorageError(f"Invalid selector query: {exc}") from exc

        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT key, value FROM world_state ORDER BY key")
            rows = cur.fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Ledger query failed: {exc}") from exc
        finally:
            conn.close()

        raw_by_key: dict[str, bytes] = {}
        documents: list[tuple[str, dict]] = []
        for k, v in rows:
            raw = bytes(v)
            try:
                doc = json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, ValueError):
                continue
            if isinstance(doc, dict):
                raw_by_key[str(k)] = raw
                documents.append((str(k), doc))

        try:
            selected = selector.apply(parsed, documents)
        except ValueError as exc:
            raise StorageError(f"Invalid selector query: {exc}") from exc
        return iter([(k, raw_by_key[k]) for k, _doc in selected])

    def integrity_check(self) -> str:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("PRAGMA integrity_check")
            row = cur.fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Integrity check failed: {exc}") from exc
        finally:
            conn.close()
        return str(row[0]) if row else "unknown"
