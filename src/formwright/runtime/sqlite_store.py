"""
SQLite instance store.

One persistent connection in autocommit mode; ``transaction()`` opens a
``BEGIN IMMEDIATE`` unit of work so concurrent writers are serialised by
SQLite itself, and ``save_instance`` performs its compare-and-swap with a
``WHERE version = ?`` guard.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from formwright.core import ir
from formwright.core.errors import FormwrightError

from .store import ConcurrentModificationError

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS form_instances (
    id TEXT PRIMARY KEY,
    form_id TEXT NOT NULL,
    campaign_id TEXT NOT NULL,
    data TEXT NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'draft',
    signing_mode TEXT NOT NULL DEFAULT 'all',
    locked_at TEXT,
    completed_at TEXT,
    voided_at TEXT,
    voided_by TEXT,
    voided_reason TEXT,
    unlocked_at TEXT,
    unlocked_by TEXT,
    created_at TEXT,
    updated_at TEXT,
    version INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS access_links (
    id TEXT PRIMARY KEY,
    token TEXT NOT NULL UNIQUE,
    vendor_id TEXT NOT NULL,
    campaign_id TEXT NOT NULL,
    form_id TEXT NOT NULL,
    form_instance_id TEXT REFERENCES form_instances(id),
    signatory_role TEXT,
    expires_at TEXT NOT NULL,
    used_at TEXT,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS signatories (
    id TEXT PRIMARY KEY,
    form_instance_id TEXT NOT NULL REFERENCES form_instances(id),
    access_link_id TEXT NOT NULL,
    name TEXT NOT NULL,
    email TEXT,
    signed_at TEXT,
    signature_data TEXT,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_signatories_instance ON signatories(form_instance_id);
"""

_INSTANCE_COLUMNS = (
    "id",
    "form_id",
    "campaign_id",
    "data",
    "status",
    "signing_mode",
    "locked_at",
    "completed_at",
    "voided_at",
    "voided_by",
    "voided_reason",
    "unlocked_at",
    "unlocked_by",
    "created_at",
    "updated_at",
    "version",
)
_SIGNATORY_COLUMNS = (
    "id",
    "form_instance_id",
    "access_link_id",
    "name",
    "email",
    "signed_at",
    "signature_data",
    "created_at",
)
_LINK_COLUMNS = (
    "id",
    "token",
    "vendor_id",
    "campaign_id",
    "form_id",
    "form_instance_id",
    "signatory_role",
    "expires_at",
    "used_at",
    "created_at",
)


# =============================================================================
# Row conversion
# =============================================================================


def _instance_to_row(instance: ir.FormInstance) -> dict[str, Any]:
    row = instance.model_dump(mode="json")
    row["data"] = json.dumps(row["data"])
    return row


def _row_to_instance(row: sqlite3.Row) -> ir.FormInstance:
    values = dict(row)
    values["data"] = json.loads(values["data"] or "{}")
    return ir.FormInstance.model_validate(values)


def _signatory_to_row(signatory: ir.Signatory) -> dict[str, Any]:
    row = signatory.model_dump(mode="json", exclude={"signature_data"})
    if signatory.signature_data is not None:
        row["signature_data"] = json.dumps(
            signatory.signature_data.model_dump(mode="json", by_alias=True, exclude_none=True)
        )
    else:
        row["signature_data"] = None
    return row


def _row_to_signatory(row: sqlite3.Row) -> ir.Signatory:
    values = dict(row)
    if values["signature_data"]:
        values["signature_data"] = json.loads(values["signature_data"])
    return ir.Signatory.model_validate(values)


def _link_to_row(link: ir.AccessLink) -> dict[str, Any]:
    return link.model_dump(mode="json")


def _row_to_link(row: sqlite3.Row) -> ir.AccessLink:
    return ir.AccessLink.model_validate(dict(row))


def _insert_sql(table: str, columns: tuple[str, ...]) -> str:
    names = ", ".join(columns)
    params = ", ".join(f":{column}" for column in columns)
    return f"INSERT INTO {table} ({names}) VALUES ({params})"


def _update_sql(table: str, columns: tuple[str, ...], where: str = "id = :id") -> str:
    assignments = ", ".join(f"{column} = :{column}" for column in columns if column != "id")
    return f"UPDATE {table} SET {assignments} WHERE {where}"


# =============================================================================
# Store
# =============================================================================


class SQLiteStore:
    """
    Instance store backed by a SQLite database file.

    Args:
        db_path: Path to the database file, or ``:memory:``
    """

    def __init__(self, db_path: str | Path = MEMORY_DATABASE):
        self.db_path = str(db_path)
        if self.db_path != MEMORY_DATABASE:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)

        self._lock = threading.RLock()
        self._depth = 0

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SQLiteStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Run the block as one ``BEGIN IMMEDIATE`` transaction.

        Nested calls join the outermost transaction.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._conn.execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                yield
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")
            finally:
                self._depth = 0

    def _execute(self, sql: str, params: dict[str, Any] | tuple[Any, ...] = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._conn.execute(sql, params)

    # -- instances -------------------------------------------------------------

    def insert_instance(self, instance: ir.FormInstance) -> ir.FormInstance:
        try:
            self._execute(
                _insert_sql("form_instances", _INSTANCE_COLUMNS), _instance_to_row(instance)
            )
        except sqlite3.IntegrityError as exc:
            raise FormwrightError(f"Form instance {instance.id} already exists") from exc
        return instance

    def get_instance(self, instance_id: str) -> ir.FormInstance | None:
        row = self._execute("SELECT * FROM form_instances WHERE id = ?", (instance_id,)).fetchone()
        return _row_to_instance(row) if row else None

    def save_instance(self, instance: ir.FormInstance, expected_version: int) -> ir.FormInstance:
        saved = instance.model_copy(update={"version": expected_version + 1})
        row = _instance_to_row(saved)
        row["expected_version"] = expected_version
        with self._lock:
            cursor = self._conn.execute(
                _update_sql(
                    "form_instances",
                    _INSTANCE_COLUMNS,
                    where="id = :id AND version = :expected_version",
                ),
                row,
            )
            if cursor.rowcount == 0:
                current = self.get_instance(instance.id)
                actual = current.version if current is not None else None
                raise ConcurrentModificationError(instance.id, expected_version, actual)
        return saved

    # -- signatories -----------------------------------------------------------

    def insert_signatory(self, signatory: ir.Signatory) -> ir.Signatory:
        self._execute(_insert_sql("signatories", _SIGNATORY_COLUMNS), _signatory_to_row(signatory))
        return signatory

    def get_signatory(self, signatory_id: str) -> ir.Signatory | None:
        row = self._execute("SELECT * FROM signatories WHERE id = ?", (signatory_id,)).fetchone()
        return _row_to_signatory(row) if row else None

    def list_signatories(self, instance_id: str) -> list[ir.Signatory]:
        rows = self._execute(
            "SELECT * FROM signatories WHERE form_instance_id = ? ORDER BY created_at, rowid",
            (instance_id,),
        ).fetchall()
        return [_row_to_signatory(row) for row in rows]

    def save_signatory(self, signatory: ir.Signatory) -> ir.Signatory:
        self._execute(_update_sql("signatories", _SIGNATORY_COLUMNS), _signatory_to_row(signatory))
        return signatory

    # -- links -----------------------------------------------------------------

    def insert_link(self, link: ir.AccessLink) -> ir.AccessLink:
        self._execute(_insert_sql("access_links", _LINK_COLUMNS), _link_to_row(link))
        return link

    def get_link(self, link_id: str) -> ir.AccessLink | None:
        row = self._execute("SELECT * FROM access_links WHERE id = ?", (link_id,)).fetchone()
        return _row_to_link(row) if row else None

    def get_link_by_token(self, token: str) -> ir.AccessLink | None:
        row = self._execute("SELECT * FROM access_links WHERE token = ?", (token,)).fetchone()
        return _row_to_link(row) if row else None

    def save_link(self, link: ir.AccessLink) -> ir.AccessLink:
        self._execute(_update_sql("access_links", _LINK_COLUMNS), _link_to_row(link))
        return link
