# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Snapshot persistence for Flowboard.

The whole normalized movement collection of a session is persisted as one
snapshot in a small SQLite key-value table, keyed by a fixed string key.
On the next start the snapshot is restored verbatim. The absence of a
snapshot is not an error: it yields an empty collection.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) snapshots
   One row per snapshot key.

   Columns:
   - key          TEXT PRIMARY KEY   -- e.g. "flujo_caja_data"
   - payload      TEXT NOT NULL      -- JSON array, one record per movement
   - row_count    INTEGER NOT NULL
   - updated_at   TEXT NOT NULL      -- ISO datetime, UTC

Each JSON record holds the raw dimension fields, the raw period token, the
amount and the period key. The Period value itself is not stored: it is
re-derived from the stored period key when the snapshot is loaded.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Timestamps are stored as ISO-8601 text (UTC).
- Writes are a single INSERT OR REPLACE, so the last save always wins.
- The schema creation is idempotent and safe to run on every start.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .logging_setup import get_logger
from .normalizer import Movement
from .periods import period_from_key

logger = get_logger(__name__)

SNAPSHOT_KEY = "flujo_caja_data"

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Snapshot database configuration.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    snapshot_key:
        Key under which the movement collection is stored.
    """

    engine: str
    path: Path
    snapshot_key: str = SNAPSHOT_KEY


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    return sqlite3.connect(cfg.path)


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS snapshots (
            key         TEXT    PRIMARY KEY,
            payload     TEXT    NOT NULL,
            row_count   INTEGER NOT NULL,
            updated_at  TEXT    NOT NULL
        );
        """
    )
    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def movement_to_record(movement: Movement) -> dict[str, Any]:
    """Serialize a Movement to a JSON-friendly record."""
    return {
        "type": movement.type,
        "entity": movement.entity,
        "group": movement.group,
        "category": movement.category,
        "subcategory": movement.subcategory,
        "detail": movement.detail,
        "code": movement.code,
        "period_token": movement.period_token,
        "amount": movement.amount,
        "period_key": movement.period_key,
    }


def movement_from_record(record: Mapping[str, Any]) -> Movement:
    """
    Rebuild a Movement from a stored record.

    Raises
    ------
    KeyError
        If a required key (type, period_key) is missing.
    ValueError
        If the stored period key is invalid.
    """
    return Movement(
        type=str(record["type"]),
        entity=str(record.get("entity", "")),
        group=str(record.get("group", "")),
        category=str(record.get("category", "")),
        subcategory=str(record.get("subcategory", "")),
        detail=str(record.get("detail", "")),
        code=str(record.get("code", "")),
        period_token=str(record.get("period_token", "")),
        amount=float(record.get("amount") or 0.0),
        period=period_from_key(int(record["period_key"])),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the parent directory and the SQLite file if they do not exist.
    - Creates the `snapshots` table if it is missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def save_snapshot(
    cfg: DatabaseConfig,
    movements: Iterable[Movement],
    key: str | None = None,
) -> int:
    """
    Persist the full movement collection under ``key``.

    Any previous snapshot stored under the same key is replaced.

    Returns
    -------
    int
        Number of movements written.
    """
    init_database(cfg)
    snapshot_key = key or cfg.snapshot_key
    records = [movement_to_record(m) for m in movements]
    payload = json.dumps(records, ensure_ascii=False)

    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT OR REPLACE INTO snapshots (key, payload, row_count, updated_at)
            VALUES (?, ?, ?, ?);
            """,
            (snapshot_key, payload, len(records), _now_utc_iso()),
        )
        conn.commit()
    finally:
        conn.close()

    logger.debug("Saved snapshot %r with %d movement(s)", snapshot_key, len(records))
    return len(records)


def load_snapshot(cfg: DatabaseConfig, key: str | None = None) -> list[Movement]:
    """
    Load the movement collection stored under ``key``.

    Returns an empty list when the database file or the key does not exist.

    Raises
    ------
    ValueError
        If the stored payload is not a valid JSON array of records.
    """
    if not cfg.path.exists():
        return []

    init_database(cfg)
    snapshot_key = key or cfg.snapshot_key

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            "SELECT payload FROM snapshots WHERE key = ?;", (snapshot_key,)
        )
        row = cur.fetchone()
    finally:
        conn.close()

    if row is None:
        return []

    try:
        records = json.loads(row[0])
        if not isinstance(records, list):
            raise ValueError("snapshot payload is not a list")
        movements = [movement_from_record(r) for r in records]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Corrupted snapshot {snapshot_key!r} in {cfg.path}") from exc

    logger.debug("Loaded snapshot %r with %d movement(s)", snapshot_key, len(movements))
    return movements


def has_snapshot(cfg: DatabaseConfig, key: str | None = None) -> bool:
    """Return True if a snapshot is stored under ``key``."""
    if not cfg.path.exists():
        return False

    init_database(cfg)
    conn = _connect(cfg)
    try:
        cur = conn.execute(
            "SELECT 1 FROM snapshots WHERE key = ? LIMIT 1;",
            (key or cfg.snapshot_key,),
        )
        return cur.fetchone() is not None
    finally:
        conn.close()


def clear_snapshot(cfg: DatabaseConfig, key: str | None = None) -> bool:
    """
    Delete the snapshot stored under ``key``.

    Returns True if a snapshot was removed, False if there was none.
    """
    if not cfg.path.exists():
        return False

    init_database(cfg)
    conn = _connect(cfg)
    try:
        cur = conn.execute(
            "DELETE FROM snapshots WHERE key = ?;", (key or cfg.snapshot_key,)
        )
        conn.commit()
        removed = cur.rowcount > 0
    finally:
        conn.close()

    if removed:
        logger.info("Cleared snapshot %r", key or cfg.snapshot_key)
    return removed
