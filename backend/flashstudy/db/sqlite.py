import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

from flashstudy.config import settings
from flashstudy.errors import DuplicateCardError
from flashstudy.models.card import (
    Card,
    CardCreate,
    CardUpdate,
    MasteryLevel,
    QuizSet,
    QuizSetCreate,
    QuizSetUpdate,
    SortOption,
)

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS sets (
    id           TEXT PRIMARY KEY,
    owner_id     TEXT NOT NULL,
    title        TEXT NOT NULL,
    description  TEXT DEFAULT '',
    is_ai_graded INTEGER DEFAULT 0,
    is_starred   INTEGER DEFAULT 0,
    last_studied INTEGER DEFAULT 0,
    created_at   TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_sets_owner ON sets(owner_id);

CREATE TABLE IF NOT EXISTS cards (
    id                 TEXT PRIMARY KEY,
    set_id             TEXT NOT NULL REFERENCES sets(id) ON DELETE CASCADE,
    question           TEXT NOT NULL,
    answer             TEXT NOT NULL,
    question_image_uri TEXT,
    answer_image_uri   TEXT,
    mastery_level      TEXT NOT NULL DEFAULT 'NOT_STUDIED',
    is_starred         INTEGER DEFAULT 0,
    created_at         TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_cards_set ON cards(set_id);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);

CREATE TABLE IF NOT EXISTS settings (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL DEFAULT '',
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO settings(key, value) VALUES ('ai_enabled', 'true');
INSERT OR IGNORE INTO settings(key, value) VALUES ('llm_model', '');
"""

# Card columns a study flow may write directly
CARD_STUDY_FIELDS = {"mastery_level", "is_starred"}

_SORT_SQL = {
    SortOption.CREATION_DATE_DESC: "created_at DESC, rowid DESC",
    SortOption.CREATION_DATE_ASC: "created_at ASC, rowid ASC",
    SortOption.ALPHABETICAL_AZ: "lower(title) ASC",
    SortOption.ALPHABETICAL_ZA: "lower(title) DESC",
}


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _row_to_set(row: aiosqlite.Row) -> QuizSet:
    d = dict(row)
    d["is_ai_graded"] = bool(d["is_ai_graded"])
    d["is_starred"] = bool(d["is_starred"])
    return QuizSet(**d)


def _row_to_card(row: aiosqlite.Row) -> Card:
    d = dict(row)
    d["is_starred"] = bool(d["is_starred"])
    return Card(**d)


# --- Sets ---


async def create_set(
    db: aiosqlite.Connection, owner_id: str, body: QuizSetCreate
) -> QuizSet:
    set_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO sets (id, owner_id, title, description, is_ai_graded, created_at)
           VALUES (?, ?, ?, ?, ?, ?)""",
        (set_id, owner_id, body.title, body.description, int(body.is_ai_graded), _now()),
    )
    await db.commit()
    return await get_set(db, owner_id, set_id)  # type: ignore[return-value]


async def get_set(db: aiosqlite.Connection, owner_id: str, set_id: str) -> QuizSet | None:
    cursor = await db.execute(
        "SELECT * FROM sets WHERE id = ? AND owner_id = ?", (set_id, owner_id)
    )
    row = await cursor.fetchone()
    return _row_to_set(row) if row else None


async def list_sets(
    db: aiosqlite.Connection,
    owner_id: str,
    query: str = "",
    sort: SortOption = SortOption.CREATION_DATE_DESC,
) -> list[QuizSet]:
    """Starred sets first, then by the requested order; optional title search."""
    sql = "SELECT * FROM sets WHERE owner_id = ?"
    params: list[Any] = [owner_id]
    if query.strip():
        sql += " AND lower(title) LIKE ?"
        params.append(f"%{query.strip().lower()}%")
    sql += f" ORDER BY is_starred DESC, {_SORT_SQL[sort]}"  # noqa: S608
    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return [_row_to_set(r) for r in rows]


async def update_set(
    db: aiosqlite.Connection, owner_id: str, set_id: str, updates: QuizSetUpdate
) -> QuizSet | None:
    fields = updates.model_dump(exclude_none=True)
    if not fields:
        return await get_set(db, owner_id, set_id)

    for key, val in fields.items():
        if isinstance(val, bool):
            fields[key] = int(val)

    set_clause = ", ".join(f"{k} = ?" for k in fields)
    await db.execute(
        f"UPDATE sets SET {set_clause} WHERE id = ? AND owner_id = ?",  # noqa: S608
        list(fields.values()) + [set_id, owner_id],
    )
    await db.commit()
    return await get_set(db, owner_id, set_id)


async def toggle_set_starred(
    db: aiosqlite.Connection, owner_id: str, set_id: str
) -> QuizSet | None:
    await db.execute(
        "UPDATE sets SET is_starred = 1 - is_starred WHERE id = ? AND owner_id = ?",
        (set_id, owner_id),
    )
    await db.commit()
    return await get_set(db, owner_id, set_id)


async def touch_set_studied(db: aiosqlite.Connection, set_id: str) -> None:
    await db.execute(
        "UPDATE sets SET last_studied = ? WHERE id = ?",
        (int(time.time() * 1000), set_id),
    )
    await db.commit()


async def delete_set(db: aiosqlite.Connection, owner_id: str, set_id: str) -> bool:
    cursor = await db.execute(
        "DELETE FROM sets WHERE id = ? AND owner_id = ?", (set_id, owner_id)
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def import_set(
    db: aiosqlite.Connection,
    owner_id: str,
    title: str,
    pairs: list[tuple[str, str]],
) -> QuizSet:
    """Create a set holding one card per (term, definition) pair, in one commit."""
    set_id = str(uuid.uuid4())
    now = _now()
    await db.execute(
        """INSERT INTO sets (id, owner_id, title, description, is_ai_graded, created_at)
           VALUES (?, ?, ?, ?, 0, ?)""",
        (set_id, owner_id, title, "Imported Set", now),
    )
    await db.executemany(
        """INSERT INTO cards (id, set_id, question, answer, created_at)
           VALUES (?, ?, ?, ?, ?)""",
        [(str(uuid.uuid4()), set_id, q, a, now) for q, a in pairs],
    )
    await db.commit()
    return await get_set(db, owner_id, set_id)  # type: ignore[return-value]


# --- Cards ---


async def get_cards(
    db: aiosqlite.Connection,
    set_id: str,
    mastery: MasteryLevel | None = None,
    starred_only: bool = False,
) -> list[Card]:
    sql = "SELECT * FROM cards WHERE set_id = ?"
    params: list[Any] = [set_id]
    if mastery is not None:
        sql += " AND mastery_level = ?"
        params.append(mastery.value)
    if starred_only:
        sql += " AND is_starred = 1"
    sql += " ORDER BY created_at ASC, rowid ASC"

    cursor = await db.execute(sql, params)
    rows = await cursor.fetchall()
    return [_row_to_card(r) for r in rows]


async def count_cards_by_mastery(
    db: aiosqlite.Connection, set_id: str
) -> dict[MasteryLevel, int]:
    cursor = await db.execute(
        "SELECT mastery_level, COUNT(*) FROM cards WHERE set_id = ? GROUP BY mastery_level",
        (set_id,),
    )
    counts = {level: 0 for level in MasteryLevel}
    for level, n in await cursor.fetchall():
        counts[MasteryLevel(level)] = n
    return counts


async def get_card(db: aiosqlite.Connection, set_id: str, card_id: str) -> Card | None:
    cursor = await db.execute(
        "SELECT * FROM cards WHERE id = ? AND set_id = ?", (card_id, set_id)
    )
    row = await cursor.fetchone()
    return _row_to_card(row) if row else None


async def add_card(db: aiosqlite.Connection, set_id: str, body: CardCreate) -> Card:
    """Insert a card; raises DuplicateCardError if the question already exists in the set."""
    cursor = await db.execute(
        "SELECT 1 FROM cards WHERE set_id = ? AND lower(question) = lower(?)",
        (set_id, body.question),
    )
    if await cursor.fetchone():
        raise DuplicateCardError(body.question)

    card_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO cards
           (id, set_id, question, answer, question_image_uri, answer_image_uri,
            mastery_level, is_starred, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)""",
        (
            card_id,
            set_id,
            body.question,
            body.answer,
            body.question_image_uri,
            body.answer_image_uri,
            MasteryLevel.NOT_STUDIED.value,
            _now(),
        ),
    )
    await db.commit()
    return await get_card(db, set_id, card_id)  # type: ignore[return-value]


async def update_card(
    db: aiosqlite.Connection, set_id: str, card_id: str, updates: CardUpdate
) -> Card | None:
    fields = updates.model_dump(exclude_none=True)
    if not fields:
        return await get_card(db, set_id, card_id)

    for key, val in fields.items():
        if hasattr(val, "value"):
            fields[key] = val.value
        elif isinstance(val, bool):
            fields[key] = int(val)

    set_clause = ", ".join(f"{k} = ?" for k in fields)
    await db.execute(
        f"UPDATE cards SET {set_clause} WHERE id = ? AND set_id = ?",  # noqa: S608
        list(fields.values()) + [card_id, set_id],
    )
    await db.commit()
    return await get_card(db, set_id, card_id)


async def update_card_field(
    db: aiosqlite.Connection, set_id: str, card_id: str, field: str, value: Any
) -> bool:
    """Write one study-owned field (mastery_level or is_starred)."""
    if field not in CARD_STUDY_FIELDS:
        raise ValueError(f"field {field!r} is not writable by study flows")
    if hasattr(value, "value"):
        value = value.value
    elif isinstance(value, bool):
        value = int(value)
    cursor = await db.execute(
        f"UPDATE cards SET {field} = ? WHERE id = ? AND set_id = ?",  # noqa: S608
        (value, card_id, set_id),
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def delete_card(db: aiosqlite.Connection, set_id: str, card_id: str) -> bool:
    cursor = await db.execute(
        "DELETE FROM cards WHERE id = ? AND set_id = ?", (card_id, set_id)
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


# --- Settings key-value store ---


async def get_setting(db: aiosqlite.Connection, key: str) -> str | None:
    cursor = await db.execute("SELECT value FROM settings WHERE key = ?", (key,))
    row = await cursor.fetchone()
    return row[0] if row else None


async def set_setting(db: aiosqlite.Connection, key: str, value: str) -> None:
    now = _now()
    await db.execute(
        "INSERT INTO settings(key, value, updated_at) VALUES (?, ?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
        (key, value, now),
    )
    await db.commit()


async def get_all_settings(db: aiosqlite.Connection) -> dict[str, str]:
    cursor = await db.execute("SELECT key, value FROM settings")
    rows = await cursor.fetchall()
    return {row[0]: row[1] for row in rows}
