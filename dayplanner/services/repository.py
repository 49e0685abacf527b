# File: dayplanner/services/repository.py
"""
Persistence for blocks and recurring templates.

The scheduling core only needs whole-date snapshots: load every block of a
date, or replace every block of a date. Templates are loaded and saved as a
single list.
"""

import datetime
import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List

from dayplanner.models import (
    TimeBlock,
    RecurringBlock,
    date_key,
    parse_date,
    time_block_from_dict,
    recurring_block_from_dict,
)
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)


class BlockRepository(ABC):
    """Storage interface used by the Block Store and Template Store."""

    @abstractmethod
    def load_blocks_for_date(self, day: datetime.date) -> List[TimeBlock]:
        """All one-off blocks stored under a date."""

    @abstractmethod
    def save_blocks_for_date(self, day: datetime.date, blocks: List[TimeBlock]) -> None:
        """Replace the blocks stored under a date; an empty list removes the date."""

    @abstractmethod
    def load_recurring_templates(self) -> List[RecurringBlock]:
        """All recurring templates."""

    @abstractmethod
    def save_recurring_templates(self, templates: List[RecurringBlock]) -> None:
        """Replace the stored templates."""

    @abstractmethod
    def dates_with_blocks(self) -> List[datetime.date]:
        """Dates that currently hold at least one block, ascending."""


class InMemoryRepository(BlockRepository):
    """Dictionary-backed repository, used for guests and tests."""

    def __init__(self):
        self._blocks: Dict[str, List[TimeBlock]] = {}
        self._templates: List[RecurringBlock] = []

    def load_blocks_for_date(self, day: datetime.date) -> List[TimeBlock]:
        return list(self._blocks.get(date_key(day), []))

    def save_blocks_for_date(self, day: datetime.date, blocks: List[TimeBlock]) -> None:
        key = date_key(day)
        if blocks:
            self._blocks[key] = list(blocks)
        else:
            self._blocks.pop(key, None)

    def load_recurring_templates(self) -> List[RecurringBlock]:
        return list(self._templates)

    def save_recurring_templates(self, templates: List[RecurringBlock]) -> None:
        self._templates = list(templates)

    def dates_with_blocks(self) -> List[datetime.date]:
        return sorted(parse_date(key) for key in self._blocks)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS TimeBlocks (
    date TEXT NOT NULL,
    id TEXT NOT NULL,
    start_time INTEGER NOT NULL,
    payload TEXT NOT NULL,
    PRIMARY KEY (date, id)
);

CREATE TABLE IF NOT EXISTS RecurringTemplates (
    id TEXT PRIMARY KEY,
    position INTEGER NOT NULL,
    payload TEXT NOT NULL
);
"""


class SqliteRepository(BlockRepository):
    """
    SQLite-backed repository.

    Each block is a JSON payload keyed by (date, id). Saves for a date
    replace that date's rows in one transaction so readers never see a
    half-written day.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _get_db_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_schema(self) -> None:
        conn = self._get_db_connection()
        try:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        finally:
            conn.close()
        logger.debug(f"SQLite schema ready at {self.db_path}")

    def load_blocks_for_date(self, day: datetime.date) -> List[TimeBlock]:
        conn = self._get_db_connection()
        try:
            cursor = conn.execute(
                "SELECT payload FROM TimeBlocks WHERE date = ? ORDER BY start_time, id",
                (date_key(day),)
            )
            rows = cursor.fetchall()
        finally:
            conn.close()

        blocks = []
        for (payload,) in rows:
            try:
                blocks.append(time_block_from_dict(json.loads(payload), day=day))
            except (ValueError, TypeError) as e:
                logger.error(f"Skipping unreadable block stored under {date_key(day)}: {e}")
        return blocks

    def save_blocks_for_date(self, day: datetime.date, blocks: List[TimeBlock]) -> None:
        key = date_key(day)
        conn = self._get_db_connection()
        try:
            with conn:
                conn.execute("DELETE FROM TimeBlocks WHERE date = ?", (key,))
                conn.executemany(
                    "INSERT INTO TimeBlocks (date, id, start_time, payload) VALUES (?, ?, ?, ?)",
                    [(key, b.id, b.start_time, json.dumps(b.to_dict())) for b in blocks]
                )
        finally:
            conn.close()
        logger.debug(f"Saved {len(blocks)} block(s) for {key}")

    def load_recurring_templates(self) -> List[RecurringBlock]:
        conn = self._get_db_connection()
        try:
            rows = conn.execute(
                "SELECT payload FROM RecurringTemplates ORDER BY position"
            ).fetchall()
        finally:
            conn.close()

        templates = []
        for (payload,) in rows:
            try:
                templates.append(recurring_block_from_dict(json.loads(payload)))
            except (ValueError, TypeError) as e:
                logger.error(f"Skipping unreadable recurring template: {e}")
        return templates

    def save_recurring_templates(self, templates: List[RecurringBlock]) -> None:
        conn = self._get_db_connection()
        try:
            with conn:
                conn.execute("DELETE FROM RecurringTemplates")
                conn.executemany(
                    "INSERT INTO RecurringTemplates (id, position, payload) VALUES (?, ?, ?)",
                    [(t.id, i, json.dumps(t.to_dict())) for i, t in enumerate(templates)]
                )
        finally:
            conn.close()
        logger.debug(f"Saved {len(templates)} recurring template(s)")

    def dates_with_blocks(self) -> List[datetime.date]:
        conn = self._get_db_connection()
        try:
            rows = conn.execute("SELECT DISTINCT date FROM TimeBlocks ORDER BY date").fetchall()
        finally:
            conn.close()
        return [parse_date(key) for (key,) in rows]
