"""SQLite key-value storage for the person list and tree name."""

import json
from pathlib import Path
import sqlite3

from famgraph.models import Person

PERSONS_KEY = "familyTreePersons"
TREE_NAME_KEY = "familyTreeName"


def create_database(db_path: Path | str) -> sqlite3.Connection:
    """Open (or create) the SQLite database with its key-value table."""
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
    """)

    conn.commit()
    return conn


class PersonStorage:
    """Local blob store holding the whole person list as one JSON document."""

    def __init__(self, db_path: Path | str = ":memory:"):
        self.db_path = db_path
        self.conn = create_database(db_path)

    def _set(self, key: str, value: str) -> None:
        self.conn.execute("INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)", (key, value))
        self.conn.commit()

    def _get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def save(self, persons: list[Person]) -> None:
        self._set(PERSONS_KEY, json.dumps([p.to_dict() for p in persons]))

    def load(self) -> list[Person]:
        raw = self._get(PERSONS_KEY)
        return [Person.from_dict(item) for item in json.loads(raw)] if raw else []

    def save_name(self, name: str) -> None:
        self._set(TREE_NAME_KEY, name)

    def load_name(self) -> str:
        return self._get(TREE_NAME_KEY) or ""

    def clear(self) -> None:
        self.conn.execute("DELETE FROM kv_store WHERE key IN (?, ?)", (PERSONS_KEY, TREE_NAME_KEY))
        self.conn.commit()

    def close(self) -> None:
        self.conn.close()
