"""Persistence for group configuration and seen listings."""
from __future__ import annotations

import copy
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Protocol

from house_watch.errors import StateStoreError
from house_watch.models import GroupConfig

LOGGER = logging.getLogger(__name__)

Document = Dict[str, Any]

SEARCH_LINKS_KEY = "searchLinks"
MAX_TOTAL_KEY = "maxTotal"
SEEN_KEY = "alreadySeenHouses"

_SQLITE_SUFFIXES = {".db", ".sqlite", ".sqlite3"}


class StateBackend(Protocol):
    """Reads and writes the whole state document as one unit."""

    def read(self) -> Document:
        ...

    def write(self, document: Document) -> None:
        ...


class InMemoryBackend:
    """Backend keeping the document in memory, copied on every access."""

    def __init__(self, document: Document | None = None) -> None:
        self._document: Document | None = copy.deepcopy(document) if document is not None else None
        self.writes = 0

    def read(self) -> Document:
        if self._document is None:
            raise StateStoreError("In-memory state document is missing")
        return copy.deepcopy(self._document)

    def write(self, document: Document) -> None:
        self._document = copy.deepcopy(document)
        self.writes += 1


class JsonFileBackend:
    """Backend storing the document in a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self) -> Document:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StateStoreError(f"Cannot read state file {self.path}: {exc}") from exc
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StateStoreError(f"State file {self.path} is not valid JSON: {exc}") from exc

    def write(self, document: Document) -> None:
        try:
            self.path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise StateStoreError(f"Cannot write state file {self.path}: {exc}") from exc


class SqliteBackend:
    """Backend storing one JSON encoded row per group in SQLite."""

    def __init__(self, database: str | Path) -> None:
        self.database = str(database)

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self.database)
        connection.row_factory = sqlite3.Row
        return connection

    def _ensure_schema(self, connection: sqlite3.Connection) -> None:
        connection.execute(
            """
            CREATE TABLE IF NOT EXISTS groups (
                id TEXT PRIMARY KEY,
                payload TEXT NOT NULL
            )
            """
        )

    def read(self) -> Document:
        if not Path(self.database).exists():
            raise StateStoreError(f"State database {self.database} does not exist")
        try:
            connection = self._connect()
            try:
                rows = connection.execute("SELECT id, payload FROM groups ORDER BY rowid").fetchall()
            finally:
                connection.close()
        except sqlite3.Error as exc:
            raise StateStoreError(f"Cannot read state database {self.database}: {exc}") from exc
        try:
            return {row["id"]: json.loads(row["payload"]) for row in rows}
        except json.JSONDecodeError as exc:
            raise StateStoreError(f"Corrupt group payload in {self.database}: {exc}") from exc

    def write(self, document: Document) -> None:
        db_path = Path(self.database)
        if db_path.parent and not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            connection = self._connect()
            try:
                with connection:
                    self._ensure_schema(connection)
                    connection.execute("DELETE FROM groups")
                    connection.executemany(
                        "INSERT INTO groups (id, payload) VALUES (?, ?)",
                        [
                            (group_id, json.dumps(entry, ensure_ascii=False))
                            for group_id, entry in document.items()
                        ],
                    )
            finally:
                connection.close()
        except sqlite3.Error as exc:
            raise StateStoreError(f"Cannot write state database {self.database}: {exc}") from exc


def backend_for_path(path: str | Path) -> StateBackend:
    """Choose SQLite for database suffixes and JSON for everything else."""

    if Path(path).suffix.lower() in _SQLITE_SUFFIXES:
        return SqliteBackend(path)
    return JsonFileBackend(path)


def _parse_group(group_id: str, entry: Any) -> GroupConfig:
    if not isinstance(entry, dict):
        raise StateStoreError(f"Group {group_id} must be an object")

    links = entry.get(SEARCH_LINKS_KEY, [])
    if not isinstance(links, list) or not all(isinstance(link, str) for link in links):
        raise StateStoreError(f"Group {group_id}: {SEARCH_LINKS_KEY} must be a list of URLs")

    max_total = entry.get(MAX_TOTAL_KEY)
    if max_total is None:
        max_total = sys.maxsize
    elif isinstance(max_total, bool) or not isinstance(max_total, int):
        raise StateStoreError(f"Group {group_id}: {MAX_TOTAL_KEY} must be an integer")

    seen = entry.get(SEEN_KEY, {})
    if not isinstance(seen, dict):
        raise StateStoreError(f"Group {group_id}: {SEEN_KEY} must be an object")

    return GroupConfig(
        group_id=group_id,
        search_links=list(links),
        max_total=max_total,
        seen={url for url, flag in seen.items() if flag},
    )


class StateStore:
    """Loads group configuration and records listings as seen."""

    def __init__(self, backend: StateBackend) -> None:
        self.backend = backend

    def _read_document(self) -> Document:
        document = self.backend.read()
        if not isinstance(document, dict):
            raise StateStoreError("State document must be an object keyed by group id")
        return document

    def load(self) -> Dict[str, GroupConfig]:
        document = self._read_document()
        groups = {
            str(group_id): _parse_group(str(group_id), entry) for group_id, entry in document.items()
        }
        LOGGER.info("Loaded %d group(s) from state", len(groups))
        return groups

    def mark_seen(self, group_id: str, urls: Iterable[str]) -> None:
        # Merge into the stored document, not the copy returned by load().
        document = self._read_document()
        entry = document.get(group_id)
        if not isinstance(entry, dict):
            raise StateStoreError(f"Unknown group {group_id}")
        seen = entry.setdefault(SEEN_KEY, {})
        if not isinstance(seen, dict):
            raise StateStoreError(f"Group {group_id}: {SEEN_KEY} must be an object")
        url_list = list(urls)
        for url in url_list:
            seen[url] = True
        self.backend.write(document)
        LOGGER.info("Marked %d listing(s) as seen for %s", len(url_list), group_id)
