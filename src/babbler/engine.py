"""Core babbler engine - wires storage, rules, history, and search together."""

from __future__ import annotations

from typing import Optional

from .config import BabblerConfig
from .database import Database
from .history import HistoryLog
from .rules import RuleEngine
from .search import SearchEngine
from .store import EntryStore


class BabblerEngine:
    """Entry point for a project's entries, history, rules, and search."""

    def __init__(self, config: BabblerConfig):
        self.config = config
        self._database: Optional[Database] = None
        self._rules: Optional[RuleEngine] = None
        self._history: Optional[HistoryLog] = None
        self._store: Optional[EntryStore] = None
        self._search: Optional[SearchEngine] = None

    @property
    def database(self) -> Database:
        """Lazily open (and provision) the project database."""
        if self._database is None:
            self._database = Database(
                self.config.get_database_path(),
                lock_timeout=self.config.lock_timeout,
            )
        return self._database

    @property
    def rules(self) -> RuleEngine:
        if self._rules is None:
            self._rules = RuleEngine(self.database)
        return self._rules

    @property
    def history(self) -> HistoryLog:
        if self._history is None:
            self._history = HistoryLog(self.database)
        return self._history

    @property
    def store(self) -> EntryStore:
        if self._store is None:
            self._store = EntryStore(self.database, self.rules, self.history, self.config)
        return self._store

    @property
    def search(self) -> SearchEngine:
        if self._search is None:
            self._search = SearchEngine(self.database)
        return self._search

    def close(self) -> None:
        """Close the database connection; components are rebuilt on next use."""
        if self._database is not None:
            self._database.close()
        self._database = None
        self._rules = None
        self._history = None
        self._store = None
        self._search = None
