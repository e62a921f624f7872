"""Local-only persistence: queue and games as JSON blobs under fixed keys."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from shared.models.queue import Game, Player, sort_queue

from .store import LocalStateStore

logger = logging.getLogger(__name__)

QUEUE_KEY = "local_queue"
GAMES_KEY = "local_games"


class SnapshotStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, blob: str) -> None: ...


class JsonFileSnapshotStore:
    """One ``<key>.json`` file per key inside *directory*."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, blob: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(blob, encoding="utf-8")
        tmp.replace(path)


class SnapshotPersister:
    """Serializes a LocalStateStore to a SnapshotStore and back."""

    def __init__(self, snapshots: SnapshotStore) -> None:
        self.snapshots = snapshots

    def save(self, store: LocalStateStore) -> None:
        self.snapshots.set(QUEUE_KEY, json.dumps([p.to_row() for p in store.queue]))
        self.snapshots.set(GAMES_KEY, json.dumps([g.to_row() for g in store.games]))

    def load(self) -> tuple[list[Player], list[Game]]:
        """Return the saved (queue, games); a missing or corrupt blob loads as empty."""
        queue = self._load_list(QUEUE_KEY, Player.from_row)
        games = self._load_list(GAMES_KEY, Game.from_row)
        return sort_queue(queue), games

    def _load_list(self, key: str, parse) -> list:
        try:
            blob = self.snapshots.get(key)
        except OSError as e:
            logger.warning(f"Could not read local snapshot '{key}': {e}")
            return []
        if blob is None:
            return []
        try:
            rows = json.loads(blob)
            if not isinstance(rows, list):
                raise ValueError("snapshot is not a list")
            return [parse(row) for row in rows]
        except (TypeError, KeyError, ValueError) as e:
            logger.warning(f"Ignoring corrupt local snapshot '{key}': {e}")
            return []
