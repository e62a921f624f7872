"""Connected vs local-only mode switching.

Connected: the reconciler consumes both change feeds and every operation
writes through to the remote store. Local-only: no feeds, no remote writes,
and the whole store is saved to the snapshot store after every change.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from rummyq.core.config import EngineConfig, SyncMode

from .errors import RemoteUnavailableError
from .operations import QueueEngine
from .reconciler import ChangeReconciler
from .remote import PostgresRemote
from .snapshot import SnapshotPersister, SnapshotStore
from .storage import RemoteStore, Subscription
from .store import LocalStateStore

logger = logging.getLogger(__name__)


class SyncSession:
    """Owns the store, engine, reconciler and live subscriptions."""

    def __init__(
        self,
        config: EngineConfig,
        remote: RemoteStore | None,
        snapshots: SnapshotStore,
        **engine_options,
    ) -> None:
        self.store = LocalStateStore()
        self.remote = remote
        self.engine = QueueEngine(self.store, config, remote, **engine_options)
        self.reconciler = ChangeReconciler(self.store)
        self.persister = SnapshotPersister(snapshots)
        self._subscriptions: list[Subscription] = []
        self._persisting = False

    @property
    def config(self) -> EngineConfig:
        return self.engine.config

    @property
    def mode(self) -> SyncMode:
        return self.engine.config.mode

    @property
    def is_subscribed(self) -> bool:
        return bool(self._subscriptions)

    async def start(self) -> None:
        if self.mode is SyncMode.CONNECTED and self.remote is not None:
            await self.switch_to_connected()
            return
        if self.mode is SyncMode.CONNECTED:
            logger.warning("No remote store available, starting in local-only mode")
        await self.switch_to_local()

    async def set_mode(self, mode: SyncMode) -> None:
        if mode is SyncMode.CONNECTED:
            await self.switch_to_connected()
        else:
            await self.switch_to_local()

    async def switch_to_local(self) -> None:
        """Drop remote feeds and continue from the local snapshot."""
        self._cancel_subscriptions()
        self.engine.config = replace(self.engine.config, mode=SyncMode.LOCAL_ONLY)
        queue, games = self.persister.load()
        self.store.replace_queue(queue)
        self.store.replace_games(games)
        self._start_persisting()
        logger.info(f"Local-only mode: {len(queue)} queued, {len(games)} tables restored")

    async def switch_to_connected(self) -> None:
        """Discard local-only state, subscribe, and re-read remote truth."""
        if self.remote is None:
            raise RemoteUnavailableError("No remote store configured")
        self._stop_persisting()
        self._cancel_subscriptions()
        self.engine.config = replace(self.engine.config, mode=SyncMode.CONNECTED)
        self.store.clear()

        # Subscribe before reading; resync buffers events that land mid-read
        self._subscriptions = [
            self.remote.subscribe_queue_changes(self.reconciler.handle_queue_change),
            self.remote.subscribe_game_changes(self.reconciler.handle_game_change),
        ]
        if isinstance(self.remote, PostgresRemote):
            self.remote.on_reconnect = self.resync
        await self.resync()
        logger.info("Connected mode: subscribed to queue and game changes")

    async def resync(self) -> bool:
        """Full re-read, then clear any seated players left in the queue.

        Change events delivered while the reads are in flight are held back
        and replayed on top of the fresh state, so the older read cannot
        overwrite them.
        """
        with self.reconciler.held():
            ok = await self.engine.resync()
        if not ok:
            return False
        await self.engine.sweep_seated()
        return True

    async def close(self) -> None:
        self._cancel_subscriptions()
        self._stop_persisting()

    # --- internals ---

    def _persist(self, store: LocalStateStore) -> None:
        try:
            self.persister.save(store)
        except OSError as e:
            logger.warning(f"Could not save local snapshot: {e}")

    def _start_persisting(self) -> None:
        if not self._persisting:
            self.store.add_listener(self._persist)
            self._persisting = True

    def _stop_persisting(self) -> None:
        if self._persisting:
            self.store.remove_listener(self._persist)
            self._persisting = False

    def _cancel_subscriptions(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self.reconciler.discard_buffered()
