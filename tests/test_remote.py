"""Tests for the Postgres-backed remote store boundary."""

import asyncio
import json
from types import SimpleNamespace

import asyncpg
import pytest

from rummyq.core.config import Settings
from rummyq.sync import ChangeEvent, ChangeKind, EntityKind, PostgresRemote, SetupRequiredError
from rummyq.sync import remote as remote_module
from rummyq.sync.remote import ListenerSubscription, _setup_aware, connect_remote
from shared.database import DatabaseManager, PoolConfig


class FakeManager:
    def __init__(self, *, delay=0.0, error=None):
        self.delay = delay
        self.error = error
        self.pool = object()
        self.disconnected = False

    async def connect(self):
        await asyncio.sleep(self.delay)
        if self.error:
            raise self.error

    async def disconnect(self):
        self.disconnected = True


def remote_settings(**overrides):
    values = {
        "database_url": "postgresql://host/rummy",
        "session_timeout": 0.05,
        "auto_migrate": False,
    }
    values.update(overrides)
    return Settings(**values)


class TestChangeEventPayload:
    def test_decodes_notify_payload(self):
        payload = json.dumps({"kind": "update", "row": {"id": "p1", "name": "Ada"}})
        event = ChangeEvent.from_payload(EntityKind.PLAYER, payload)
        assert event.kind is ChangeKind.UPDATE
        assert event.entity is EntityKind.PLAYER
        assert event.row_id == "p1"

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            json.dumps({"row": {"id": "p1"}}),
            json.dumps({"kind": "truncate", "row": {}}),
            json.dumps({"kind": "insert", "row": ["p1"]}),
            json.dumps(["insert"]),
        ],
    )
    def test_malformed_payload_raises_value_error(self, payload):
        with pytest.raises(ValueError):
            ChangeEvent.from_payload(EntityKind.GAME, payload)

    def test_row_id_coerced_to_str(self):
        event = ChangeEvent(ChangeKind.DELETE, EntityKind.GAME, {"id": 42})
        assert event.row_id == "42"


class TestSetupAware:
    def test_missing_table_becomes_setup_required(self):
        @_setup_aware
        async def query():
            raise asyncpg.UndefinedTableError('relation "queue" does not exist')

        with pytest.raises(SetupRequiredError):
            asyncio.run(query())

    def test_other_errors_pass_through(self):
        @_setup_aware
        async def query():
            raise ConnectionResetError("gone")

        with pytest.raises(ConnectionResetError):
            asyncio.run(query())


class TestConnectRemote:
    def test_unconfigured_returns_none(self):
        assert asyncio.run(connect_remote(remote_settings(database_url=""))) is None

    def test_timeout_returns_none(self):
        manager = FakeManager(delay=1.0)
        assert asyncio.run(connect_remote(remote_settings(), manager=manager)) is None
        assert manager.disconnected

    def test_connection_error_returns_none(self):
        manager = FakeManager(error=OSError("refused"))
        assert asyncio.run(connect_remote(remote_settings(), manager=manager)) is None
        assert manager.disconnected

    def test_success_wraps_manager(self):
        manager = FakeManager()
        result = asyncio.run(connect_remote(remote_settings(), manager=manager))
        assert isinstance(result, PostgresRemote)
        assert result.db is manager


class TestSubscriptions:
    def test_notify_payloads_decoded_and_delivered(self, monkeypatch):
        good = json.dumps({"kind": "insert", "row": {"id": "p1"}})

        async def fake_listen(pool, channel, handler, *, on_reconnect=None):
            await handler(None, 1, channel, "garbage")
            await handler(None, 1, channel, good)

        monkeypatch.setattr(remote_module, "pg_listen", fake_listen)
        received = []

        async def scenario():
            remote = PostgresRemote(SimpleNamespace(pool=None))
            subscription = remote.subscribe_queue_changes(received.append)
            while subscription.active:
                await asyncio.sleep(0)
            return subscription

        subscription = asyncio.run(scenario())
        assert subscription.channel == remote_module.QUEUE_CHANNEL
        assert [e.row_id for e in received] == ["p1"]
        assert received[0].entity is EntityKind.PLAYER

    def test_reconnect_hook_awaited(self, monkeypatch):
        async def fake_listen(pool, channel, handler, *, on_reconnect=None):
            await on_reconnect()

        monkeypatch.setattr(remote_module, "pg_listen", fake_listen)
        calls = []

        async def resync():
            calls.append("resync")

        async def scenario():
            remote = PostgresRemote(SimpleNamespace(pool=None))
            remote.on_reconnect = resync
            subscription = remote.subscribe_game_changes(lambda event: None)
            while subscription.active:
                await asyncio.sleep(0)

        asyncio.run(scenario())
        assert calls == ["resync"]

    def test_cancel_stops_listener(self):
        async def scenario():
            task = asyncio.create_task(asyncio.sleep(10))
            subscription = ListenerSubscription("queue_changes", task)
            assert subscription.active
            subscription.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return subscription

        assert not asyncio.run(scenario()).active


class TestDatabaseManager:
    def test_session_pooler_kwargs(self):
        manager = DatabaseManager("postgresql://user@db.example:5432/rummy", PoolConfig(ssl=None))
        kwargs = manager.pool_kwargs()
        assert not manager.uses_transaction_pooler
        assert kwargs["ssl"] is None
        assert kwargs["server_settings"]["statement_timeout"] == "15000"
        assert "statement_cache_size" not in kwargs

    def test_transaction_pooler_disables_statement_cache(self):
        manager = DatabaseManager("postgresql://user@pooler.example:6543/rummy")
        kwargs = manager.pool_kwargs()
        assert manager.uses_transaction_pooler
        assert kwargs["statement_cache_size"] == 0
        assert kwargs["min_size"] == 0

    def test_unconnected_manager(self):
        manager = DatabaseManager("postgresql://host/rummy")
        assert not manager.is_connected
        assert asyncio.run(manager.check_health()) is False
        with pytest.raises(RuntimeError):
            manager.pool

    def test_remote_health_delegates(self):
        manager = FakeManager()
        manager.check_health = lambda: asyncio.sleep(0, result=True)
        assert asyncio.run(PostgresRemote(manager).check_health()) is True
