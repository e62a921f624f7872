"""Tests for LocalStateStore ordering, dedup and listeners."""

from rummyq.sync.store import LocalStateStore
from shared.models import Game, GameStatus

from conftest import make_player, names


class TestQueueOrdering:
    def test_insert_keeps_joined_at_order(self):
        store = LocalStateStore()
        store.insert_player(make_player("C", 30))
        store.insert_player(make_player("A", 10))
        store.insert_player(make_player("B", 20))
        assert names(store.queue) == ["A", "B", "C"]

    def test_insert_known_id_ignored(self):
        store = LocalStateStore()
        assert store.insert_player(make_player("A", 10)) is True
        assert store.insert_player(make_player("A", 99)) is False
        assert len(store.queue) == 1
        assert store.queue[0].joined_at == 10

    def test_equal_joined_at_ordered_by_id(self):
        store = LocalStateStore()
        store.insert_player(make_player("B", 5))
        store.insert_player(make_player("A", 5))
        assert names(store.queue) == ["A", "B"]

    def test_replace_queue_dedups_and_sorts(self):
        store = LocalStateStore()
        store.replace_queue([make_player("B", 2), make_player("A", 1), make_player("B", 9)])
        assert names(store.queue) == ["A", "B"]
        assert store.find_player("p-b").joined_at == 2

    def test_update_player_fields_resorts(self):
        store = LocalStateStore()
        store.replace_queue([make_player("A", 1), make_player("B", 2)])
        assert store.update_player_fields("p-a", joined_at=3) is True
        assert names(store.queue) == ["B", "A"]

    def test_update_ignores_immutable_fields(self):
        store = LocalStateStore()
        store.replace_queue([make_player("A", 1)])
        assert store.update_player_fields("p-a", avatar_seed=99) is False
        assert store.queue[0].avatar_seed == 7

    def test_queue_property_is_a_copy(self):
        store = LocalStateStore()
        store.insert_player(make_player("A", 1))
        store.queue.clear()
        assert len(store.queue) == 1


class TestQueueRemoval:
    def test_remove_by_id(self):
        store = LocalStateStore()
        store.replace_queue([make_player("A", 1), make_player("B", 2)])
        assert store.remove_player_by_id("p-a") is True
        assert store.remove_player_by_id("p-a") is False
        assert names(store.queue) == ["B"]

    def test_remove_many_counts_only_present(self):
        store = LocalStateStore()
        store.replace_queue([make_player("A", 1), make_player("B", 2)])
        assert store.remove_players_by_ids(["p-a", "p-b", "p-zzz"]) == 2
        assert store.queue == []


class TestGames:
    def test_insert_game_prepends(self):
        store = LocalStateStore()
        store.insert_game(Game(id="g1", start_time=1))
        store.insert_game(Game(id="g2", start_time=2))
        assert [g.id for g in store.games] == ["g2", "g1"]

    def test_insert_known_game_ignored(self):
        store = LocalStateStore()
        assert store.insert_game(Game(id="g1")) is True
        assert store.insert_game(Game(id="g1", start_time=5)) is False
        assert store.games[0].start_time == 0

    def test_update_game_fields(self):
        store = LocalStateStore()
        store.insert_game(Game(id="g1", players=[make_player("A", 1)]))
        assert store.update_game_fields("g1", status=GameStatus.FINISHED) is True
        assert store.update_game_fields("missing", status=GameStatus.FINISHED) is False
        assert store.find_game("g1").status is GameStatus.FINISHED
        assert names(store.find_game("g1").players) == ["A"]

    def test_seated_ids(self):
        store = LocalStateStore()
        store.insert_game(Game(id="g1", players=[make_player("A", 1), make_player("B", 2)]))
        store.insert_game(Game(id="g2", players=[make_player("C", 3)]))
        assert store.seated_ids() == {"p-a", "p-b", "p-c"}


class TestListeners:
    def test_listener_called_on_change(self):
        store = LocalStateStore()
        seen = []
        store.add_listener(lambda s: seen.append(len(s.queue)))
        store.insert_player(make_player("A", 1))
        store.remove_player_by_id("p-a")
        assert seen == [1, 0]

    def test_no_notification_without_change(self):
        store = LocalStateStore()
        seen = []
        store.add_listener(lambda s: seen.append(1))
        store.remove_player_by_id("nobody")
        store.remove_game_by_id("nothing")
        assert seen == []

    def test_failing_listener_does_not_break_mutation(self):
        store = LocalStateStore()

        def boom(_):
            raise RuntimeError("listener failed")

        store.add_listener(boom)
        store.insert_player(make_player("A", 1))
        assert names(store.queue) == ["A"]

    def test_remove_listener(self):
        store = LocalStateStore()
        seen = []
        listener = lambda s: seen.append(1)  # noqa: E731
        store.add_listener(listener)
        store.remove_listener(listener)
        store.insert_player(make_player("A", 1))
        assert seen == []
