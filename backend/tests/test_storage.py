"""
Persistence Tests

JSON file backend and the typed user / watchlist stores, including
corrupt-state recovery.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from thetaflowz.models import Plan, User, WatchlistEntry
from thetaflowz.storage import (
    USER_KEY,
    WATCHLIST_KEY,
    JsonFileStorage,
    MemoryStorage,
    UserStore,
    WatchlistStore,
)

ADDED = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)


def _entry(symbol: str, price: float = 100.0) -> WatchlistEntry:
    return WatchlistEntry(symbol=symbol, name=symbol, price=price, change=1.0,
                          change_percent=1.0, added_at=ADDED, source="live")


class TestJsonFileStorage:

    def test_missing_file_reads_empty(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "nope.json")
        assert storage.get_item("user") is None

    def test_set_get_remove(self, tmp_path):
        path = tmp_path / "state" / "storage.json"
        storage = JsonFileStorage(path)
        storage.set_item("a", "1")
        storage.set_item("b", "2")
        assert storage.get_item("a") == "1"
        assert json.loads(path.read_text()) == {"a": "1", "b": "2"}

        storage.remove_item("a")
        assert storage.get_item("a") is None
        assert storage.get_item("b") == "2"

    def test_corrupt_file_reads_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{{{")
        assert JsonFileStorage(path).get_item("user") is None

    def test_non_object_file_reads_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("[1, 2, 3]")
        assert JsonFileStorage(path).get_item("user") is None

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "storage.json")
        storage.set_item("k", "v")
        assert [p.name for p in tmp_path.iterdir()] == ["storage.json"]


class TestUserStore:

    def test_round_trip(self):
        store = UserStore(MemoryStorage())
        user = User(id="u1", email="a@b.c", plan=Plan.BASIC, created_at=ADDED)
        store.save(user)
        assert store.load() == user

    def test_corrupt_user_is_none(self):
        store = UserStore(MemoryStorage({USER_KEY: '{"id": 5}'}))
        assert store.load() is None

    def test_malformed_timestamps_still_load(self):
        raw = json.dumps({"id": "u1", "email": "a@b.c", "plan": "free",
                          "plan_expiry": "garbage", "created_at": "2024-06-03T15:00:00Z"})
        user = UserStore(MemoryStorage({USER_KEY: raw})).load()
        assert user is not None
        assert user.plan_expiry == "garbage"

    def test_clear(self):
        storage = MemoryStorage()
        store = UserStore(storage)
        store.save(User(id="u1", email="a@b.c", created_at=ADDED))
        store.clear()
        assert store.load() is None


class TestWatchlistStore:

    def test_persist_and_reload_preserves_order(self, tmp_path):
        path = tmp_path / "storage.json"
        entries = [_entry("TSLA"), _entry("AAPL"), _entry("MSFT")]
        WatchlistStore(JsonFileStorage(path)).save(entries)

        reloaded = WatchlistStore(JsonFileStorage(path)).load()
        assert [e.symbol for e in reloaded] == ["TSLA", "AAPL", "MSFT"]
        assert reloaded == entries

    def test_missing_is_empty(self):
        assert WatchlistStore(MemoryStorage()).load() == []

    def test_corrupt_json_is_empty(self):
        assert WatchlistStore(MemoryStorage({WATCHLIST_KEY: "[oops"})).load() == []

    def test_non_list_is_empty(self):
        assert WatchlistStore(MemoryStorage({WATCHLIST_KEY: '{"AAPL": 1}'})).load() == []

    def test_invalid_entry_is_empty(self):
        assert WatchlistStore(MemoryStorage({WATCHLIST_KEY: '[{"symbol": "AAPL"}]'})).load() == []
