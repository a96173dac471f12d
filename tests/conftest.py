"""
Pytest Fixtures and Test Configuration
Provides fake oplog cursors, fake raw entry sources and a mocked MongoClient
"""

from collections import deque
from typing import Any, Callable, Dict, Iterable, List, Optional
from unittest.mock import MagicMock

import pytest
from bson.timestamp import Timestamp

from oplog_stream.cdc.source import ReadError

# ============================================================================
# Fake pymongo cursor
# ============================================================================


class FakeCursor:
    """
    Stand-in for a pymongo tailable-await Cursor

    Items are returned in order: a dict is an oplog entry, None is an empty
    await window (StopIteration on a live cursor) and an exception instance is
    raised. Once the items run out the cursor dies unless ``stay_alive`` is set.
    """

    def __init__(self, items: Iterable[Any] = (), stay_alive: bool = False):
        self._items = deque(items)
        self._stay_alive = stay_alive
        self.alive = True
        self.closed = False
        self.close_calls = 0
        self.await_time_ms: Optional[int] = None

    def __iter__(self) -> "FakeCursor":
        return self

    def __next__(self) -> Dict[str, Any]:
        if not self._items:
            if not self._stay_alive:
                self.alive = False
            raise StopIteration
        item = self._items.popleft()
        if item is None:
            raise StopIteration
        if isinstance(item, BaseException):
            raise item
        return item

    def max_await_time_ms(self, max_await_time_ms: Optional[int]) -> "FakeCursor":
        self.await_time_ms = max_await_time_ms
        return self

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self.alive = False


# ============================================================================
# Fake raw entry source
# ============================================================================


class FakeSource:
    """
    Scripted RawEntrySource

    Items follow the FakeCursor conventions. When the script runs out the
    source raises ReadError, like a cursor whose server went away.
    """

    def __init__(self, items: Iterable[Any] = ()):
        self._items = deque(items)
        self.closed = False
        self.close_calls = 0
        self.reads = 0

    def next_entry(self) -> Optional[Dict[str, Any]]:
        self.reads += 1
        if self.closed:
            raise ReadError("source closed")
        if not self._items:
            raise ReadError("connection reset by peer")
        item = self._items.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True


@pytest.fixture
def fake_source() -> Callable[..., FakeSource]:
    """Factory for scripted raw entry sources"""
    return FakeSource


@pytest.fixture
def fake_cursor() -> Callable[..., FakeCursor]:
    """Factory for fake tailable cursors"""
    return FakeCursor


# ============================================================================
# Mocked MongoClient
# ============================================================================


@pytest.fixture
def oplog_collection() -> MagicMock:
    """Mocked local.oplog.rs collection; set find.return_value / side_effect per test"""
    collection = MagicMock(name="oplog.rs")
    collection.find.return_value = FakeCursor()
    return collection


@pytest.fixture
def mock_client(oplog_collection: MagicMock) -> MagicMock:
    """
    Mocked MongoClient whose client[db][coll] resolves to oplog_collection

    Yields:
        MagicMock standing in for pymongo.MongoClient
    """
    client = MagicMock(name="MongoClient")
    database = MagicMock(name="local")
    database.__getitem__.return_value = oplog_collection
    client.__getitem__.return_value = database
    return client


# ============================================================================
# Sample oplog entries
# ============================================================================


@pytest.fixture
def make_entry() -> Callable[..., Dict[str, Any]]:
    """
    Factory for realistic oplog entries

    Example:
        make_entry("i", o={"_id": 1}, seconds=1700000000, inc=3)
    """

    def _make(
        op: str,
        ns: Optional[str] = "shop.users",
        o: Optional[Dict[str, Any]] = None,
        o2: Optional[Dict[str, Any]] = None,
        seconds: int = 1700000000,
        inc: int = 1,
        **extra: Any,
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"op": op, "ts": Timestamp(seconds, inc), "v": 2}
        if ns is not None:
            entry["ns"] = ns
        if o is not None:
            entry["o"] = o
        if o2 is not None:
            entry["o2"] = o2
        entry.update(extra)
        return entry

    return _make


@pytest.fixture
def sample_entries(make_entry) -> List[Dict[str, Any]]:
    """One entry of every kind, in log order"""
    return [
        make_entry("c", ns="shop.$cmd", o={"create": "users"}, inc=1),
        make_entry("i", o={"_id": 1, "name": "ada"}, inc=2),
        make_entry("u", o={"$set": {"name": "grace"}}, o2={"_id": 1}, inc=3),
        make_entry("d", o={"_id": 1}, inc=4),
        make_entry("n", ns="", o={"msg": "periodic noop"}, inc=5),
    ]
