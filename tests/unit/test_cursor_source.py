"""
Unit tests for the pymongo cursor adapter
"""

import pytest
from bson.errors import InvalidBSON
from pymongo.errors import AutoReconnect, OperationFailure

from oplog_stream.cdc.source import CursorSource, ReadError


class TestCursorSource:
    """Test CursorSource read semantics"""

    def test_reads_entries_in_order(self, fake_cursor):
        source = CursorSource(fake_cursor([{"op": "i"}, {"op": "u"}]))

        assert source.next_entry() == {"op": "i"}
        assert source.next_entry() == {"op": "u"}

    def test_empty_await_window_returns_none(self, fake_cursor):
        """Test that StopIteration on a live cursor means 'nothing yet'"""
        cursor = fake_cursor([None, {"op": "n"}])
        source = CursorSource(cursor)

        assert source.next_entry() is None
        assert cursor.alive
        assert source.next_entry() == {"op": "n"}

    def test_dead_cursor_raises_read_error(self, fake_cursor):
        """Test that a cursor killed by the server is a read error"""
        source = CursorSource(fake_cursor([]))

        with pytest.raises(ReadError):
            source.next_entry()

    @pytest.mark.parametrize(
        "error",
        [AutoReconnect("connection closed"), OperationFailure("CappedPositionLost"), InvalidBSON("bad")],
    )
    def test_driver_errors_become_read_errors(self, fake_cursor, error):
        """Test that driver and BSON errors are wrapped with their cause"""
        source = CursorSource(fake_cursor([error]))

        with pytest.raises(ReadError) as exc_info:
            source.next_entry()

        assert exc_info.value.__cause__ is error

    def test_prime_buffers_first_entry(self, fake_cursor):
        """Test that priming sends the query and keeps the first entry"""
        cursor = fake_cursor([{"op": "i", "n": 1}, {"op": "i", "n": 2}])
        source = CursorSource(cursor)

        source.prime()

        assert source.next_entry() == {"op": "i", "n": 1}
        assert source.next_entry() == {"op": "i", "n": 2}

    def test_prime_with_no_initial_entries(self, fake_cursor):
        cursor = fake_cursor([None, {"op": "n"}])
        source = CursorSource(cursor)

        source.prime()

        assert source.next_entry() == {"op": "n"}

    def test_prime_propagates_driver_errors(self, fake_cursor):
        """Test that query establishment errors are not wrapped"""
        error = OperationFailure("not authorized on local", code=13)
        source = CursorSource(fake_cursor([error]))

        with pytest.raises(OperationFailure):
            source.prime()

    def test_close_is_idempotent(self, fake_cursor):
        cursor = fake_cursor([{"op": "i"}])
        source = CursorSource(cursor)

        source.close()
        source.close()

        assert cursor.close_calls == 1
        assert source.closed

    def test_read_after_close(self, fake_cursor):
        """Test that a closed source never reads again, even with buffered data"""
        cursor = fake_cursor([{"op": "i"}, {"op": "u"}])
        source = CursorSource(cursor)
        source.prime()

        source.close()

        with pytest.raises(ReadError):
            source.next_entry()
