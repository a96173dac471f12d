"""
Raw Entry Sources
Adapts a tailable-await pymongo cursor into a "next raw entry" capability
"""

from collections import deque
from typing import Any, Deque, Mapping, Optional, Protocol

import structlog
from bson.errors import InvalidBSON
from pymongo.cursor import Cursor
from pymongo.errors import PyMongoError

from oplog_stream.errors import OplogStreamError

logger = structlog.get_logger(__name__)


class ReadError(OplogStreamError):
    """Raised when the underlying cursor cannot deliver the next entry"""

    pass


class RawEntrySource(Protocol):
    """
    Anything that hands out raw oplog entries one at a time

    ``next_entry`` blocks until an entry arrives or the server-side await
    window elapses. It returns None in the latter case and raises ReadError
    when the source has failed for good.
    """

    def next_entry(self) -> Optional[Mapping[str, Any]]:
        ...

    def close(self) -> None:
        ...


class CursorSource:
    """
    RawEntrySource backed by a pymongo tailable-await cursor

    The cursor is owned exclusively by this source and is closed by ``close``.
    """

    def __init__(self, cursor: Cursor):
        """
        Initialize the source

        Args:
            cursor: Cursor opened with CursorType.TAILABLE_AWAIT
        """
        self._cursor = cursor
        self._buffered: Deque[Mapping[str, Any]] = deque()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def prime(self) -> None:
        """
        Send the initial query and buffer the first entry, if any

        pymongo issues the find lazily; priming makes connectivity,
        authorization and namespace failures surface here instead of on the
        first read. PyMongoError and InvalidBSON propagate unchanged so the
        caller can report them as construction failures.
        """
        try:
            self._buffered.append(next(self._cursor))
        except StopIteration:
            logger.debug("Oplog query returned no initial entries", alive=self._cursor.alive)

    def next_entry(self) -> Optional[Mapping[str, Any]]:
        """
        Read one entry from the cursor

        Returns:
            The next raw entry, or None if the await window elapsed without one

        Raises:
            ReadError: If the cursor is closed, dead, or the server reports an error
        """
        if self._buffered:
            return self._buffered.popleft()

        if self._closed:
            raise ReadError("Oplog cursor has been closed")

        try:
            return next(self._cursor)
        except StopIteration:
            if self._cursor.alive:
                return None
            raise ReadError("Oplog cursor is no longer alive") from None
        except (PyMongoError, InvalidBSON) as e:
            raise ReadError(f"Failed to read from oplog cursor: {e}") from e

    def close(self) -> None:
        """Close the underlying cursor (idempotent)"""
        if self._closed:
            return
        self._closed = True
        self._buffered.clear()
        try:
            self._cursor.close()
        except PyMongoError as e:
            logger.warning("Error closing oplog cursor", error=str(e))
