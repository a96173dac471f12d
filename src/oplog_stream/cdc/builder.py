"""
Oplog Stream Builder
Configures and opens tailable-await queries against the replica set oplog
"""

from copy import deepcopy
from typing import Any, Mapping, Optional

import structlog
from bson.errors import InvalidBSON
from pymongo import CursorType, MongoClient
from pymongo.errors import PyMongoError

from oplog_stream.cdc.source import CursorSource
from oplog_stream.cdc.stream import OplogStream
from oplog_stream.config.settings import MongoSettings, StreamSettings
from oplog_stream.errors import OplogStreamError

logger = structlog.get_logger(__name__)

OPLOG_DATABASE = "local"
OPLOG_COLLECTION = "oplog.rs"


class BuildError(OplogStreamError):
    """Raised when the oplog query cannot be established"""

    pass


class OplogStreamBuilder:
    """
    Builder for OplogStream

    Collects an optional filter (e.g. a start timestamp or the operation kinds
    of interest) and, on ``build``, opens a tailable-await cursor on the oplog
    that never times out server-side.

    The MongoClient is shared: neither the builder nor the streams it builds
    close it. The builder is not modified by ``build``, so it can be built
    any number of times; every stream gets its own cursor.

    Example:
        >>> client = MongoClient("mongodb://localhost:27017/?replicaSet=rs0")
        >>> builder = OplogStreamBuilder(client).filter({"op": "i"})
        >>> with builder.build() as stream:
        ...     for operation in stream:
        ...         print(operation.namespace)
    """

    def __init__(
        self,
        client: MongoClient,
        database: str = OPLOG_DATABASE,
        collection: str = OPLOG_COLLECTION,
    ):
        """
        Create a new builder for the given client

        Nothing is sent to the server until ``build`` is called.

        Args:
            client: Connected MongoClient for a replica set member
            database: Database holding the oplog
            collection: Oplog collection name
        """
        self._client = client
        self._database = database
        self._collection = collection
        self._filter: Optional[Mapping[str, Any]] = None
        self._max_await_time_ms: Optional[int] = None
        self._strict = False

    @classmethod
    def from_settings(
        cls,
        client: MongoClient,
        stream_settings: StreamSettings,
        mongo_settings: Optional[MongoSettings] = None,
    ) -> "OplogStreamBuilder":
        """
        Create a builder configured from settings

        Args:
            client: Connected MongoClient
            stream_settings: Filter, await window and strictness
            mongo_settings: Oplog location (defaults to local.oplog.rs)

        Returns:
            Configured OplogStreamBuilder
        """
        mongo_settings = mongo_settings or MongoSettings()
        return (
            cls(client, database=mongo_settings.database, collection=mongo_settings.collection)
            .filter(stream_settings.filter)
            .max_await_time(stream_settings.max_await_time_ms)
            .strict(stream_settings.strict)
        )

    @property
    def namespace(self) -> str:
        return f"{self._database}.{self._collection}"

    def filter(self, predicate: Optional[Mapping[str, Any]]) -> "OplogStreamBuilder":
        """
        Restrict which oplog entries the server returns

        Replaces any previously set filter. None (the default) returns every
        entry in the oplog.

        Args:
            predicate: Query document, e.g. {"op": "i"} or {"ts": {"$gt": ts}}

        Returns:
            This builder, for chaining
        """
        self._filter = deepcopy(predicate) if predicate is not None else None
        return self

    def max_await_time(self, milliseconds: Optional[int]) -> "OplogStreamBuilder":
        """
        Set how long the server waits for new entries on each empty read

        None keeps the server default.
        """
        if milliseconds is not None and milliseconds <= 0:
            raise ValueError("max await time must be positive")
        self._max_await_time_ms = milliseconds
        return self

    def strict(self, enabled: bool = True) -> "OplogStreamBuilder":
        """Make built streams raise the error that terminates them"""
        self._strict = enabled
        return self

    def build(self) -> OplogStream:
        """
        Execute the query and build the OplogStream

        Returns:
            A new active OplogStream owning its own cursor

        Raises:
            BuildError: If the query cannot be established (connectivity,
                authorization or namespace errors)
        """
        collection = self._client[self._database][self._collection]
        query = deepcopy(self._filter) if self._filter is not None else None

        cursor = None
        try:
            cursor = collection.find(
                query,
                cursor_type=CursorType.TAILABLE_AWAIT,
                no_cursor_timeout=True,
            )
            if self._max_await_time_ms is not None:
                cursor.max_await_time_ms(self._max_await_time_ms)

            source = CursorSource(cursor)
            source.prime()
        except (PyMongoError, InvalidBSON) as e:
            if cursor is not None:
                cursor.close()
            logger.error("Failed to open oplog cursor", namespace=self.namespace, error=str(e))
            raise BuildError(f"Failed to open oplog cursor on {self.namespace}: {e}") from e

        logger.info(
            "Oplog stream opened",
            namespace=self.namespace,
            filtered=query is not None,
            max_await_time_ms=self._max_await_time_ms,
            strict=self._strict,
        )
        return OplogStream(source, strict=self._strict)


def open_stream(client: MongoClient) -> OplogStream:
    """
    Open an unfiltered OplogStream with the default options

    Args:
        client: Connected MongoClient for a replica set member

    Returns:
        Active OplogStream over local.oplog.rs

    Raises:
        BuildError: If the query cannot be established
    """
    return OplogStreamBuilder(client).build()
