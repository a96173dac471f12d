"""
Operation Data Model - typed representation of one oplog entry

Each entry in local.oplog.rs decodes to exactly one of the variants below.
The set is closed: consumers can dispatch on ``operation.kind`` (or with
``isinstance``) and know every case is covered.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from bson.timestamp import Timestamp


class OperationKind(str, Enum):
    """Oplog operation codes (the ``op`` field)"""

    INSERT = "i"
    UPDATE = "u"
    DELETE = "d"
    COMMAND = "c"
    NOOP = "n"


def split_namespace(namespace: str) -> Tuple[str, str]:
    """
    Split "database.collection" into its two parts

    Collection names may themselves contain dots, so only the first one
    separates the database.
    """
    database, _, collection = namespace.partition(".")
    return database, collection


def _timestamp_to_dict(timestamp: Optional[Timestamp]) -> Optional[Dict[str, int]]:
    if timestamp is None:
        return None
    return {"t": timestamp.time, "i": timestamp.inc}


def _wall_time(timestamp: Optional[Timestamp]) -> Optional[datetime]:
    if timestamp is None:
        return None
    return timestamp.as_datetime()


def _envelope(kind: OperationKind, timestamp: Optional[Timestamp], op_id: Optional[int]) -> Dict[str, Any]:
    return {
        "kind": kind.name.lower(),
        "timestamp": _timestamp_to_dict(timestamp),
        "op_id": op_id,
    }


@dataclass(frozen=True)
class Insert:
    """
    A document inserted into a collection

    Attributes:
        namespace: "database.collection" the document was inserted into
        document: The full inserted document
        timestamp: Oplog logical timestamp (``ts``), None if the entry had none
        op_id: Legacy operation hash (``h``), absent on MongoDB 4.2+
    """

    namespace: str
    document: Mapping[str, Any]
    timestamp: Optional[Timestamp] = None
    op_id: Optional[int] = None

    kind: ClassVar[OperationKind] = OperationKind.INSERT

    @property
    def database(self) -> str:
        return split_namespace(self.namespace)[0]

    @property
    def collection(self) -> str:
        return split_namespace(self.namespace)[1]

    @property
    def wall_time(self) -> Optional[datetime]:
        return _wall_time(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)"""
        data = _envelope(self.kind, self.timestamp, self.op_id)
        data.update(namespace=self.namespace, document=dict(self.document))
        return data


@dataclass(frozen=True)
class Update:
    """
    An update applied to an existing document

    Attributes:
        namespace: "database.collection" of the modified document
        update: Update specification (``o``), either modifiers or a replacement
        selector: Query identifying the modified document (``o2``)
        timestamp: Oplog logical timestamp (``ts``)
        op_id: Legacy operation hash (``h``)
    """

    namespace: str
    update: Mapping[str, Any]
    selector: Mapping[str, Any]
    timestamp: Optional[Timestamp] = None
    op_id: Optional[int] = None

    kind: ClassVar[OperationKind] = OperationKind.UPDATE

    @property
    def database(self) -> str:
        return split_namespace(self.namespace)[0]

    @property
    def collection(self) -> str:
        return split_namespace(self.namespace)[1]

    @property
    def wall_time(self) -> Optional[datetime]:
        return _wall_time(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)"""
        data = _envelope(self.kind, self.timestamp, self.op_id)
        data.update(
            namespace=self.namespace,
            update=dict(self.update),
            selector=dict(self.selector),
        )
        return data


@dataclass(frozen=True)
class Delete:
    """
    A document removed from a collection

    Attributes:
        namespace: "database.collection" the document was removed from
        selector: Query identifying the removed document
        timestamp: Oplog logical timestamp (``ts``)
        op_id: Legacy operation hash (``h``)
    """

    namespace: str
    selector: Mapping[str, Any]
    timestamp: Optional[Timestamp] = None
    op_id: Optional[int] = None

    kind: ClassVar[OperationKind] = OperationKind.DELETE

    @property
    def database(self) -> str:
        return split_namespace(self.namespace)[0]

    @property
    def collection(self) -> str:
        return split_namespace(self.namespace)[1]

    @property
    def wall_time(self) -> Optional[datetime]:
        return _wall_time(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)"""
        data = _envelope(self.kind, self.timestamp, self.op_id)
        data.update(namespace=self.namespace, selector=dict(self.selector))
        return data


@dataclass(frozen=True)
class Command:
    """
    An administrative command (create, drop, applyOps, ...)

    Attributes:
        namespace: Usually "database.$cmd"
        command: The command document; its first key names the command
        timestamp: Oplog logical timestamp (``ts``)
        op_id: Legacy operation hash (``h``)
    """

    namespace: str
    command: Mapping[str, Any]
    timestamp: Optional[Timestamp] = None
    op_id: Optional[int] = None

    kind: ClassVar[OperationKind] = OperationKind.COMMAND

    @property
    def database(self) -> str:
        return split_namespace(self.namespace)[0]

    @property
    def collection(self) -> str:
        return split_namespace(self.namespace)[1]

    @property
    def command_name(self) -> Optional[str]:
        """Name of the command, e.g. "create" or "drop" (None for an empty document)"""
        return next(iter(self.command), None)

    @property
    def wall_time(self) -> Optional[datetime]:
        return _wall_time(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)"""
        data = _envelope(self.kind, self.timestamp, self.op_id)
        data.update(namespace=self.namespace, command=dict(self.command))
        return data


@dataclass(frozen=True)
class Noop:
    """
    A heartbeat or informational entry with no data change

    Attributes:
        payload: The entry's ``o`` document, e.g. {"msg": "periodic noop"}
        namespace: Usually empty for no-ops; None when the entry had no ``ns``
        timestamp: Oplog logical timestamp (``ts``)
        op_id: Legacy operation hash (``h``)
    """

    payload: Mapping[str, Any]
    namespace: Optional[str] = None
    timestamp: Optional[Timestamp] = None
    op_id: Optional[int] = None

    kind: ClassVar[OperationKind] = OperationKind.NOOP

    @property
    def message(self) -> Optional[str]:
        msg = self.payload.get("msg")
        return msg if isinstance(msg, str) else None

    @property
    def wall_time(self) -> Optional[datetime]:
        return _wall_time(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (for serialization)"""
        data = _envelope(self.kind, self.timestamp, self.op_id)
        data.update(namespace=self.namespace, payload=dict(self.payload))
        return data


Operation = Union[Insert, Update, Delete, Command, Noop]
