"""
Oplog Entry Decoder
Maps raw local.oplog.rs documents onto typed Operation values

Decoding is pure: no I/O, no logging, no shared state. It is safe to call
from several threads on independent entries.
"""

from copy import deepcopy
from typing import Any, List, Mapping, Optional

from bson.timestamp import Timestamp

from oplog_stream.errors import OplogStreamError
from oplog_stream.models.operation import (
    Command,
    Delete,
    Insert,
    Noop,
    Operation,
    OperationKind,
    Update,
)

KIND_FIELD = "op"
NAMESPACE_FIELD = "ns"
PAYLOAD_FIELD = "o"
SELECTOR_FIELD = "o2"
TIMESTAMP_FIELD = "ts"
ID_FIELD = "h"


class DecodeError(OplogStreamError, ValueError):
    """Raised when an oplog entry cannot be turned into an Operation"""

    pass


class UnrecognizedKindError(DecodeError):
    """The entry's operation code is missing, malformed or unknown"""

    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Unrecognized oplog operation code: {kind!r}")


class MissingFieldError(DecodeError):
    """A field required for the entry's operation kind is absent or mistyped"""

    def __init__(self, kind: OperationKind, field: str, reason: str = "missing"):
        self.kind = kind
        self.field = field
        self.reason = reason
        super().__init__(f"{kind.name.lower()} entry has {reason} field {field!r}")


def decode_entry(entry: Mapping[str, Any]) -> Operation:
    """
    Decode a raw oplog entry into a typed Operation

    Args:
        entry: One document read from the operation log

    Returns:
        Insert, Update, Delete, Command or Noop

    Raises:
        UnrecognizedKindError: If ``op`` is absent, not a string or not a known code
        MissingFieldError: If a field required for that kind is absent or mistyped
    """
    kind = _read_kind(entry)
    timestamp = _read_timestamp(entry, kind)
    op_id = _read_op_id(entry)

    if kind is OperationKind.INSERT:
        return Insert(
            namespace=_require_namespace(entry, kind),
            document=_require_document(entry, kind, PAYLOAD_FIELD),
            timestamp=timestamp,
            op_id=op_id,
        )

    if kind is OperationKind.UPDATE:
        return Update(
            namespace=_require_namespace(entry, kind),
            update=_require_document(entry, kind, PAYLOAD_FIELD),
            selector=_require_document(entry, kind, SELECTOR_FIELD),
            timestamp=timestamp,
            op_id=op_id,
        )

    if kind is OperationKind.DELETE:
        # The server logs a delete's selector in "o"; "o2" is honoured when present.
        selector_field = SELECTOR_FIELD if SELECTOR_FIELD in entry else PAYLOAD_FIELD
        return Delete(
            namespace=_require_namespace(entry, kind),
            selector=_require_document(entry, kind, selector_field),
            timestamp=timestamp,
            op_id=op_id,
        )

    if kind is OperationKind.COMMAND:
        return Command(
            namespace=_require_namespace(entry, kind),
            command=_require_document(entry, kind, PAYLOAD_FIELD),
            timestamp=timestamp,
            op_id=op_id,
        )

    namespace = entry.get(NAMESPACE_FIELD)
    return Noop(
        payload=_require_document(entry, kind, PAYLOAD_FIELD),
        namespace=namespace if isinstance(namespace, str) else None,
        timestamp=timestamp,
        op_id=op_id,
    )


def decode_apply_ops(command: Command) -> List[Operation]:
    """
    Decode the nested entries of an applyOps command

    Multi-document transactions are logged as a single applyOps command whose
    "applyOps" array holds ordinary oplog entries. Nested entries usually carry
    no timestamp of their own and inherit the command's.

    Args:
        command: A decoded Command

    Returns:
        The nested operations in log order

    Raises:
        DecodeError: If the command is not applyOps or a nested entry is invalid
    """
    if command.command_name != "applyOps":
        raise DecodeError(f"Not an applyOps command: {command.command_name!r}")

    nested = command.command.get("applyOps")
    if not isinstance(nested, list):
        raise MissingFieldError(OperationKind.COMMAND, "applyOps", reason="malformed")

    operations: List[Operation] = []
    for raw in nested:
        if not isinstance(raw, Mapping):
            raise MissingFieldError(OperationKind.COMMAND, "applyOps", reason="malformed")
        if TIMESTAMP_FIELD not in raw and command.timestamp is not None:
            raw = {**raw, TIMESTAMP_FIELD: command.timestamp}
        operations.append(decode_entry(raw))

    return operations


def _read_kind(entry: Mapping[str, Any]) -> OperationKind:
    code = entry.get(KIND_FIELD)
    if not isinstance(code, str):
        raise UnrecognizedKindError(code)
    try:
        return OperationKind(code)
    except ValueError:
        raise UnrecognizedKindError(code) from None


def _read_timestamp(entry: Mapping[str, Any], kind: OperationKind) -> Optional[Timestamp]:
    if TIMESTAMP_FIELD not in entry:
        return None
    value = entry[TIMESTAMP_FIELD]
    if not isinstance(value, Timestamp):
        raise MissingFieldError(kind, TIMESTAMP_FIELD, reason="malformed")
    return value


def _read_op_id(entry: Mapping[str, Any]) -> Optional[int]:
    value = entry.get(ID_FIELD)
    # bool is an int subclass; never a valid hash
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _require_namespace(entry: Mapping[str, Any], kind: OperationKind) -> str:
    if NAMESPACE_FIELD not in entry:
        raise MissingFieldError(kind, NAMESPACE_FIELD)
    namespace = entry[NAMESPACE_FIELD]
    if not isinstance(namespace, str) or not namespace:
        raise MissingFieldError(kind, NAMESPACE_FIELD, reason="malformed")
    return namespace


def _require_document(entry: Mapping[str, Any], kind: OperationKind, field: str) -> Mapping[str, Any]:
    if field not in entry:
        raise MissingFieldError(kind, field)
    value = entry[field]
    if not isinstance(value, Mapping):
        raise MissingFieldError(kind, field, reason="malformed")
    return deepcopy(value)
