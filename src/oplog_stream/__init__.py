"""
oplog_stream - typed, tailing change stream over the MongoDB replica set oplog
"""

from oplog_stream.cdc import (
    BuildError,
    DecodeError,
    MissingFieldError,
    OplogStream,
    OplogStreamBuilder,
    ReadError,
    StreamState,
    TerminationReason,
    UnrecognizedKindError,
    decode_apply_ops,
    decode_entry,
    open_stream,
)
from oplog_stream.errors import OplogStreamError
from oplog_stream.models import (
    Command,
    Delete,
    Insert,
    Noop,
    Operation,
    OperationKind,
    Update,
)

__version__ = "0.1.0"

__all__ = [
    "OplogStreamBuilder",
    "OplogStream",
    "StreamState",
    "TerminationReason",
    "open_stream",
    "decode_entry",
    "decode_apply_ops",
    "Operation",
    "OperationKind",
    "Insert",
    "Update",
    "Delete",
    "Command",
    "Noop",
    "OplogStreamError",
    "BuildError",
    "ReadError",
    "DecodeError",
    "UnrecognizedKindError",
    "MissingFieldError",
]
