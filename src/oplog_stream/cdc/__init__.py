"""
CDC (Change Data Capture) module for tailing and decoding the MongoDB oplog
"""

from oplog_stream.cdc.builder import BuildError, OplogStreamBuilder, open_stream
from oplog_stream.cdc.decoder import (
    DecodeError,
    MissingFieldError,
    UnrecognizedKindError,
    decode_apply_ops,
    decode_entry,
)
from oplog_stream.cdc.source import CursorSource, RawEntrySource, ReadError
from oplog_stream.cdc.stream import OplogStream, StreamState, Termination, TerminationReason

__all__ = [
    "decode_entry",
    "decode_apply_ops",
    "DecodeError",
    "UnrecognizedKindError",
    "MissingFieldError",
    "RawEntrySource",
    "CursorSource",
    "ReadError",
    "OplogStream",
    "StreamState",
    "Termination",
    "TerminationReason",
    "OplogStreamBuilder",
    "BuildError",
    "open_stream",
]
