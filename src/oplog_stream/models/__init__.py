"""
Typed operations decoded from the MongoDB operation log
"""

from oplog_stream.models.operation import (
    Command,
    Delete,
    Insert,
    Noop,
    Operation,
    OperationKind,
    Update,
)

__all__ = ["Operation", "OperationKind", "Insert", "Update", "Delete", "Command", "Noop"]
