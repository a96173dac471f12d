"""
Oplog Stream
Turns a live, blocking oplog cursor into a forward-only sequence of Operations
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional

import structlog

from oplog_stream.cdc.decoder import DecodeError, decode_entry
from oplog_stream.cdc.source import RawEntrySource, ReadError
from oplog_stream.models.operation import Operation
from oplog_stream.observability.metrics import (
    increment_decode_failures,
    increment_empty_polls,
    increment_operations,
    increment_terminations,
)

logger = structlog.get_logger(__name__)


class StreamState(str, Enum):
    """Lifecycle state of an OplogStream"""

    ACTIVE = "ACTIVE"
    TERMINATED = "TERMINATED"


class TerminationReason(str, Enum):
    """Why an OplogStream stopped yielding operations"""

    READ_ERROR = "read_error"
    DECODE_ERROR = "decode_error"
    CLOSED = "closed"


@dataclass(frozen=True)
class Termination:
    """
    Terminal record of a stream

    Attributes:
        reason: What ended the stream
        error: The ReadError or DecodeError behind it (None when closed by the caller)
    """

    reason: TerminationReason
    error: Optional[Exception] = None


class OplogStream:
    """
    Forward-only, non-restartable sequence of Operations read from the oplog

    Each ``pull`` blocks until an operation is available or the stream
    terminates. Empty await cycles reported by the source are retried inside
    the same pull and never reach the caller.

    By default a read failure and a decode failure both end the stream
    silently: ``pull`` returns None and the reason is only recorded in
    ``termination``. With ``strict=True`` the pull that terminated the stream
    raises the underlying ReadError or DecodeError instead. Either way every
    later pull returns None.

    A stream has a single consumer. Pulling from several threads at once is
    not supported. Closing the stream (directly or by leaving a ``with``
    block) releases the cursor. ``cancel`` is the one method safe to call
    from another thread or a signal handler: the consumer's pending pull
    returns None after the current await cycle and the stream closes.
    """

    def __init__(
        self,
        source: RawEntrySource,
        strict: bool = False,
        decoder: Callable[[Mapping[str, Any]], Operation] = decode_entry,
    ):
        """
        Initialize the stream

        Args:
            source: Raw entry source; owned by the stream from now on
            strict: Re-raise the failure that terminates the stream
            decoder: Entry decoder (defaults to decode_entry)
        """
        self._source = source
        self._decoder = decoder
        self.strict = strict
        self._termination: Optional[Termination] = None
        self._yielded = 0
        self._cancelled = threading.Event()

    @property
    def state(self) -> StreamState:
        return StreamState.ACTIVE if self._termination is None else StreamState.TERMINATED

    @property
    def termination(self) -> Optional[Termination]:
        """Why the stream terminated, or None while it is still active"""
        return self._termination

    @property
    def yielded(self) -> int:
        """Number of operations returned so far"""
        return self._yielded

    def pull(self) -> Optional[Operation]:
        """
        Return the next Operation, or None once the stream has ended

        Blocks for as long as the source keeps reporting empty await cycles,
        unless the stream is cancelled.

        Raises:
            ReadError: strict mode only, when the source fails
            DecodeError: strict mode only, when an entry cannot be decoded
        """
        if self._termination is not None:
            return None

        while True:
            if self._cancelled.is_set():
                self._terminate(TerminationReason.CLOSED)
                return None

            try:
                entry = self._source.next_entry()
            except ReadError as e:
                self._terminate(TerminationReason.READ_ERROR, e)
                if self.strict:
                    raise
                return None

            if entry is None:
                increment_empty_polls()
                logger.debug("No new oplog entry within await window")
                continue

            try:
                operation = self._decoder(entry)
            except DecodeError as e:
                increment_decode_failures(type(e).__name__)
                self._terminate(TerminationReason.DECODE_ERROR, e)
                if self.strict:
                    raise
                return None

            self._yielded += 1
            increment_operations(operation.kind.name.lower())
            return operation

    def cancel(self) -> None:
        """Ask the consumer to stop; the stream closes on its next await cycle"""
        self._cancelled.set()

    def close(self) -> None:
        """Terminate the stream and release the cursor (idempotent)"""
        if self._termination is None:
            self._terminate(TerminationReason.CLOSED)

    def _terminate(self, reason: TerminationReason, error: Optional[Exception] = None) -> None:
        self._termination = Termination(reason=reason, error=error)
        increment_terminations(reason.value)

        if error is None:
            logger.info("Oplog stream closed", operations=self._yielded)
        else:
            logger.warning(
                "Oplog stream terminated",
                reason=reason.value,
                error=str(error),
                error_type=type(error).__name__,
                operations=self._yielded,
            )

        self._source.close()

    def __iter__(self) -> Iterator[Operation]:
        return self

    def __next__(self) -> Operation:
        operation = self.pull()
        if operation is None:
            raise StopIteration
        return operation

    def __enter__(self) -> "OplogStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
