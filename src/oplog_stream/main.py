"""
Oplog Tailer Entrypoint
Tails the replica set oplog and logs every decoded operation
"""

import signal
import sys
from typing import Callable, List, Optional

import structlog
from pymongo import MongoClient

from oplog_stream.cdc.builder import BuildError, OplogStreamBuilder
from oplog_stream.cdc.stream import OplogStream
from oplog_stream.config.loader import load_config
from oplog_stream.config.settings import OplogSettings
from oplog_stream.models.operation import Operation
from oplog_stream.observability.logging import bind_context, clear_context, configure_logging, log_operation
from oplog_stream.observability.metrics import start_metrics_server

logger = structlog.get_logger(__name__)

OperationHandler = Callable[[Operation], None]


class OplogTailer:
    """
    Wires configuration, the MongoDB client and an oplog stream together

    Shutdown is cooperative: ``shutdown`` sets a flag that is checked between
    pulls and cancels the open stream, so a pull blocked on an idle oplog
    returns after the current await window.
    """

    def __init__(
        self,
        config: Optional[OplogSettings] = None,
        client: Optional[MongoClient] = None,
    ):
        """
        Initialize the tailer

        Args:
            config: Settings (loaded from the environment if None)
            client: MongoClient to use (created from config.mongo if None)
        """
        self.config = config or OplogSettings()
        self._owns_client = client is None
        self.client = client
        self._stream: Optional[OplogStream] = None
        self._shutdown_flag = False

        logger.info("OplogTailer initialized", namespace=self.namespace)

    @property
    def namespace(self) -> str:
        return f"{self.config.mongo.database}.{self.config.mongo.collection}"

    def connect(self) -> MongoClient:
        if self.client is None:
            self.client = MongoClient(
                self.config.mongo.uri,
                serverSelectionTimeoutMS=self.config.mongo.server_selection_timeout_ms,
            )
        return self.client

    def run(self, handler: Optional[OperationHandler] = None) -> int:
        """
        Tail the oplog until shutdown or until the stream terminates

        Args:
            handler: Called with every operation (defaults to logging it)

        Returns:
            Number of operations handled

        Raises:
            BuildError: If the oplog cursor cannot be opened
        """
        handler = handler or (lambda operation: log_operation(logger, operation))
        client = self.connect()
        builder = OplogStreamBuilder.from_settings(client, self.config.stream, self.config.mongo)

        bind_context(namespace=self.namespace)
        handled = 0
        try:
            with builder.build() as stream:
                self._stream = stream
                while not self._shutdown_flag:
                    operation = stream.pull()
                    if operation is None:
                        if self._shutdown_flag:
                            break
                        termination = stream.termination
                        logger.warning(
                            "Oplog stream ended",
                            reason=termination.reason.value if termination else None,
                        )
                        break
                    handler(operation)
                    handled += 1
        finally:
            self._stream = None
            clear_context()
            if self._owns_client and self.client is not None:
                self.client.close()
                self.client = None

        logger.info("Oplog tailer stopped", operations=handled)
        return handled

    def shutdown(self) -> None:
        """Request graceful shutdown"""
        logger.info("Shutdown signal received")
        self._shutdown_flag = True
        stream = self._stream
        if stream is not None:
            stream.cancel()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entrypoint

    Usage: oplog-tail [config.yaml]
    """
    argv = sys.argv[1:] if argv is None else argv
    config = load_config(argv[0] if argv else None)

    configure_logging(config.observability.log_level, config.observability.log_format)

    if config.observability.metrics_enabled:
        start_metrics_server(port=config.observability.metrics_port)

    tailer = OplogTailer(config)

    def signal_handler(signum, frame):
        logger.info("Signal received", signal=signum)
        tailer.shutdown()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        tailer.run()
    except BuildError as e:
        logger.error("Could not open oplog", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
