"""
Integration fixtures
Runs a single-node MongoDB replica set in Docker so that local.oplog.rs exists
"""

import time
from typing import Generator

import pytest
from pymongo import MongoClient


@pytest.fixture(scope="session")
def mongo_replica_set():
    """
    Start a single-member replica set container for the test session

    Yields:
        Running testcontainers DockerContainer with port 27017 exposed
    """
    container_module = pytest.importorskip("testcontainers.core.container")
    waiting_utils = pytest.importorskip("testcontainers.core.waiting_utils")

    container = (
        container_module.DockerContainer("mongo:7.0")
        .with_command("--replSet rs0 --bind_ip_all")
        .with_exposed_ports(27017)
    )
    container.start()
    waiting_utils.wait_for_logs(container, "Waiting for connections", timeout=60)
    yield container
    container.stop()


@pytest.fixture(scope="session")
def mongo_client(mongo_replica_set) -> Generator[MongoClient, None, None]:
    """
    Client connected directly to the replica set primary

    Initiates the replica set and waits until the member is writable.
    """
    host = mongo_replica_set.get_container_host_ip()
    port = int(mongo_replica_set.get_exposed_port(27017))
    client = MongoClient(host, port, directConnection=True, serverSelectionTimeoutMS=30000)

    client.admin.command(
        "replSetInitiate",
        {"_id": "rs0", "members": [{"_id": 0, "host": "localhost:27017"}]},
    )

    deadline = time.monotonic() + 60
    while not client.admin.command("hello").get("isWritablePrimary"):
        if time.monotonic() > deadline:
            raise TimeoutError("Replica set member never became primary")
        time.sleep(0.5)

    yield client

    client.close()
