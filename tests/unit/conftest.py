"""
Fixtures for unit tests: a mocked Docker client and fast settings.
"""
import asyncio
import logging
from unittest.mock import MagicMock

import pytest
from docker.models.containers import ExecResult

from mongo_images.config import Settings

logging.basicConfig(level=logging.DEBUG)

LISTENER_LOG = (
    b'{"t":{"$date":"2024-03-01T10:00:00.000+00:00"},"s":"I","c":"NETWORK",'
    b'"id":23016,"ctx":"listener","msg":"Waiting for connections","attr":{"port":27017,"ssl":"off"}}\n'
)
INITIATE_OUTPUT = (
    b"{\n  info2: 'no configuration specified. Using a default configuration for the set',\n"
    b"  me: 'abc123:27017',\n  ok: 1\n}\n"
)
PORTS = {
    "27017/tcp": [
        {"HostIp": "::", "HostPort": "32769"},
        {"HostIp": "0.0.0.0", "HostPort": "32768"},
    ]
}


@pytest.fixture
def events():
    """Order in which the mocked container was touched."""
    return []


@pytest.fixture
def container(events):
    container = MagicMock()
    container.id = "abc123"
    container.name = "mongo-images-abc123"
    container.status = "running"
    container.attrs = {"NetworkSettings": {"Ports": PORTS}}

    def logs(stdout=True, stderr=True):
        events.append("logs")
        return LISTENER_LOG if stdout else b""

    def exec_run(cmd, demux=False):
        events.append("exec")
        return ExecResult(0, (INITIATE_OUTPUT, None))

    container.logs.side_effect = logs
    container.exec_run.side_effect = exec_run
    return container


@pytest.fixture
def docker_client(container):
    client = MagicMock()
    client.containers.create.return_value = container
    return client


@pytest.fixture
def settings():
    return Settings(
        startup_timeout_seconds=0.2,
        exec_timeout_seconds=1.0,
        log_poll_interval_seconds=0.01,
        container_host="localhost",
    )


@pytest.fixture
def sleeps(monkeypatch):
    """Record requested sleeps without actually waiting."""
    calls = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        calls.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return calls
