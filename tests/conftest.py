"""
Shared fixtures for the SSH Forward tests.
"""

import asyncio
from typing import AsyncIterator

import pytest

from sshforward.core.interfaces.ssh import ServerEndpoint
from helpers import FakeConnection, FakeConnector, echo_handler, pong_handler, start_target


@pytest.fixture
async def echo_server() -> AsyncIterator[asyncio.AbstractServer]:
    server = await start_target(echo_handler)
    yield server
    server.close()


@pytest.fixture
async def pong_server() -> AsyncIterator[asyncio.AbstractServer]:
    server = await start_target(pong_handler)
    yield server
    server.close()


@pytest.fixture
def endpoint() -> ServerEndpoint:
    return ServerEndpoint(host="ssh.example.com", port=22, username="test", password="secret")


@pytest.fixture
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
