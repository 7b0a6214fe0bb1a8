"""Shared fixtures: a local WHOIS server and an in-memory TLD registry."""

import asyncio
import socket
from contextlib import asynccontextmanager

import pytest

from domaincheck.models import TldConfig
from domaincheck.registry import TldRegistry


@asynccontextmanager
async def _serve(handler):
    server = await asyncio.start_server(handler, '127.0.0.1', 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield port
    finally:
        server.close()
        await server.wait_closed()


def _replying(text, close=True, chunks=None, chunk_gap=0.05, queries=None):
    """Handler that answers every query with ``text`` (or ``chunks``)."""
    async def handler(reader, writer):
        query = await reader.readline()
        if queries is not None:
            queries.append(query)
        for i, chunk in enumerate(chunks or [text]):
            if i:
                await asyncio.sleep(chunk_gap)
            writer.write(chunk.encode())
            await writer.drain()
        if not close:
            # hold the connection open until the client hangs up
            await reader.read()
        writer.close()
    return handler


async def _silent(reader, writer):
    await reader.read()
    writer.close()


class WhoisServerFactory:
    serve = staticmethod(_serve)
    replying = staticmethod(_replying)
    silent = staticmethod(_silent)


@pytest.fixture
def whois_server():
    return WhoisServerFactory


@pytest.fixture
def closed_port():
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


@pytest.fixture
def registry():
    return TldRegistry([
        TldConfig(name="com", server="whois.verisign-grs.com", available_pattern="No match for"),
        TldConfig(name="net", server="whois.verisign-grs.com", available_pattern="No match for"),
        TldConfig(name="org", server="whois.pir.org", available_pattern="NOT FOUND"),
        TldConfig(name="old", server="whois.old.test", available_pattern="free", enabled=False),
    ])
