"""Raw WHOIS (RFC 3912) client over TCP port 43.

WHOIS does not support connection reuse: the client opens a fresh
connection for every query, sends a single CRLF-terminated line and reads
until the server closes the connection or falls silent.
"""

import asyncio
import logging
from typing import List, Optional

from ..exceptions import (
    InvalidServerError,
    ResolutionError,
    ServerConnectionError,
    TransportError,
)
from .resolver import Resolver

logger = logging.getLogger(__name__)

WHOIS_PORT = 43
READ_CHUNK = 4096


class WhoisClient:
    """Sends one query per connection and returns the raw response text.

    Timeouts:
        connect_timeout: TCP connect, after DNS resolution.
        first_byte_timeout: wait for the first byte after the query is sent.
            Expiry is a failure.
        idle_timeout: silence after data has arrived. Expiry means the
            response is complete; servers are not required to close promptly.
    """

    def __init__(
        self,
        resolver: Optional[Resolver] = None,
        port: int = WHOIS_PORT,
        connect_timeout: float = 5.0,
        first_byte_timeout: float = 5.0,
        idle_timeout: float = 1.0
    ):
        self.resolver = resolver or Resolver()
        self.port = port
        self.connect_timeout = connect_timeout
        self.first_byte_timeout = first_byte_timeout
        self.idle_timeout = idle_timeout

    async def query(self, server: str, domain: str) -> str:
        """Query ``server`` for ``domain`` and return the full response."""
        if not server or not server.strip():
            raise InvalidServerError("Invalid WHOIS server address")

        try:
            address = await self.resolver.resolve(server)
        except ResolutionError as e:
            raise ServerConnectionError(f"Failed to resolve hostname: {e}") from e

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(address, self.port),
                timeout=self.connect_timeout
            )
        except asyncio.TimeoutError:
            raise ServerConnectionError(f"Connection timeout for {server}")
        except OSError as e:
            raise ServerConnectionError(f"Failed to connect to WHOIS server {server}: {e}") from e

        try:
            writer.write(f"{domain}\r\n".encode())
            await writer.drain()
            response = await self._read_response(reader, server)
        except OSError as e:
            raise TransportError(f"Socket error for {server}: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug("Error closing connection to %s: %s", server, e)

        logger.debug("Received %d bytes from %s for %s", len(response), server, domain)
        return response

    async def _read_response(self, reader: asyncio.StreamReader, server: str) -> str:
        chunks: List[bytes] = []
        timeout = self.first_byte_timeout

        while True:
            try:
                data = await asyncio.wait_for(reader.read(READ_CHUNK), timeout=timeout)
            except asyncio.TimeoutError:
                if not chunks:
                    raise TransportError(f"Data receive timeout for {server}")
                break

            if not data:
                break

            chunks.append(data)
            timeout = self.idle_timeout

        return b"".join(chunks).decode('utf-8', errors='replace')
