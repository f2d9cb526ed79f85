from __future__ import annotations

import abc
import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, Tuple

from .errors import AddressError

log = logging.getLogger(__name__)


def parse_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6addr]:port``) into its parts."""
    host, sep, port_text = address.rpartition(":")
    if not sep or not host:
        raise AddressError(f"address must be host:port, got {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise AddressError(f"IPv6 addresses must be bracketed, got {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise AddressError(f"port must be a number, got {port_text!r}") from None
    if not 0 < port < 65536:
        raise AddressError(f"port must be in the range 1 to 65535, got {port}")
    return host, port


class Transport(abc.ABC):
    """Byte stream the protocol engine runs over."""

    @abc.abstractmethod
    async def read(self, n: int) -> bytes:
        """Return exactly `n` bytes or raise ConnectionError."""

    @abc.abstractmethod
    async def write(self, data: bytes) -> None: ...

    @abc.abstractmethod
    def close(self) -> None:
        """Start closing; must be safe to call more than once."""

    async def wait_closed(self) -> None:
        """Wait until `close` has finished releasing the stream."""


Connector = Callable[[str], Awaitable[Transport]]


class TcpTransport(Transport):
    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer

    @classmethod
    async def connect(cls, address: str) -> "TcpTransport":
        host, port = parse_address(address)
        log.debug("connecting to %s:%d", host, port)
        reader, writer = await asyncio.open_connection(host, port)
        return cls(reader, writer)

    async def read(self, n: int) -> bytes:
        try:
            return await self.reader.readexactly(n)
        except asyncio.IncompleteReadError as exc:
            raise ConnectionError(
                f"connection closed by peer ({len(exc.partial)} of {n} bytes read)"
            ) from exc

    async def write(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    def close(self) -> None:
        if not self.writer.is_closing():
            self.writer.close()

    async def wait_closed(self) -> None:
        # a peer that already reset the connection is not an error here
        with contextlib.suppress(OSError):
            await self.writer.wait_closed()
