from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .constants import AUTH_FAILED_ID, MAX_REPLY_PACKET, MAX_REQUEST_ID
from .errors import (
    AuthFailed,
    CodecError,
    DesynchronizedPacket,
    IncompleteReply,
    RconIOError,
    TooLarge,
    UnexpectedPacket,
)
from .net import Connector, TcpTransport, Transport, parse_address
from .packet import LENGTH_SIZE, Packet, PacketKind, decode, encode, frame_length
from .reassembly import PendingExchange
from .settings import Settings

log = logging.getLogger(__name__)

AUTH_ID = 0


async def read_packet(transport: Transport, max_length: int = MAX_REPLY_PACKET) -> Packet:
    prefix = await transport.read(LENGTH_SIZE)
    rest = await transport.read(frame_length(prefix, max_length) - LENGTH_SIZE)
    return decode(prefix + rest, max_length=max_length)


async def authenticate(transport: Transport, password: str, max_length: int = MAX_REPLY_PACKET) -> None:
    await transport.write(encode(AUTH_ID, PacketKind.AUTH_REQUEST, password.encode("utf-8")))

    response = await read_packet(transport, max_length)
    # Source servers send an empty response value ahead of the auth response.
    if response.kind is PacketKind.COMMAND_RESPONSE and not response.body:
        log.debug("skipping empty response packet ahead of the auth response")
        response = await read_packet(transport, max_length)

    if response.kind is not PacketKind.AUTH_RESPONSE:
        raise UnexpectedPacket(f"expected an auth response, got {response.kind.name}")
    if response.id == AUTH_FAILED_ID:
        raise AuthFailed()
    if response.id != AUTH_ID:
        raise DesynchronizedPacket(f"auth response id {response.id} does not match request id {AUTH_ID}")


async def _establish(address: str, password: str, connector: Connector, max_length: int) -> Transport:
    transport = await connector(address)
    try:
        await authenticate(transport, password, max_length)
    except BaseException:
        # also runs when a connect timeout cancels the handshake
        transport.close()
        raise
    return transport


class Connection:
    """One authenticated RCON session over a single transport.

    A bare Connection never retries: the first I/O failure closes it for
    good and the caller has to open a new one. Use `ReConnection` for a
    handle that recovers on its own.
    """

    def __init__(self, transport: Transport, address: str, settings: Optional[Settings] = None):
        self.address = address
        self.settings = settings or Settings()
        self._transport: Optional[Transport] = transport
        self._aborted: Optional[Transport] = None
        self._counter = AUTH_ID
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        address: str,
        password: str,
        timeout: Optional[float] = None,
        *,
        settings: Optional[Settings] = None,
        connector: Optional[Connector] = None,
    ) -> "Connection":
        settings = settings or Settings()
        if timeout is None:
            timeout = settings.connect_timeout
        if connector is None:
            parse_address(address)
            connector = TcpTransport.connect

        password_size = len(password.encode("utf-8"))
        if password_size > settings.max_command_size:
            raise TooLarge(password_size, settings.max_command_size)

        establish = _establish(address, password, connector, settings.max_reply_packet)
        try:
            if timeout is None:
                transport = await establish
            else:
                transport = await asyncio.wait_for(establish, timeout)
        except asyncio.TimeoutError as exc:
            raise RconIOError(f"timed out connecting to {address} after {timeout}s", exc) from exc
        except OSError as exc:
            raise RconIOError(f"could not connect to {address}: {exc}", exc) from exc
        except AuthFailed:
            log.warning("authentication to %s rejected", address)
            raise

        log.info("rcon session opened to %s", address)
        return cls(transport, address, settings)

    @property
    def closed(self) -> bool:
        return self._transport is None

    async def exec(self, command: str) -> str:
        body = command.encode("utf-8")
        if len(body) > self.settings.max_command_size:
            raise TooLarge(len(body), self.settings.max_command_size)

        async with self._lock:
            transport = self._transport
            if transport is None:
                raise RconIOError(f"connection to {self.address} is closed")

            timeout = self.settings.exec_timeout
            try:
                if timeout is None:
                    reply = await self._exchange(transport, body)
                else:
                    reply = await asyncio.wait_for(self._exchange(transport, body), timeout)
            except asyncio.TimeoutError as exc:
                self._abort("reply timed out")
                raise RconIOError(f"no complete reply to {command!r} within {timeout}s", exc) from exc
            except RconIOError as exc:
                self._abort(str(exc))
                raise
            except (CodecError, DesynchronizedPacket, UnexpectedPacket) as exc:
                # the byte stream can no longer be trusted
                self._abort(str(exc))
                raise
            except asyncio.CancelledError:
                self._abort("exec cancelled mid-exchange")
                raise

        return reply.text()

    async def _exchange(self, transport: Transport, body: bytes) -> Packet:
        pending = PendingExchange(command_id=self._next_id(), probe_id=self._next_id())
        log.debug("exec id=%d probe=%d (%d bytes)", pending.command_id, pending.probe_id, len(body))

        request = encode(pending.command_id, PacketKind.COMMAND_REQUEST, body)
        probe = encode(pending.probe_id, PacketKind.COMMAND_REQUEST, b"")
        delay_probe = self.settings.probe_after_first_reply
        try:
            await transport.write(request if delay_probe else request + probe)
        except OSError as exc:
            raise RconIOError(f"failed to send command: {exc}", exc) from exc

        while True:
            try:
                packet = await read_packet(transport, self.settings.max_reply_packet)
            except OSError as exc:
                raise IncompleteReply(len(pending.fragments), exc) from exc

            if delay_probe:
                delay_probe = False
                try:
                    await transport.write(probe)
                except OSError as exc:
                    raise RconIOError(f"failed to send probe: {exc}", exc) from exc

            if pending.feed(packet):
                return Packet(id=pending.command_id, kind=PacketKind.COMMAND_RESPONSE, body=pending.body)

    def _next_id(self) -> int:
        self._counter = 1 if self._counter >= MAX_REQUEST_ID else self._counter + 1
        return self._counter

    def _abort(self, reason: str) -> None:
        if self._transport is not None:
            log.warning("closing rcon session to %s: %s", self.address, reason)
            self._transport.close()
            # close() waits for it
            self._aborted = self._transport
            self._transport = None

    async def close(self) -> None:
        transport, self._transport = self._transport, None
        aborted, self._aborted = self._aborted, None
        if aborted is not None:
            await aborted.wait_closed()
        if transport is not None:
            transport.close()
            await transport.wait_closed()
            log.info("rcon session to %s closed", self.address)

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
