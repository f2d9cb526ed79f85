"""Valve RCON client.

Two handles share the same API:

- `Connection`: one authenticated session; the first I/O failure ends it.
- `ReConnection`: wraps a session and rebuilds it in the background. Its
  `exec` never raises a raw I/O error; while recovering it raises
  `BusyReconnecting` carrying the description of the fault.

Example:
    async with await ReConnection.open("127.0.0.1:27020", "secret") as rcon:
        print(await rcon.exec("listplayers"))
"""

from .connection import Connection
from .errors import (
    AddressError,
    AuthFailed,
    BusyReconnecting,
    CodecError,
    DesynchronizedPacket,
    IncompleteReply,
    Malformed,
    ProtocolError,
    RconError,
    RconIOError,
    ReplyEncodingError,
    TooLarge,
    Truncated,
    UnexpectedPacket,
)
from .net import TcpTransport, Transport
from .packet import Packet, PacketKind
from .reconnect import ReConnection, ReconnectState
from .settings import Settings

__all__ = [
    "AddressError",
    "AuthFailed",
    "BusyReconnecting",
    "CodecError",
    "Connection",
    "DesynchronizedPacket",
    "IncompleteReply",
    "Malformed",
    "Packet",
    "PacketKind",
    "ProtocolError",
    "RconError",
    "RconIOError",
    "ReConnection",
    "ReconnectState",
    "ReplyEncodingError",
    "Settings",
    "TcpTransport",
    "TooLarge",
    "Transport",
    "Truncated",
    "UnexpectedPacket",
]
