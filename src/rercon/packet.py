from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Tuple

from .constants import (
    HEADER_FORMAT,
    LENGTH_FORMAT,
    MAX_COMMAND_BODY,
    MAX_REPLY_PACKET,
    MIN_PACKET_LENGTH,
    TERMINATOR,
    TYPE_AUTH,
    TYPE_AUTH_RESPONSE,
    TYPE_EXEC,
    TYPE_RESPONSE,
)
from .errors import Malformed, ReplyEncodingError, TooLarge, Truncated

LENGTH_SIZE = struct.calcsize(LENGTH_FORMAT)


class PacketKind(enum.Enum):
    # (wire code, sent by the server)
    AUTH_REQUEST = (TYPE_AUTH, False)
    AUTH_RESPONSE = (TYPE_AUTH_RESPONSE, True)
    COMMAND_REQUEST = (TYPE_EXEC, False)
    COMMAND_RESPONSE = (TYPE_RESPONSE, True)

    @property
    def code(self) -> int:
        return self.value[0]

    @property
    def from_server(self) -> bool:
        return self.value[1]

    @classmethod
    def resolve(cls, code: int, from_server: bool) -> "PacketKind":
        """Map a wire code to a kind. Code 2 is shared, so the direction decides."""
        for kind in cls:
            if kind.code == code and kind.from_server == from_server:
                return kind
        side = "server" if from_server else "client"
        raise Malformed(f"unknown {side} packet type {code}")


@dataclass(frozen=True, slots=True)
class Packet:
    id: int
    kind: PacketKind
    body: bytes = b""

    def encode(self, max_body: int = MAX_COMMAND_BODY) -> bytes:
        return encode(self.id, self.kind, self.body, max_body=max_body)

    @staticmethod
    def decode(raw: bytes, from_server: bool = True) -> "Packet":
        return decode(raw, from_server=from_server)

    def text(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ReplyEncodingError(f"packet {self.id} body is not valid UTF-8: {exc}") from exc


def encode(id: int, kind: PacketKind, body: bytes, *, max_body: int = MAX_COMMAND_BODY) -> bytes:
    if len(body) > max_body:
        raise TooLarge(len(body), max_body)
    payload = struct.pack(HEADER_FORMAT, id, kind.code) + body + TERMINATOR
    return struct.pack(LENGTH_FORMAT, len(payload)) + payload


def frame_length(raw: bytes, max_length: int = MAX_REPLY_PACKET) -> int:
    """Total size of the frame at the start of `raw`, length prefix included."""
    if len(raw) < LENGTH_SIZE:
        raise Truncated(LENGTH_SIZE, len(raw))
    (length,) = struct.unpack_from(LENGTH_FORMAT, raw)
    if length < MIN_PACKET_LENGTH:
        raise Malformed(f"declared length {length} is below the {MIN_PACKET_LENGTH}-byte minimum")
    if length > max_length:
        raise Malformed(f"declared length {length} exceeds the {max_length}-byte limit")
    return LENGTH_SIZE + length


def decode(raw: bytes, *, from_server: bool = True, max_length: int = MAX_REPLY_PACKET) -> Packet:
    packet, _ = split(raw, from_server=from_server, max_length=max_length)
    return packet


def split(
    raw: bytes, *, from_server: bool = True, max_length: int = MAX_REPLY_PACKET
) -> Tuple[Packet, bytes]:
    """Decode the first frame in `raw` and return it with the unconsumed bytes."""
    total = frame_length(raw, max_length)
    if len(raw) < total:
        raise Truncated(total, len(raw))

    frame = raw[LENGTH_SIZE:total]
    if frame[-2:] != TERMINATOR:
        raise Malformed("packet is not terminated by two NUL bytes")

    id_, code = struct.unpack_from(HEADER_FORMAT, frame)
    kind = PacketKind.resolve(code, from_server)
    body = frame[struct.calcsize(HEADER_FORMAT) : -len(TERMINATOR)]
    return Packet(id=id_, kind=kind, body=bytes(body)), bytes(raw[total:])
