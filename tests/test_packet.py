from __future__ import annotations

import pytest

from rercon.errors import Malformed, ReplyEncodingError, TooLarge, Truncated
from rercon.packet import Packet, PacketKind, decode, encode, frame_length, split


def test_encode_layout():
    raw = encode(0x12345678, PacketKind.COMMAND_RESPONSE, b"This is a test string.")
    assert raw == bytes(
        [32, 0, 0, 0, 120, 86, 52, 18, 0, 0, 0, 0]
        + list(b"This is a test string.")
        + [0, 0]
    )


def test_decode_auth_response():
    raw = bytes([36, 0, 0, 0, 33, 67, 101, 119, 2, 0, 0, 0]) + b"This is a different string" + b"\x00\x00"
    p = decode(raw)
    assert p.id == 0x77654321
    assert p.kind is PacketKind.AUTH_RESPONSE
    assert p.body == b"This is a different string"


@pytest.mark.parametrize("kind", list(PacketKind))
def test_roundtrip(kind):
    raw = Packet(id=-1, kind=kind, body=b"status").encode()
    p = Packet.decode(raw, from_server=kind.from_server)
    assert p == Packet(id=-1, kind=kind, body=b"status")


def test_shared_code_resolves_by_direction():
    raw = encode(5, PacketKind.COMMAND_REQUEST, b"")
    assert decode(raw, from_server=False).kind is PacketKind.COMMAND_REQUEST
    assert decode(raw, from_server=True).kind is PacketKind.AUTH_RESPONSE


def test_truncated():
    raw = encode(1, PacketKind.COMMAND_RESPONSE, b"hello")
    with pytest.raises(Truncated) as info:
        decode(raw[:-1])
    assert info.value.needed == len(raw)
    with pytest.raises(Truncated):
        decode(raw[:3])


def test_bad_terminator():
    raw = bytearray(encode(1, PacketKind.COMMAND_RESPONSE, b"hello"))
    raw[-1] = 0x41
    with pytest.raises(Malformed):
        decode(bytes(raw))


def test_unknown_type():
    raw = encode(1, PacketKind.AUTH_REQUEST, b"pw")
    with pytest.raises(Malformed):
        decode(raw, from_server=True)


def test_declared_length_too_short():
    with pytest.raises(Malformed):
        frame_length(b"\x09\x00\x00\x00")


def test_declared_length_over_limit():
    with pytest.raises(Malformed):
        frame_length(b"HTTP")
    raw = encode(1, PacketKind.COMMAND_RESPONSE, b"x" * 100, max_body=100)
    with pytest.raises(Malformed):
        decode(raw, max_length=64)
    assert decode(raw, max_length=110).body == b"x" * 100


def test_too_large():
    encode(1, PacketKind.COMMAND_REQUEST, b"x" * 1014)
    with pytest.raises(TooLarge):
        encode(1, PacketKind.COMMAND_REQUEST, b"x" * 1015)
    assert len(encode(1, PacketKind.COMMAND_RESPONSE, b"x" * 4096, max_body=4096)) == 4096 + 14


def test_split_keeps_remainder():
    first = encode(1, PacketKind.COMMAND_RESPONSE, b"a")
    second = encode(2, PacketKind.COMMAND_RESPONSE, b"b")
    p, rest = split(first + second[:5])
    assert p.body == b"a"
    assert rest == second[:5]


def test_text_rejects_invalid_utf8():
    assert Packet(1, PacketKind.COMMAND_RESPONSE, "héllo".encode()).text() == "héllo"
    with pytest.raises(ReplyEncodingError):
        Packet(1, PacketKind.COMMAND_RESPONSE, b"\xff\xfe").text()
