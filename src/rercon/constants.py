from __future__ import annotations

LENGTH_FORMAT = "<i"
HEADER_FORMAT = "<ii"  # id, type
HEADER_SIZE = 8
TERMINATOR = b"\x00\x00"
MIN_PACKET_LENGTH = HEADER_SIZE + len(TERMINATOR)

TYPE_RESPONSE = 0
TYPE_EXEC = 2
TYPE_AUTH_RESPONSE = 2
TYPE_AUTH = 3

AUTH_FAILED_ID = -1
MAX_REQUEST_ID = 2**31 - 1

MAX_PACKET_SIZE = 1024
MAX_COMMAND_BODY = MAX_PACKET_SIZE - MIN_PACKET_LENGTH

DEFAULT_RECONNECT_DELAY = 1.0
# Sanity cap on the declared length of an incoming frame.
MAX_REPLY_PACKET = 1 << 20
