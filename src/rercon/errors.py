from __future__ import annotations


class RconError(Exception):
    """Base class for every error raised by this package."""


class AddressError(RconError, ValueError):
    pass


class CodecError(RconError):
    pass


class Truncated(CodecError):
    """Fewer bytes are available than the frame needs; buffer more and retry."""

    def __init__(self, needed: int, available: int):
        super().__init__(f"truncated frame: need {needed} bytes, have {available}")
        self.needed = needed
        self.available = available


class Malformed(CodecError):
    pass


class TooLarge(CodecError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"body too large: {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class RconIOError(RconError):
    """The transport failed. The session that raised it is no longer usable."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ProtocolError(RconError):
    pass


class AuthFailed(ProtocolError):
    def __init__(self) -> None:
        super().__init__("authentication failed: server rejected the password")


class UnexpectedPacket(ProtocolError):
    pass


class DesynchronizedPacket(ProtocolError):
    pass


class ReplyEncodingError(ProtocolError):
    pass


class IncompleteReply(ProtocolError, RconIOError):
    """The connection dropped before the end of a reply was confirmed."""

    def __init__(self, received: int, cause: BaseException | None = None):
        RconIOError.__init__(
            self,
            f"connection lost after {received} reply fragment(s)",
            cause,
        )
        self.received = received


class BusyReconnecting(RconError):
    """The handle is recovering; `description` names the fault that started it."""

    def __init__(self, description: str):
        super().__init__(f"busy reconnecting: {description}")
        self.description = description
