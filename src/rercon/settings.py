from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import DEFAULT_RECONNECT_DELAY, MAX_COMMAND_BODY, MAX_REPLY_PACKET, MIN_PACKET_LENGTH


@dataclass(frozen=True, slots=True)
class Settings:
    connect_timeout: Optional[float] = None
    exec_timeout: Optional[float] = None
    # Some servers drop a request that arrives right behind another one.
    probe_after_first_reply: bool = False
    max_command_size: int = MAX_COMMAND_BODY
    max_reply_packet: int = MAX_REPLY_PACKET
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    max_reconnect_attempts: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("connect_timeout", "exec_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if not 0 <= self.max_command_size <= MAX_COMMAND_BODY:
            raise ValueError(f"max_command_size must be between 0 and {MAX_COMMAND_BODY}")
        if self.max_reply_packet < MIN_PACKET_LENGTH:
            raise ValueError(f"max_reply_packet must be at least {MIN_PACKET_LENGTH}")
        if self.reconnect_delay < 0:
            raise ValueError("reconnect_delay must not be negative")
        if self.max_reconnect_attempts is not None and self.max_reconnect_attempts < 1:
            raise ValueError("max_reconnect_attempts must be at least 1 (or None for unlimited)")
