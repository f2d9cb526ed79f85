from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .errors import DesynchronizedPacket, UnexpectedPacket
from .packet import Packet, PacketKind

log = logging.getLogger(__name__)


@dataclass(slots=True)
class PendingExchange:
    """Collects the reply fragments of one command.

    The server answers requests in order, so the empty reply to the probe
    (sent right after the command) can only arrive once every fragment of
    the command's reply has been delivered. There is no "more fragments"
    flag on the wire; a short reply is not final until the probe comes back.
    """

    command_id: int
    probe_id: int
    fragments: list[bytes] = field(default_factory=list)
    complete: bool = False

    def feed(self, packet: Packet) -> bool:
        if self.complete:
            raise UnexpectedPacket(f"packet {packet.id} arrived after the reply was complete")
        if packet.id != self.command_id and packet.id != self.probe_id:
            raise DesynchronizedPacket(
                f"reply id {packet.id} matches neither command {self.command_id} nor probe {self.probe_id}"
            )
        if packet.kind is not PacketKind.COMMAND_RESPONSE:
            raise UnexpectedPacket(f"expected a command response, got {packet.kind.name}")

        if packet.id == self.probe_id:
            self.complete = True
            log.debug("command %d complete after %d fragment(s)", self.command_id, len(self.fragments))
            return True

        self.fragments.append(packet.body)
        log.debug("command %d fragment %d: %d bytes", self.command_id, len(self.fragments), len(packet.body))
        return False

    @property
    def body(self) -> bytes:
        return b"".join(self.fragments)
