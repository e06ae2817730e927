from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging

import mido

from midi import OB6Midi
from ob6control.protocol.sysex import format_sysex_bytes, sysex_data


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionInfo:
    output_name: str
    input_name: str | None

    @property
    def can_receive(self) -> bool:
        return self.input_name is not None


class MidiTransport:
    """What the protocol layer needs from MIDI: send, drain, close."""

    def __init__(self, midi: OB6Midi) -> None:
        self._midi = midi

    def connect(self) -> ConnectionInfo:
        info = ConnectionInfo(output_name=self._midi.connect(), input_name=self._midi.input_name)
        logger.info("Connected MIDI: output=%r input=%r", info.output_name, info.input_name)
        if not info.can_receive:
            logger.warning("No input port starts with %r, dumps cannot be received", self._midi.device_prefix)
        return info

    def close(self) -> None:
        logger.info("Closing MIDI transport")
        self._midi.close()

    def send_sysex(self, message: bytes | bytearray | Iterable[int]) -> None:
        data = sysex_data(message)
        logger.debug("TX sysex: %s", format_sysex_bytes(list(data)))
        self._midi.send_sysex(data)

    def send_messages(self, messages: Iterable[mido.Message]) -> None:
        """Send channel messages back to back, e.g. the four parts of an NRPN."""
        for msg in messages:
            logger.debug("TX: %s", msg)
            self._midi.send(msg)

    def receive_pending(self) -> list[mido.Message]:
        messages = self._midi.receive_pending()
        for msg in messages:
            data = sysex_data(msg)
            if data:
                logger.debug("RX sysex: %s", format_sysex_bytes(list(data)))
        return messages
