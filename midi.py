from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional, cast

import mido

from ob6control.protocol.sysex import sysex_data


@dataclass(frozen=True)
class MidiPorts:
    inputs: list[str]
    outputs: list[str]

    def match_output(self, prefix: str) -> Optional[str]:
        return next((name for name in self.outputs if name.startswith(prefix)), None)

    def match_input(self, prefix: str) -> Optional[str]:
        return next((name for name in self.inputs if name.startswith(prefix)), None)


class OB6Midi:
    """MIDI ports for talking to an OB-6.

    The OB-6 shows up as one USB port pair (or as whatever DIN interface the
    user names in the config), so ports are matched by name prefix.

    mido wants SysEx data without F0/F7; `send_sysex` takes either form.
    """

    def __init__(
        self,
        device_prefix: str = "OB-6",
        *,
        backend: str = "mido.backends.rtmidi",
        input_enabled: bool = True,
    ) -> None:
        self.device_prefix = device_prefix
        self.backend = backend
        self.input_enabled = input_enabled
        self.output_name: Optional[str] = None
        self.input_name: Optional[str] = None

        mido.set_backend(self.backend)

        self._out: Optional[mido.ports.BaseOutput] = None
        self._in: Optional[mido.ports.BaseInput] = None

    @property
    def connected(self) -> bool:
        return self._out is not None

    def list_ports(self) -> MidiPorts:
        m = cast(Any, mido)
        return MidiPorts(inputs=m.get_input_names(), outputs=m.get_output_names())

    def connect(self) -> str:
        """Open the output (and, if enabled, the input) matching `device_prefix`.

        Returns the output port name. A missing input is not an error, the
        device can still be driven blind.
        """
        m = cast(Any, mido)
        ports = self.list_ports()
        output_name = ports.match_output(self.device_prefix)
        if output_name is None:
            raise RuntimeError(
                f"No MIDI output port starts with {self.device_prefix!r}. "
                f"Available outputs: {ports.outputs}"
            )

        self._out = m.open_output(output_name)
        self.output_name = output_name

        if self.input_enabled:
            self.input_name = ports.match_input(self.device_prefix)
            if self.input_name is not None:
                self._in = m.open_input(self.input_name)

        return output_name

    def close(self) -> None:
        for port in (self._in, self._out):
            if port is not None:
                port.close()
        self._in = None
        self._out = None
        self.input_name = None
        self.output_name = None

    def send(self, message: mido.Message) -> None:
        if self._out is None:
            raise RuntimeError("MIDI output not connected. Call connect() first.")
        self._out.send(message)

    def send_sysex(self, data: bytes | bytearray | Iterable[int]) -> None:
        """Send one SysEx message, framed or not. Bytes must be 0-255."""
        self.send(mido.Message("sysex", data=list(sysex_data(data))))

    def receive_pending(self) -> list[mido.Message]:
        """Drain the input port. Empty when no input is open."""
        if self._in is None:
            return []

        messages: list[mido.Message] = []
        while True:
            msg = self._in.poll()
            if msg is None:
                break
            messages.append(msg)
        return messages
