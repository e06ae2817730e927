from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, cast

import mido

from ob6control.protocol.codes import (
    DSI_VENDOR_ID,
    MTS_BULK_DUMP_REPLY,
    MTS_BULK_DUMP_REQUEST,
    MTS_SINGLE_NOTE_CHANGE,
    MTS_SUB_ID,
    UNIVERSAL_NON_REALTIME,
    OB6SysexCodes,
)


@dataclass(frozen=True)
class SysexFrame:
    vendor_id: int
    model_id: int
    command: int
    payload: bytes


class MessageKind(Enum):
    FOREIGN = "foreign"
    UNRECOGNIZED = "unrecognized"
    PROGRAM_DUMP = "program_dump"
    EDIT_BUFFER_DUMP = "edit_buffer_dump"
    EDIT_BUFFER_REQUEST = "edit_buffer_request"
    PROGRAM_DUMP_REQUEST = "program_dump_request"
    GLOBAL_SETTINGS_REQUEST = "global_settings_request"
    GLOBAL_SETTINGS_DUMP = "global_settings_dump"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Classification:
    kind: MessageKind
    bank: int | None = None
    program: int | None = None

    @property
    def is_own(self) -> bool:
        return self.kind not in (MessageKind.FOREIGN, MessageKind.UNRECOGNIZED)

    def program_number(self, patches_per_bank: int = 100) -> int | None:
        """Zero-based program slot for program dumps and requests."""
        if self.bank is None or self.program is None:
            return None
        return self.bank * patches_per_bank + self.program


_FOREIGN = Classification(MessageKind.FOREIGN)
_UNRECOGNIZED = Classification(MessageKind.UNRECOGNIZED)


def sysex_data(message: mido.Message | bytes | bytearray | Iterable[int]) -> bytes:
    """Return the sysex data bytes WITHOUT 0xF0/0xF7.

    Accepts a mido sysex message, a framed message (F0..F7) or unframed data.
    Non-sysex mido messages yield an empty result.
    """

    if isinstance(message, mido.Message):
        msg = cast(Any, message)
        if msg.type != "sysex":
            return b""
        return bytes(msg.data)

    raw = bytes(message)
    if raw and raw[0] == 0xF0:
        raw = raw[1:]
    if raw and raw[-1] == 0xF7:
        raw = raw[:-1]
    return raw


def escape_sysex(data: bytes | bytearray | Iterable[int]) -> bytes:
    """Split every byte into two transport bytes, high nibble first.

    The output is always twice as long as the input and only contains values
    0..15, so it is safe inside a SysEx message.
    """

    out = bytearray()
    for b in bytes(data):
        out.append((b >> 4) & 0x0F)
        out.append(b & 0x0F)
    return bytes(out)


def unescape_sysex(data: bytes | bytearray | Iterable[int], expected_length: int) -> bytes:
    """Recombine nibble pairs into at most `expected_length` bytes.

    Stops early when the input runs out. A result shorter than
    `expected_length` means the message was truncated; callers building
    fixed-size records must check the length.
    """

    raw = bytes(data)
    out = bytearray()
    for i in range(0, len(raw) - 1, 2):
        if len(out) >= expected_length:
            break
        out.append(((raw[i] & 0x0F) << 4) | (raw[i + 1] & 0x0F))
    return bytes(out)


def decode_dsi_sysex(message: mido.Message | bytes | bytearray | Iterable[int], model_id: int) -> SysexFrame | None:
    """Split a message of this model into a `SysexFrame`.

    Format is: 01 <model> <cmd> <payload...>
    Returns None for anything that is not addressed by this vendor/model.
    """

    data = sysex_data(message)
    if len(data) < 3:
        return None

    if data[0] != DSI_VENDOR_ID or data[1] != model_id:
        return None

    return SysexFrame(
        vendor_id=data[0],
        model_id=data[1],
        command=data[2],
        payload=data[3:],
    )


def classify_sysex(message: mido.Message | bytes | bytearray | Iterable[int], model_id: int) -> Classification:
    """Identify a message from its header bytes only.

    Never raises: messages from other vendors or models are FOREIGN, own
    messages with an unknown command or a cut-off header are UNRECOGNIZED.
    """

    data = sysex_data(message)
    if not data or data[0] != DSI_VENDOR_ID:
        return _FOREIGN
    if len(data) < 2 or data[1] != model_id:
        return _FOREIGN
    frame = decode_dsi_sysex(data, model_id)
    if frame is None:
        return _UNRECOGNIZED

    command, payload = frame.command, frame.payload
    if command == OB6SysexCodes.PROGRAM_DATA_DUMP:
        if len(payload) < 2:
            return _UNRECOGNIZED
        return Classification(MessageKind.PROGRAM_DUMP, bank=payload[0], program=payload[1])
    if command == OB6SysexCodes.PROGRAM_DUMP_REQUEST:
        if len(payload) < 2:
            return _UNRECOGNIZED
        return Classification(MessageKind.PROGRAM_DUMP_REQUEST, bank=payload[0], program=payload[1])
    if command == OB6SysexCodes.EDIT_BUFFER_DUMP:
        if not payload:
            return Classification(MessageKind.EDIT_BUFFER_REQUEST)
        return Classification(MessageKind.EDIT_BUFFER_DUMP)
    if command == OB6SysexCodes.EDIT_BUFFER_REQUEST:
        return Classification(MessageKind.EDIT_BUFFER_REQUEST)
    if command == OB6SysexCodes.GLOBAL_PARAMETER_REQUEST:
        return Classification(MessageKind.GLOBAL_SETTINGS_REQUEST)
    if command == OB6SysexCodes.GLOBAL_PARAMETER_DUMP:
        return Classification(MessageKind.GLOBAL_SETTINGS_DUMP)
    return _UNRECOGNIZED


def is_tuning_dump(message: mido.Message | bytes | bytearray | Iterable[int]) -> bool:
    """True for a MIDI Tuning Standard bulk dump reply or single note change (7E <dev> 08 01|02 ...)."""

    data = sysex_data(message)
    return (
        len(data) >= 4
        and data[0] == UNIVERSAL_NON_REALTIME
        and data[2] == MTS_SUB_ID
        and data[3] in (MTS_BULK_DUMP_REPLY, MTS_SINGLE_NOTE_CHANGE)
    )


def format_sysex_bytes(data: bytes | bytearray | list[int], *, max_len: int = 64) -> str:
    """Format SysEx bytes as hex, truncated for logs.

    Accepts framed (F0..F7) or unframed payloads.
    """

    raw = bytes(data)
    truncated = raw[:max_len]
    hex_part = " ".join(f"{b:02X}" for b in truncated)
    if len(raw) > max_len:
        return f"{hex_part} ...(+{len(raw) - max_len} bytes)"
    return hex_part


def build_dsi_sysex(model_id: int, command: int, payload: bytes | bytearray = b"") -> list[int]:
    """Build a *framed* DSI SysEx message as a list of ints.

    Output is: F0 01 <model> <cmd> <payload...> F7
    """

    if model_id < 0 or model_id > 127:
        raise ValueError("model_id must be 0..127")

    if command < 0 or command > 127:
        raise ValueError("command must be 0..127")

    if any(b & 0x80 for b in payload):
        raise ValueError("SysEx payload bytes must all be <= 0x7F")

    return [0xF0, DSI_VENDOR_ID, model_id, command, *payload, 0xF7]


def build_global_settings_request(model_id: int) -> list[int]:
    return build_dsi_sysex(model_id, OB6SysexCodes.GLOBAL_PARAMETER_REQUEST)


def build_edit_buffer_request(model_id: int) -> list[int]:
    return build_dsi_sysex(model_id, OB6SysexCodes.EDIT_BUFFER_REQUEST)


def build_program_dump_request(model_id: int, bank: int, program: int) -> list[int]:
    return build_dsi_sysex(model_id, OB6SysexCodes.PROGRAM_DUMP_REQUEST, bytes([bank, program]))


def build_tuning_dump_request(tuning_number: int, *, device_id: int = 0x01) -> list[int]:
    """MTS bulk tuning dump request: F0 7E <dev> 08 00 <tt> F7."""

    if not 0 <= tuning_number <= 127:
        raise ValueError("tuning_number must be 0..127")
    return [0xF0, UNIVERSAL_NON_REALTIME, device_id, MTS_SUB_ID, MTS_BULK_DUMP_REQUEST, tuning_number, 0xF7]
