from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


BlankOutZone = tuple[int, int]


def blank_out(zones: Iterable[BlankOutZone], data: bytes) -> bytes:
    """Zero every (first, last) zone, both ends inclusive. Other bytes are kept."""

    result = bytearray(data)
    for first, last in zones:
        for i in range(first, min(last + 1, len(result))):
            result[i] = 0
    return bytes(result)


@dataclass(frozen=True)
class PatchRecord:
    """A decoded patch.

    `program` is the zero-based slot (bank * patches_per_bank + index) for
    program dumps, and None for edit buffer captures until the host assigns one.
    """

    data: bytes
    program: int | None = None

    def with_program(self, program: int | None) -> PatchRecord:
        return PatchRecord(data=self.data, program=program)

    def name(self, offset: int, length: int) -> str | None:
        if len(self.data) < offset + length:
            return None
        raw = self.data[offset:offset + length]
        name = bytes(b for b in raw if 0x20 <= b <= 0x7E).decode("ascii").strip()
        return name or None


@dataclass(frozen=True)
class GlobalSettingsSnapshot:
    """One full read of the device globals, exactly as the device sent them."""

    data: bytes

    def __len__(self) -> int:
        return len(self.data)

    def byte_at(self, offset: int) -> int | None:
        if 0 <= offset < len(self.data):
            return self.data[offset]
        return None


@dataclass(frozen=True)
class TuningRecord:
    """An opaque MIDI Tuning Standard dump (data bytes without F0/F7)."""

    data: bytes

    @property
    def tuning_number(self) -> int | None:
        # 7E <dev> 08 01 <tt> ...
        if len(self.data) < 5:
            return None
        return self.data[4]
