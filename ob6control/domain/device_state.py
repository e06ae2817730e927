from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from ob6control.domain.global_settings import SettingValue


@dataclass(frozen=True)
class ResolvedChannel:
    """The channel the device listens on. `number` is one-based, None means omni."""

    number: int | None = None

    def __post_init__(self) -> None:
        if self.number is not None and not 1 <= self.number <= 16:
            raise ValueError(f"MIDI channel must be 1-16, got {self.number}")

    @classmethod
    def omni(cls) -> ResolvedChannel:
        return cls(None)

    @classmethod
    def from_setting(cls, value: int) -> ResolvedChannel:
        """Map the device's channel byte: 0 is omni, 1..16 a specific channel."""
        return cls.omni() if value == 0 else cls(value)

    @property
    def is_omni(self) -> bool:
        return self.number is None

    @property
    def zero_based(self) -> int:
        # Sending on channel 1 reaches an omni device.
        return 0 if self.number is None else self.number - 1

    @property
    def setting_value(self) -> int:
        return 0 if self.number is None else self.number

    def __str__(self) -> str:
        return "Omni" if self.number is None else str(self.number)


@dataclass(frozen=True)
class DeviceState:
    channel: ResolvedChannel
    local_control: bool
    midi_control: bool
    settings: Mapping[int, SettingValue] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if not isinstance(self.settings, MappingProxyType):
            object.__setattr__(self, "settings", MappingProxyType(dict(self.settings)))

    def with_settings(self, changes: Mapping[int, SettingValue]) -> DeviceState:
        merged = dict(self.settings)
        merged.update(changes)
        return replace(self, settings=merged)

    def with_channel(self, channel: ResolvedChannel) -> DeviceState:
        return replace(self, channel=channel)

    def with_local_control(self, on: bool) -> DeviceState:
        return replace(self, local_control=on)

    def with_midi_control(self, on: bool) -> DeviceState:
        return replace(self, midi_control=on)
