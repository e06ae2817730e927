from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

import mido

from ob6control.domain.records import GlobalSettingsSnapshot
from ob6control.protocol.errors import UnsupportedWrite
from ob6control.protocol.nrpn import build_nrpn


logger = logging.getLogger(__name__)

SettingValue = bool | int

CATEGORY_ORDER: tuple[str, ...] = (
    "Tuning",
    "MIDI",
    "Keyboard",
    "Audio Setup",
    "Front controls",
    "Pedals",
    "Scales",
    "Controls",
)


class SettingKind(Enum):
    BOOL = "bool"
    RANGE = "range"
    ENUM = "enum"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class GlobalSettingDefinition:
    """One entry of the global parameter dump.

    All values stored here are raw device values. RANGE settings are shown to
    the user shifted by `display_offset` (Transpose raw 12 displays as 0).
    `unsettable` lists raw values the firmware accepts from the front panel but
    silently ignores when they arrive as NRPN.
    """

    setting_id: int
    nrpn: int
    offset: int
    label: str
    category: str
    kind: SettingKind
    default: int
    min_raw: int = 0
    max_raw: int = 1
    labels: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}), hash=False)
    display_offset: int = 0
    unsettable: frozenset[int] = frozenset()
    known_defect: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.labels, MappingProxyType):
            object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))

    def legal_raw_values(self) -> list[int]:
        if self.kind == SettingKind.ENUM:
            return sorted(self.labels)
        if self.kind == SettingKind.BOOL:
            return [0, 1]
        return list(range(self.min_raw, self.max_raw + 1))

    def is_legal_raw(self, raw: int) -> bool:
        if self.kind == SettingKind.ENUM:
            return raw in self.labels
        if self.kind == SettingKind.BOOL:
            return raw in (0, 1)
        return self.min_raw <= raw <= self.max_raw

    def clamp_raw(self, raw: int) -> int:
        """Nearest legal raw value; firmware sometimes reports out-of-range bytes."""

        if self.kind == SettingKind.ENUM:
            return min(self.labels, key=lambda k: (abs(k - raw), k))
        if self.kind == SettingKind.BOOL:
            return 1 if raw >= 1 else 0
        return max(self.min_raw, min(self.max_raw, raw))

    def to_value(self, raw: int) -> SettingValue:
        raw = self.clamp_raw(raw)
        if self.kind == SettingKind.BOOL:
            return raw == 1
        if self.kind == SettingKind.RANGE:
            return raw + self.display_offset
        return raw

    def to_raw(self, value: SettingValue) -> int:
        if self.kind == SettingKind.BOOL:
            if value not in (True, False, 0, 1):
                raise ValueError(f"{self.label} expects on/off, got {value!r}")
            return int(value)

        raw = int(value) - self.display_offset if self.kind == SettingKind.RANGE else int(value)
        if not self.is_legal_raw(raw):
            raise ValueError(f"{value!r} is not a legal value for {self.label}")
        return raw

    def is_settable(self, value: SettingValue) -> bool:
        return self.to_raw(value) not in self.unsettable

    def label_for(self, value: SettingValue) -> str:
        if self.kind == SettingKind.BOOL:
            return "On" if value else "Off"
        if self.kind == SettingKind.ENUM:
            return self.labels.get(int(value), str(value))
        return str(value)

    @property
    def default_value(self) -> SettingValue:
        return self.to_value(self.default)


class GlobalSettingsRegistry:
    """Read-only table of global parameter definitions.

    Built once and shared by reference; nothing mutates it after construction.
    """

    def __init__(self, definitions: Iterable[GlobalSettingDefinition], *, payload_length: int) -> None:
        self._definitions = tuple(definitions)
        self.payload_length = payload_length
        self._validate()

        self._by_id = {d.setting_id: d for d in self._definitions}
        self._by_nrpn = {d.nrpn: d for d in self._definitions}

        def sort_key(item: tuple[int, GlobalSettingDefinition]) -> tuple[int, int]:
            index, definition = item
            if definition.category in CATEGORY_ORDER:
                return CATEGORY_ORDER.index(definition.category), index
            return len(CATEGORY_ORDER), index

        self._ordered = tuple(d for _, d in sorted(enumerate(self._definitions), key=sort_key))

    def _validate(self) -> None:
        ids = [d.setting_id for d in self._definitions]
        if sorted(ids) != list(range(len(ids))):
            raise ValueError(f"Setting ids must be dense and unique, got {sorted(ids)}")

        addresses = [d.nrpn for d in self._definitions]
        if len(set(addresses)) != len(addresses):
            raise ValueError("NRPN addresses must be unique")

        offsets = [d.offset for d in self._definitions]
        if len(set(offsets)) != len(offsets):
            raise ValueError("Payload offsets must be unique")

        for d in self._definitions:
            if not 0 <= d.offset < self.payload_length:
                raise ValueError(f"Offset {d.offset} of {d.label} is outside the payload")
            illegal = [v for v in d.unsettable if not d.is_legal_raw(v)]
            if illegal:
                raise ValueError(f"Unsettable values {illegal} of {d.label} are not legal values")
            if not d.is_legal_raw(d.default):
                raise ValueError(f"Default {d.default} of {d.label} is not a legal value")

    def __len__(self) -> int:
        return len(self._definitions)

    def list_all(self) -> list[GlobalSettingDefinition]:
        """Definitions in category order, insertion order within a category."""
        return list(self._ordered)

    def get(self, setting_id: int) -> GlobalSettingDefinition:
        try:
            return self._by_id[setting_id]
        except KeyError:
            raise KeyError(f"Unknown global setting id {setting_id}") from None

    def by_nrpn(self, nrpn: int) -> GlobalSettingDefinition | None:
        return self._by_nrpn.get(nrpn)

    def defaults(self) -> dict[int, SettingValue]:
        return {d.setting_id: d.default_value for d in self._ordered}

    def raw_values(self, snapshot: GlobalSettingsSnapshot | bytes) -> dict[int, int]:
        data = snapshot.data if isinstance(snapshot, GlobalSettingsSnapshot) else bytes(snapshot)
        return {d.setting_id: data[d.offset] for d in self._ordered if d.offset < len(data)}

    def decode(self, snapshot: GlobalSettingsSnapshot | bytes) -> dict[int, SettingValue]:
        """Typed values for every setting present in the snapshot.

        Out-of-range bytes are clamped to the nearest legal value.
        """

        values: dict[int, SettingValue] = {}
        for setting_id, raw in self.raw_values(snapshot).items():
            definition = self._by_id[setting_id]
            if not definition.is_legal_raw(raw):
                logger.debug("Clamping %s raw value %d", definition.label, raw)
            values[setting_id] = definition.to_value(raw)
        return values

    def build_write(self, setting_id: int, value: SettingValue, channel: int) -> list[mido.Message]:
        """NRPN messages that set one setting on the given zero-based channel.

        Raises `UnsupportedWrite` for values the firmware ignores via NRPN.
        """

        definition = self.get(setting_id)
        raw = definition.to_raw(value)
        if raw in definition.unsettable:
            raise UnsupportedWrite(setting_id, definition.label, value)
        if definition.known_defect is not None:
            logger.debug("%s: %s", definition.label, definition.known_defect)
        return build_nrpn(channel, definition.nrpn, raw)

    def diff(
        self,
        previous: Mapping[int, SettingValue],
        current: Mapping[int, SettingValue],
    ) -> list[tuple[int, SettingValue]]:
        """Settings whose value in `current` differs from `previous`, in list order."""

        changed: list[tuple[int, SettingValue]] = []
        for d in self._ordered:
            if d.setting_id not in current:
                continue
            if d.setting_id in previous and previous[d.setting_id] == current[d.setting_id]:
                continue
            changed.append((d.setting_id, current[d.setting_id]))
        return changed
