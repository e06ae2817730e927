from __future__ import annotations


class OB6Error(Exception):
    """Base class for errors reported by the OB-6 driver."""


class IncompleteRecord(OB6Error):
    """A dump decoded to fewer bytes than the record requires."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Incomplete record: expected {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class UnsupportedWrite(OB6Error):
    """The firmware silently ignores this value when it arrives via NRPN.

    Recoverable: the value can still be reflected locally, but the hardware
    will not follow.
    """

    def __init__(self, setting_id: int, label: str, value: object) -> None:
        super().__init__(f"{label} cannot be set to {value!r} remotely (firmware ignores it)")
        self.setting_id = setting_id
        self.label = label
        self.value = value


class InvalidDeviceResponse(OB6Error):
    """The message received while detecting the device is not a usable settings dump."""
