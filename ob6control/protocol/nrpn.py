from __future__ import annotations

import mido

from ob6control.protocol.codes import MAX_14BIT, ControllerNumbers


def split_14bit(value: int) -> tuple[int, int]:
    """Return (msb, lsb), 7 bits each."""

    if value < 0 or value > MAX_14BIT:
        raise ValueError(f"value must be 0..{MAX_14BIT}, got {value}")
    return (value >> 7) & 0x7F, value & 0x7F


def build_controller(channel: int, control: int, value: int) -> mido.Message:
    if channel < 0 or channel > 15:
        raise ValueError("channel must be 0..15")
    return mido.Message("control_change", channel=channel, control=control, value=value)


def build_nrpn(channel: int, address: int, value: int) -> list[mido.Message]:
    """Build the four controller changes that set one NRPN parameter.

    Parameter select (CC 99 / CC 98) followed by data entry (CC 6 / CC 38).
    `channel` is zero-based (0..15). Address and value cover the full 14-bit
    range even though the OB-6 only uses a small part of it.
    """

    address_msb, address_lsb = split_14bit(address)
    value_msb, value_lsb = split_14bit(value)
    return [
        build_controller(channel, ControllerNumbers.NRPN_PARAM_MSB, address_msb),
        build_controller(channel, ControllerNumbers.NRPN_PARAM_LSB, address_lsb),
        build_controller(channel, ControllerNumbers.DATA_ENTRY_MSB, value_msb),
        build_controller(channel, ControllerNumbers.DATA_ENTRY_LSB, value_lsb),
    ]
