from __future__ import annotations

"""Sequential/DSI OB-6 SysEx and controller constants.

These values are derived from the OB-6 operation manual (MIDI implementation
chapter) and from observing a unit running firmware 1.5.8.
Keep protocol constants here so the rest of the codebase doesn't duplicate them.
"""


DSI_VENDOR_ID = 0x01
OB6_MODEL_ID = 0x2E


class OB6SysexCodes:
    # Patch transfer
    PROGRAM_DATA_DUMP = 0x02
    EDIT_BUFFER_DUMP = 0x03
    PROGRAM_DUMP_REQUEST = 0x05
    EDIT_BUFFER_REQUEST = 0x06

    # Global parameters
    GLOBAL_PARAMETER_REQUEST = 0x0E
    GLOBAL_PARAMETER_DUMP = 0x0F


class ControllerNumbers:
    """Controller-change numbers used for remote writes."""

    NRPN_PARAM_MSB = 99
    NRPN_PARAM_LSB = 98
    DATA_ENTRY_MSB = 6
    DATA_ENTRY_LSB = 38
    BANK_SELECT_LSB = 32

    # DSI support recommended this one, it works even when Param Rcv is NRPN.
    LOCAL_CONTROL = 0x7A


# Universal non-realtime MIDI Tuning Standard.
UNIVERSAL_NON_REALTIME = 0x7E
MTS_SUB_ID = 0x08
MTS_BULK_DUMP_REQUEST = 0x00
MTS_BULK_DUMP_REPLY = 0x01
MTS_SINGLE_NOTE_CHANGE = 0x02

PATCH_DATA_LENGTH = 1024
GLOBAL_SETTINGS_LENGTH = 19

MAX_14BIT = 0x3FFF
