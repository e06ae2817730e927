"""OB-6 global parameter table.

Quirks observed on firmware 1.5.8 (reported on the Sequential forum):
several enumerations accept their topmost value from the front panel and
report it back in the global dump, but silently drop it when it arrives as
NRPN. Those values are listed in `unsettable` so we never send a write the
unit will ignore.

The panel only works while "MIDI Param Rcv" is NRPN and "MIDI Control" is on,
and "MIDI SysEx" must be USB when talking over USB.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum
from types import MappingProxyType

from ob6control.domain.global_settings import (
    GlobalSettingDefinition,
    GlobalSettingsRegistry,
    SettingKind,
)
from ob6control.protocol.codes import GLOBAL_SETTINGS_LENGTH


class OB6Setting(IntEnum):
    """Setting ids. The value is also the index into the global dump payload."""

    TRANSPOSE = 0
    MASTER_TUNE = 1
    MIDI_CHANNEL = 2
    MIDI_CLOCK = 3
    CLOCK_PORT = 4
    PARAM_TRANSMIT = 5
    PARAM_RECEIVE = 6
    MIDI_CONTROL = 7
    MIDI_SYSEX = 8
    MIDI_OUT = 9
    LOCAL_CONTROL = 10
    SEQ_JACK = 11
    POT_MODE = 12
    SUSTAIN_POLARITY = 13
    ALT_TUNING = 14
    VELOCITY_RESPONSE = 15
    AFTERTOUCH_RESPONSE = 16
    STEREO_MONO = 17
    ARP_BEAT_SYNC = 18


DSI_ALTERNATE_TUNINGS: Mapping[int, str] = MappingProxyType({
    0: "Equal Temperament",
    1: "Harmonic Series",
    2: "Carlos Harmonic Twelve Tone",
    3: "Meantone Temperament",
    4: "1/4 Tone Equal Temperament",
    5: "19 Tone Equal Temperament",
    6: "31 Tone Equal Temperament",
    7: "Pythagorean C",
    8: "Just Intonation in A with 7-limit Tritone at D#",
    9: "3-5 Lattice in A",
    10: "3-7 Lattice in A",
    11: "Other Music 7-limit Black Keys in C",
    12: "Dan Schmidt Pelog/Slendro",
    13: "Yamaha Just Major C",
    14: "Yamaha Just Minor C",
    15: "Harry Partch 11-limit 43 Just Intonation",
    16: "Arabic 12-Tone",
})


def _setting(
    setting: OB6Setting,
    nrpn: int,
    label: str,
    category: str,
    kind: SettingKind,
    default: int,
    **kwargs,
) -> GlobalSettingDefinition:
    return GlobalSettingDefinition(
        setting_id=int(setting),
        nrpn=nrpn,
        offset=int(setting),
        label=label,
        category=category,
        kind=kind,
        default=default,
        **kwargs,
    )


def _channel_labels() -> dict[int, str]:
    labels = {0: "Omni"}
    labels.update({ch: str(ch) for ch in range(1, 17)})
    return labels


OB6_GLOBAL_SETTING_DEFINITIONS: tuple[GlobalSettingDefinition, ...] = (
    # Raw 12 displays as 0
    _setting(OB6Setting.TRANSPOSE, 1025, "Transpose", "Tuning", SettingKind.RANGE, 12,
             min_raw=0, max_raw=24, display_offset=-12),
    # Raw 50 displays as 0
    _setting(OB6Setting.MASTER_TUNE, 1024, "Master Tune", "Tuning", SettingKind.RANGE, 50,
             min_raw=0, max_raw=100, display_offset=-50),
    _setting(OB6Setting.MIDI_CHANNEL, 1026, "MIDI Channel", "MIDI", SettingKind.ENUM, 1,
             labels=_channel_labels()),
    _setting(OB6Setting.MIDI_CLOCK, 1027, "MIDI Clock Mode", "MIDI", SettingKind.ENUM, 1,
             labels={0: "Off", 1: "Master", 2: "Slave", 3: "Slave Thru", 4: "Slave No S/S"},
             unsettable=frozenset({4})),
    _setting(OB6Setting.CLOCK_PORT, 1028, "Clock Port", "MIDI", SettingKind.ENUM, 0,
             labels={0: "MIDI", 1: "USB"}),
    _setting(OB6Setting.PARAM_TRANSMIT, 1029, "MIDI Param Xmit", "MIDI", SettingKind.ENUM, 2,
             labels={0: "Off", 1: "CC", 2: "NRPN", 3: "CC with sequencer", 4: "NRPN with sequencer"},
             unsettable=frozenset({4})),
    # The manual says this is ignored when received, which is not entirely true.
    _setting(OB6Setting.PARAM_RECEIVE, 1030, "MIDI Param Rcv", "MIDI", SettingKind.ENUM, 2,
             labels={0: "Off", 1: "CC", 2: "NRPN"}),
    _setting(OB6Setting.MIDI_CONTROL, 1035, "MIDI Control", "MIDI", SettingKind.BOOL, 1),
    _setting(OB6Setting.MIDI_SYSEX, 1032, "MIDI SysEx", "MIDI", SettingKind.ENUM, 0,
             labels={0: "MIDI", 1: "USB"}),
    _setting(OB6Setting.MIDI_OUT, 1033, "MIDI Out", "MIDI", SettingKind.ENUM, 0,
             labels={0: "MIDI", 1: "USB", 2: "MIDI+USB", 3: "Ply"},
             unsettable=frozenset({3})),
    # 1036 is not in the manual. Only "Off" can be written.
    _setting(OB6Setting.ARP_BEAT_SYNC, 1036, "Arp Beat Sync", "MIDI", SettingKind.ENUM, 0,
             labels={0: "Off", 1: "Quantize"},
             unsettable=frozenset({1}),
             known_defect="firmware does not store this value at byte 18 of the global dump; "
                          "the reported value is unreliable"),
    # Switching local control on needs CC 0x7A, see OB6Protocol.set_local_control.
    _setting(OB6Setting.LOCAL_CONTROL, 1031, "Local Control Enabled", "MIDI", SettingKind.BOOL, 1,
             unsettable=frozenset({1})),
    _setting(OB6Setting.VELOCITY_RESPONSE, 1041, "Velocity Response", "Keyboard", SettingKind.RANGE, 0,
             min_raw=0, max_raw=7, unsettable=frozenset({7})),
    _setting(OB6Setting.AFTERTOUCH_RESPONSE, 1042, "Aftertouch Response", "Keyboard", SettingKind.RANGE, 0,
             min_raw=0, max_raw=3, unsettable=frozenset({3})),
    _setting(OB6Setting.STEREO_MONO, 1043, "Stereo or Mono", "Audio Setup", SettingKind.ENUM, 0,
             labels={0: "Stereo", 1: "Mono"}, unsettable=frozenset({1})),
    _setting(OB6Setting.POT_MODE, 1037, "Pot Mode", "Front controls", SettingKind.ENUM, 2,
             labels={0: "Relative", 1: "Pass Thru", 2: "Jump"}, unsettable=frozenset({2})),
    _setting(OB6Setting.SEQ_JACK, 1039, "Seq Jack", "Pedals", SettingKind.ENUM, 0,
             labels={0: "Normal", 1: "Tri", 2: "Gate", 3: "Gate/Trigger"}, unsettable=frozenset({3})),
    _setting(OB6Setting.ALT_TUNING, 1044, "Alternative Tuning", "Scales", SettingKind.ENUM, 0,
             labels=DSI_ALTERNATE_TUNINGS, unsettable=frozenset({max(DSI_ALTERNATE_TUNINGS)})),
    _setting(OB6Setting.SUSTAIN_POLARITY, 1040, "Sustain Polarity", "Controls", SettingKind.ENUM, 0,
             labels={0: "Normal", 1: "Reversed", 2: "n-r", 3: "r-n"}, unsettable=frozenset({3})),
)


OB6_GLOBAL_SETTINGS = GlobalSettingsRegistry(
    OB6_GLOBAL_SETTING_DEFINITIONS,
    payload_length=GLOBAL_SETTINGS_LENGTH,
)
