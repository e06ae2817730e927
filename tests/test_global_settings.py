import pytest

from ob6control.domain.global_settings import (
    CATEGORY_ORDER,
    GlobalSettingDefinition,
    GlobalSettingsRegistry,
    SettingKind,
)
from ob6control.domain.ob6 import DSI_ALTERNATE_TUNINGS, OB6Setting
from ob6control.domain.records import GlobalSettingsSnapshot
from ob6control.protocol.codes import GLOBAL_SETTINGS_LENGTH
from ob6control.protocol.errors import UnsupportedWrite

from conftest import default_settings_payload


def _cc(messages):
    return [(m.control, m.value) for m in messages]


def test_registry_has_every_setting(registry):
    assert len(registry) == 19
    assert {d.setting_id for d in registry.list_all()} == set(range(19))


def test_list_is_in_category_order(registry):
    definitions = registry.list_all()
    indices = [CATEGORY_ORDER.index(d.category) for d in definitions]
    assert indices == sorted(indices)
    assert [d.label for d in definitions[:2]] == ["Transpose", "Master Tune"]
    assert definitions[-1].label == "Sustain Polarity"


def test_list_keeps_insertion_order_within_category(registry):
    midi = [d.setting_id for d in registry.list_all() if d.category == "MIDI"]
    assert midi[0] == OB6Setting.MIDI_CHANNEL
    assert midi[-2:] == [OB6Setting.ARP_BEAT_SYNC, OB6Setting.LOCAL_CONTROL]


def test_addresses_and_offsets_are_unique(registry):
    definitions = registry.list_all()
    assert len({d.nrpn for d in definitions}) == len(definitions)
    assert len({d.offset for d in definitions}) == len(definitions)
    assert all(0 <= d.offset < GLOBAL_SETTINGS_LENGTH for d in definitions)


def test_documented_addresses(registry):
    assert registry.get(OB6Setting.MASTER_TUNE).nrpn == 1024
    assert registry.get(OB6Setting.TRANSPOSE).nrpn == 1025
    assert registry.get(OB6Setting.MIDI_CHANNEL).nrpn == 1026
    assert registry.get(OB6Setting.LOCAL_CONTROL).nrpn == 1031
    assert registry.get(OB6Setting.MIDI_CONTROL).nrpn == 1035
    assert registry.get(OB6Setting.ARP_BEAT_SYNC).nrpn == 1036
    assert registry.get(OB6Setting.ALT_TUNING).nrpn == 1044
    assert registry.by_nrpn(1040).label == "Sustain Polarity"
    assert registry.by_nrpn(2000) is None


def test_unsettable_values_are_legal_values(registry):
    for d in registry.list_all():
        assert set(d.unsettable) <= set(d.legal_raw_values())


def test_topmost_values_are_flagged(registry):
    assert registry.get(OB6Setting.MIDI_CLOCK).unsettable == {4}
    assert registry.get(OB6Setting.PARAM_TRANSMIT).unsettable == {4}
    assert registry.get(OB6Setting.MIDI_OUT).unsettable == {3}
    assert registry.get(OB6Setting.ALT_TUNING).unsettable == {16}
    assert registry.get(OB6Setting.PARAM_RECEIVE).unsettable == frozenset()


def test_arp_beat_sync_defect_is_flagged_not_fixed(registry):
    d = registry.get(OB6Setting.ARP_BEAT_SYNC)
    assert d.offset == 18
    assert d.known_defect is not None


def test_raw_values_follow_offsets(registry):
    snapshot = GlobalSettingsSnapshot(bytes(range(GLOBAL_SETTINGS_LENGTH)))
    raw = registry.raw_values(snapshot)
    for d in registry.list_all():
        assert raw[d.setting_id] == d.offset


def test_decode_defaults(registry):
    values = registry.decode(default_settings_payload())
    assert values[OB6Setting.TRANSPOSE] == 0
    assert values[OB6Setting.MASTER_TUNE] == 0
    assert values[OB6Setting.MIDI_CHANNEL] == 1
    assert values[OB6Setting.LOCAL_CONTROL] is True
    assert values == registry.defaults()


def test_decode_applies_display_offset(registry):
    values = registry.decode(default_settings_payload(transpose=0, master_tune=100))
    assert values[OB6Setting.TRANSPOSE] == -12
    assert values[OB6Setting.MASTER_TUNE] == 50


def test_decode_clamps_out_of_range_values(registry):
    values = registry.decode(
        default_settings_payload(clock_port=4, transpose=99, local_control=10, alt_tuning=40)
    )
    assert values[OB6Setting.CLOCK_PORT] == 1
    assert values[OB6Setting.TRANSPOSE] == 12
    assert values[OB6Setting.LOCAL_CONTROL] is True
    assert values[OB6Setting.ALT_TUNING] == 16


def test_decode_skips_missing_bytes(registry):
    values = registry.decode(bytes([12, 50, 3]))
    assert set(values) == {OB6Setting.TRANSPOSE, OB6Setting.MASTER_TUNE, OB6Setting.MIDI_CHANNEL}


def test_build_write_emits_four_controller_changes(registry):
    messages = registry.build_write(OB6Setting.MIDI_CLOCK, 2, channel=3)
    assert len(messages) == 4
    assert all(m.type == "control_change" and m.channel == 3 for m in messages)
    # 1027 = 8 * 128 + 3
    assert _cc(messages) == [(99, 8), (98, 3), (6, 0), (38, 2)]


def test_build_write_converts_display_value(registry):
    messages = registry.build_write(OB6Setting.TRANSPOSE, 0, channel=0)
    assert _cc(messages) == [(99, 8), (98, 1), (6, 0), (38, 12)]


def test_build_write_bool(registry):
    messages = registry.build_write(OB6Setting.MIDI_CONTROL, False, channel=0)
    assert _cc(messages)[-1] == (38, 0)


@pytest.mark.parametrize(
    "setting, value",
    [
        (OB6Setting.MIDI_CLOCK, 4),
        (OB6Setting.PARAM_TRANSMIT, 4),
        (OB6Setting.MIDI_OUT, 3),
        (OB6Setting.LOCAL_CONTROL, True),
        (OB6Setting.VELOCITY_RESPONSE, 7),
        (OB6Setting.AFTERTOUCH_RESPONSE, 3),
        (OB6Setting.STEREO_MONO, 1),
        (OB6Setting.POT_MODE, 2),
        (OB6Setting.SEQ_JACK, 3),
        (OB6Setting.ALT_TUNING, 16),
        (OB6Setting.SUSTAIN_POLARITY, 3),
        (OB6Setting.ARP_BEAT_SYNC, 1),
    ],
)
def test_build_write_refuses_unsettable_values(registry, setting, value):
    with pytest.raises(UnsupportedWrite) as info:
        registry.build_write(setting, value, channel=0)
    assert info.value.setting_id == setting
    assert not registry.get(setting).is_settable(value)


def test_build_write_rejects_illegal_values(registry):
    with pytest.raises(ValueError):
        registry.build_write(OB6Setting.CLOCK_PORT, 5, channel=0)
    with pytest.raises(ValueError):
        registry.build_write(OB6Setting.TRANSPOSE, 13, channel=0)


def test_unknown_setting_id(registry):
    with pytest.raises(KeyError):
        registry.get(99)


def test_label_for(registry):
    assert registry.get(OB6Setting.MIDI_CHANNEL).label_for(0) == "Omni"
    assert registry.get(OB6Setting.POT_MODE).label_for(1) == "Pass Thru"
    assert registry.get(OB6Setting.LOCAL_CONTROL).label_for(False) == "Off"
    assert registry.get(OB6Setting.TRANSPOSE).label_for(-3) == "-3"


def test_diff_returns_changed_settings_only(registry):
    previous = registry.defaults()
    current = dict(previous)
    current[OB6Setting.POT_MODE] = 0
    current[OB6Setting.TRANSPOSE] = 5
    assert registry.diff(previous, current) == [
        (OB6Setting.TRANSPOSE, 5),
        (OB6Setting.POT_MODE, 0),
    ]
    assert registry.diff(previous, previous) == []


def test_diff_treats_missing_previous_as_changed(registry):
    assert registry.diff({}, {OB6Setting.SEQ_JACK: 1}) == [(OB6Setting.SEQ_JACK, 1)]


def _definition(setting_id, nrpn, offset, **kwargs):
    return GlobalSettingDefinition(
        setting_id=setting_id,
        nrpn=nrpn,
        offset=offset,
        label=f"S{setting_id}",
        category="MIDI",
        kind=SettingKind.BOOL,
        default=0,
        **kwargs,
    )


def test_registry_rejects_duplicate_addresses():
    with pytest.raises(ValueError):
        GlobalSettingsRegistry([_definition(0, 1024, 0), _definition(1, 1024, 1)], payload_length=4)


def test_registry_rejects_duplicate_offsets():
    with pytest.raises(ValueError):
        GlobalSettingsRegistry([_definition(0, 1024, 0), _definition(1, 1025, 0)], payload_length=4)


def test_registry_rejects_offsets_outside_payload():
    with pytest.raises(ValueError):
        GlobalSettingsRegistry([_definition(0, 1024, 4)], payload_length=4)


def test_registry_rejects_illegal_unsettable_values():
    with pytest.raises(ValueError):
        GlobalSettingsRegistry([_definition(0, 1024, 0, unsettable=frozenset({2}))], payload_length=4)


def test_definition_labels_are_read_only(registry):
    definition = registry.get(OB6Setting.CLOCK_PORT)
    with pytest.raises(TypeError):
        definition.labels[5] = "Bogus"
    with pytest.raises(TypeError):
        DSI_ALTERNATE_TUNINGS[17] = "Bogus"
    assert not definition.is_legal_raw(5)
    assert hash(definition) == hash(registry.get(OB6Setting.CLOCK_PORT))


def test_labels_are_copied_on_construction():
    labels = {0: "Off", 1: "On"}
    definition = GlobalSettingDefinition(
        setting_id=0, nrpn=1, offset=0, label="X", category="MIDI",
        kind=SettingKind.ENUM, default=0, labels=labels,
    )
    labels[2] = "Later"
    assert definition.legal_raw_values() == [0, 1]
