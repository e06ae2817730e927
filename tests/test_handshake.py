import pytest

from ob6control.app.state import DeviceStateCache
from ob6control.domain.device_state import ResolvedChannel
from ob6control.domain.ob6 import OB6Setting
from ob6control.protocol.codes import OB6_MODEL_ID
from ob6control.protocol.errors import InvalidDeviceResponse
from ob6control.protocol.handshake import DeviceHandshake, HandshakeState

from conftest import settings_dump


@pytest.fixture
def cache():
    return DeviceStateCache()


@pytest.fixture
def handshake(model, cache):
    return DeviceHandshake(model, cache)


def test_begin_returns_global_settings_request(handshake):
    assert handshake.begin() == [0xF0, 0x01, OB6_MODEL_ID, 0x0E, 0xF7]
    assert handshake.state == HandshakeState.AWAITING_RESPONSE
    assert handshake.channel is None


def test_specific_channel(handshake, cache):
    handshake.begin()
    state = handshake.handle_response(settings_dump(midi_channel=5))
    assert state.channel == ResolvedChannel(5)
    assert state.channel.zero_based == 4
    assert handshake.state == HandshakeState.CHANNEL_RESOLVED
    assert handshake.channel == ResolvedChannel(5)
    assert cache.get() is state


def test_channel_zero_is_omni(handshake):
    state = handshake.handle_response(settings_dump(midi_channel=0))
    assert state.channel.is_omni
    assert str(state.channel) == "Omni"


def test_channel_sixteen(handshake):
    assert handshake.handle_response(settings_dump(midi_channel=16)).channel.number == 16


def test_flags_and_settings_are_cached(handshake, cache):
    state = handshake.handle_response(settings_dump(local_control=0, midi_control=1, pot_mode=1))
    assert state.local_control is False
    assert state.midi_control is True
    assert state.settings[OB6Setting.POT_MODE] == 1
    assert state.settings[OB6Setting.LOCAL_CONTROL] is False
    assert cache.get().settings == state.settings


def test_channel_out_of_range_is_invalid(handshake, cache):
    handshake.begin()
    with pytest.raises(InvalidDeviceResponse):
        handshake.handle_response(settings_dump(midi_channel=17))
    assert handshake.state == HandshakeState.AWAITING_RESPONSE
    assert cache.get() is None


def test_header_mismatch_is_invalid(handshake, cache):
    wrong_model = settings_dump()
    wrong_model[1] = 0x25
    with pytest.raises(InvalidDeviceResponse):
        handshake.handle_response(wrong_model)
    with pytest.raises(InvalidDeviceResponse):
        handshake.handle_response([0x01, OB6_MODEL_ID, 0x03, 0x00])
    assert handshake.state == HandshakeState.AWAITING_RESPONSE
    assert cache.get() is None


def test_truncated_dump_is_invalid(handshake):
    with pytest.raises(InvalidDeviceResponse):
        handshake.handle_response(settings_dump()[:8])
    assert handshake.state == HandshakeState.AWAITING_RESPONSE


def test_begin_resets_resolved_state(handshake):
    handshake.handle_response(settings_dump(midi_channel=3))
    handshake.begin()
    assert handshake.state == HandshakeState.AWAITING_RESPONSE
    assert handshake.channel is None


def test_works_without_cache(model):
    handshake = DeviceHandshake(model)
    assert handshake.handle_response(settings_dump(midi_channel=2)).channel.number == 2


def test_control_flags_match_decoded_settings(handshake):
    state = handshake.handle_response(settings_dump(local_control=2, midi_control=2))
    assert state.local_control is True
    assert state.midi_control is True
    assert state.settings[OB6Setting.LOCAL_CONTROL] is True
    assert state.settings[OB6Setting.MIDI_CONTROL] is True
