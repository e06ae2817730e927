from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

import mido

from ob6control.app.state import DeviceStateCache
from ob6control.domain.device_state import DeviceState, ResolvedChannel
from ob6control.domain.model import SynthProtocolModel
from ob6control.protocol.errors import InvalidDeviceResponse
from ob6control.protocol.sysex import format_sysex_bytes, sysex_data


class HandshakeState(Enum):
    AWAITING_RESPONSE = "awaiting_response"
    CHANNEL_RESOLVED = "channel_resolved"


class DeviceHandshake:
    """Device detection via the global parameter dump.

    The OB-6 has no identity reply that carries its channel, so we ask for the
    global settings and read channel, local control and MIDI control from it.
    Waiting and retrying is up to the caller.
    """

    def __init__(self, model: SynthProtocolModel, cache: DeviceStateCache | None = None) -> None:
        self._model = model
        self._cache = cache
        self._state = HandshakeState.AWAITING_RESPONSE
        self._channel: ResolvedChannel | None = None

        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def state(self) -> HandshakeState:
        return self._state

    @property
    def channel(self) -> ResolvedChannel | None:
        return self._channel

    def begin(self) -> list[int]:
        """Reset and return the request to send (framed sysex)."""

        self._state = HandshakeState.AWAITING_RESPONSE
        self._channel = None
        self._logger.info("Requesting global settings from %s", self._model.name)
        return self._model.global_settings_request()

    def handle_response(self, message: mido.Message | bytes | bytearray | Iterable[int]) -> DeviceState:
        """Resolve the device state from a global settings dump.

        Raises `InvalidDeviceResponse` and stays in AWAITING_RESPONSE if the
        message is not a usable dump of this model.
        """

        data = sysex_data(message)
        snapshot = self._model.settings_from_sysex(data)
        if snapshot is None:
            raise InvalidDeviceResponse(
                f"Not a {self._model.name} global settings dump: {format_sysex_bytes(data, max_len=8)}"
            )

        config = self._model.config
        registry = self._model.settings
        channel_offset = registry.get(config.channel_setting_id).offset
        local_offset = registry.get(config.local_control_setting_id).offset
        midi_offset = registry.get(config.midi_control_setting_id).offset

        needed = max(channel_offset, local_offset, midi_offset) + 1
        if len(snapshot) < needed:
            raise InvalidDeviceResponse(
                f"Global settings dump too short: {len(snapshot)} bytes, need at least {needed}"
            )

        channel_byte = snapshot.data[channel_offset]
        if channel_byte > 16:
            raise InvalidDeviceResponse(f"Channel byte out of range: {channel_byte}")

        channel = ResolvedChannel.from_setting(channel_byte)
        settings = registry.decode(snapshot)
        device_state = DeviceState(
            channel=channel,
            local_control=bool(settings[config.local_control_setting_id]),
            midi_control=bool(settings[config.midi_control_setting_id]),
            settings=settings,
        )

        if self._cache is not None:
            self._cache.publish(device_state)

        self._channel = channel
        self._state = HandshakeState.CHANNEL_RESOLVED
        self._logger.info(
            "Detected %s on channel %s (local control %s, MIDI control %s)",
            self._model.name,
            channel,
            "on" if device_state.local_control else "off",
            "on" if device_state.midi_control else "off",
        )
        return device_state
