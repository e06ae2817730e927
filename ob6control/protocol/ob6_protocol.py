from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping

import mido

from ob6control.app.state import DeviceStateCache
from ob6control.domain.device_state import DeviceState, ResolvedChannel
from ob6control.domain.global_settings import SettingValue
from ob6control.domain.model import SynthProtocolModel
from ob6control.domain.records import GlobalSettingsSnapshot, PatchRecord, TuningRecord
from ob6control.protocol.codes import ControllerNumbers
from ob6control.protocol.errors import IncompleteRecord, InvalidDeviceResponse, UnsupportedWrite
from ob6control.protocol.handshake import DeviceHandshake
from ob6control.protocol.nrpn import build_controller
from ob6control.protocol.sysex import Classification, MessageKind, sysex_data
from ob6control.transport.midi_transport import MidiTransport


class OB6Protocol:
    """High-level operations for an OB-6.

    This class deals with:
    - sending requests and waiting for matching dumps
    - keeping the cached `DeviceState` in sync with what we send
    - routing remote writes around the firmware's NRPN quirks
    """

    def __init__(
        self,
        transport: MidiTransport,
        model: SynthProtocolModel,
        *,
        cache: DeviceStateCache | None = None,
    ) -> None:
        self._transport = transport
        self.model = model
        self.cache = cache or DeviceStateCache()
        self.handshake = DeviceHandshake(model, self.cache)

        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def state(self) -> DeviceState | None:
        return self.cache.get()

    @property
    def channel(self) -> ResolvedChannel:
        state = self.cache.get()
        return state.channel if state is not None else ResolvedChannel.omni()

    # -- detection and dumps ----------------------------------------------

    def detect(self, *, timeout_s: float = 2.0) -> ResolvedChannel:
        """Find the device channel via the global parameter dump."""

        self._transport.send_sysex(self.handshake.begin())
        deadline = time.monotonic() + timeout_s
        last_error: InvalidDeviceResponse | None = None

        while time.monotonic() < deadline:
            for msg in self._transport.receive_pending():
                data = sysex_data(msg)
                if not self.model.is_global_settings_dump(data):
                    continue
                try:
                    return self.handshake.handle_response(data).channel
                except InvalidDeviceResponse as exc:
                    self._logger.warning("Ignoring device response: %s", exc)
                    last_error = exc
            time.sleep(0.01)

        detail = f" Last invalid response: {last_error}" if last_error is not None else ""
        raise TimeoutError(f"No {self.model.name} answered the global settings request.{detail}")

    def request_global_settings(self, *, timeout_s: float = 2.0) -> GlobalSettingsSnapshot:
        """Re-read the globals and refresh the cached state."""

        self._transport.send_sysex(self.handshake.begin())
        frame = self._wait_for(
            lambda c: c.kind == MessageKind.GLOBAL_SETTINGS_DUMP,
            timeout_s=timeout_s,
            what="global settings dump",
        )
        self.handshake.handle_response(frame)
        snapshot = self.model.settings_from_sysex(frame)
        assert snapshot is not None
        return snapshot

    def request_edit_buffer(self, *, timeout_s: float = 2.0) -> PatchRecord:
        self._logger.info("Requesting edit buffer")
        self._transport.send_sysex(self.model.edit_buffer_request())
        return self._wait_for_patch(
            lambda c: c.kind == MessageKind.EDIT_BUFFER_DUMP,
            timeout_s=timeout_s,
            what="edit buffer dump",
        )

    def request_program(self, program: int, *, timeout_s: float = 2.0) -> PatchRecord:
        self._logger.info("Requesting program %s", self.model.friendly_program_name(program))
        self._transport.send_sysex(self.model.program_request(program))
        per_bank = self.model.config.patches_per_bank
        return self._wait_for_patch(
            lambda c: c.kind == MessageKind.PROGRAM_DUMP and c.program_number(per_bank) == program,
            timeout_s=timeout_s,
            what=f"program dump {program}",
        )

    def request_tuning(self, tuning_number: int, *, timeout_s: float = 2.0) -> TuningRecord:
        self._logger.info("Requesting alternate tuning %d", tuning_number)
        self._transport.send_sysex(self.model.tuning_request(tuning_number))
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            for msg in self._transport.receive_pending():
                record = self.model.tuning_from_sysex(msg)
                if record is not None:
                    return record
            time.sleep(0.01)
        raise TimeoutError(f"Timed out waiting for tuning dump {tuning_number}")

    def send_edit_buffer(self, patch: PatchRecord) -> None:
        self._logger.info("Sending patch to edit buffer")
        self._transport.send_sysex(self.model.patch_to_edit_buffer(patch))

    def store_program(self, patch: PatchRecord, program: int) -> None:
        self._logger.info("Storing patch at %s", self.model.friendly_program_name(program))
        self._transport.send_sysex(self.model.patch_to_program_dump(patch, program))

    def select_program(self, program: int) -> None:
        """Bank select (CC 32) followed by a program change."""

        bank, index = self.model.split_program(program)
        channel = self.channel.zero_based
        self._transport.send_messages([
            build_controller(channel, ControllerNumbers.BANK_SELECT_LSB, bank),
            mido.Message("program_change", channel=channel, program=index),
        ])

    # -- global settings --------------------------------------------------

    def set_setting(self, setting_id: int, value: SettingValue) -> bool:
        """Write one global setting via NRPN.

        Returns False when the firmware would ignore the value; the cached
        state is still updated so it reflects what the user asked for.
        """

        definition = self.model.settings.get(setting_id)
        sent = True
        try:
            messages = self.model.settings.build_write(setting_id, value, self.channel.zero_based)
        except UnsupportedWrite as exc:
            self._logger.warning("%s. Change it on the device front panel.", exc)
            sent = False
        else:
            self._logger.info("Setting %s to %s", definition.label, definition.label_for(value))
            self._transport.send_messages(messages)

        self.cache.update(lambda s: s.with_settings({setting_id: value}))
        return sent

    def apply_settings(self, values: Mapping[int, SettingValue]) -> list[int]:
        """Write every setting that differs from the cached state.

        Returns the ids that could not be written remotely.
        """

        state = self.cache.get()
        previous = state.settings if state is not None else {}
        skipped: list[int] = []
        for setting_id, value in self.model.settings.diff(previous, values):
            if not self.set_setting(setting_id, value):
                skipped.append(setting_id)
        return skipped

    def change_channel(self, channel: ResolvedChannel) -> None:
        """Move the device to another channel (NRPN on the current one)."""

        config = self.model.config
        old = self.channel
        self.set_setting(config.channel_setting_id, channel.setting_value)
        if self.cache.update(lambda s: s.with_channel(channel)) is None:
            self._logger.warning(
                "Sent channel change to %s without a detected device state, "
                "later messages stay on channel %s until detect() runs",
                channel,
                old,
            )
            return
        self._logger.info("Changed channel %s -> %s", old, channel)

    def set_midi_control(self, on: bool) -> None:
        self.set_setting(self.model.config.midi_control_setting_id, on)
        self.cache.update(lambda s: s.with_midi_control(on))

    def set_local_control(self, on: bool) -> None:
        """Switch local control.

        The documented NRPN cannot switch it on, the CC works as long as
        MIDI control is on, even when Param Rcv is NRPN.
        """

        setting_id = self.model.config.local_control_setting_id
        definition = self.model.settings.get(setting_id)
        channel = self.channel.zero_based
        try:
            self._transport.send_messages(self.model.settings.build_write(setting_id, on, channel))
        except UnsupportedWrite:
            self._logger.debug("%s via NRPN not supported, using CC only", definition.label)
        self._transport.send_messages(
            [build_controller(channel, ControllerNumbers.LOCAL_CONTROL, 1 if on else 0)]
        )
        self.cache.update(lambda s: s.with_local_control(on).with_settings({setting_id: on}))

    # -- helpers ----------------------------------------------------------

    def _wait_for_patch(
        self,
        predicate: Callable[[Classification], bool],
        *,
        timeout_s: float,
        what: str,
    ) -> PatchRecord:
        frame = self._wait_for(predicate, timeout_s=timeout_s, what=what)
        patch = self.model.patch_from_sysex(frame)
        if patch is None:
            raise IncompleteRecord(self.model.config.patch_data_length, 0)
        return patch

    def _wait_for(
        self,
        predicate: Callable[[Classification], bool],
        *,
        timeout_s: float,
        what: str,
    ) -> bytes:
        deadline = time.monotonic() + timeout_s
        seen = 0

        while time.monotonic() < deadline:
            for msg in self._transport.receive_pending():
                data = sysex_data(msg)
                classification = self.model.classify(data)
                if not classification.is_own:
                    continue

                seen += 1
                self._logger.debug("RX %s: %s, %d bytes", self.model.name, classification.kind, len(data))
                if predicate(classification):
                    return data

            time.sleep(0.01)

        raise TimeoutError(
            f"Timed out waiting for {what}. Saw {seen} {self.model.name} SysEx messages during wait."
        )
