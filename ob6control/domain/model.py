from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

import mido

from ob6control.domain.global_settings import GlobalSettingsRegistry
from ob6control.domain.records import (
    BlankOutZone,
    GlobalSettingsSnapshot,
    PatchRecord,
    TuningRecord,
    blank_out,
)
from ob6control.protocol.codes import DSI_VENDOR_ID, OB6SysexCodes
from ob6control.protocol.errors import IncompleteRecord
from ob6control.protocol.sysex import (
    Classification,
    MessageKind,
    build_dsi_sysex,
    build_edit_buffer_request,
    build_global_settings_request,
    build_program_dump_request,
    build_tuning_dump_request,
    classify_sysex,
    escape_sysex,
    is_tuning_dump,
    sysex_data,
    unescape_sysex,
)


logger = logging.getLogger(__name__)

Message = mido.Message | bytes | bytearray | Iterable[int]
Record = PatchRecord | GlobalSettingsSnapshot | TuningRecord


class DataKind(Enum):
    PATCH = "patch"
    GLOBAL_SETTINGS = "global_settings"
    ALTERNATE_TUNING = "alternate_tuning"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SynthModelConfig:
    """Everything that differs between models of the same protocol family."""

    name: str
    model_id: int
    number_of_banks: int
    patches_per_bank: int
    patch_data_length: int
    name_offset: int
    name_length: int
    blank_out_zones: tuple[BlankOutZone, ...]
    settings: GlobalSettingsRegistry
    channel_setting_id: int
    local_control_setting_id: int
    midi_control_setting_id: int
    lowest_key: int
    highest_key: int
    vendor_id: int = DSI_VENDOR_ID

    @property
    def number_of_programs(self) -> int:
        return self.number_of_banks * self.patches_per_bank


@dataclass(frozen=True)
class ImportChoice:
    description: str
    start_program: int


class SynthProtocolModel:
    """Stateless protocol operations for one synth model.

    Classification, record building and outbound message building. Nothing
    here touches a port or mutates state, so one instance can be shared.
    """

    def __init__(self, config: SynthModelConfig) -> None:
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def model_id(self) -> int:
        return self.config.model_id

    @property
    def settings(self) -> GlobalSettingsRegistry:
        return self.config.settings

    @property
    def key_range(self) -> tuple[int, int]:
        """Lowest and highest MIDI note of the keybed."""
        return self.config.lowest_key, self.config.highest_key

    def is_key_in_range(self, note: int) -> bool:
        lowest, highest = self.key_range
        return lowest <= note <= highest

    # -- numbering ---------------------------------------------------------

    def split_program(self, program: int) -> tuple[int, int]:
        if not 0 <= program < self.config.number_of_programs:
            raise ValueError(f"program must be 0..{self.config.number_of_programs - 1}, got {program}")
        return divmod(program, self.config.patches_per_bank)

    def friendly_program_name(self, program: int) -> str:
        return f"#{program + 1:03d}"

    def friendly_bank_name(self, bank: int) -> str:
        per_bank = self.config.patches_per_bank
        return f"{bank * per_bank:03d} - {(bank + 1) * per_bank - 1:03d}"

    def import_choices(self) -> list[ImportChoice]:
        return [
            ImportChoice(self.friendly_bank_name(bank), bank * self.config.patches_per_bank)
            for bank in range(self.config.number_of_banks)
        ]

    # -- inbound -----------------------------------------------------------

    def classify(self, message: Message) -> Classification:
        return classify_sysex(message, self.config.model_id)

    def is_patch(self, message: Message) -> bool:
        return self.classify(message).kind in (MessageKind.PROGRAM_DUMP, MessageKind.EDIT_BUFFER_DUMP)

    def is_global_settings_dump(self, message: Message) -> bool:
        return self.classify(message).kind == MessageKind.GLOBAL_SETTINGS_DUMP

    def patch_from_sysex(self, message: Message) -> PatchRecord | None:
        """Decode a program or edit buffer dump.

        Returns None for anything else. Raises `IncompleteRecord` when the
        escaped data is too short for a full patch.
        """

        data = sysex_data(message)
        classification = self.classify(data)
        if classification.kind == MessageKind.PROGRAM_DUMP:
            start = 5
            program = classification.program_number(self.config.patches_per_bank)
        elif classification.kind == MessageKind.EDIT_BUFFER_DUMP:
            start = 3
            program = None
        else:
            return None

        patch_data = unescape_sysex(data[start:], self.config.patch_data_length)
        if len(patch_data) < self.config.patch_data_length:
            raise IncompleteRecord(self.config.patch_data_length, len(patch_data))
        logger.debug("Decoded %s patch, program=%s", self.config.name, program)
        return PatchRecord(data=patch_data, program=program)

    def settings_from_sysex(self, message: Message) -> GlobalSettingsSnapshot | None:
        # The global dump is not escaped.
        data = sysex_data(message)
        if not self.is_global_settings_dump(data):
            return None
        return GlobalSettingsSnapshot(data=data[3:])

    def tuning_from_sysex(self, message: Message) -> TuningRecord | None:
        data = sysex_data(message)
        if not is_tuning_dump(data):
            return None
        return TuningRecord(data=data)

    def patch_name(self, patch: PatchRecord) -> str | None:
        return patch.name(self.config.name_offset, self.config.name_length)

    def voice_data(self, patch: PatchRecord) -> bytes:
        """Patch data with the name zeroed, for comparing sounds regardless of naming."""
        return blank_out(self.config.blank_out_zones, patch.data)

    # -- outbound ----------------------------------------------------------

    def _check_patch(self, patch: PatchRecord) -> None:
        if len(patch.data) != self.config.patch_data_length:
            raise ValueError(
                f"{self.config.name} patches are {self.config.patch_data_length} bytes, got {len(patch.data)}"
            )

    def patch_to_edit_buffer(self, patch: PatchRecord) -> list[int]:
        """Framed edit buffer dump, plays the patch without storing it."""
        self._check_patch(patch)
        return build_dsi_sysex(self.config.model_id, OB6SysexCodes.EDIT_BUFFER_DUMP, escape_sysex(patch.data))

    def patch_to_program_dump(self, patch: PatchRecord, program: int) -> list[int]:
        """Framed program data dump that stores the patch at `program`."""
        self._check_patch(patch)
        bank, index = self.split_program(program)
        payload = bytes([bank, index]) + escape_sysex(patch.data)
        return build_dsi_sysex(self.config.model_id, OB6SysexCodes.PROGRAM_DATA_DUMP, payload)

    def global_settings_request(self) -> list[int]:
        return build_global_settings_request(self.config.model_id)

    def edit_buffer_request(self) -> list[int]:
        return build_edit_buffer_request(self.config.model_id)

    def program_request(self, program: int) -> list[int]:
        bank, index = self.split_program(program)
        return build_program_dump_request(self.config.model_id, bank, index)

    def tuning_request(self, tuning_number: int) -> list[int]:
        return build_tuning_dump_request(tuning_number)

    # -- data kinds --------------------------------------------------------

    def request_data_item(self, item_no: int, kind: DataKind) -> list[int]:
        if kind == DataKind.PATCH:
            return self.program_request(item_no)
        if kind == DataKind.GLOBAL_SETTINGS:
            return self.global_settings_request()
        if kind == DataKind.ALTERNATE_TUNING:
            return self.tuning_request(item_no)
        raise ValueError(f"Unhandled data kind {kind!r}")

    def is_data_file(self, message: Message, kind: DataKind) -> bool:
        if kind == DataKind.PATCH:
            return self.is_patch(message)
        if kind == DataKind.GLOBAL_SETTINGS:
            return self.is_global_settings_dump(message)
        if kind == DataKind.ALTERNATE_TUNING:
            return is_tuning_dump(message)
        raise ValueError(f"Unhandled data kind {kind!r}")

    def load_data(self, messages: Iterable[Message], kind: DataKind) -> list[Record]:
        """Turn every message of the requested kind into a record.

        Truncated patches are logged and skipped.
        """

        result: list[Record] = []
        for message in messages:
            data = sysex_data(message)
            if not self.is_data_file(data, kind):
                continue

            record: Record | None
            if kind == DataKind.PATCH:
                try:
                    record = self.patch_from_sysex(data)
                except IncompleteRecord as exc:
                    logger.warning("Discarding patch dump: %s", exc)
                    continue
            elif kind == DataKind.GLOBAL_SETTINGS:
                record = self.settings_from_sysex(data)
            else:
                record = self.tuning_from_sysex(data)

            if record is not None:
                result.append(record)
        return result
