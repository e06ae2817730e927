from __future__ import annotations

from ob6control.domain.model import SynthModelConfig, SynthProtocolModel
from ob6control.domain.ob6 import OB6_GLOBAL_SETTINGS, OB6Setting
from ob6control.protocol.codes import OB6_MODEL_ID, PATCH_DATA_LENGTH


OB6_CONFIG = SynthModelConfig(
    name="DSI OB-6",
    model_id=OB6_MODEL_ID,
    number_of_banks=10,
    patches_per_bank=100,
    patch_data_length=PATCH_DATA_LENGTH,
    name_offset=107,
    name_length=20,
    blank_out_zones=((107, 127),),
    settings=OB6_GLOBAL_SETTINGS,
    channel_setting_id=OB6Setting.MIDI_CHANNEL,
    local_control_setting_id=OB6Setting.LOCAL_CONTROL,
    midi_control_setting_id=OB6Setting.MIDI_CONTROL,
    lowest_key=0x24,
    highest_key=0x60 - 12,
)

MODEL_CONFIGS: dict[int, SynthModelConfig] = {
    OB6_CONFIG.model_id: OB6_CONFIG,
}


def create_model(model_id: int = OB6_MODEL_ID) -> SynthProtocolModel:
    """Return the protocol model for a model id byte."""

    try:
        config = MODEL_CONFIGS[model_id]
    except KeyError:
        known = ", ".join(f"0x{m:02X}" for m in sorted(MODEL_CONFIGS))
        raise ValueError(f"Unsupported model id 0x{model_id:02X} (known: {known})") from None
    return SynthProtocolModel(config)
