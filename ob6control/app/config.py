from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path

from ob6control.protocol.codes import OB6_MODEL_ID


@dataclass
class MidiConfig:
    device_prefix: str = "OB-6"
    backend: str = "mido.backends.rtmidi"
    model_id: int = OB6_MODEL_ID


@dataclass
class DeviceConfig:
    response_timeout_s: float = 2.0
    detect_retries: int = 3


@dataclass
class AppConfig:
    midi: MidiConfig = field(default_factory=MidiConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)

    @classmethod
    def default(cls) -> AppConfig:
        return cls()


class ConfigManager:
    def __init__(self, config_path: Path | str = "config.json") -> None:
        self.config_path = Path(config_path)
        self.config = self.load()

    def load(self) -> AppConfig:
        if not self.config_path.exists():
            logging.info(f"Config file not found at {self.config_path}, using defaults.")
            return AppConfig.default()

        try:
            with open(self.config_path, "r") as f:
                data = json.load(f)
                midi_data = data.get("midi", {})
                device_data = data.get("device", {})
                defaults = AppConfig.default()
                return AppConfig(
                    midi=MidiConfig(
                        device_prefix=midi_data.get("device_prefix", defaults.midi.device_prefix),
                        backend=midi_data.get("backend", defaults.midi.backend),
                        model_id=int(midi_data.get("model_id", defaults.midi.model_id)),
                    ),
                    device=DeviceConfig(
                        response_timeout_s=float(
                            device_data.get("response_timeout_s", defaults.device.response_timeout_s)
                        ),
                        detect_retries=int(device_data.get("detect_retries", defaults.device.detect_retries)),
                    ),
                )
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to load config: {e}")
            return AppConfig.default()

    def save(self) -> None:
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                json.dump(asdict(self.config), f, indent=4)
        except OSError as e:
            logging.error(f"Failed to save config: {e}")

    @property
    def device_prefix(self) -> str:
        return self.config.midi.device_prefix

    @device_prefix.setter
    def device_prefix(self, value: str) -> None:
        self.config.midi.device_prefix = value
        self.save()

    @property
    def model_id(self) -> int:
        return self.config.midi.model_id

    @model_id.setter
    def model_id(self, value: int) -> None:
        self.config.midi.model_id = value
        self.save()

    @property
    def response_timeout_s(self) -> float:
        return self.config.device.response_timeout_s

    @response_timeout_s.setter
    def response_timeout_s(self, value: float) -> None:
        self.config.device.response_timeout_s = value
        self.save()
