"""Shared fixtures: the OB-6 model, dump builders and a fake transport."""

from __future__ import annotations

import random

import mido
import pytest

from ob6control.domain.catalog import create_model
from ob6control.domain.ob6 import OB6_GLOBAL_SETTINGS, OB6Setting
from ob6control.protocol.codes import GLOBAL_SETTINGS_LENGTH, OB6_MODEL_ID, PATCH_DATA_LENGTH


def default_settings_payload(**overrides: int) -> bytes:
    """Raw global dump payload with every setting at its default, by offset.

    Keyword names are lower-case `OB6Setting` names, e.g. `midi_channel=5`.
    """

    payload = bytearray(GLOBAL_SETTINGS_LENGTH)
    for definition in OB6_GLOBAL_SETTINGS.list_all():
        payload[definition.offset] = definition.default
    for name, raw in overrides.items():
        payload[OB6_GLOBAL_SETTINGS.get(OB6Setting[name.upper()]).offset] = raw
    return bytes(payload)


def settings_dump(**overrides: int) -> list[int]:
    """Unframed global settings dump as sent by the unit."""
    return [0x01, OB6_MODEL_ID, 0x0F, *default_settings_payload(**overrides)]


class FakeTransport:
    def __init__(self) -> None:
        self.sent_sysex: list[list[int]] = []
        self.sent: list[mido.Message] = []
        self.incoming: list[mido.Message] = []

    def queue_sysex(self, data) -> None:
        data = list(data)
        if data and data[0] == 0xF0:
            data = data[1:-1]
        self.incoming.append(mido.Message("sysex", data=data))

    def send_sysex(self, data) -> None:
        self.sent_sysex.append(list(data))

    def send_messages(self, messages) -> None:
        self.sent.extend(messages)

    def receive_pending(self) -> list[mido.Message]:
        pending, self.incoming = self.incoming, []
        return pending


@pytest.fixture
def model():
    return create_model(OB6_MODEL_ID)


@pytest.fixture
def registry():
    return OB6_GLOBAL_SETTINGS


@pytest.fixture
def patch_data() -> bytes:
    rng = random.Random(6)
    return bytes(rng.randrange(256) for _ in range(PATCH_DATA_LENGTH))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
