import argparse
import logging
from pathlib import Path

import mido

from midi import OB6Midi

from ob6control.app.config import ConfigManager
from ob6control.domain.catalog import create_model
from ob6control.domain.model import SynthProtocolModel
from ob6control.logging_setup import configure_logging
from ob6control.protocol.errors import IncompleteRecord
from ob6control.protocol.ob6_protocol import OB6Protocol
from ob6control.protocol.sysex import MessageKind, is_tuning_dump
from ob6control.transport.midi_transport import MidiTransport


def inspect_syx(model: SynthProtocolModel, path: Path, logger: logging.Logger) -> None:
    """Classify every message of a .syx file without touching the device."""

    for i, msg in enumerate(mido.read_syx_file(str(path))):
        classification = model.classify(msg)
        if classification.kind in (MessageKind.PROGRAM_DUMP, MessageKind.EDIT_BUFFER_DUMP):
            try:
                patch = model.patch_from_sysex(msg)
            except IncompleteRecord as exc:
                logger.warning("%d: %s (%s)", i, classification.kind, exc)
                continue
            assert patch is not None
            slot = model.friendly_program_name(patch.program) if patch.program is not None else "edit buffer"
            logger.info("%d: %s %s %r", i, classification.kind, slot, model.patch_name(patch))
        elif classification.kind == MessageKind.GLOBAL_SETTINGS_DUMP:
            snapshot = model.settings_from_sysex(msg)
            assert snapshot is not None
            logger.info("%d: %s, %d bytes", i, classification.kind, len(snapshot))
            print_settings(model, model.settings.decode(snapshot), logger)
        elif is_tuning_dump(msg):
            logger.info("%d: alternate tuning dump", i)
        else:
            logger.info("%d: %s", i, classification.kind)


def print_settings(model: SynthProtocolModel, values: dict, logger: logging.Logger) -> None:
    category = None
    for definition in model.settings.list_all():
        if definition.setting_id not in values:
            continue
        if definition.category != category:
            category = definition.category
            logger.info("%s:", category)
        value = values[definition.setting_id]
        logger.info("- %s: %s", definition.label, definition.label_for(value))


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Can also use OB6_LOG_LEVEL env var.",
    )
    parser.add_argument(
        "--config",
        default="config.json",
        help="Path of the JSON config file. Default: config.json.",
    )
    parser.add_argument(
        "--inspect",
        type=Path,
        default=None,
        help="Classify the messages of a .syx file and exit (no device needed).",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the global settings of the connected device.",
    )
    parser.add_argument(
        "--save-edit-buffer",
        type=Path,
        default=None,
        help="Request the edit buffer and write it to this .syx file.",
    )
    args = parser.parse_args()

    configure_logging(cli_level=args.log_level)
    logger = logging.getLogger("main")

    config = ConfigManager(args.config)
    model = create_model(config.model_id)

    if args.inspect is not None:
        inspect_syx(model, args.inspect, logger)
        return

    midi = OB6Midi(device_prefix=config.device_prefix, backend=config.config.midi.backend)
    transport = MidiTransport(midi)
    transport.connect()

    ob6 = OB6Protocol(transport, model)
    timeout_s = config.response_timeout_s

    try:
        channel = None
        for attempt in range(1, config.config.device.detect_retries + 1):
            try:
                channel = ob6.detect(timeout_s=timeout_s)
                break
            except TimeoutError as exc:
                logger.warning("Detect attempt %d failed: %s", attempt, exc)
        if channel is None:
            logger.error("%s not detected", model.name)
            return

        lowest, highest = model.key_range
        logger.info("%s on channel %s, keys %d..%d", model.name, channel, lowest, highest)
        state = ob6.state
        if args.dump_settings and state is not None:
            print_settings(model, dict(state.settings), logger)

        if args.save_edit_buffer is not None:
            patch = ob6.request_edit_buffer(timeout_s=timeout_s)
            message = mido.Message("sysex", data=model.patch_to_edit_buffer(patch)[1:-1])
            mido.write_syx_file(str(args.save_edit_buffer), [message])
            logger.info("Saved %r to %s", model.patch_name(patch), args.save_edit_buffer)
    except (TimeoutError, IncompleteRecord) as exc:
        logger.error("Device did not answer properly: %s", exc)
    finally:
        transport.close()


if __name__ == "__main__":
    main()
