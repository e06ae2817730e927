from __future__ import annotations

import logging
import os

LEVEL_ENV = "OB6_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Per-message TX/RX hex dumps; only wanted when explicitly debugging.
WIRE_LOGGERS = ("ob6control.transport.midi_transport",)


def resolve_level(cli_level: str | None = None) -> int:
    """`cli_level`, then `OB6_LOG_LEVEL`, then INFO. Unknown names fall back to INFO."""

    name = (cli_level or os.environ.get(LEVEL_ENV) or "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(*, cli_level: str | None = None) -> int:
    """Configure root logging once, early in the entrypoint.

    Returns the level that was applied.
    """

    level = resolve_level(cli_level)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S", force=True)

    wire_level = logging.DEBUG if level <= logging.DEBUG else logging.INFO
    for name in WIRE_LOGGERS:
        logging.getLogger(name).setLevel(wire_level)
    return level
