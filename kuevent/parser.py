"""
parser.py - Tolerant KEY=VALUE field parser shared by both decoders.

The parser fills a :class:`PartialUEvent` whose recognised slots stay
``None`` until seen.  It never decides whether a record is complete;
that is left to the netlink and sysfs decoders, which have different
rules.  Nothing outside ``kuevent`` should use this module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable

from kuevent.errors import InvalidDevPathError, InvalidSeqNumError
from kuevent.events import ActionType

logger = logging.getLogger(__name__)

_U64_MAX = 2**64 - 1


@dataclass
class PartialUEvent:
    """A uevent under construction; any recognised field may be missing."""

    action: ActionType | None = None
    devpath: PurePosixPath | None = None
    subsystem: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    seq: int | None = None


def parse_devpath(value: str) -> PurePosixPath:
    """Return *value* as a path, or raise :class:`InvalidDevPathError`."""
    if "\0" in value:
        raise InvalidDevPathError(value)
    return PurePosixPath(value)


def parse_seqnum(value: str) -> int:
    """Return *value* as an unsigned 64-bit integer.

    ASCII decimal digits with at most one leading ``+`` are accepted.
    """
    digits = value[1:] if value.startswith("+") else value
    if not (digits.isascii() and digits.isdigit()):
        raise InvalidSeqNumError(value)
    seq = int(digits)
    if seq > _U64_MAX:
        raise InvalidSeqNumError(value)
    return seq


def parse_fields(lines: Iterable[str]) -> PartialUEvent:
    """Scan *lines* and collect their ``KEY=VALUE`` fields.

    Lines without ``=`` (such as the ``add@/devices/...`` netlink header)
    are skipped.  Each remaining line is split on its first ``=``; the
    pair always lands in ``env`` (last value wins) and ``ACTION``,
    ``DEVPATH``, ``SUBSYSTEM`` and ``SEQNUM`` are additionally parsed
    into their typed slots.

    Raises:
        UnexpectedActionError: ``ACTION`` is not a known token.
        InvalidDevPathError:   ``DEVPATH`` contains NUL.
        InvalidSeqNumError:    ``SEQNUM`` is not a u64 in decimal.
    """
    partial = PartialUEvent()

    for line in lines:
        key, sep, value = line.partition("=")
        if not sep:
            continue

        if key == "ACTION":
            partial.action = ActionType.from_str(value)
        elif key == "DEVPATH":
            partial.devpath = parse_devpath(value)
        elif key == "SUBSYSTEM":
            partial.subsystem = value
        elif key == "SEQNUM":
            partial.seq = parse_seqnum(value)

        partial.env[key] = value

    logger.debug("Parsed %d field(s)", len(partial.env))
    return partial
