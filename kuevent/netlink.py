"""
netlink.py - Decoder for NETLINK_KOBJECT_UEVENT packets.

The kernel broadcasts each uevent as one datagram of NUL-separated
segments: an ``action@devpath`` header followed by ``KEY=VALUE`` pairs.
See netlink(7) and Documentation/core-api/kobject.rst.
"""

from __future__ import annotations

from kuevent.errors import (
    ActionNotFoundError,
    DevPathNotFoundError,
    NotUtf8Error,
    SeqMissingError,
    SubsystemNotFoundError,
)
from kuevent.events import UEvent
from kuevent.parser import parse_fields


def decode_netlink_packet(packet: bytes) -> UEvent:
    """Decode a packet as received from the uevent broadcast.

    ``ACTION``, ``DEVPATH``, ``SUBSYSTEM`` and ``SEQNUM`` must all be
    present; each missing one raises its own
    :class:`~kuevent.errors.MissingFieldError` subclass.

    Raises:
        NotUtf8Error: *packet* is not UTF-8; nothing else is parsed.
        UEventError:  Any field-level failure from the parser.
    """
    try:
        text = bytes(packet).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise NotUtf8Error() from exc

    partial = parse_fields(text.split("\0"))

    if partial.action is None:
        raise ActionNotFoundError()
    if partial.devpath is None:
        raise DevPathNotFoundError()
    if partial.subsystem is None:
        raise SubsystemNotFoundError()
    if partial.seq is None:
        raise SeqMissingError()

    return UEvent(
        action=partial.action,
        devpath=partial.devpath,
        subsystem=partial.subsystem,
        env=partial.env,
        seq=partial.seq,
    )
