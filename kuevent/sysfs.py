"""
sysfs.py - Build uevents from a static sysfs snapshot.

``decode_sysfs_entry`` reads one device directory (its ``uevent`` file
and ``subsystem`` link) and presents it as if the device had just been
added, the way coldplug tools replay existing devices at boot.

``scan_devices`` and ``snapshot`` walk a whole sysfs mount and are
meant for callers that want every device at once.
"""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterator

from kuevent.errors import (
    NotInsideMountpointError,
    SubsystemNotFoundError,
    UEventError,
    UEventIOError,
)
from kuevent.events import ActionType, UEvent
from kuevent.parser import parse_fields

logger = logging.getLogger(__name__)

DEFAULT_MOUNTPOINT = "/sys"


def _split_lines(text: str) -> list[str]:
    """Split on ``\\n``, dropping one ``\\r`` right before each break."""
    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def decode_sysfs_entry(
    device_dir: str | os.PathLike[str],
    mountpoint: str | os.PathLike[str] = DEFAULT_MOUNTPOINT,
) -> UEvent:
    """Read *device_dir* and return it as an ``add`` :class:`UEvent`.

    ``ACTION`` and ``SEQNUM`` found in the ``uevent`` file are kept in
    ``env`` but otherwise ignored: the action is always ``ADD`` and the
    sequence number is always ``0``.  The subsystem is the name of the
    ``subsystem`` link target, and the devpath is the canonical
    *device_dir* re-rooted at ``/`` relative to *mountpoint*.

    Raises:
        UEventIOError:            The file or the link cannot be read, or the
                                  file is not UTF-8 (``EILSEQ``).
        SubsystemNotFoundError:   The link target has no final component.
        NotInsideMountpointError: *device_dir* resolves outside *mountpoint*.
        UEventError:              Any field-level failure from the parser.
    """
    path = Path(device_dir)
    uevent_file = path / "uevent"
    try:
        contents = uevent_file.read_bytes().decode("utf-8")
        subsystem_link = os.readlink(path / "subsystem")
    except OSError as exc:
        raise UEventIOError.wrap(exc) from exc
    except UnicodeDecodeError as exc:
        raise UEventIOError(errno.EILSEQ, "uevent file is not UTF-8", str(uevent_file)) from exc

    env = parse_fields(_split_lines(contents)).env

    try:
        canonical = path.resolve(strict=True)
    except OSError as exc:
        raise UEventIOError.wrap(exc) from exc
    try:
        relative = canonical.relative_to(mountpoint)
    except ValueError:
        raise NotInsideMountpointError(canonical, Path(mountpoint)) from None
    # <mountpoint>/devices/x becomes /devices/x, as DEVPATH= carries it
    devpath = PurePosixPath("/") / relative.as_posix()

    subsystem = PurePosixPath(subsystem_link).name
    if subsystem in ("", ".."):
        raise SubsystemNotFoundError()

    return UEvent(
        action=ActionType.ADD,
        devpath=devpath,
        subsystem=subsystem,
        env=env,
        seq=0,
    )


def scan_devices(mountpoint: str | os.PathLike[str] = DEFAULT_MOUNTPOINT) -> Iterator[Path]:
    """Yield every device directory under ``<mountpoint>/devices``.

    A device directory holds a ``uevent`` file and a ``subsystem`` link.
    Symlinked directories are not followed, so each device shows up once.
    """
    root = Path(mountpoint) / "devices"
    if not root.is_dir():
        logger.warning("No devices directory under %s", mountpoint)
        return

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        if "uevent" in filenames and os.path.islink(os.path.join(dirpath, "subsystem")):
            yield Path(dirpath)


def snapshot(mountpoint: str | os.PathLike[str] = DEFAULT_MOUNTPOINT) -> Iterator[UEvent]:
    """Decode every device found by :func:`scan_devices`.

    Entries that fail to decode are logged and skipped; devices may
    disappear while the tree is being walked.
    """
    count = 0
    for device_dir in scan_devices(mountpoint):
        try:
            event = decode_sysfs_entry(device_dir, mountpoint)
        except UEventError as exc:
            logger.warning("Skipping %s: %s", device_dir, exc)
            continue
        count += 1
        yield event
    logger.info("Snapshot of %s: %d device(s)", mountpoint, count)
