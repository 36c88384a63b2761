#!/usr/bin/env python3
"""
simulator.py - Fake uevent sources for kuevent testing.

Produces the two kinds of input the decoders consume without needing a
real kernel:
  * kernel-style netlink datagrams (``action@devpath\\0KEY=VALUE\\0...``)
  * a miniature sysfs tree with ``uevent`` files and ``subsystem`` links

Usage
-----
    # Lay out a fake sysfs tree
    python -m kuevent.simulator sysfs --target-dir /tmp/fake_sys

    # Write a raw datagram to a file, then decode it
    python -m kuevent.simulator packet --action add --output pkt.bin
    python -m kuevent.kuevent_main decode pkt.bin
"""

from __future__ import annotations

import argparse
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

# A handful of devices that exist on most machines
SAMPLE_DEVICES = [
    (
        "/devices/platform/serial8250/tty/ttyS6",
        "tty",
        {"MAJOR": "4", "MINOR": "70", "DEVNAME": "ttyS6"},
    ),
    (
        "/devices/virtual/block/loop0",
        "block",
        {"MAJOR": "7", "MINOR": "0", "DEVNAME": "loop0", "DEVTYPE": "disk", "DISKSEQ": "1"},
    ),
    (
        "/devices/virtual/net/lo",
        "net",
        {"INTERFACE": "lo", "IFINDEX": "1"},
    ),
]


def build_packet(
    action: str,
    devpath: str,
    subsystem: str,
    seq: int,
    env: dict[str, str] | None = None,
    header: bool = True,
) -> bytes:
    """Render a datagram the way ``kobject_uevent_env`` does.

    The recognised keys come first, then *env* in insertion order, then
    ``SEQNUM`` last, each terminated by NUL except the final one.
    """
    fields = [f"ACTION={action}", f"DEVPATH={devpath}", f"SUBSYSTEM={subsystem}"]
    fields += [f"{key}={value}" for key, value in (env or {}).items()]
    fields.append(f"SEQNUM={seq}")
    if header:
        fields.insert(0, f"{action}@{devpath}")
    return "\0".join(fields).encode("utf-8")


def create_device(
    mountpoint: str | os.PathLike[str],
    devpath: str,
    subsystem: str,
    env: dict[str, str] | None = None,
) -> Path:
    """Create ``<mountpoint><devpath>`` with a ``uevent`` file and ``subsystem`` link.

    The link points at ``<mountpoint>/class/<subsystem>`` using a relative
    target, as the kernel does.  Returns the device directory.
    """
    root = Path(mountpoint)
    device_dir = root / devpath.lstrip("/")
    device_dir.mkdir(parents=True, exist_ok=True)

    class_dir = root / "class" / subsystem
    class_dir.mkdir(parents=True, exist_ok=True)

    lines = [f"{key}={value}" for key, value in (env or {}).items()]
    (device_dir / "uevent").write_text("".join(line + "\n" for line in lines))

    link = device_dir / "subsystem"
    if link.is_symlink():
        link.unlink()
    link.symlink_to(os.path.relpath(class_dir, device_dir))
    return device_dir


def create_fake_sysfs(target_dir: str | os.PathLike[str]) -> list[Path]:
    """Populate *target_dir* with :data:`SAMPLE_DEVICES`."""
    os.makedirs(target_dir, exist_ok=True)
    logger.info("Creating fake sysfs in: %s", target_dir)
    created = [
        create_device(target_dir, devpath, subsystem, env)
        for devpath, subsystem, env in SAMPLE_DEVICES
    ]
    logger.info("Created %d device(s).", len(created))
    return created


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="kuevent-simulator",
        description="Generate fake sysfs trees or raw uevent datagrams.",
    )
    sub = parser.add_subparsers(dest="mode", required=True)

    sysfs_p = sub.add_parser("sysfs", help="Lay out a fake sysfs tree.")
    sysfs_p.add_argument(
        "--target-dir",
        default=None,
        help="Directory to create (default: auto-created temp dir).",
    )

    packet_p = sub.add_parser("packet", help="Write one raw netlink datagram.")
    packet_p.add_argument("--action", default="add", help="ACTION token (default: add).")
    packet_p.add_argument(
        "--devpath",
        default=SAMPLE_DEVICES[0][0],
        help="DEVPATH value (default: %(default)s).",
    )
    packet_p.add_argument("--subsystem", default="tty", help="SUBSYSTEM value (default: tty).")
    packet_p.add_argument("--seq", type=int, default=1, help="SEQNUM value (default: 1).")
    packet_p.add_argument(
        "--env",
        nargs="*",
        default=[],
        metavar="KEY=VALUE",
        help="Extra fields to include.",
    )
    packet_p.add_argument("--output", required=True, help="File to write the datagram to.")

    args = parser.parse_args(argv)

    if args.mode == "sysfs":
        target = args.target_dir or tempfile.mkdtemp(prefix="kuevent_sys_")
        create_fake_sysfs(target)
        logger.info("Files remain in: %s", target)
    else:
        env = dict(item.partition("=")[::2] for item in args.env)
        packet = build_packet(args.action, args.devpath, args.subsystem, args.seq, env)
        Path(args.output).write_bytes(packet)
        logger.info("Wrote %d bytes to %s", len(packet), args.output)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    main()
