#!/usr/bin/env python3
"""
kuevent_main.py - CLI entry point for kuevent.

Sub-commands
------------
listen    Subscribe to the kernel's uevent broadcast and log every
          event until interrupted.

snapshot  Walk a sysfs mount and print every device as an ``add`` event.

decode    Decode one raw netlink datagram read from a file or stdin.

Usage
-----
    # Watch live events (no privileges needed for the kernel group)
    python -m kuevent.kuevent_main listen --subsystem block

    # Coldplug-style listing of existing devices
    python -m kuevent.kuevent_main snapshot --mountpoint /sys --env

    # Decode a captured datagram
    python -m kuevent.kuevent_main decode packet.bin
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from kuevent.errors import UEventError
from kuevent.events import UEvent
from kuevent.netlink import decode_netlink_packet
from kuevent.sysfs import DEFAULT_MOUNTPOINT, snapshot

logger = logging.getLogger("kuevent")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def format_event(event: UEvent, show_env: bool = False) -> str:
    """Render *event* as one summary line, plus its fields if *show_env*."""
    line = f"{event.seq} {event.action} {event.devpath} ({event.subsystem})"
    if not show_env:
        return line
    fields = [f"    {key}={value}" for key, value in sorted(event.env.items())]
    return "\n".join([line, *fields])


# ---------------------------------------------------------------------------
# Listen sub-command
# ---------------------------------------------------------------------------

def cmd_listen(args: argparse.Namespace) -> int:
    """Print live kernel uevents until Ctrl+C."""
    from kuevent.monitor import start as monitor_start, stop as monitor_stop

    subsystems = set(args.subsystem or [])

    def _on_event(event: UEvent) -> None:
        if subsystems and event.subsystem not in subsystems:
            return
        print(format_event(event, args.env), flush=True)

    logger.info("=== kuevent listen ===")
    if subsystems:
        logger.info("Subsystems: %s", ", ".join(sorted(subsystems)))

    try:
        monitor_start(callback=_on_event, groups=args.groups, buffer_size=args.buffer_size)
    except OSError as exc:
        logger.error("Cannot open the uevent socket: %s", exc)
        return 1

    logger.info("Listening …  Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
    finally:
        monitor_stop()
    return 0


# ---------------------------------------------------------------------------
# Snapshot sub-command
# ---------------------------------------------------------------------------

def cmd_snapshot(args: argparse.Namespace) -> int:
    """Print every device under the sysfs mountpoint."""
    mountpoint = Path(args.mountpoint)
    if not mountpoint.is_dir():
        logger.error("Mountpoint not found: %s", mountpoint)
        return 1

    subsystems = set(args.subsystem or [])
    for event in snapshot(mountpoint):
        if subsystems and event.subsystem not in subsystems:
            continue
        print(format_event(event, args.env))
    return 0


# ---------------------------------------------------------------------------
# Decode sub-command
# ---------------------------------------------------------------------------

def cmd_decode(args: argparse.Namespace) -> int:
    """Decode one datagram from a file, or stdin when the path is ``-``."""
    if args.path == "-":
        packet = sys.stdin.buffer.read()
    else:
        try:
            packet = Path(args.path).read_bytes()
        except OSError as exc:
            logger.error("Cannot read %s: %s", args.path, exc)
            return 1

    try:
        event = decode_netlink_packet(packet)
    except UEventError as exc:
        logger.error("Cannot decode %s: %s", args.path, exc)
        return 1

    print(format_event(event, args.env))
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="kuevent",
        description="kuevent: Linux kernel uevent decoder.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- listen --
    listen_p = sub.add_parser("listen", help="Print live kernel uevents.")
    listen_p.add_argument(
        "--groups",
        type=lambda value: int(value, 0),
        default=1,
        help="Netlink multicast group mask (default: 1, kernel events).",
    )
    listen_p.add_argument(
        "--buffer-size",
        type=int,
        default=8192,
        help="Receive buffer size in bytes (default: 8192).",
    )

    # -- snapshot --
    snapshot_p = sub.add_parser("snapshot", help="List devices found in sysfs.")
    snapshot_p.add_argument(
        "--mountpoint",
        default=DEFAULT_MOUNTPOINT,
        help=f"Where sysfs is mounted (default: {DEFAULT_MOUNTPOINT}).",
    )

    # -- decode --
    decode_p = sub.add_parser("decode", help="Decode a raw netlink datagram.")
    decode_p.add_argument("path", help="File holding the datagram, or '-' for stdin.")

    for p in (listen_p, snapshot_p, decode_p):
        p.add_argument(
            "--env",
            action="store_true",
            help="Also print every KEY=VALUE field.",
        )
    for p in (listen_p, snapshot_p):
        p.add_argument(
            "--subsystem",
            nargs="+",
            default=None,
            help="Only show events from these subsystems.",
        )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Parse CLI args and dispatch to the appropriate sub-command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=_LOG_FORMAT,
    )

    if args.command == "listen":
        return cmd_listen(args)
    if args.command == "snapshot":
        return cmd_snapshot(args)
    return cmd_decode(args)


if __name__ == "__main__":
    sys.exit(main())
