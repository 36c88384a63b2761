"""kuevent - Demo walkthrough.

Runs both decoders end to end without touching the real kernel:
1. Lays out a fake sysfs tree in a temp directory and snapshots it.
2. Replays a device's lifecycle as synthetic netlink datagrams.
3. Feeds a few malformed datagrams to show how each one is rejected.
"""

import logging
import shutil
import tempfile

from kuevent.errors import UEventError
from kuevent.events import ActionType
from kuevent.kuevent_main import format_event
from kuevent.netlink import decode_netlink_packet
from kuevent.simulator import build_packet, create_fake_sysfs
from kuevent.sysfs import snapshot
from utils import banner, clear_terminal, timestamp

DEVPATH = "/devices/platform/serial8250/tty/ttyS6"
ENV = {"MAJOR": "4", "MINOR": "70", "DEVNAME": "ttyS6"}

BAD_PACKETS = [
    ("unknown action", build_packet("hello", DEVPATH, "tty", 1)),
    ("missing SEQNUM", b"add@/d/x\0ACTION=add\0DEVPATH=/d/x\0SUBSYSTEM=tty"),
    ("bad SEQNUM", build_packet("add", DEVPATH, "tty", 1).replace(b"SEQNUM=1", b"SEQNUM=-1")),
    ("binary garbage", b"\xff\xfe\x00ACTION=add"),
]


def run_demo() -> None:
    """Run the full kuevent demonstration."""
    clear_terminal()
    print(banner())
    print("  KUEVENT  -  Kernel uevent decoder")
    print("  Demo Mode")
    print(banner())
    print()

    # Phase 1 - coldplug from a static tree
    target = tempfile.mkdtemp(prefix="kuevent_demo_")
    try:
        create_fake_sysfs(target)
        print(f"[DEMO] [{timestamp()}] Snapshot of fake sysfs at {target}")
        for event in snapshot(target):
            print(format_event(event, show_env=True))
    finally:
        shutil.rmtree(target, ignore_errors=True)
    print()

    # Phase 2 - hotplug lifecycle
    print(f"[DEMO] [{timestamp()}] Replaying a lifecycle for {DEVPATH}")
    for seq, action in enumerate(ActionType, start=3469):
        packet = build_packet(action.value, DEVPATH, "tty", seq, ENV)
        print(format_event(decode_netlink_packet(packet)))
    print()

    # Phase 3 - rejection
    print(f"[DEMO] [{timestamp()}] Malformed datagrams")
    for label, packet in BAD_PACKETS:
        try:
            decode_netlink_packet(packet)
        except UEventError as exc:
            print(f"  {label:<16} -> {type(exc).__name__}: {exc}")

    print(banner())
    print("  Demo complete.")
    print(banner())


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        run_demo()
    except KeyboardInterrupt:
        print("\n[DEMO] Interrupted.")
