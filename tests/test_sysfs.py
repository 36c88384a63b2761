"""Tests for decoding sysfs snapshots and walking a sysfs tree."""

import errno
import logging
import os
from pathlib import PurePosixPath

import pytest

from kuevent.errors import (
    NotInsideMountpointError,
    SubsystemNotFoundError,
    UEventIOError,
    UnexpectedActionError,
)
from kuevent.events import ActionType
from kuevent.simulator import create_device
from kuevent.sysfs import decode_sysfs_entry, scan_devices, snapshot

TTY = "/devices/platform/serial8250/tty/ttyS6"


class TestDecodeSysfsEntry:
    def test_decodes_device(self, sysfs_root):
        event = decode_sysfs_entry(sysfs_root / TTY.lstrip("/"), sysfs_root)
        assert event.action is ActionType.ADD
        assert event.devpath == PurePosixPath(TTY)
        assert event.subsystem == "tty"
        assert event.seq == 0
        assert event.env == {"MAJOR": "4", "MINOR": "70", "DEVNAME": "ttyS6"}

    def test_accepts_string_paths(self, sysfs_root):
        event = decode_sysfs_entry(str(sysfs_root / "devices/virtual/net/lo"), str(sysfs_root))
        assert event.subsystem == "net"
        assert event.devpath == PurePosixPath("/devices/virtual/net/lo")

    def test_action_and_seqnum_in_file_are_ignored(self, sysfs_root):
        device = create_device(
            sysfs_root, "/devices/x", "tty", {"ACTION": "remove", "SEQNUM": "55", "MAJOR": "1"}
        )
        event = decode_sysfs_entry(device, sysfs_root)
        assert event.action is ActionType.ADD
        assert event.seq == 0
        assert event.devpath == PurePosixPath("/devices/x")
        assert event.env == {"ACTION": "remove", "SEQNUM": "55", "MAJOR": "1"}

    def test_devpath_and_subsystem_come_from_the_tree(self, sysfs_root):
        device = create_device(
            sysfs_root, "/devices/y", "tty", {"DEVPATH": "/bogus", "SUBSYSTEM": "bogus"}
        )
        event = decode_sysfs_entry(device, sysfs_root)
        assert event.devpath == PurePosixPath("/devices/y")
        assert event.subsystem == "tty"
        assert event.env["DEVPATH"] == "/bogus"

    def test_invalid_action_in_file_still_fails(self, sysfs_root):
        device = create_device(sysfs_root, "/devices/z", "tty", {"ACTION": "hello"})
        with pytest.raises(UnexpectedActionError):
            decode_sysfs_entry(device, sysfs_root)

    def test_symlinked_directory_is_canonicalised(self, sysfs_root):
        link = sysfs_root / "class" / "tty" / "ttyS6"
        link.symlink_to(os.path.relpath(sysfs_root / TTY.lstrip("/"), link.parent))
        event = decode_sysfs_entry(link, sysfs_root)
        assert event.devpath == PurePosixPath(TTY)

    def test_dotdot_is_resolved(self, sysfs_root):
        device = sysfs_root / "devices" / "virtual" / "net" / ".." / "block" / "loop0"
        assert decode_sysfs_entry(device, sysfs_root).devpath == PurePosixPath(
            "/devices/virtual/block/loop0"
        )

    def test_mountpoint_itself_becomes_root(self, tmp_path):
        root = tmp_path.resolve()
        (root / "uevent").write_text("")
        (root / "subsystem").symlink_to("class/tty")
        assert decode_sysfs_entry(root, root).devpath == PurePosixPath("/")

    def test_outside_mountpoint(self, tmp_path, sysfs_root):
        elsewhere = create_device(tmp_path.resolve() / "elsewhere", "/devices/x", "tty")
        with pytest.raises(NotInsideMountpointError) as exc_info:
            decode_sysfs_entry(elsewhere, sysfs_root)
        assert exc_info.value.path == elsewhere

    def test_missing_uevent_file(self, sysfs_root):
        device = sysfs_root / "devices" / "empty"
        device.mkdir()
        with pytest.raises(UEventIOError) as exc_info:
            decode_sysfs_entry(device, sysfs_root)
        assert isinstance(exc_info.value, OSError)
        assert exc_info.value.errno == errno.ENOENT
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_missing_subsystem_link(self, sysfs_root):
        device = sysfs_root / "devices" / "nolink"
        device.mkdir()
        (device / "uevent").write_text("MAJOR=1\n")
        with pytest.raises(UEventIOError):
            decode_sysfs_entry(device, sysfs_root)

    def test_subsystem_not_a_link(self, sysfs_root):
        device = sysfs_root / "devices" / "plain"
        device.mkdir()
        (device / "uevent").write_text("")
        (device / "subsystem").write_text("tty")
        with pytest.raises(UEventIOError) as exc_info:
            decode_sysfs_entry(device, sysfs_root)
        assert exc_info.value.errno == errno.EINVAL

    def test_uevent_file_not_utf8(self, sysfs_root):
        device = create_device(sysfs_root, "/devices/binary", "tty")
        (device / "uevent").write_bytes(b"DEVNAME=\xff\n")
        with pytest.raises(UEventIOError) as exc_info:
            decode_sysfs_entry(device, sysfs_root)
        assert exc_info.value.errno == errno.EILSEQ
        assert exc_info.value.filename == str(device / "uevent")
        assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    def test_bare_carriage_return_stays_in_value(self, sysfs_root):
        device = create_device(sysfs_root, "/devices/cr", "tty")
        (device / "uevent").write_bytes(b"NAME=a\rb\nMAJOR=1\n")
        assert decode_sysfs_entry(device, sysfs_root).env == {"NAME": "a\rb", "MAJOR": "1"}

    def test_crlf_line_endings(self, sysfs_root):
        device = create_device(sysfs_root, "/devices/crlf", "tty")
        (device / "uevent").write_bytes(b"MAJOR=1\r\nMINOR=2\r\n")
        assert decode_sysfs_entry(device, sysfs_root).env == {"MAJOR": "1", "MINOR": "2"}

    @pytest.mark.parametrize("target", ["/", "..", "../.."])
    def test_subsystem_link_without_name(self, sysfs_root, target):
        device = sysfs_root / "devices" / "noname"
        device.mkdir()
        (device / "uevent").write_text("")
        (device / "subsystem").symlink_to(target)
        with pytest.raises(SubsystemNotFoundError):
            decode_sysfs_entry(device, sysfs_root)

    def test_dangling_subsystem_link_is_fine(self, sysfs_root):
        device = sysfs_root / "devices" / "dangling"
        device.mkdir()
        (device / "uevent").write_text("")
        (device / "subsystem").symlink_to("../../bus/gone")
        assert decode_sysfs_entry(device, sysfs_root).subsystem == "gone"


class TestScan:
    def test_scan_devices_in_order(self, sysfs_root):
        found = [path.relative_to(sysfs_root).as_posix() for path in scan_devices(sysfs_root)]
        assert found == [
            "devices/platform/serial8250/tty/ttyS6",
            "devices/virtual/block/loop0",
            "devices/virtual/net/lo",
        ]

    def test_scan_without_devices_dir(self, tmp_path):
        assert list(scan_devices(tmp_path)) == []

    def test_snapshot(self, sysfs_root):
        events = list(snapshot(sysfs_root))
        assert [e.subsystem for e in events] == ["tty", "block", "net"]
        assert all(e.action is ActionType.ADD and e.seq == 0 for e in events)

    def test_snapshot_skips_broken_entries(self, sysfs_root, caplog):
        create_device(sysfs_root, "/devices/broken", "tty", {"SEQNUM": "nope"})
        with caplog.at_level(logging.WARNING, logger="kuevent.sysfs"):
            events = list(snapshot(sysfs_root))
        assert len(events) == 3
        assert "Skipping" in caplog.text
