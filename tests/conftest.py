"""Shared fixtures for the kuevent test suite."""

from __future__ import annotations

import pytest

from kuevent.simulator import create_fake_sysfs


@pytest.fixture
def sysfs_root(tmp_path):
    """A fake sysfs mount populated with the simulator's sample devices."""
    root = (tmp_path / "sys").resolve()
    create_fake_sysfs(root)
    return root
