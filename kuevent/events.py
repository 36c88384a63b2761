"""
events.py - Shared event schema for kuevent.

Defines the closed set of kobject actions and the canonical UEvent
dataclass that both decoders (netlink and sysfs) produce.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath

from kuevent.errors import UnexpectedActionError


class ActionType(Enum):
    """KObject action types.

    See ``kobject_action`` in include/linux/kobject.h.  The value of each
    member is the token the kernel puts in ``ACTION=``.
    """

    #: A new kobject is added.
    ADD = "add"
    #: A kobject is removed.
    REMOVE = "remove"
    #: The kobject changed its internal state; ``env`` carries the details.
    CHANGE = "change"
    #: The kobject was reparented; ``env`` carries ``DEVPATH_OLD``.
    MOVE = "move"
    #: The device is back online after a successful ``device_offline``.
    ONLINE = "online"
    #: The device is ready to be hot-removed.
    OFFLINE = "offline"
    #: The device is bound to a driver.
    BIND = "bind"
    #: The device is not bound to its driver anymore.
    UNBIND = "unbind"

    @classmethod
    def from_str(cls, token: str) -> ActionType:
        """Return the action named by *token*.

        Matching is exact and case-sensitive.  Anything else raises
        :class:`~kuevent.errors.UnexpectedActionError` carrying *token*.
        """
        try:
            return _ACTIONS_BY_TOKEN[token]
        except (KeyError, TypeError):
            raise UnexpectedActionError(token) from None

    def __str__(self) -> str:
        return self.value


_ACTIONS_BY_TOKEN: dict[str, ActionType] = {a.value: a for a in ActionType}


@dataclass
class UEvent:
    """A fully decoded Linux kernel userspace event.

    Attributes:
        action:    What happened to the kobject.
        devpath:   Complete kernel object path, e.g. ``/devices/virtual/tty/tty0``.
        subsystem: Subsystem originating the event.
        env:       Every ``KEY=VALUE`` pair seen, the four above included.
        seq:       Kernel sequence number (``0`` for sysfs snapshots).
    """

    action: ActionType
    devpath: PurePosixPath
    subsystem: str
    env: dict[str, str]
    seq: int

    def get(self, key: str, default: str | None = None) -> str | None:
        """Shortcut for ``event.env.get(key, default)``."""
        return self.env.get(key, default)
