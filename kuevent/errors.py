"""
errors.py - Failure modes of uevent decoding.

Every decoder raises a subclass of :class:`UEventError`; callers pick
whether a given failure skips the record or aborts their loop.
"""

from __future__ import annotations

from pathlib import PurePath


class UEventError(Exception):
    """Base class for all uevent decoding failures."""


class UnexpectedActionError(UEventError):
    """``ACTION=`` carried a token outside the kernel's vocabulary."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Unexpected action: {token}")
        self.token = token


class InvalidDevPathError(UEventError):
    """``DEVPATH=`` cannot be represented as a path."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid DEVPATH: {value!r}")
        self.value = value


class InvalidSeqNumError(UEventError):
    """``SEQNUM=`` is not an unsigned 64-bit decimal integer."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Unexpected SEQNUM: {value}")
        self.value = value


class UEventIOError(UEventError, OSError):
    """Reading a sysfs entry failed.

    Carries the ``errno``, ``strerror`` and ``filename`` of the wrapped
    :class:`OSError`, which is also chained as ``__cause__``.
    """

    @classmethod
    def wrap(cls, exc: OSError) -> UEventIOError:
        if exc.errno is None:
            return cls(*exc.args)
        return cls(exc.errno, exc.strerror, exc.filename)


class NotInsideMountpointError(UEventError):
    """The canonical device directory is not below the sysfs mountpoint."""

    def __init__(self, path: PurePath, mountpoint: PurePath) -> None:
        super().__init__(f"Path not inside mountpoint: {path} (mountpoint {mountpoint})")
        self.path = path
        self.mountpoint = mountpoint


class NotUtf8Error(UEventError):
    """A netlink packet is not valid UTF-8 text."""

    def __init__(self) -> None:
        super().__init__("Packet not UTF-8")


class MissingFieldError(UEventError):
    """A field required to build a :class:`~kuevent.events.UEvent` is absent."""

    field = ""

    def __init__(self) -> None:
        super().__init__(f"{self.field} not found")


class ActionNotFoundError(MissingFieldError):
    field = "action"


class DevPathNotFoundError(MissingFieldError):
    field = "devpath"


class SubsystemNotFoundError(MissingFieldError):
    field = "subsystem"


class SeqMissingError(MissingFieldError):
    field = "seq"

    def __init__(self) -> None:
        UEventError.__init__(self, "seq missing")
