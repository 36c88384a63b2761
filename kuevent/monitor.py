"""
monitor.py - Live kernel uevent listener for kuevent.

Opens a ``NETLINK_KOBJECT_UEVENT`` socket, decodes every datagram with
:func:`kuevent.netlink.decode_netlink_packet` and hands the resulting
``UEvent`` objects to a callback from a background thread.

Public API
----------
start(callback, groups, buffer_size)
    Begin listening.  Returns immediately.

stop()
    Stop the listener thread and close the socket.

handle_datagram(packet, callback)
    Decode one datagram and deliver it; used by the listener loop.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable

from kuevent.errors import UEventError
from kuevent.events import UEvent
from kuevent.netlink import decode_netlink_packet

logger = logging.getLogger(__name__)

# From include/uapi/linux/netlink.h; not exported by the socket module.
NETLINK_KOBJECT_UEVENT = 15

#: Multicast group of raw kernel events.  Group 2 carries udev's copies.
KERNEL_GROUP = 1

# udev re-broadcasts start with this magic and a binary header
_LIBUDEV_MAGIC = b"libudev\0"

_POLL_INTERVAL = 0.5

# ---------------------------------------------------------------------------
# Global listener (so stop() can halt it from anywhere)
# ---------------------------------------------------------------------------
_listener: _ListenerThread | None = None


def handle_datagram(packet: bytes, callback: Callable[[UEvent], None]) -> UEvent | None:
    """Decode *packet* and pass the event to *callback*.

    Returns the delivered event, or ``None`` if the packet was skipped.
    Decoding failures are logged and skipped; so are exceptions raised
    by *callback*.
    """
    if packet.startswith(_LIBUDEV_MAGIC):
        logger.debug("Ignoring libudev packet (%d bytes)", len(packet))
        return None

    try:
        event = decode_netlink_packet(packet)
    except UEventError as exc:
        logger.warning("Dropping malformed uevent (%d bytes): %s", len(packet), exc)
        return None

    try:
        callback(event)
    except Exception:
        logger.exception("Callback raised an exception for event: %s", event)
    return event


def open_socket(groups: int = KERNEL_GROUP) -> socket.socket:
    """Open and bind a uevent netlink socket subscribed to *groups*."""
    sock = socket.socket(socket.AF_NETLINK, socket.SOCK_DGRAM, NETLINK_KOBJECT_UEVENT)
    try:
        # port id 0 lets the kernel pick one
        sock.bind((0, groups))
    except OSError:
        sock.close()
        raise
    return sock


class _ListenerThread(threading.Thread):
    """Receives datagrams until :meth:`halt` is called."""

    def __init__(
        self,
        sock: socket.socket,
        callback: Callable[[UEvent], None],
        buffer_size: int,
    ) -> None:
        super().__init__(name="kuevent-listener", daemon=True)
        self._sock = sock
        self._callback = callback
        self._buffer_size = buffer_size
        self._stopping = threading.Event()
        self._sock.settimeout(_POLL_INTERVAL)

    def run(self) -> None:
        while not self._stopping.is_set():
            try:
                packet = self._sock.recv(self._buffer_size)
            except socket.timeout:
                continue
            except OSError:
                if self._stopping.is_set():
                    break
                logger.exception("Receiving from the uevent socket failed")
                break
            handle_datagram(packet, self._callback)

    def halt(self, timeout: float = 5.0) -> None:
        self._stopping.set()
        self.join(timeout=timeout)
        self._sock.close()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def start(
    callback: Callable[[UEvent], None],
    groups: int = KERNEL_GROUP,
    buffer_size: int = 8192,
) -> None:
    """Start listening for kernel uevents.

    Each datagram is decoded into a :class:`UEvent` and passed to
    *callback*.  This function **does not block**: it starts a daemon
    thread.  Calling it while a listener is running restarts it.

    Args:
        callback:    Function that receives a ``UEvent``.
        groups:      Netlink multicast group mask (default: kernel events).
        buffer_size: Maximum datagram size to receive.
    """
    global _listener  # noqa: PLW0603

    if _listener is not None:
        stop()

    sock = open_socket(groups)
    _listener = _ListenerThread(sock, callback, buffer_size)
    _listener.start()
    logger.info("Listener started (groups=%#x, buffer=%d).", groups, buffer_size)


def stop() -> None:
    """Stop the listener thread."""
    global _listener  # noqa: PLW0603
    if _listener is not None:
        _listener.halt(timeout=5)
        _listener = None
        logger.info("Listener stopped.")
