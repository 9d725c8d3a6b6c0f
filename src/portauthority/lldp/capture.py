"""
LLDP capture.

Finds the capture device belonging to the selected network adapter and
waits for one LLDP frame on it.

Note: Requires root/admin privileges to capture raw frames.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from portauthority.exceptions import CaptureError
from portauthority.interfaces import format_mac
from portauthority.models import DLT_EN10MB, RawFrame

logger = logging.getLogger(__name__)


LLDP_MULTICAST = "01:80:c2:00:00:0e"
LLDP_FILTER = f"ether dst {LLDP_MULTICAST}"
DEFAULT_OPEN_TIMEOUT_MS = 4000

# pcap DLT for anything we can't identify
DLT_UNKNOWN = -1


class CaptureDevice(ABC):
    """A capture-capable network device."""

    name: str

    @property
    @abstractmethod
    def mac_address(self) -> str:
        """Hardware address of the device (any case, colon separated)."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the device is currently open."""

    @abstractmethod
    def open(self, promiscuous: bool = True, timeout_ms: int = DEFAULT_OPEN_TIMEOUT_MS) -> None:
        """Open the device for capture.

        Args:
            promiscuous: Deliver all frames, not just those addressed to us
            timeout_ms: Read timeout used when a read doesn't specify one
        """

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call on a closed device."""

    @abstractmethod
    def set_filter(self, expression: str) -> None:
        """Install a BPF filter expression."""

    @abstractmethod
    def read_next(self, timeout: float | None = None) -> RawFrame | None:
        """Block for the next frame; None if the read timed out."""


class ScapyCaptureDevice(CaptureDevice):
    """Capture device backed by a scapy layer-2 listening socket."""

    def __init__(self, name: str):
        self.name = name
        self._socket = None
        self._promiscuous = True
        self._timeout_ms = DEFAULT_OPEN_TIMEOUT_MS
        self._filter: str | None = None

    def __repr__(self) -> str:
        return f"<ScapyCaptureDevice {self.name} open={self.is_open}>"

    @property
    def mac_address(self) -> str:
        from scapy.all import get_if_hwaddr
        from scapy.error import Scapy_Exception

        try:
            return get_if_hwaddr(self.name)
        except (OSError, Scapy_Exception) as e:
            logger.debug("No hardware address for %s: %s", self.name, e)
            return ""

    @property
    def is_open(self) -> bool:
        return self._socket is not None

    def _listen(self):
        from scapy.all import conf
        from scapy.error import Scapy_Exception

        kwargs = {"iface": self.name, "promisc": self._promiscuous}
        if self._filter:
            kwargs["filter"] = self._filter
        try:
            return conf.L2listen(**kwargs)
        except PermissionError:
            raise
        except (OSError, Scapy_Exception) as e:
            raise CaptureError(f"Unable to open capture on {self.name}: {e}") from e

    def open(self, promiscuous: bool = True, timeout_ms: int = DEFAULT_OPEN_TIMEOUT_MS) -> None:
        if self._socket is not None:
            return
        self._promiscuous = promiscuous
        self._timeout_ms = timeout_ms
        self._socket = self._listen()
        logger.debug("Opened %s (promiscuous=%s)", self.name, promiscuous)

    def close(self) -> None:
        if self._socket is None:
            return
        try:
            self._socket.close()
        finally:
            self._socket = None
            logger.debug("Closed %s", self.name)

    def set_filter(self, expression: str) -> None:
        self._filter = expression
        if self._socket is not None:
            # BPF programs are attached when the socket is created
            self._socket.close()
            self._socket = None
            self._socket = self._listen()

    def read_next(self, timeout: float | None = None) -> RawFrame | None:
        from scapy.all import sniff
        from scapy.layers.l2 import Ether

        if self._socket is None:
            raise CaptureError(f"Capture device {self.name} is not open")

        if timeout is None:
            timeout = self._timeout_ms / 1000.0

        try:
            packets = sniff(opened_socket=self._socket, count=1, timeout=timeout)
        except OSError as e:
            raise CaptureError(f"Read failed on {self.name}: {e}") from e

        if not packets:
            return None

        packet = packets[0]
        link_type = DLT_EN10MB if isinstance(packet, Ether) else DLT_UNKNOWN
        return RawFrame(data=bytes(packet), link_type=link_type, timestamp=float(packet.time))


class CaptureSession:
    """An open capture device matched to the selected adapter."""

    def __init__(self, device: CaptureDevice):
        self.device = device
        self._closed = False

    def __repr__(self) -> str:
        return f"<CaptureSession {self.device.name} closed={self._closed}>"

    @property
    def name(self) -> str:
        return self.device.name

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.device.close()

    def __enter__(self) -> "CaptureSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def list_capture_devices() -> list[CaptureDevice]:
    """List every capture-capable device on this host."""
    from scapy.all import get_if_list

    return [ScapyCaptureDevice(name) for name in get_if_list()]


def _normalize_mac(value: str | bytes) -> str:
    if isinstance(value, (bytes, bytearray)):
        return format_mac(bytes(value))
    return value.strip().upper()


def open_matching_device(
    target_mac: str | bytes,
    devices: Iterable[CaptureDevice] | None = None,
    timeout_ms: int = DEFAULT_OPEN_TIMEOUT_MS,
) -> CaptureSession | None:
    """Find and open the capture device whose MAC matches the adapter.

    Every device is opened in promiscuous mode, its MAC compared, and
    closed again unless it matches, so at most one non-matching device is
    ever open. The whole list is scanned; if several devices match, the
    last one wins and earlier matches are closed.

    Args:
        target_mac: MAC of the selected adapter (comparison ignores case)
        devices: Devices to scan (default: all capture devices)
        timeout_ms: Read timeout to open devices with

    Returns:
        An open CaptureSession, or None if no device matches
    """
    target = _normalize_mac(target_mac)
    if devices is None:
        devices = list_capture_devices()

    session: CaptureSession | None = None
    scanned = 0

    try:
        for device in devices:
            scanned += 1
            try:
                device.open(promiscuous=True, timeout_ms=timeout_ms)
            except (CaptureError, PermissionError) as e:
                logger.warning("Skipping capture device %s: %s", device.name, e)
                continue

            try:
                device_mac = _normalize_mac(device.mac_address)
            except CaptureError as e:
                logger.warning("Could not read MAC of %s: %s", device.name, e)
                device.close()
                continue
            except BaseException:
                device.close()
                raise

            if device_mac and device_mac == target:
                previous, session = session, CaptureSession(device)
                if previous is not None:
                    logger.debug("%s also matches %s, replacing %s", device.name, target, previous.name)
                    previous.close()
            else:
                device.close()
    except BaseException:
        close(session)
        raise

    if session is None:
        logger.info("No capture device matches %s (%d scanned)", target, scanned)
    else:
        logger.info("Matched %s to capture device %s", target, session.name)
    return session


def capture_one(
    session: CaptureSession,
    link_filter: str = LLDP_FILTER,
    timeout: float | None = None,
) -> RawFrame | None:
    """Wait for a single frame matching the filter.

    One blocking read; there is no loop over candidate frames.

    Args:
        session: Open capture session
        link_filter: BPF expression (default: frames to the LLDP multicast MAC)
        timeout: Seconds to wait (default: the device's read timeout)

    Returns:
        The frame, or None if nothing arrived before the timeout
    """
    if session.closed:
        raise CaptureError(f"Capture session on {session.name} is closed")

    session.device.set_filter(link_filter)
    frame = session.device.read_next(timeout)

    if frame is None:
        logger.info("No frame matching %r on %s before timeout", link_filter, session.name)
    else:
        logger.debug("Captured %d byte frame on %s", len(frame), session.name)
    return frame


def close(session: CaptureSession | None) -> None:
    """Release a capture session, if any."""
    if session is not None:
        session.close()
