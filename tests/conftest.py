"""Shared fixtures: synthetic LLDP frames and fake capture devices."""

import socket
import struct

import pytest

from portauthority.exceptions import CaptureError
from portauthority.interfaces import NetworkInterface, UnicastAddress
from portauthority.lldp.capture import CaptureDevice
from portauthority.models import OperationalStatus, RawFrame

LLDP_DST = bytes.fromhex("0180c200000e")
HOST_MAC = bytes.fromhex("aabbccddeeff")
SWITCH_MAC = bytes.fromhex("001122334455")


def tlv(tlv_type: int, value: bytes) -> bytes:
    return struct.pack(">H", (tlv_type << 9) | len(value)) + value


def lldp_frame(*tlvs: bytes, dst: bytes = LLDP_DST, ethertype: int = 0x88CC, vlan: int | None = None) -> bytes:
    header = dst + SWITCH_MAC
    if vlan is not None:
        header += struct.pack(">HH", 0x8100, vlan)
    return header + struct.pack(">H", ethertype) + b"".join(tlvs) + tlv(0, b"")


def switch_tlvs(system_name: bytes = b"SwitchName", port: bytes = b"Gi1/0/24",
                port_id: bytes | None = None) -> list[bytes]:
    """TLVs in the order the access switches send them.

    Index 3 carries the system name and index 6 the interface name.
    """
    if port_id is None:
        port_id = b"\x05" + port
    return [
        tlv(1, b"\x04" + SWITCH_MAC),           # 0 chassis ID
        tlv(2, port_id),                        # 1 port ID
        tlv(3, b"\x00\x78"),                    # 2 TTL
        tlv(5, system_name),                    # 3 system name
        tlv(6, b"Cisco IOS Software, C2960"),   # 4 system description
        tlv(7, b"\x00\x14\x00\x04"),            # 5 capabilities
        tlv(4, port),                           # 6 port description
    ]


def switch_frame(**kwargs) -> RawFrame:
    return RawFrame(data=lldp_frame(*switch_tlvs(**kwargs)))


class OpenTracker:
    """Counts how many fake devices are open at once."""

    def __init__(self):
        self.open = 0
        self.max_open = 0

    def opened(self):
        self.open += 1
        self.max_open = max(self.max_open, self.open)

    def closed(self):
        self.open -= 1


class FakeCaptureDevice(CaptureDevice):
    def __init__(self, name, mac, frames=(), fail_open=None, fail_read=None, tracker=None):
        self.name = name
        self._mac = mac
        self.frames = list(frames)
        self.fail_open = fail_open
        self.fail_read = fail_read
        self.tracker = tracker
        self._open = False
        self.open_count = 0
        self.promiscuous = None
        self.timeout_ms = None
        self.filters = []
        self.read_timeouts = []

    @property
    def mac_address(self):
        return self._mac

    @property
    def is_open(self):
        return self._open

    def open(self, promiscuous=True, timeout_ms=4000):
        if self.fail_open is not None:
            raise self.fail_open
        if self._open:
            return
        self._open = True
        self.open_count += 1
        self.promiscuous = promiscuous
        self.timeout_ms = timeout_ms
        if self.tracker:
            self.tracker.opened()

    def close(self):
        if not self._open:
            return
        self._open = False
        if self.tracker:
            self.tracker.closed()

    def set_filter(self, expression):
        self.filters.append(expression)

    def read_next(self, timeout=None):
        if not self._open:
            raise CaptureError(f"{self.name} is not open")
        self.read_timeouts.append(timeout)
        if self.fail_read is not None:
            raise self.fail_read
        if self.frames:
            return self.frames.pop(0)
        return None


@pytest.fixture
def host_interface():
    return NetworkInterface(
        name="eth0",
        physical_address=HOST_MAC,
        unicast_addresses=[
            UnicastAddress(socket.AF_INET6, "fe80::a8bb:ccff:fedd:eeff"),
            UnicastAddress(socket.AF_INET, "10.20.30.40"),
        ],
        operational_status=OperationalStatus.UP,
    )


@pytest.fixture
def tracker():
    return OpenTracker()
