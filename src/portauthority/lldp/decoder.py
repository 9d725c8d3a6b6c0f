"""
LLDP frame decoding.

Walks the TLVs of a captured LLDP frame and pulls out the two fields the
provisioning server cares about: the switch's system name and the port ID.

Switches deployed here announce system name and interface name at fixed
positions in the LLDPDU (TLV 3 and TLV 6, each read with its 2-byte
type/length header still attached). Standard type-code lookup is also
available and is tried first by default.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterator

from portauthority.exceptions import MalformedFrameError, NotLLDPError
from portauthority.models import DLT_EN10MB, RawFrame, SwitchTopology

logger = logging.getLogger(__name__)


ETH_P_LLDP = 0x88CC
ETH_P_8021Q = 0x8100
ETH_HEADER_LEN = 14

# LLDP multicast MACs
LLDP_MULTICAST_MAC = bytes([0x01, 0x80, 0xc2, 0x00, 0x00, 0x0e])
LLDP_MULTICAST_MACS = [
    LLDP_MULTICAST_MAC,                            # Nearest bridge
    bytes([0x01, 0x80, 0xc2, 0x00, 0x00, 0x03]),  # Nearest non-TPMR bridge
    bytes([0x01, 0x80, 0xc2, 0x00, 0x00, 0x00]),  # Nearest customer bridge
]

# Positional layout used by the reference switches
SYSTEM_NAME_INDEX = 3
PORT_ID_INDEX = 6
TLV_PREFIX_LEN = 2


class LLDPTLVType(IntEnum):
    """LLDP TLV types."""
    END = 0
    CHASSIS_ID = 1
    PORT_ID = 2
    TTL = 3
    PORT_DESCRIPTION = 4
    SYSTEM_NAME = 5
    SYSTEM_DESCRIPTION = 6
    SYSTEM_CAPABILITIES = 7
    MANAGEMENT_ADDRESS = 8
    ORGANIZATION_SPECIFIC = 127


class LookupStrategy(str, Enum):
    """How to locate the system-name and port-ID TLVs in a frame."""
    TYPE = "type"
    POSITION = "position"
    AUTO = "auto"  # type code first, then position

    @classmethod
    def parse(cls, value: "str | LookupStrategy") -> "LookupStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown lookup strategy {value!r} (expected one of: {choices})") from None


@dataclass(frozen=True)
class LLDPTLV:
    """A single TLV from an LLDPDU."""
    type: int
    value: bytes

    @property
    def header(self) -> bytes:
        return struct.pack(">H", (self.type << 9) | len(self.value))

    @property
    def raw(self) -> bytes:
        """The TLV as it appeared on the wire, header included."""
        return self.header + self.value


def iter_tlvs(payload: bytes) -> Iterator[LLDPTLV]:
    """Yield TLVs from an LLDPDU until End-of-LLDPDU or the data runs out."""
    offset = 0
    while offset + 2 <= len(payload):
        tlv_header = struct.unpack(">H", payload[offset:offset+2])[0]
        tlv_type = (tlv_header >> 9) & 0x7F
        tlv_len = tlv_header & 0x1FF
        offset += 2

        if tlv_type == LLDPTLVType.END:
            return

        if offset + tlv_len > len(payload):
            logger.debug("Truncated TLV type %d at offset %d (need %d bytes, have %d)",
                         tlv_type, offset - 2, tlv_len, len(payload) - offset)
            return

        yield LLDPTLV(tlv_type, payload[offset:offset+tlv_len])
        offset += tlv_len


def parse_tlvs(payload: bytes) -> list[LLDPTLV]:
    """Parse an LLDPDU into a list of TLVs (End-of-LLDPDU excluded)."""
    return list(iter_tlvs(payload))


def extract_lldpdu(frame: RawFrame) -> bytes:
    """Return the LLDPDU carried by an Ethernet frame.

    Raises:
        NotLLDPError: if the frame isn't Ethernet, isn't addressed to an
            LLDP multicast MAC, or doesn't carry the LLDP ethertype
    """
    if frame.link_type != DLT_EN10MB:
        raise NotLLDPError(f"Unsupported link-layer type {frame.link_type}")

    data = frame.data
    if len(data) < ETH_HEADER_LEN:
        raise NotLLDPError(f"Frame too short for Ethernet header ({len(data)} bytes)")

    dst_mac = data[0:6]
    if dst_mac not in LLDP_MULTICAST_MACS:
        raise NotLLDPError("Destination is not an LLDP multicast address")

    offset = 12

    # Skip VLAN tags
    ethertype = struct.unpack(">H", data[offset:offset+2])[0]
    while ethertype == ETH_P_8021Q:
        offset += 4
        if offset + 2 > len(data):
            raise NotLLDPError("Frame truncated inside 802.1Q tag")
        ethertype = struct.unpack(">H", data[offset:offset+2])[0]

    if ethertype != ETH_P_LLDP:
        raise NotLLDPError(f"Ethertype 0x{ethertype:04x} is not LLDP")

    return data[offset+2:]


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").rstrip("\x00")


def split_port(raw_port: str) -> tuple[str, bool]:
    """Derive (port, gigabit) from an interface name like ``Gi1/0/24``.

    The port is the third ``/``-separated field. Gigabit capability is
    inferred from a leading ``g``/``G`` in the interface name.
    """
    raw_port = raw_port.strip()
    if not raw_port:
        raise MalformedFrameError("Port ID is empty")

    gigabit = raw_port[0] in ("g", "G")

    segments = raw_port.split("/")
    if len(segments) < 3:
        raise MalformedFrameError(f"Port ID {raw_port!r} has fewer than 3 '/'-separated fields")

    port = segments[2]
    if not port:
        raise MalformedFrameError(f"Port ID {raw_port!r} has an empty port field")

    return port, gigabit


def _fields_by_position(tlvs: list[LLDPTLV]) -> tuple[str, str]:
    if len(tlvs) <= max(SYSTEM_NAME_INDEX, PORT_ID_INDEX):
        raise MalformedFrameError(
            f"Expected at least {PORT_ID_INDEX + 1} TLVs, frame has {len(tlvs)}"
        )

    name_raw = tlvs[SYSTEM_NAME_INDEX].raw
    port_raw = tlvs[PORT_ID_INDEX].raw
    if len(name_raw) <= TLV_PREFIX_LEN:
        raise MalformedFrameError(f"TLV {SYSTEM_NAME_INDEX} has no system name payload")
    if len(port_raw) <= TLV_PREFIX_LEN:
        raise MalformedFrameError(f"TLV {PORT_ID_INDEX} has no port ID payload")

    return _text(name_raw[TLV_PREFIX_LEN:]), _text(port_raw[TLV_PREFIX_LEN:])


def _fields_by_type(tlvs: list[LLDPTLV]) -> tuple[str, str]:
    system_name = next((t for t in tlvs if t.type == LLDPTLVType.SYSTEM_NAME), None)
    port_id = next((t for t in tlvs if t.type == LLDPTLVType.PORT_ID), None)

    if system_name is None or not system_name.value:
        raise MalformedFrameError("No System Name TLV")
    # Port ID value is a 1-byte subtype followed by the ID
    if port_id is None or len(port_id.value) < 2:
        raise MalformedFrameError("No Port ID TLV")

    return _text(system_name.value), _text(port_id.value[1:])


def _topology(tlvs: list[LLDPTLV], strategy: LookupStrategy) -> SwitchTopology:
    if strategy == LookupStrategy.TYPE:
        switch_name, raw_port = _fields_by_type(tlvs)
    else:
        switch_name, raw_port = _fields_by_position(tlvs)

    if not switch_name:
        raise MalformedFrameError("System name is empty")

    port, gigabit = split_port(raw_port)
    return SwitchTopology(switch_name=switch_name, port=port, gigabit=gigabit, raw_port=raw_port)


def decode(frame: RawFrame, strategy: LookupStrategy = LookupStrategy.AUTO) -> SwitchTopology:
    """Decode switch name, port and gigabit flag from an LLDP frame.

    Args:
        frame: Captured frame
        strategy: How to find the system-name and port-ID TLVs

    Returns:
        SwitchTopology for the port this host is connected to

    Raises:
        NotLLDPError: frame is not LLDP
        MalformedFrameError: required TLVs missing, short, or unsplittable
    """
    strategy = LookupStrategy.parse(strategy)
    tlvs = parse_tlvs(extract_lldpdu(frame))
    if not tlvs:
        raise MalformedFrameError("LLDPDU contains no TLVs")

    logger.debug("Decoded %d TLVs: %s", len(tlvs), [t.type for t in tlvs])

    if strategy != LookupStrategy.AUTO:
        return _topology(tlvs, strategy)

    try:
        return _topology(tlvs, LookupStrategy.TYPE)
    except MalformedFrameError as e:
        logger.debug("Type-code lookup failed (%s), falling back to TLV positions", e)
        return _topology(tlvs, LookupStrategy.POSITION)
