"""
LLDP capture and decoding.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from portauthority.lldp.capture import (
    LLDP_FILTER,
    CaptureDevice,
    CaptureSession,
    ScapyCaptureDevice,
    capture_one,
    list_capture_devices,
    open_matching_device,
)
from portauthority.lldp.decoder import (
    LLDPTLV,
    LLDPTLVType,
    LookupStrategy,
    decode,
    parse_tlvs,
    split_port,
)

__all__ = [
    "LLDP_FILTER",
    "CaptureDevice",
    "CaptureSession",
    "ScapyCaptureDevice",
    "capture_one",
    "list_capture_devices",
    "open_matching_device",
    "LLDPTLV",
    "LLDPTLVType",
    "LookupStrategy",
    "decode",
    "parse_tlvs",
    "split_port",
]
