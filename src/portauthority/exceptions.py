"""
Exception types raised by PortAuthority components.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""


class PortAuthorityError(Exception):
    """Base class for PortAuthority errors."""


class InterfaceNotFoundError(PortAuthorityError):
    """The requested network interface does not exist."""


class CaptureError(PortAuthorityError):
    """A capture device could not be opened or read."""


class DecodeError(PortAuthorityError):
    """A captured frame could not be turned into switch topology."""


class NotLLDPError(DecodeError):
    """The frame is not an LLDP frame."""


class MalformedFrameError(DecodeError):
    """LLDP TLVs are missing, short, or the port ID cannot be split."""


class TransportError(PortAuthorityError):
    """The provisioning server could not be reached."""
