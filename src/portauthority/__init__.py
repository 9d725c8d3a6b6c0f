"""
PortAuthority - network jack self-registration via LLDP.

Listens for a single LLDP announcement from the upstream switch to learn
which switch and port this host is plugged into, then reports that to the
provisioning server together with the room and jack supplied by the user.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

__version__ = "1.0.0"

from portauthority.authority import PortAuthority
from portauthority.config import PortAuthorityConfig
from portauthority.models import (
    OperationalStatus,
    RawFrame,
    ReportOutcome,
    ReportState,
    ReportStatus,
    SwitchTopology,
)

__all__ = [
    "__version__",
    "PortAuthority",
    "PortAuthorityConfig",
    "OperationalStatus",
    "RawFrame",
    "ReportOutcome",
    "ReportState",
    "ReportStatus",
    "SwitchTopology",
]
