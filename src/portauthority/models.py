"""
Data models for LLDP port discovery and provisioning reports.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

from dataclasses import dataclass, field
from enum import Enum
import time


# Link-layer types (pcap DLT numbers)
DLT_EN10MB = 1

# Diagnostics returned to callers of the string reporting contract
DEVICE_NOT_FOUND_MESSAGE = "Unable to match selected network adapter to ICaptureDevice"
NO_FRAME_MESSAGE = "Unable to capture packet: Check the connection and try again"
TRANSPORT_FAILED_MESSAGE = "Unable to reach provisioning server"


class OperationalStatus(str, Enum):
    """Operational state of a network interface (RFC 2863 ifOperStatus)."""
    UP = "up"
    DOWN = "down"
    TESTING = "testing"
    UNKNOWN = "unknown"
    DORMANT = "dormant"
    NOT_PRESENT = "notpresent"
    LOWER_LAYER_DOWN = "lowerlayerdown"

    @classmethod
    def from_operstate(cls, value: str | None) -> "OperationalStatus":
        """Map a sysfs operstate string to a status."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ReportState(str, Enum):
    """Progress of a single reporting operation."""
    IDLE = "idle"
    DEVICE_MATCHING = "device_matching"
    AWAITING_FRAME = "awaiting_frame"
    DECODED = "decoded"
    REPORTING = "reporting"
    DONE = "done"


class ReportStatus(str, Enum):
    """Final status of a reporting operation."""
    OK = "ok"
    DEVICE_NOT_FOUND = "device_not_found"
    NO_FRAME = "no_frame"
    MALFORMED = "malformed"
    TRANSPORT_FAILED = "transport_failed"


@dataclass(frozen=True)
class RawFrame:
    """A single frame read from a capture device."""
    data: bytes
    link_type: int = DLT_EN10MB
    timestamp: float = field(default_factory=time.time)

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class SwitchTopology:
    """Where this host is plugged in, as announced by the switch."""
    switch_name: str
    port: str
    gigabit: bool
    raw_port: str = ""

    def to_dict(self) -> dict[str, str | bool]:
        return {
            "switch_name": self.switch_name,
            "port": self.port,
            "gigabit": self.gigabit,
            "raw_port": self.raw_port,
        }


@dataclass(frozen=True)
class ProvisioningReport:
    """Form fields submitted to the provisioning server.

    Field order here is the order they go on the wire.
    """
    room: str
    jack: str
    switch_name: str
    port: str
    gigabit: bool
    user: str
    password: str

    def fields(self) -> list[tuple[str, str]]:
        """Return (key, value) pairs in wire order.

        ``devideid`` is the key name the provisioning endpoint expects.
        """
        return [
            ("roomnumber", self.room),
            ("jack", self.jack),
            ("devideid", self.switch_name),
            ("portid", self.port),
            ("gigabit", "1" if self.gigabit else "0"),
            ("user", self.user),
            ("pass", self.password),
        ]


@dataclass
class ReportOutcome:
    """Result of a reporting operation.

    Expected network conditions (no adapter match, no LLDP frame, a frame
    we can't make sense of, an unreachable server) end up here instead of
    being raised.
    """
    status: ReportStatus
    response: str | None = None
    topology: SwitchTopology | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ReportStatus.OK

    @property
    def message(self) -> str:
        """Render the outcome the way the reporting contract expects."""
        if self.status == ReportStatus.OK:
            return self.response or ""
        if self.status == ReportStatus.DEVICE_NOT_FOUND:
            return DEVICE_NOT_FOUND_MESSAGE
        if self.status in (ReportStatus.NO_FRAME, ReportStatus.MALFORMED):
            return NO_FRAME_MESSAGE
        if self.detail:
            return f"{TRANSPORT_FAILED_MESSAGE}: {self.detail}"
        return TRANSPORT_FAILED_MESSAGE

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "message": self.message,
            "topology": self.topology.to_dict() if self.topology else None,
            "detail": self.detail,
        }
