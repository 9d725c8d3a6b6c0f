"""
PortAuthority - ties interface, capture, decode and reporting together.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from typing import Callable, Iterable

from portauthority.config import PortAuthorityConfig
from portauthority.exceptions import CaptureError, DecodeError, InterfaceNotFoundError, TransportError
from portauthority.interfaces import (
    NO_IPV4_ADDRESS,
    InterfaceIdentity,
    NetworkInterface,
    get_interface,
    resolve_ipv4,
)
from portauthority.lldp import capture
from portauthority.lldp.capture import CaptureDevice, CaptureSession
from portauthority.lldp.decoder import decode
from portauthority.models import (
    OperationalStatus,
    ProvisioningReport,
    ReportOutcome,
    ReportState,
    ReportStatus,
    SwitchTopology,
)
from portauthority.reporter import ProvisioningClient, render_form

logger = logging.getLogger(__name__)


class PortAuthority:
    """Registers the jack a host is plugged into.

    Bound to one network interface. Each call to ``report`` does one
    device scan, one LLDP capture and at most one POST; nothing but the
    interface's MAC and IP is kept between calls.
    """

    def __init__(
        self,
        interface: NetworkInterface,
        config: PortAuthorityConfig | None = None,
        device_source: Callable[[], Iterable[CaptureDevice]] | None = None,
        client: ProvisioningClient | None = None,
        interface_lookup: Callable[[str], NetworkInterface] = get_interface,
    ):
        """Initialize PortAuthority.

        Args:
            interface: Adapter selected by the user
            config: Capture and reporting settings
            device_source: Returns the capture devices to scan
                (default: every device on the host)
            client: Provisioning client (default: built from config)
            interface_lookup: Re-reads interface state by name
        """
        self.config = config or PortAuthorityConfig()
        self._interface = interface
        self._device_source = device_source or capture.list_capture_devices
        self._interface_lookup = interface_lookup
        self.client = client or ProvisioningClient(
            url=self.config.provisioning_url,
            verify_ssl=self.config.verify_ssl,
            timeout=self.config.http_timeout,
            user_agent=self.config.user_agent,
        )
        self.state = ReportState.IDLE
        self.identity = InterfaceIdentity.from_interface(interface)

    def __repr__(self) -> str:
        return f"<PortAuthority {self._interface.name} mac={self.mac_address} ip={self.ip_address}>"

    @property
    def interface_name(self) -> str:
        return self._interface.name

    @property
    def mac_address(self) -> str:
        return self.identity.mac_address

    @property
    def ip_address(self) -> str:
        return self.identity.ip_address

    def _snapshot(self) -> NetworkInterface | None:
        try:
            self._interface = self._interface_lookup(self._interface.name)
        except InterfaceNotFoundError:
            logger.warning("Interface %s is no longer present", self._interface.name)
            return None
        return self._interface

    def refresh_ip(self) -> str:
        """Re-read the interface's IPv4 address (it may have changed via DHCP)."""
        snapshot = self._snapshot()
        self.identity.ip_address = resolve_ipv4(snapshot) if snapshot else NO_IPV4_ADDRESS
        return self.identity.ip_address

    def get_operational_status(self) -> OperationalStatus:
        """Current operational status of the interface."""
        snapshot = self._snapshot()
        if snapshot is None:
            return OperationalStatus.NOT_PRESENT
        return snapshot.operational_status

    def _transition(self, state: ReportState) -> None:
        logger.debug("%s: %s -> %s", self._interface.name, self.state.value, state.value)
        self.state = state

    def _finish(self, outcome: ReportOutcome) -> ReportOutcome:
        self._transition(ReportState.DONE)
        if outcome.ok:
            logger.info("Report for %s completed", self._interface.name)
        else:
            logger.warning("Report for %s ended with %s: %s",
                           self._interface.name, outcome.status.value, outcome.detail or outcome.message)
        return outcome

    def _capture_topology(self) -> SwitchTopology | ReportOutcome:
        """Match a capture device, wait for LLDP and decode it.

        The capture device is closed before this returns, whatever happens.
        """
        self._transition(ReportState.DEVICE_MATCHING)
        session: CaptureSession | None = capture.open_matching_device(
            self.identity.mac,
            devices=self._device_source(),
            timeout_ms=self.config.open_timeout_ms,
        )
        if session is None:
            return ReportOutcome(ReportStatus.DEVICE_NOT_FOUND,
                                 detail=f"no capture device with MAC {self.mac_address}")

        with session:
            self._transition(ReportState.AWAITING_FRAME)
            try:
                frame = capture.capture_one(session, timeout=self.config.read_timeout)
            except CaptureError as e:
                return ReportOutcome(ReportStatus.NO_FRAME, detail=str(e))
            if frame is None:
                return ReportOutcome(ReportStatus.NO_FRAME, detail="timed out waiting for LLDP")

        try:
            topology = decode(frame, self.config.lookup_strategy)
        except DecodeError as e:
            return ReportOutcome(ReportStatus.MALFORMED, detail=str(e))

        self._transition(ReportState.DECODED)
        logger.info("%s is on %s port %s (gigabit=%s)",
                    self._interface.name, topology.switch_name, topology.port, topology.gigabit)
        return topology

    def discover(self) -> SwitchTopology | ReportOutcome:
        """Find out which switch port this host is on, without reporting it."""
        self.state = ReportState.IDLE
        result = self._capture_topology()
        if isinstance(result, ReportOutcome):
            return self._finish(result)
        self._transition(ReportState.DONE)
        return result

    def report(self, room: str, jack: str, user: str, password: str) -> ReportOutcome:
        """Discover the switch port and submit it to the provisioning server.

        Args:
            room: Room number
            jack: Jack label
            user: Provisioning username
            password: Provisioning password

        Returns:
            ReportOutcome with the server's response or the failure reason
        """
        self.state = ReportState.IDLE
        result = self._capture_topology()
        if isinstance(result, ReportOutcome):
            return self._finish(result)
        topology = result

        self._transition(ReportState.REPORTING)
        report = ProvisioningReport(
            room=room,
            jack=jack,
            switch_name=topology.switch_name,
            port=topology.port,
            gigabit=topology.gigabit,
            user=user,
            password=password,
        )
        form = render_form(report, encode=self.config.encode_form_values).encode("utf-8")
        try:
            response = self.client.submit(form)
        except TransportError as e:
            return self._finish(ReportOutcome(ReportStatus.TRANSPORT_FAILED, topology=topology, detail=str(e)))

        return self._finish(ReportOutcome(ReportStatus.OK, response=response, topology=topology))

    def post_netcenter(self, room: str, jack: str, user: str, password: str) -> str:
        """Report this host's switch port and return the result as text.

        Returns the provisioning server's response on success, otherwise a
        fixed diagnostic describing what went wrong.
        """
        return self.report(room, jack, user, password).message
