"""
Network interface inventory and address resolution.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
import socket
from dataclasses import dataclass, field
from pathlib import Path

from portauthority.exceptions import InterfaceNotFoundError
from portauthority.models import OperationalStatus

logger = logging.getLogger(__name__)


NO_IPV4_ADDRESS = "0.0.0.0"
SYSFS_NET = Path("/sys/class/net")

# Interfaces that never have a switch on the other end
EXCLUDE_EXACT = {
    "lo", "lo0",
    "sit0", "ip6tnl0", "gre0", "tunl0", "ip6gre0",
}
EXCLUDE_PREFIXES = (
    "utun", "awdl", "llw", "gif", "stf", "ipsec", "ppp",
    "virbr", "veth", "docker", "br-", "vnet", "tap", "tun",
    "dummy", "vboxnet", "vmnet", "pflog", "pfsync", "enc",
)


@dataclass(frozen=True)
class UnicastAddress:
    """An address bound to an interface."""
    family: int
    address: str


@dataclass
class NetworkInterface:
    """Snapshot of a network interface."""
    name: str
    physical_address: bytes = b""
    unicast_addresses: list[UnicastAddress] = field(default_factory=list)
    operational_status: OperationalStatus = OperationalStatus.UNKNOWN
    description: str = ""


def format_mac(mac: bytes) -> str:
    """Format MAC address bytes as uppercase colon-separated hex."""
    return ":".join(f"{b:02X}" for b in mac)


def parse_mac(text: str) -> bytes:
    """Parse a MAC address string (``:`` or ``-`` separated) into bytes."""
    digits = text.replace(":", "").replace("-", "").strip()
    mac = bytes.fromhex(digits)
    if len(mac) != 6:
        raise ValueError(f"Not a MAC address: {text!r}")
    return mac


def canonical_mac(interface: NetworkInterface) -> str:
    """Return the interface's hardware address, e.g. ``AA:BB:CC:DD:EE:FF``."""
    return format_mac(interface.physical_address)


def resolve_ipv4(interface: NetworkInterface) -> str:
    """Return the first IPv4 address bound to the interface.

    An interface without IPv4 is a normal state (cable unplugged, no DHCP
    lease yet), so ``0.0.0.0`` is returned rather than raising.
    """
    for addr in interface.unicast_addresses:
        if addr.family == socket.AF_INET:
            return addr.address
    return NO_IPV4_ADDRESS


@dataclass
class InterfaceIdentity:
    """MAC and IPv4 address of the adapter a session is bound to.

    The MAC is fixed for the life of the session; the IPv4 address may be
    refreshed (DHCP).
    """
    name: str
    mac: bytes
    mac_address: str
    ip_address: str = NO_IPV4_ADDRESS

    @classmethod
    def from_interface(cls, interface: NetworkInterface) -> "InterfaceIdentity":
        return cls(
            name=interface.name,
            mac=interface.physical_address,
            mac_address=canonical_mac(interface),
            ip_address=resolve_ipv4(interface),
        )


def read_operational_status(name: str, sysfs_root: Path = SYSFS_NET) -> OperationalStatus:
    """Read an interface's operstate from sysfs (Linux only)."""
    try:
        return OperationalStatus.from_operstate((sysfs_root / name / "operstate").read_text())
    except OSError:
        return OperationalStatus.UNKNOWN


def is_virtual_interface(name: str) -> bool:
    """Check whether an interface name looks like a loopback/virtual device."""
    if name in EXCLUDE_EXACT:
        return True
    if any(name.startswith(prefix) for prefix in EXCLUDE_PREFIXES):
        return True
    # Aliases like eth0:1
    return ":" in name


def _from_scapy(iface) -> NetworkInterface:
    """Build a NetworkInterface from a scapy interface entry."""
    physical_address = b""
    if iface.mac:
        try:
            physical_address = parse_mac(iface.mac)
        except ValueError:
            logger.debug("Ignoring unparseable MAC %r on %s", iface.mac, iface.name)

    ips = getattr(iface, "ips", None) or {}
    ipv4 = list(ips.get(4, []))
    if not ipv4 and iface.ip and iface.ip != NO_IPV4_ADDRESS:
        ipv4 = [iface.ip]

    addresses = [UnicastAddress(socket.AF_INET, ip) for ip in ipv4]
    addresses.extend(UnicastAddress(socket.AF_INET6, ip) for ip in ips.get(6, []))

    return NetworkInterface(
        name=iface.name,
        physical_address=physical_address,
        unicast_addresses=addresses,
        operational_status=read_operational_status(iface.name),
        description=getattr(iface, "description", "") or "",
    )


def list_interfaces(include_virtual: bool = False) -> list[NetworkInterface]:
    """List network interfaces known to the capture layer."""
    from scapy.all import conf

    # Addresses change under DHCP; always read a fresh table
    conf.ifaces.reload()

    interfaces = []
    for iface in conf.ifaces.values():
        if not include_virtual and is_virtual_interface(iface.name):
            continue
        interfaces.append(_from_scapy(iface))

    interfaces.sort(key=lambda i: i.name)
    return interfaces


def get_interface(name: str) -> NetworkInterface:
    """Look up a single interface by name.

    Raises:
        InterfaceNotFoundError: if no interface has that name
    """
    for iface in list_interfaces(include_virtual=True):
        if iface.name == name:
            return iface
    raise InterfaceNotFoundError(f"No such network interface: {name}")
