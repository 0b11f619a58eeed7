"""UniFi data models"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SysStats:
    """Load averages and memory usage reported by a device"""
    loadavg_1: Optional[float] = None
    loadavg_5: Optional[float] = None
    loadavg_15: Optional[float] = None
    mem_total: Optional[int] = None  # bytes
    mem_used: Optional[int] = None  # bytes


@dataclass(frozen=True)
class DeviceStats:
    """Traffic counters reported by a device (cumulative on the controller)"""
    bytes: Optional[int] = None
    tx_bytes: Optional[int] = None
    rx_bytes: Optional[int] = None
    tx_packets: Optional[int] = None
    rx_packets: Optional[int] = None


@dataclass(frozen=True)
class Device:
    """A managed UniFi network device (AP, switch, gateway)"""

    # Identity
    id: str
    mac: str
    type: str
    name: Optional[str] = None
    model: Optional[str] = None
    version: Optional[str] = None

    # State
    adopted: bool = False
    state: int = 0
    uptime: Optional[int] = None  # seconds

    sys_stats: Optional[SysStats] = None
    stat: Optional[DeviceStats] = None


@dataclass(frozen=True)
class Client:
    """A station connected to the network"""

    # Identity
    id: str
    mac: str
    hostname: Optional[str] = None
    name: Optional[str] = None  # User-assigned name in UniFi

    # Network info
    ip: Optional[str] = None
    network: Optional[str] = None
    vlan: Optional[int] = None
    ap_mac: Optional[str] = None  # Uplink AP

    is_wired: bool = False
    is_guest: bool = False
    signal: Optional[int] = None  # dBm, wireless only
    uptime: Optional[int] = None  # seconds

    # Traffic stats
    tx_bytes: Optional[int] = None
    rx_bytes: Optional[int] = None


@dataclass(frozen=True)
class Site:
    """A logical grouping of devices and clients on one controller"""
    id: str
    name: str
    desc: str
    attr_hidden_id: Optional[str] = None
    attr_no_delete: Optional[bool] = None
