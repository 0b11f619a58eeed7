"""UniFi Network Controller access

Authenticated fetching of devices, clients and sites from a UniFi controller,
normalized into one canonical model regardless of which API surface served them.
"""

from unifi_exporter.unifi.client import UniFiAPIClient
from unifi_exporter.unifi.session import (
    ApiKeyAuth,
    PasswordAuth,
    Credentials,
    SessionManager,
)
from unifi_exporter.unifi.models import Client, Device, DeviceStats, Site, SysStats
from unifi_exporter.unifi.exceptions import (
    UniFiError,
    AuthenticationError,
    ParseError,
    RequestFailed,
)

__all__ = [
    "UniFiAPIClient",
    "ApiKeyAuth",
    "PasswordAuth",
    "Credentials",
    "SessionManager",
    "Client",
    "Device",
    "DeviceStats",
    "Site",
    "SysStats",
    "UniFiError",
    "AuthenticationError",
    "ParseError",
    "RequestFailed",
]
