"""UniFi Network Controller API Client"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from unifi_exporter.unifi.exceptions import (
    AuthenticationError,
    ParseError,
    RequestFailed,
)
from unifi_exporter.unifi.models import Client, Device, DeviceStats, Site, SysStats
from unifi_exporter.unifi.session import ApiKeyAuth, Credentials, SessionManager

logger = logging.getLogger(__name__)

# Page size requested from the integration API
INTEGRATION_PAGE_LIMIT = 200


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ParseError(f"Expected string field '{key}', got {type(value).__name__}")
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ParseError(f"Expected string field '{key}', got {type(value).__name__}")
    return value


def _optional_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(f"Expected numeric field '{key}', got {type(value).__name__}")
    return int(value)


def _optional_float(data: Dict[str, Any], key: str) -> Optional[float]:
    """Load averages are reported as strings ("0.12") by most firmware"""
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseError(f"Expected numeric field '{key}', got bool")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid value for '{key}': {value!r}") from e


def _bool(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key, False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ParseError(f"Expected boolean field '{key}', got {type(value).__name__}")
    return value


def _optional_dict(data: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ParseError(f"Expected object field '{key}', got {type(value).__name__}")
    return value


def _records(payload: Any, url: str) -> List[Dict[str, Any]]:
    """Unwrap the {meta, data: [...]} envelope"""
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ParseError(f"Unexpected response shape from {url}: missing 'data' list")
    records = payload["data"]
    for record in records:
        if not isinstance(record, dict):
            raise ParseError(f"Unexpected record in response from {url}: {type(record).__name__}")
    return records


class UniFiAPIClient:
    """Client for UniFi Network Controller API

    The active credential variant selects the API surface:

    * API key  -> ``/proxy/network/api/s/{site}/...`` and the integration API for sites
    * password -> ``/api/s/{site}/...`` and ``/api/self/sites``
    """

    def __init__(
        self,
        controller_url: str,
        credentials: Credentials,
        site: str = "default",
        timeout: float = 10.0,
        verify_ssl: bool = True,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.controller_url = controller_url.rstrip('/')
        self.site = site

        if http_client is None:
            http_client = httpx.AsyncClient(
                verify=verify_ssl,
                timeout=timeout,
                follow_redirects=True,
            )
        self._http = http_client
        self.session = SessionManager(credentials, self._http, self.controller_url)

    @property
    def is_key_based(self) -> bool:
        return isinstance(self.session.credentials, ApiKeyAuth)

    def _site_url(self, endpoint: str) -> str:
        if self.is_key_based:
            return f"{self.controller_url}/proxy/network/api/s/{self.site}/{endpoint}"
        return f"{self.controller_url}/api/s/{self.site}/{endpoint}"

    async def authenticate(self) -> None:
        """Log in if the active credentials need a session"""
        await self.session.ensure_valid()

    async def close(self) -> None:
        await self._http.aclose()

    async def _send(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        headers = self.session.attach({"Accept": "application/json"})
        logger.debug(f"Making request to: {url}")
        try:
            return await self._http.get(url, headers=headers, params=params)
        except httpx.RequestError as e:
            raise RequestFailed(f"API request to {url} failed: {e}") from e

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a JSON document, renewing an expired session once"""
        await self.session.ensure_valid()
        response = await self._send(url, params)

        if response.status_code == 401 and not self.is_key_based:
            logger.warning(f"Received 401 Unauthorized from {url}, re-authenticating")
            self.session.invalidate()
            await self.session.ensure_valid()
            response = await self._send(url, params)
            if response.status_code == 401:
                raise AuthenticationError(
                    f"Request to {url} still unauthorized after re-authentication"
                )

        if not response.is_success:
            raise ParseError(
                f"API request failed (HTTP {response.status_code}): {url}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Failed to decode JSON from {url}: {e}") from e

    async def fetch_devices(self) -> List[Device]:
        """Get every device on the site"""
        url = self._site_url("stat/device")
        return [self._parse_device(d) for d in _records(await self._get(url), url)]

    async def fetch_clients(self) -> List[Client]:
        """Get every connected client on the site"""
        url = self._site_url("stat/sta")
        return [self._parse_client(c) for c in _records(await self._get(url), url)]

    async def fetch_sites(self) -> List[Site]:
        """Get all sites known to the controller"""
        if self.is_key_based:
            return await self._fetch_integration_sites()

        url = f"{self.controller_url}/api/self/sites"
        return [self._parse_site(s) for s in _records(await self._get(url), url)]

    async def _fetch_integration_sites(self) -> List[Site]:
        url = f"{self.controller_url}/proxy/network/integration/v1/sites"
        sites: List[Site] = []
        offset = 0

        while True:
            page = await self._get(url, params={"offset": offset, "limit": INTEGRATION_PAGE_LIMIT})
            if not isinstance(page, dict):
                raise ParseError(f"Unexpected response shape from {url}")
            for key in ("offset", "limit", "count", "totalCount"):
                if isinstance(page.get(key), bool) or not isinstance(page.get(key), int):
                    raise ParseError(f"Unexpected response shape from {url}: missing '{key}'")

            records = _records(page, url)
            sites.extend(self._parse_integration_site(s) for s in records)
            offset += len(records)

            if not records or offset >= page["totalCount"]:
                break

        return sites

    def _parse_device(self, data: Dict[str, Any]) -> Device:
        """Parse UniFi device data"""
        sys_stats = None
        raw_sys = _optional_dict(data, "sys_stats")
        if raw_sys is not None:
            sys_stats = SysStats(
                loadavg_1=_optional_float(raw_sys, "loadavg_1"),
                loadavg_5=_optional_float(raw_sys, "loadavg_5"),
                loadavg_15=_optional_float(raw_sys, "loadavg_15"),
                mem_total=_optional_int(raw_sys, "mem_total"),
                mem_used=_optional_int(raw_sys, "mem_used"),
            )

        stat = None
        raw_stat = _optional_dict(data, "stat")
        if raw_stat is not None:
            stat = DeviceStats(
                bytes=_optional_int(raw_stat, "bytes"),
                tx_bytes=_optional_int(raw_stat, "tx_bytes"),
                rx_bytes=_optional_int(raw_stat, "rx_bytes"),
                tx_packets=_optional_int(raw_stat, "tx_packets"),
                rx_packets=_optional_int(raw_stat, "rx_packets"),
            )

        return Device(
            id=_require_str(data, "_id"),
            mac=_require_str(data, "mac"),
            type=_require_str(data, "type"),
            name=_optional_str(data, "name"),
            model=_optional_str(data, "model"),
            version=_optional_str(data, "version"),
            adopted=_bool(data, "adopted"),
            state=_optional_int(data, "state") or 0,
            uptime=_optional_int(data, "uptime"),
            sys_stats=sys_stats,
            stat=stat,
        )

    def _parse_client(self, data: Dict[str, Any]) -> Client:
        """Parse raw API data into a Client"""
        return Client(
            id=_require_str(data, "_id"),
            mac=_require_str(data, "mac"),
            hostname=_optional_str(data, "hostname"),
            name=_optional_str(data, "name"),
            ip=_optional_str(data, "ip"),
            network=_optional_str(data, "network"),
            vlan=_optional_int(data, "vlan"),
            ap_mac=_optional_str(data, "ap_mac"),
            is_wired=_bool(data, "is_wired"),
            is_guest=_bool(data, "is_guest"),
            signal=_optional_int(data, "signal"),
            uptime=_optional_int(data, "uptime"),
            tx_bytes=_optional_int(data, "tx_bytes"),
            rx_bytes=_optional_int(data, "rx_bytes"),
        )

    def _parse_site(self, data: Dict[str, Any]) -> Site:
        attr_no_delete = data.get("attr_no_delete")
        if attr_no_delete is not None and not isinstance(attr_no_delete, bool):
            raise ParseError("Expected boolean field 'attr_no_delete'")
        return Site(
            id=_require_str(data, "_id"),
            name=_require_str(data, "name"),
            desc=_require_str(data, "desc"),
            attr_hidden_id=_optional_str(data, "attr_hidden_id"),
            attr_no_delete=attr_no_delete,
        )

    def _parse_integration_site(self, data: Dict[str, Any]) -> Site:
        # internalReference is the short site name used in legacy URLs
        return Site(
            id=_require_str(data, "id"),
            name=_require_str(data, "internalReference"),
            desc=_require_str(data, "name"),
        )
