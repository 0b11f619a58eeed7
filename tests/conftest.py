"""Pytest fixtures for the UniFi exporter test suite"""

from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from prometheus_client.parser import text_string_to_metric_families

from unifi_exporter.unifi.client import UniFiAPIClient
from unifi_exporter.unifi.session import ApiKeyAuth, PasswordAuth

CONTROLLER_URL = "https://unifi.local:8443"

# Settings read from the environment; cleared so the host cannot leak into tests
CONFIG_ENV_VARS = (
    "UNIFI_CONTROLLER_URL",
    "UNIFI_API_KEY",
    "UNIFI_USERNAME",
    "UNIFI_PASSWORD",
    "UNIFI_SITE",
    "VERIFY_SSL",
    "HTTP_TIMEOUT",
    "METRICS_HOST",
    "METRICS_PORT",
    "POLL_INTERVAL",
    "LOG_LEVEL",
)


class FakeController:
    """Stands in for a UniFi controller behind httpx.MockTransport.

    Responses are queued per URL path; the last queued response for a path is
    repeated once the queue is down to it.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._routes: Dict[str, List[Dict[str, Any]]] = {}

    def add(
        self,
        path: str,
        status: int = 200,
        json: Any = None,
        headers: Optional[List] = None,
        content: Optional[bytes] = None,
    ) -> "FakeController":
        self._routes.setdefault(path, []).append(
            {"status": status, "json": json, "headers": headers, "content": content}
        )
        return self

    def add_login(self, *cookies: str, status: int = 200) -> "FakeController":
        headers = [("set-cookie", c) for c in cookies]
        return self.add("/api/login", status=status, json={"meta": {"rc": "ok"}, "data": []},
                        headers=headers)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self._routes.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"meta": {"rc": "error", "msg": "api.err.NotFound"}})
        canned = queue.pop(0) if len(queue) > 1 else queue[0]
        if canned["content"] is not None:
            return httpx.Response(canned["status"], content=canned["content"], headers=canned["headers"])
        return httpx.Response(canned["status"], json=canned["json"], headers=canned["headers"])

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def count(self, path: str) -> int:
        return self.paths().count(path)

    def last(self, path: str) -> httpx.Request:
        return [r for r in self.requests if r.url.path == path][-1]


@pytest.fixture
def envelope():
    """Wrap records in the {meta, data} response envelope"""

    def _wrap(*records: Dict[str, Any]) -> Dict[str, Any]:
        return {"meta": {"rc": "ok"}, "data": list(records)}

    return _wrap


@pytest.fixture
def controller():
    return FakeController()


@pytest.fixture
def make_client(controller) -> Callable[..., UniFiAPIClient]:
    """Factory for clients wired to the fake controller; call inside a running loop"""

    def _make(credentials=None, site: str = "default") -> UniFiAPIClient:
        if credentials is None:
            credentials = PasswordAuth("admin", "secret")
        http = httpx.AsyncClient(transport=httpx.MockTransport(controller.handler))
        return UniFiAPIClient(CONTROLLER_URL + "/", credentials, site=site, http_client=http)

    return _make


@pytest.fixture
def api_key():
    return ApiKeyAuth("test-api-key")


@pytest.fixture
def device_payload():
    """A fully populated stat/device record"""
    return {
        "_id": "5f1a2b3c4d5e6f7a8b9c0d1e",
        "mac": "aa:bb:cc:dd:ee:ff",
        "name": "Office AP",
        "type": "uap",
        "model": "U7PG2",
        "version": "6.5.55.14277",
        "adopted": True,
        "state": 1,
        "uptime": 86400,
        "sys_stats": {
            "loadavg_1": "0.12",
            "loadavg_5": "0.25",
            "loadavg_15": "0.5",
            "mem_total": 1000,
            "mem_used": 750,
        },
        "stat": {
            "bytes": 3000,
            "tx_bytes": 1000,
            "rx_bytes": 2000,
            "tx_packets": 10,
            "rx_packets": 20,
        },
        "board_rev": 33,
    }


@pytest.fixture
def client_payload():
    """A wireless client as returned by stat/sta"""
    return {
        "_id": "60aabbccddeeff0011223344",
        "mac": "11:22:33:44:55:66",
        "hostname": "laptop",
        "name": "Work Laptop",
        "ip": "192.168.1.50",
        "network": "LAN",
        "vlan": 10,
        "ap_mac": "aa:bb:cc:dd:ee:ff",
        "is_wired": False,
        "is_guest": False,
        "signal": -55,
        "uptime": 3600,
        "tx_bytes": 5000,
        "rx_bytes": 7000,
    }


@pytest.fixture
def site_payload():
    return {
        "_id": "5e8f9a0b1c2d3e4f5a6b7c8d",
        "name": "default",
        "desc": "Default",
        "attr_hidden_id": "default",
        "attr_no_delete": True,
    }


@pytest.fixture
def metric_samples():
    """Parse exposition text into {(sample_name, frozenset(labels)): value}"""

    def _parse(text: str) -> Dict[tuple, float]:
        samples = {}
        for family in text_string_to_metric_families(text):
            for sample in family.samples:
                samples[(sample.name, frozenset(sample.labels.items()))] = sample.value
        return samples

    return _parse


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No exporter settings from the host environment or a stray .env file"""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
