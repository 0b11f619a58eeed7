"""
Prometheus metrics for UniFi devices, clients and sites.

The store keeps only the latest snapshot. Every reconcile call clears all label
combinations of the metric families it owns and repopulates them from the
collection just fetched, so entities that disappeared from the controller stop
being exported instead of lingering at a stale value.

Usage:
    store = MetricsStore()
    store.reconcile_devices(devices)
    store.reconcile_clients(clients)
    store.reconcile_sites(sites)
    text = store.snapshot()
"""

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from unifi_exporter.unifi.models import Client, Device, Site

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

DEVICE_LABELS = ("id", "name", "mac")
CLIENT_LABELS = ("id", "mac", "hostname")


class ReadWriteLock:
    """Many concurrent readers or a single writer"""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _non_negative(value: int) -> int:
    return value if value > 0 else 0


def _or_unknown(value: Optional[str]) -> str:
    # Only a missing value is replaced; an empty string is exported as is
    return value if value is not None else UNKNOWN


class MetricsStore:
    """Registry of UniFi metric families, replaced wholesale on each poll"""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._lock = ReadWriteLock()
        r = self.registry

        # Device metrics
        self.device_info = Gauge(
            "unifi_device_info", "UniFi device information",
            ("id", "name", "mac", "type", "model", "version"), registry=r,
        )
        self.device_uptime = Gauge(
            "unifi_device_uptime_seconds", "Device uptime in seconds",
            DEVICE_LABELS, registry=r,
        )
        self.device_adopted = Gauge(
            "unifi_device_adopted", "Device adoption status (1=adopted, 0=not adopted)",
            DEVICE_LABELS, registry=r,
        )
        self.device_state = Gauge(
            "unifi_device_state", "Device state",
            DEVICE_LABELS, registry=r,
        )
        self.device_cpu_usage = Gauge(
            "unifi_device_cpu_usage", "Device CPU usage (load average)",
            DEVICE_LABELS + ("period",), registry=r,
        )
        self.device_memory_usage = Gauge(
            "unifi_device_memory_usage_ratio", "Device memory usage ratio",
            DEVICE_LABELS, registry=r,
        )
        self.device_memory_total = Gauge(
            "unifi_device_memory_total_bytes", "Device total memory in bytes",
            DEVICE_LABELS, registry=r,
        )
        self.device_bytes_total = Counter(
            "unifi_device_bytes_total", "Total bytes transferred",
            DEVICE_LABELS + ("direction",), registry=r,
        )
        self.device_packets_total = Counter(
            "unifi_device_packets_total", "Total packets transferred",
            DEVICE_LABELS + ("direction",), registry=r,
        )

        # Client metrics
        self.client_info = Gauge(
            "unifi_client_info", "UniFi client information",
            ("id", "mac", "hostname", "name", "ip", "network", "ap_mac"), registry=r,
        )
        self.client_bytes_total = Counter(
            "unifi_client_bytes_total", "Total bytes transferred by client",
            CLIENT_LABELS + ("direction",), registry=r,
        )
        self.client_signal_strength = Gauge(
            "unifi_client_signal_strength_dbm", "Client WiFi signal strength in dBm",
            CLIENT_LABELS, registry=r,
        )
        self.client_uptime = Gauge(
            "unifi_client_uptime_seconds", "Client connection uptime in seconds",
            CLIENT_LABELS, registry=r,
        )
        self.clients_total = Gauge(
            "unifi_clients_total", "Total number of clients",
            ("type", "network", "is_guest"), registry=r,
        )

        # Site metrics
        self.sites_total = Gauge("unifi_sites_total", "Total number of sites", registry=r)

        self._device_families = (
            self.device_info,
            self.device_uptime,
            self.device_adopted,
            self.device_state,
            self.device_cpu_usage,
            self.device_memory_usage,
            self.device_memory_total,
            self.device_bytes_total,
            self.device_packets_total,
        )
        self._client_families = (
            self.client_info,
            self.client_bytes_total,
            self.client_signal_strength,
            self.client_uptime,
            self.clients_total,
        )

    def reconcile_devices(self, devices: Iterable[Device]) -> None:
        """Replace every device series with the given collection"""
        with self._lock.write():
            for family in self._device_families:
                family.clear()
            count = 0
            for device in devices:
                self._set_device(device)
                count += 1
        logger.debug(f"Reconciled metrics for {count} devices")

    def _set_device(self, device: Device) -> None:
        name = _or_unknown(device.name)
        key = (device.id, name, device.mac)

        self.device_info.labels(
            device.id, name, device.mac, device.type,
            _or_unknown(device.model), _or_unknown(device.version),
        ).set(1)

        if device.uptime is not None:
            self.device_uptime.labels(*key).set(device.uptime)
        self.device_adopted.labels(*key).set(1 if device.adopted else 0)
        self.device_state.labels(*key).set(device.state)

        sys_stats = device.sys_stats
        if sys_stats is not None:
            for period, load in (
                ("1m", sys_stats.loadavg_1),
                ("5m", sys_stats.loadavg_5),
                ("15m", sys_stats.loadavg_15),
            ):
                if load is not None:
                    self.device_cpu_usage.labels(*key, period).set(load)

            if sys_stats.mem_used is not None and sys_stats.mem_total is not None:
                if sys_stats.mem_total > 0:
                    self.device_memory_usage.labels(*key).set(
                        sys_stats.mem_used / sys_stats.mem_total
                    )
                self.device_memory_total.labels(*key).set(sys_stats.mem_total)

        stat = device.stat
        if stat is not None:
            for family, direction, value in (
                (self.device_bytes_total, "tx", stat.tx_bytes),
                (self.device_bytes_total, "rx", stat.rx_bytes),
                (self.device_packets_total, "tx", stat.tx_packets),
                (self.device_packets_total, "rx", stat.rx_packets),
            ):
                if value is not None:
                    family.labels(*key, direction).inc(_non_negative(value))

    def reconcile_clients(self, clients: Iterable[Client]) -> None:
        """Replace every client series and the aggregate client counts"""
        with self._lock.write():
            for family in self._client_families:
                family.clear()

            wired_count = 0
            wireless_count = 0
            guest_count = 0
            network_counts: Dict[str, int] = defaultdict(int)

            for client in clients:
                self._set_client(client)

                if client.is_wired:
                    wired_count += 1
                else:
                    wireless_count += 1
                if client.is_guest:
                    guest_count += 1
                network_counts[_or_unknown(client.network)] += 1

            self.clients_total.labels("wired", "all", "false").set(wired_count)
            self.clients_total.labels("wireless", "all", "false").set(wireless_count)
            self.clients_total.labels("all", "all", "true").set(guest_count)
            self.clients_total.labels("all", "all", "false").set(
                max(wired_count + wireless_count - guest_count, 0)
            )
            for network, count in network_counts.items():
                self.clients_total.labels("all", network, "all").set(count)
        logger.debug(f"Reconciled metrics for {wired_count + wireless_count} clients")

    def _set_client(self, client: Client) -> None:
        hostname = client.hostname or ""
        key = (client.id, client.mac, hostname)

        self.client_info.labels(
            client.id,
            client.mac,
            hostname,
            client.name or "",
            client.ip or "",
            client.network or "",
            client.ap_mac or "",
        ).set(1)

        if client.tx_bytes is not None:
            self.client_bytes_total.labels(*key, "tx").inc(_non_negative(client.tx_bytes))
        if client.rx_bytes is not None:
            self.client_bytes_total.labels(*key, "rx").inc(_non_negative(client.rx_bytes))

        # Wired ports sometimes report a stale signal value
        if not client.is_wired and client.signal is not None:
            self.client_signal_strength.labels(*key).set(client.signal)

        if client.uptime is not None:
            self.client_uptime.labels(*key).set(client.uptime)

    def reconcile_sites(self, sites: Iterable[Site]) -> None:
        with self._lock.write():
            self.sites_total.set(len(list(sites)))

    def snapshot(self) -> str:
        """Render the whole registry in the Prometheus text exposition format"""
        with self._lock.read():
            return generate_latest(self.registry).decode("utf-8")

