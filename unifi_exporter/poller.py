"""Fixed-interval polling of the UniFi controller into the metrics store"""

import asyncio
import logging

from unifi_exporter.metrics import MetricsStore
from unifi_exporter.unifi.client import UniFiAPIClient
from unifi_exporter.unifi.exceptions import UniFiError

logger = logging.getLogger(__name__)


class Poller:
    """Runs authenticate -> fetch -> reconcile once per interval, forever"""

    def __init__(self, client: UniFiAPIClient, store: MetricsStore, interval: float):
        self.client = client
        self.store = store
        self.interval = interval

    async def poll_once(self) -> bool:
        """Run one cycle; returns False if the controller could not be read"""
        try:
            await self.client.authenticate()
            devices = await self.client.fetch_devices()
            clients = await self.client.fetch_clients()
            sites = await self.client.fetch_sites()
        except UniFiError as e:
            logger.error(f"Failed to poll UniFi data: {type(e).__name__}: {e}")
            return False

        self.store.reconcile_devices(devices)
        self.store.reconcile_clients(clients)
        self.store.reconcile_sites(sites)

        logger.info(
            f"Successfully updated metrics: {len(devices)} devices, "
            f"{len(clients)} clients, {len(sites)} sites"
        )
        return True

    async def run_forever(self) -> None:
        """Poll on a fixed schedule; a slow cycle delays the next one, none are skipped"""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while True:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            next_tick += self.interval

            logger.info("Polling UniFi controller")
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Unexpected error during poll cycle")
