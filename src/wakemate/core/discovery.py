from __future__ import annotations

import asyncio
import logging
import socket

import httpx

from wakemate.config import DiscoveryConfig
from wakemate.models import ServerConnection
from wakemate.storage import Database

logger = logging.getLogger(__name__)

STATUS_PATH = "/status"


async def probe_server(
    client: httpx.AsyncClient, ip: str, port: int, timeout: float
) -> bool:
    """True if a companion server answers ``/status`` with ``{"status": "online"}``."""
    url = f"http://{ip}:{port}{STATUS_PATH}"
    try:
        response = await asyncio.wait_for(
            client.get(url, timeout=timeout), timeout=timeout
        )
        if response.status_code != 200:
            logger.debug("%s answered %d", url, response.status_code)
            return False
        data = response.json()
    except (asyncio.TimeoutError, TimeoutError):
        logger.debug("No response from %s (timeout)", ip)
        return False
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Failed to reach %s: %s", ip, exc)
        return False
    except ValueError:
        logger.debug("%s sent a body that is not JSON", url)
        return False

    return isinstance(data, dict) and data.get("status") == "online"


async def scan_subnet(
    prefix: str,
    hosts: range,
    port: int,
    timeout: float,
    parallel: int = 32,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str | None:
    """Return the lowest-numbered host in ``hosts`` running a companion server.

    Probes run concurrently, at most ``parallel`` at a time, but results are
    consumed in ascending host order so the answer does not depend on which
    probe finishes first. Remaining probes are cancelled once a host wins.
    """
    semaphore = asyncio.Semaphore(parallel)
    logger.debug(
        "Scanning %s%d-%d on port %d (timeout=%.2fs, parallel=%d)",
        prefix,
        hosts.start,
        hosts.stop - 1,
        port,
        timeout,
        parallel,
    )

    async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:

        async def _probe(ip: str) -> bool:
            async with semaphore:
                return await probe_server(client, ip, port, timeout)

        ips = [f"{prefix}{host}" for host in hosts]
        tasks = [asyncio.create_task(_probe(ip)) for ip in ips]
        try:
            for ip, task in zip(ips, tasks):
                if await task:
                    logger.info("Found companion server at %s", ip)
                    return ip
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    logger.debug("Scan complete: no companion server found")
    return None


def detect_subnet_prefix() -> str:
    """Prefix of the local /24 network, e.g. ``"192.168.1."``."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            # no packet is sent; connect only selects the outgoing interface
            sock.connect(("8.8.8.8", 80))
            local_ip = sock.getsockname()[0]
    except OSError as exc:
        raise RuntimeError("Could not detect local network") from exc

    prefix = local_ip.rsplit(".", 1)[0] + "."
    logger.debug("Detected local subnet prefix: %s", prefix)
    return prefix


class DiscoveryEngine:
    """Locates the companion server and binds it on the shared connection.

    Scans are single-flight: callers arriving while a scan is running wait on
    that scan instead of starting another one.
    """

    def __init__(
        self,
        config: DiscoveryConfig,
        port: int,
        database: Database,
        connection: ServerConnection,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.port = port
        self._db = database
        self.connection = connection
        self._transport = transport
        self._inflight: asyncio.Task[str | None] | None = None

    @property
    def scanning(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def resolve(self, scan: bool = True) -> str | None:
        """Use a trusted or persisted address if there is one, otherwise scan.

        With ``scan=False`` only the fast path is tried and None is returned
        when no usable address is known.
        """
        if self.connection.trusted:
            return self.connection.address

        stored = self._db.load_server_address()
        if stored and stored != self.connection.address:
            logger.info("Using stored companion server address %s", stored)
            self.connection.bind(stored)
            return stored

        if not scan:
            return None
        return await self.discover()

    async def discover(self) -> str | None:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._run())
        # shield so one cancelled waiter does not abort the scan for the others
        return await asyncio.shield(self._inflight)

    async def retry(self) -> str | None:
        return await self.discover()

    async def _run(self) -> str | None:
        address = await scan_subnet(
            self.config.subnet_prefix,
            self.config.hosts,
            self.port,
            self.config.timeout,
            parallel=self.config.parallel_probes,
            transport=self._transport,
        )
        if address is None:
            self.connection.mark_failed(
                f"No companion server found on {self.config.subnet_prefix}"
                f"{self.config.first_host}-{self.config.last_host}"
            )
            return None

        try:
            self._db.save_server_address(address)
        except OSError as exc:
            # the address is still usable for this session
            logger.warning("Could not persist server address %s: %s", address, exc)
        self.connection.bind(address, connected=True)
        return address
