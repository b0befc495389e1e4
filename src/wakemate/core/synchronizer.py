from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

import httpx

from wakemate.config import SyncConfig
from wakemate.models import Device, DeviceStatus

from .discovery import STATUS_PATH
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)

REACHABLE_STATES = frozenset({"online", "success"})

Probe = Callable[[Device], Awaitable[DeviceStatus]]


async def probe_device(
    client: httpx.AsyncClient, ip: str, port: int, timeout: float
) -> DeviceStatus:
    url = f"http://{ip}:{port}{STATUS_PATH}"
    try:
        response = await asyncio.wait_for(
            client.get(url, timeout=timeout), timeout=timeout
        )
        if response.status_code != 200:
            logger.debug("%s answered %d", url, response.status_code)
            return DeviceStatus.OFFLINE
        data = response.json()
    except (asyncio.TimeoutError, TimeoutError):
        logger.debug("No response from %s (timeout)", ip)
        return DeviceStatus.OFFLINE
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Failed to reach %s: %s", ip, exc)
        return DeviceStatus.OFFLINE
    except ValueError:
        logger.debug("%s sent a body that is not JSON", url)
        return DeviceStatus.OFFLINE

    if isinstance(data, dict) and data.get("status") in REACHABLE_STATES:
        return DeviceStatus.ONLINE
    return DeviceStatus.OFFLINE


async def reconcile(
    devices: Sequence[Device], probe: Probe
) -> tuple[list[Device], bool]:
    """Probe every device concurrently and return the refreshed list.

    Only devices whose probed status differs from the stored one are replaced;
    all other entries are the very same objects that were passed in. A probe
    that raises counts as offline for that device only.
    """
    results = await asyncio.gather(
        *(probe(device) for device in devices), return_exceptions=True
    )

    updated: list[Device] = []
    changed = False
    for device, result in zip(devices, results):
        if isinstance(result, Exception):
            logger.warning(
                "Probe of '%s' (%s) failed: %r", device.name, device.ip, result
            )
            status = DeviceStatus.OFFLINE
        elif isinstance(result, BaseException):
            raise result
        else:
            status = result
        if status != device.status:
            logger.info(
                "Device '%s' (%s) is now %s", device.name, device.ip, status.value
            )
            device = device.model_copy(update={"status": status})
            changed = True
        updated.append(device)
    return updated, changed


class StatusSynchronizer:
    """Periodic reconciliation of the registry against real reachability."""

    def __init__(
        self,
        registry: DeviceRegistry,
        config: SyncConfig,
        port: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.registry = registry
        self.config = config
        self.port = port
        self._transport = transport
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task[None] | None = None
        self._rechecks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def pending_rechecks(self) -> tuple[asyncio.Task[None], ...]:
        return tuple(self._rechecks)

    async def run_once(self) -> bool:
        """One reconciliation cycle; returns True if the registry changed."""
        async with self._lock:
            devices = self.registry.list_devices()
            if not devices:
                return False

            semaphore = asyncio.Semaphore(self.config.parallel_probes)
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.probe_timeout
            ) as client:

                async def _probe(device: Device) -> DeviceStatus:
                    async with semaphore:
                        return await probe_device(
                            client, device.ip, self.port, self.config.probe_timeout
                        )

                updated, changed = await reconcile(devices, _probe)

            if not changed:
                logger.debug("Reconciled %d device(s), no changes", len(devices))
                return False
            transitions = {
                new.id: new.status
                for old, new in zip(devices, updated)
                if new is not old
            }
            probed_ips = {device.id: device.ip for device in devices}
            return self.registry.apply_statuses(transitions, probed_ips)

    def start(self) -> None:
        if self.running:
            return
        self._loop_task = asyncio.create_task(self._loop())
        logger.debug(
            "Status synchronizer started (interval=%.0fs)", self.config.interval
        )

    async def stop(self) -> None:
        tasks = [*self._rechecks]
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._rechecks.clear()
        logger.debug("Status synchronizer stopped")

    def schedule_recheck(self, delay: float) -> asyncio.Task[None]:
        """Run an extra cycle after ``delay`` seconds."""
        task = asyncio.create_task(self._delayed_cycle(delay))
        self._rechecks.add(task)
        task.add_done_callback(self._rechecks.discard)
        return task

    async def _delayed_cycle(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._safe_cycle()

    async def _loop(self) -> None:
        while True:
            await self._safe_cycle()
            await asyncio.sleep(self.config.interval)

    async def _safe_cycle(self) -> None:
        try:
            await self.run_once()
        except Exception:
            logger.exception("Status reconciliation failed")

