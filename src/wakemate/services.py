"""Application service wiring discovery, dispatch and status sync together."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from wakemate.config import Settings
from wakemate.core import (
    CommandGateway,
    DeviceRegistry,
    DiscoveryEngine,
    StatusSynchronizer,
)
from wakemate.models import ServerConnection, parse_action, recheck_delay
from wakemate.storage import Database

logger = logging.getLogger(__name__)


class WakeMate:
    """Owns the shared state and applies the caller-side policies.

    The gateway never schedules anything by itself; after a state-changing
    command succeeds this service asks the synchronizer for a delayed recheck
    so the device's new reachability shows up without waiting a full interval.

    Usage:
        app = WakeMate(settings, Database(path))
        await app.start()
        await app.perform("wake", device.id)
        await app.stop()
    """

    def __init__(
        self,
        settings: Settings,
        database: Database,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.database = database
        self.registry = DeviceRegistry(database)
        self.connection = ServerConnection(port=settings.server.port)
        self.discovery = DiscoveryEngine(
            settings.discovery,
            settings.server.port,
            database,
            self.connection,
            transport=transport,
        )
        self.gateway = CommandGateway(
            self.connection, self.registry, settings.server, transport=transport
        )
        self.synchronizer = StatusSynchronizer(
            self.registry, settings.sync, settings.server.port, transport=transport
        )

    async def start(self, sync: bool = True, scan: bool = True) -> str | None:
        address = await self.discovery.resolve(scan=scan)
        if address is None:
            logger.warning("Companion server not found; commands are unavailable")
        if sync:
            self.synchronizer.start()
        return address

    async def stop(self) -> None:
        await self.synchronizer.stop()

    async def rediscover(self) -> str | None:
        return await self.discovery.retry()

    async def perform(
        self,
        action: str,
        device_id: str,
        params: dict[str, Any] | None = None,
        await_recheck: bool = False,
    ) -> bool:
        """Dispatch an action and schedule the follow-up status recheck.

        With ``await_recheck`` an immediate recheck (sleep, restart, shutdown,
        logoff) finishes before this returns; the delayed one after ``wake``
        is only scheduled.
        """
        parsed = parse_action(action, params)
        ok = await self.gateway.dispatch_action(parsed, device_id)

        delay = recheck_delay(parsed, self.settings.sync.wake_recheck_delay)
        if ok and delay is not None:
            logger.debug("Rechecking status in %.1fs after '%s'", delay, action)
            recheck = self.synchronizer.schedule_recheck(delay)
            if await_recheck and delay == 0:
                await recheck
        return ok
