from __future__ import annotations

import logging
from typing import Any

import httpx

from wakemate.config import ServerConfig
from wakemate.errors import (
    CommandTimeoutError,
    ServerNotDiscoveredError,
    TransportError,
)
from wakemate.models import (
    Action,
    CommandEnvelope,
    Device,
    ServerConnection,
    parse_action,
    to_envelope,
)

from .registry import DeviceRegistry

logger = logging.getLogger(__name__)


def is_success(response: dict[str, Any]) -> bool:
    """Outcome of any command reply, independent of the command that was sent."""
    return response.get("status") == "success" or response.get("success") is True


class CommandGateway:
    """Single path from user intents to the companion server.

    Every dispatch resolves to a bool; transport problems raise TransportError
    and are never retried here.
    """

    def __init__(
        self,
        connection: ServerConnection,
        registry: DeviceRegistry,
        config: ServerConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.connection = connection
        self.registry = registry
        self.config = config
        self._transport = transport

    async def dispatch(
        self, action: str, device_id: str, params: dict[str, Any] | None = None
    ) -> bool:
        return await self.dispatch_action(parse_action(action, params), device_id)

    async def dispatch_action(self, action: Action, device_id: str) -> bool:
        if self.connection.base_url is None:
            raise ServerNotDiscoveredError()
        device = self.registry.get(device_id)

        envelope = to_envelope(action, device)
        response = await self.send(envelope)
        ok = is_success(response)
        if ok:
            logger.info("'%s' sent to '%s'", envelope.command, device.name)
        else:
            logger.warning(
                "'%s' for '%s' failed: %s",
                envelope.command,
                device.name,
                response.get("message") or response.get("status"),
            )
        return ok

    async def send(self, envelope: CommandEnvelope) -> dict[str, Any]:
        """POST an envelope and return the decoded reply.

        HTTP error statuses are folded into ``{"status": "error"}`` so callers
        see them like any other failed command.
        """
        base_url = self.connection.base_url
        if base_url is None:
            raise ServerNotDiscoveredError()

        url = f"{base_url}/"
        logger.debug("POST %s %s", url, envelope.command)
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.command_timeout
            ) as client:
                response = await client.post(url, json=envelope.model_dump())
        except httpx.TimeoutException as exc:
            message = (
                f"Command '{envelope.command}' timed out after "
                f"{self.config.command_timeout:g}s"
            )
            self.connection.mark_failed(message)
            raise CommandTimeoutError(message) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            message = f"Could not reach companion server at {base_url}: {exc}"
            self.connection.mark_failed(message)
            raise TransportError(message) from exc

        if response.is_error:
            message = f"Companion server responded with status {response.status_code}"
            self.connection.mark_failed(message)
            return {"status": "error", "httpStatus": response.status_code}

        try:
            data = response.json()
        except ValueError as exc:
            message = "Companion server sent a reply that is not JSON"
            self.connection.mark_failed(message)
            raise TransportError(message) from exc
        if not isinstance(data, dict):
            message = "Companion server sent an unexpected reply"
            self.connection.mark_failed(message)
            raise TransportError(message)

        self.connection.mark_connected()
        return data

    # Server level commands

    async def get_status(self) -> bool:
        """Connection test through the command endpoint."""
        response = await self.send(CommandEnvelope(command="get_status"))
        return is_success(response)

    async def get_remote_devices(self) -> list[dict[str, Any]]:
        response = await self.send(CommandEnvelope(command="get_devices"))
        data = response.get("data") or {}
        devices = data.get("devices") if isinstance(data, dict) else None
        return list(devices or [])

    async def add_remote_device(self, device: Device) -> bool:
        envelope = CommandEnvelope(
            command="add_device",
            params={"name": device.name, "mac": device.mac, "ip": device.ip},
        )
        return is_success(await self.send(envelope))

    async def remove_remote_device(self, device_id: str) -> bool:
        envelope = CommandEnvelope(
            command="remove_device", params={"deviceId": device_id}
        )
        return is_success(await self.send(envelope))
