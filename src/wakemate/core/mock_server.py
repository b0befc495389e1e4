"""Mock companion server for development and testing.

Speaks the same HTTP contract as the real server: ``GET /status`` and a JSON
command envelope POSTed to ``/``. Commands are acknowledged and recorded but
nothing happens on the host.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from wakemate.config import DEFAULT_PORT

logger = logging.getLogger(__name__)

WIRE_COMMANDS = frozenset(
    {
        "wake",
        "sleep",
        "restart",
        "shutdown",
        "logoff",
        "mouse_move",
        "mouse_click",
        "mouse_scroll",
        "key_press",
        "text_input",
        "media_play_pause",
        "media_next",
        "media_prev",
        "volume_up",
        "volume_down",
        "volume_mute",
        "get_devices",
        "add_device",
        "remove_device",
        "get_status",
    }
)


@dataclass
class MockCompanionServer:
    name: str = "mock-companion"
    devices: list[dict[str, Any]] = field(default_factory=list)
    received: list[dict[str, Any]] = field(default_factory=list)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/status", self._handle_status)
        app.router.add_post("/", self._handle_command)
        return app

    async def _handle_status(self, _request: web.Request) -> web.Response:
        return web.json_response({"status": "online", "name": self.name})

    async def _handle_command(self, request: web.Request) -> web.Response:
        try:
            body = await request.json()
        except ValueError:
            return web.json_response(
                {"status": "error", "message": "Body is not valid JSON"}, status=400
            )

        if not isinstance(body, dict) or not isinstance(body.get("command"), str):
            return web.json_response(
                {"status": "error", "message": "Missing command"}, status=400
            )

        command = body["command"]
        params = body.get("params") or {}
        if command not in WIRE_COMMANDS:
            logger.warning("Unknown command '%s'", command)
            return web.json_response(
                {"status": "error", "message": f"Unknown command: {command}"}
            )

        self.received.append({"command": command, "params": params})
        logger.info("Received '%s' %s", command, params)
        return web.json_response(self._reply(command, params))

    def _reply(self, command: str, params: dict[str, Any]) -> dict[str, Any]:
        if command == "get_devices":
            return {"status": "success", "data": {"devices": list(self.devices)}}
        if command == "add_device":
            device = {
                "id": uuid.uuid4().hex,
                "name": params.get("name", ""),
                "mac": params.get("mac", ""),
                "ip": params.get("ip", ""),
                "status": "offline",
            }
            self.devices.append(device)
            return {"status": "success", "data": {"device": device}}
        if command == "remove_device":
            device_id = params.get("deviceId")
            before = len(self.devices)
            self.devices = [d for d in self.devices if d.get("id") != device_id]
            if len(self.devices) == before:
                return {"status": "error", "message": f"Unknown device: {device_id}"}
            return {"status": "success"}
        if command == "get_status":
            return {"status": "success", "data": {"name": self.name}}
        return {"status": "success", "message": f"{command} executed"}


async def run_mock_server(
    host: str = "0.0.0.0",
    port: int = DEFAULT_PORT,
    name: str = "mock-companion",
) -> None:
    server = MockCompanionServer(name=name)
    runner = web.AppRunner(server.build_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("Mock companion server '%s' listening on %s:%d", name, host, port)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
