from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from wakemate.config import (
    DatabaseConfig,
    DiscoveryConfig,
    Settings,
    SyncConfig,
    get_settings,
)
from wakemate.storage import Database

HANG = "hang"


class FakeLan:
    """In-memory LAN behind an httpx.MockTransport.

    ``status`` maps an IP to the reply for ``GET /status``: an
    ``httpx.Response``, a JSON-able dict, ``HANG`` or an exception instance.
    Unknown IPs refuse the connection. ``command_reply`` plays the same role
    for ``POST /`` on any host and ``delays`` adds per-IP latency.
    """

    def __init__(self) -> None:
        self.status: dict[str, Any] = {}
        self.command_reply: Any = {"status": "success"}
        self.commands: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.delays: dict[str, float] = {}

    def online(self, *ips: str) -> None:
        for ip in ips:
            self.status[ip] = {"status": "online"}

    def hang(self, *ips: str) -> None:
        for ip in ips:
            self.status[ip] = HANG

    @property
    def status_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/status"]

    async def _reply(self, behaviour: Any, request: httpx.Request) -> httpx.Response:
        if behaviour is None:
            raise httpx.ConnectError("Connection refused", request=request)
        if behaviour == HANG:
            await asyncio.sleep(3600)
        if isinstance(behaviour, Exception):
            raise behaviour
        if isinstance(behaviour, httpx.Response):
            return behaviour
        return httpx.Response(200, json=behaviour)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        delay = self.delays.get(request.url.host)
        if delay:
            await asyncio.sleep(delay)
        if request.method == "GET" and request.url.path == "/status":
            return await self._reply(self.status.get(request.url.host), request)
        if request.method == "POST" and request.url.path == "/":
            self.commands.append(json.loads(request.content))
            return await self._reply(self.command_reply, request)
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.delenv("WAKEMATE_CONFIG", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def lan() -> FakeLan:
    return FakeLan()


@pytest.fixture
def db(tmp_path) -> Database:
    return Database(tmp_path / "data")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database=DatabaseConfig(path=str(tmp_path / "data")),
        discovery=DiscoveryConfig(timeout=0.2, first_host=2, last_host=254),
        sync=SyncConfig(probe_timeout=0.1, wake_recheck_delay=0.01),
    )
