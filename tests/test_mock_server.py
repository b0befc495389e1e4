from __future__ import annotations

import asyncio

import pytest
from aiohttp import test_utils

from wakemate.config import ServerConfig
from wakemate.core import (
    CommandGateway,
    DeviceRegistry,
    MockCompanionServer,
    run_diagnostics,
)
from wakemate.core.discovery import scan_subnet
from wakemate.models import ServerConnection
from wakemate.storage import Database


def _with_client(server: MockCompanionServer, scenario):
    async def run():
        test_server = test_utils.TestServer(server.build_app())
        async with test_utils.TestClient(test_server) as client:
            return await scenario(client)

    return asyncio.run(run())


def test_status_endpoint():
    async def scenario(client: test_utils.TestClient):
        response = await client.get("/status")
        assert response.status == 200
        return await response.json()

    assert _with_client(MockCompanionServer(name="den"), scenario) == {
        "status": "online",
        "name": "den",
    }


def test_commands_are_recorded():
    server = MockCompanionServer()

    async def scenario(client: test_utils.TestClient):
        response = await client.post(
            "/", json={"command": "wake", "params": {"mac": "AA:BB:CC:DD:EE:01"}}
        )
        return await response.json()

    assert _with_client(server, scenario)["status"] == "success"
    assert server.received == [
        {"command": "wake", "params": {"mac": "AA:BB:CC:DD:EE:01"}}
    ]


def test_bad_requests():
    server = MockCompanionServer()

    async def scenario(client: test_utils.TestClient):
        bad_json = await client.post("/", data="{oops")
        missing = await client.post("/", json={"params": {}})
        unknown = await client.post("/", json={"command": "self_destruct"})
        return bad_json.status, missing.status, await unknown.json()

    bad_json, missing, unknown = _with_client(server, scenario)
    assert (bad_json, missing) == (400, 400)
    assert unknown == {"status": "error", "message": "Unknown command: self_destruct"}
    assert server.received == []


def test_remote_device_bookkeeping():
    server = MockCompanionServer()

    async def scenario(client: test_utils.TestClient):
        added = await client.post(
            "/",
            json={
                "command": "add_device",
                "params": {"name": "Den", "mac": "AA:BB:CC:DD:EE:02", "ip": "10.0.0.2"},
            },
        )
        device = (await added.json())["data"]["device"]
        listed = await client.post("/", json={"command": "get_devices"})
        removed = await client.post(
            "/", json={"command": "remove_device", "params": {"deviceId": device["id"]}}
        )
        again = await client.post(
            "/", json={"command": "remove_device", "params": {"deviceId": device["id"]}}
        )
        return (
            (await listed.json())["data"]["devices"],
            await removed.json(),
            await again.json(),
        )

    listed, removed, again = _with_client(server, scenario)
    assert [d["name"] for d in listed] == ["Den"]
    assert removed == {"status": "success"}
    assert again["status"] == "error"
    assert server.devices == []


def test_client_stack_against_mock_server(
    db: Database, monkeypatch: pytest.MonkeyPatch
):
    for variable in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY"):
        monkeypatch.delenv(variable, raising=False)
        monkeypatch.delenv(variable.lower(), raising=False)
    server = MockCompanionServer()

    async def run():
        test_server = test_utils.TestServer(server.build_app(), host="127.0.0.1")
        async with test_server:
            port = test_server.port
            found = await scan_subnet("127.0.0.", range(1, 2), port, 2.0)

            registry = DeviceRegistry(db)
            device = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
            connection = ServerConnection(port=port, address=found)
            gateway = CommandGateway(connection, registry, ServerConfig(port=port))
            ok = await gateway.dispatch("key_press", device.id, {"key": "enter"})

            report = await run_diagnostics("127.0.0.1", port, timeout=2.0)
            return found, ok, report

    found, ok, report = asyncio.run(run())

    assert found == "127.0.0.1"
    assert ok
    assert server.received[0]["command"] == "key_press"
    assert server.received[0]["params"]["key"] == "enter"
    assert report.overall
    assert [step.name for step in report.steps] == ["Server Ping", "Command Endpoint"]
