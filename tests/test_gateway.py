from __future__ import annotations

import asyncio

import httpx
import pytest

from wakemate.config import ServerConfig
from wakemate.core import CommandGateway, DeviceRegistry, is_success
from wakemate.errors import (
    CommandTimeoutError,
    DeviceNotFoundError,
    InvalidActionError,
    ServerNotDiscoveredError,
    TransportError,
    UnknownActionError,
)
from wakemate.models import CommandEnvelope, Device, ServerConnection
from wakemate.storage import Database


@pytest.fixture
def registry(db: Database) -> DeviceRegistry:
    return DeviceRegistry(db)


@pytest.fixture
def device(registry: DeviceRegistry) -> Device:
    return registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")


def _gateway(lan, registry: DeviceRegistry, address: str | None = "192.168.1.42"):
    connection = ServerConnection(port=7777, address=address)
    config = ServerConfig(command_timeout=0.2)
    return CommandGateway(connection, registry, config, transport=lan.transport)


def test_is_success():
    assert is_success({"status": "success"})
    assert is_success({"success": True})
    assert not is_success({"status": "error"})
    assert not is_success({"success": "yes"})
    assert not is_success({})


def test_dispatch_without_server_makes_no_request(lan, registry, device: Device):
    gateway = _gateway(lan, registry, address=None)

    with pytest.raises(ServerNotDiscoveredError):
        asyncio.run(gateway.dispatch("wake", device.id))
    assert lan.requests == []


def test_unknown_action_rejected_before_network(lan, registry, device: Device):
    gateway = _gateway(lan, registry, address=None)

    with pytest.raises(UnknownActionError):
        asyncio.run(gateway.dispatch("launch_rockets", device.id))
    with pytest.raises(InvalidActionError):
        asyncio.run(gateway.dispatch("key_press", device.id, {"key": ""}))
    assert lan.requests == []


def test_unknown_device_rejected_before_network(lan, registry):
    gateway = _gateway(lan, registry)

    with pytest.raises(DeviceNotFoundError):
        asyncio.run(gateway.dispatch("sleep", "missing"))
    assert lan.requests == []


def test_dispatch_posts_envelope_to_server_root(lan, registry, device: Device):
    gateway = _gateway(lan, registry)

    assert asyncio.run(gateway.dispatch("wake", device.id))

    request = lan.requests[-1]
    assert request.method == "POST"
    assert str(request.url) == "http://192.168.1.42:7777/"
    assert lan.commands == [
        {
            "command": "wake",
            "params": {
                "deviceId": device.id,
                "ip": "192.168.1.10",
                "mac": "AA:BB:CC:DD:EE:01",
            },
        }
    ]
    assert gateway.connection.connected


@pytest.mark.parametrize(
    "action,params",
    [
        ("wake", None),
        ("move", {"deltaX": 3, "deltaY": 4}),
        ("mouse_move", {"deltaX": 3, "deltaY": 4}),
        ("key_press", {"key": "a"}),
        ("volume_up", None),
    ],
)
@pytest.mark.parametrize(
    "reply,expected",
    [
        ({"status": "success"}, True),
        ({"success": True, "message": "done"}, True),
        ({"status": "error", "message": "nope"}, False),
        ({"success": False}, False),
        ((404, {"status": "success"}), False),
        ((500, {"status": "error"}), False),
    ],
)
def test_outcome_is_uniform_across_actions(
    lan, registry, device: Device, action, params, reply, expected
):
    if isinstance(reply, tuple):
        reply = httpx.Response(reply[0], json=reply[1])
    lan.command_reply = reply
    gateway = _gateway(lan, registry)

    assert asyncio.run(gateway.dispatch(action, device.id, params)) is expected


def test_http_error_status_marks_connection_failed(lan, registry, device: Device):
    lan.command_reply = httpx.Response(503)
    gateway = _gateway(lan, registry)

    assert asyncio.run(gateway.send(CommandEnvelope(command="get_status"))) == {
        "status": "error",
        "httpStatus": 503,
    }
    assert not gateway.connection.connected
    assert "503" in gateway.connection.last_error


def test_error_reply_still_counts_as_connected(lan, registry, device: Device):
    lan.command_reply = {"status": "error", "message": "unsupported"}
    gateway = _gateway(lan, registry)

    assert not asyncio.run(gateway.dispatch("sleep", device.id))
    assert gateway.connection.connected
    assert gateway.connection.last_error is None


def test_timeout_raises_and_marks_connection(lan, registry, device: Device):
    lan.command_reply = httpx.ReadTimeout("timed out")
    gateway = _gateway(lan, registry)

    with pytest.raises(CommandTimeoutError):
        asyncio.run(gateway.dispatch("shutdown", device.id))
    assert not gateway.connection.connected
    assert not gateway.connection.trusted


@pytest.mark.parametrize(
    "reply",
    [
        None,
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json=["success"]),
    ],
)
def test_unusable_reply_raises_transport_error(lan, registry, device: Device, reply):
    lan.command_reply = reply
    gateway = _gateway(lan, registry)

    with pytest.raises(TransportError):
        asyncio.run(gateway.dispatch("restart", device.id))
    assert gateway.connection.last_error is not None


def test_server_level_commands(lan, registry, device: Device):
    gateway = _gateway(lan, registry)

    lan.command_reply = {"status": "success", "data": {"devices": [{"id": "r1"}]}}
    assert asyncio.run(gateway.get_remote_devices()) == [{"id": "r1"}]

    lan.command_reply = {"status": "success"}
    assert asyncio.run(gateway.get_status())
    assert asyncio.run(gateway.add_remote_device(device))
    assert asyncio.run(gateway.remove_remote_device("r1"))

    assert [c["command"] for c in lan.commands] == [
        "get_devices",
        "get_status",
        "add_device",
        "remove_device",
    ]
    assert lan.commands[2]["params"] == {
        "name": "Office",
        "mac": "AA:BB:CC:DD:EE:01",
        "ip": "192.168.1.10",
    }
    assert lan.commands[3]["params"] == {"deviceId": "r1"}


def test_unusable_server_address_raises_transport_error(lan, registry, device: Device):
    gateway = _gateway(lan, registry, address="192.168.01.42")

    with pytest.raises(TransportError):
        asyncio.run(gateway.dispatch("wake", device.id))
    assert lan.requests == []
    assert not gateway.connection.trusted


def test_mouse_move_alias_sends_mouse_move(lan, registry, device: Device):
    gateway = _gateway(lan, registry)

    assert asyncio.run(
        gateway.dispatch("mouse_move", device.id, {"deltaX": 1, "deltaY": 2})
    )
    assert lan.commands[0]["command"] == "mouse_move"
    assert lan.commands[0]["params"]["deltaX"] == 1
    assert lan.commands[0]["params"]["deltaY"] == 2
