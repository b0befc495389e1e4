"""Device and server connection models."""

from __future__ import annotations

import ipaddress
import re
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

MAC_PATTERN = re.compile(r"^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$")
IPV4_PATTERN = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


def _new_device_id() -> str:
    return uuid.uuid4().hex


def validate_mac(value: str) -> str:
    value = value.strip()
    if not MAC_PATTERN.match(value):
        raise ValueError(f"Invalid MAC address '{value}' (expected AA:BB:CC:DD:EE:FF)")
    return value.upper()


def validate_ipv4(value: str) -> str:
    value = value.strip()
    if not IPV4_PATTERN.match(value):
        raise ValueError(f"Invalid IPv4 address '{value}'")
    try:
        # rejects octets above 255 and leading zeros, which httpx refuses
        ipaddress.IPv4Address(value)
    except ipaddress.AddressValueError as exc:
        raise ValueError(f"Invalid IPv4 address '{value}' ({exc})") from exc
    return value


class Device(BaseModel):
    """A controllable computer on the LAN.

    Instances are immutable; edits and status transitions produce a new
    instance through ``model_copy`` so that unchanged devices keep their
    identity across reconciliation cycles.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(default_factory=_new_device_id)
    name: str = Field(min_length=1)
    mac: str
    ip: str
    status: DeviceStatus = DeviceStatus.OFFLINE

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Device name must not be empty")
        return value

    @field_validator("mac")
    @classmethod
    def _check_mac(cls, value: str) -> str:
        return validate_mac(value)

    @field_validator("ip")
    @classmethod
    def _check_ip(cls, value: str) -> str:
        return validate_ipv4(value)

    @property
    def online(self) -> bool:
        return self.status is DeviceStatus.ONLINE


class CommandEnvelope(BaseModel):
    """Wire unit POSTed to the companion server."""

    command: str
    params: dict[str, Any] = Field(default_factory=dict)


class ServerConnection:
    """The companion server binding shared by discovery and the gateway.

    Discovery owns the instance and binds an address; the gateway reads it on
    every dispatch and reports failures back through ``mark_failed``.
    """

    def __init__(self, port: int, address: str | None = None) -> None:
        self.port = port
        self.address = address
        self.connected = False
        self.last_error: str | None = None

    def __repr__(self) -> str:
        return (
            f"ServerConnection(address={self.address!r}, port={self.port}, "
            f"connected={self.connected})"
        )

    @property
    def base_url(self) -> str | None:
        if self.address is None:
            return None
        return f"http://{self.address}:{self.port}"

    @property
    def trusted(self) -> bool:
        """Address is set and nothing has failed through it since binding."""
        return self.address is not None and self.last_error is None

    def bind(self, address: str, connected: bool = False) -> None:
        self.address = address
        self.connected = connected
        self.last_error = None

    def mark_connected(self) -> None:
        self.connected = True
        self.last_error = None

    def mark_failed(self, message: str) -> None:
        self.connected = False
        self.last_error = message

    def reset(self) -> None:
        self.address = None
        self.connected = False
        self.last_error = None
