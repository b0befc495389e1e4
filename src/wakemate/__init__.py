"""wakemate - discover, monitor and control LAN computers through a companion server."""

from __future__ import annotations

from importlib.metadata import version

from .config import Settings, get_settings
from .errors import (
    CommandTimeoutError,
    DeviceNotFoundError,
    DuplicateDeviceError,
    PreconditionError,
    ServerNotDiscoveredError,
    TransportError,
    UnknownActionError,
    WakeMateError,
)
from .models import CommandEnvelope, Device, DeviceStatus, ServerConnection
from .services import WakeMate
from .storage import Database

__all__ = [
    "CommandEnvelope",
    "CommandTimeoutError",
    "Database",
    "Device",
    "DeviceNotFoundError",
    "DeviceStatus",
    "DuplicateDeviceError",
    "PreconditionError",
    "ServerConnection",
    "ServerNotDiscoveredError",
    "Settings",
    "TransportError",
    "UnknownActionError",
    "WakeMate",
    "WakeMateError",
    "__version__",
    "get_settings",
]

__version__ = version("wakemate")
