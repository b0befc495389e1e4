"""Data models for WakeMATE."""

from wakemate.models.actions import (
    ACTION_ALIASES,
    ACTION_NAMES,
    Action,
    KeyPress,
    MediaAction,
    MouseClick,
    MouseMove,
    MouseScroll,
    PowerAction,
    TextInput,
    VolumeAction,
    parse_action,
    recheck_delay,
    to_envelope,
)
from wakemate.models.device import (
    CommandEnvelope,
    Device,
    DeviceStatus,
    ServerConnection,
)

__all__ = [
    "ACTION_ALIASES",
    "ACTION_NAMES",
    "Action",
    "CommandEnvelope",
    "Device",
    "DeviceStatus",
    "KeyPress",
    "MediaAction",
    "MouseClick",
    "MouseMove",
    "MouseScroll",
    "PowerAction",
    "ServerConnection",
    "TextInput",
    "VolumeAction",
    "parse_action",
    "recheck_delay",
    "to_envelope",
]
