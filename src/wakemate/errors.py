"""Exception hierarchy shared by the discovery, gateway and registry layers."""

from __future__ import annotations


class WakeMateError(Exception):
    """Base class for every error raised by wakemate."""


class TransportError(WakeMateError):
    """The companion server could not be reached or sent an unusable reply."""


class CommandTimeoutError(TransportError):
    pass


class PreconditionError(WakeMateError):
    """A command was rejected before any network traffic."""


class ServerNotDiscoveredError(PreconditionError):
    def __init__(self) -> None:
        super().__init__("No companion server discovered yet. Run discovery first.")


class UnknownActionError(PreconditionError):
    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Unknown action '{action}'")


class InvalidActionError(PreconditionError):
    pass


class RegistryError(WakeMateError):
    pass


class DuplicateDeviceError(RegistryError, ValueError):
    pass


class DeviceNotFoundError(RegistryError, KeyError):
    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        super().__init__(f"Device '{device_id}' not found")

    def __str__(self) -> str:
        return self.args[0]
