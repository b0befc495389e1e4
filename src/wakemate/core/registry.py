from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from wakemate.errors import DeviceNotFoundError, DuplicateDeviceError
from wakemate.models import Device, DeviceStatus
from wakemate.storage import Database

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"name", "mac", "ip"})

Listener = Callable[["DeviceRegistry"], None]


class DeviceRegistry:
    """Authoritative in-memory device list, saved to the database on every mutation.

    Devices keep insertion order. ``version`` increases once per committed
    mutation and listeners are notified after the new state is on disk.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._devices: list[Device] = database.load_devices()
        self._active_id: str | None = None
        self._listeners: list[Listener] = []
        self.version = 0

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return any(device.id == device_id for device in self._devices)

    def list_devices(self) -> list[Device]:
        return list(self._devices)

    def get(self, device_id: str) -> Device:
        for device in self._devices:
            if device.id == device_id:
                return device
        raise DeviceNotFoundError(device_id)

    def find(self, ref: str) -> Device:
        """Look a device up by id, exact name or IP address."""
        for device in self._devices:
            if ref in (device.id, device.name, device.ip):
                return device
        raise DeviceNotFoundError(ref)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    # Mutations

    def add(self, name: str, mac: str, ip: str) -> Device:
        return self.add_device(Device(name=name, mac=mac, ip=ip))

    def add_device(self, device: Device) -> Device:
        if device.id in self:
            raise DuplicateDeviceError(f"Device id '{device.id}' already registered")
        self._check_unique(device)
        self._commit([*self._devices, device])
        logger.info("Added device '%s' (%s)", device.name, device.ip)
        return device

    def update(self, device_id: str, **patch: Any) -> Device:
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

        current = self.get(device_id)
        updated = Device.model_validate({**current.model_dump(), **patch})
        if updated == current:
            return current
        self._check_unique(updated, ignore_id=device_id)
        self._commit([updated if d.id == device_id else d for d in self._devices])
        logger.info("Updated device '%s'", updated.name)
        return updated

    def remove(self, device_id: str) -> Device:
        device = self.get(device_id)
        if self._active_id == device_id:
            self._active_id = None
        self._commit([d for d in self._devices if d.id != device_id])
        logger.info("Removed device '%s'", device.name)
        return device

    def clear(self) -> None:
        self._active_id = None
        self._commit([])

    def apply_statuses(
        self,
        statuses: Mapping[str, DeviceStatus],
        probed_ips: Mapping[str, str] | None = None,
    ) -> bool:
        """Write probed statuses in one commit; only transitions are applied.

        Ids that are no longer registered are ignored, and so are devices whose
        ip no longer matches the one in ``probed_ips``. Returns False, without
        touching the database or listeners, when nothing changed.
        """
        changed = False
        devices: list[Device] = []
        for device in self._devices:
            status = statuses.get(device.id)
            if probed_ips is not None and probed_ips.get(device.id) != device.ip:
                status = None
            if status is not None and status != device.status:
                device = device.model_copy(update={"status": status})
                changed = True
            devices.append(device)

        if changed:
            self._commit(devices)
        return changed

    # Selection

    @property
    def active(self) -> Device | None:
        if self._active_id is None:
            return None
        return self.get(self._active_id)

    def select(self, device_id: str | None) -> Device | None:
        if device_id is not None:
            self.get(device_id)
        self._active_id = device_id
        return self.active

    # Internals

    def _check_unique(self, candidate: Device, ignore_id: str | None = None) -> None:
        for device in self._devices:
            if device.id == ignore_id:
                continue
            if device.ip == candidate.ip:
                raise DuplicateDeviceError(
                    f"IP address {candidate.ip} already used by '{device.name}'"
                )
            if device.mac == candidate.mac:
                raise DuplicateDeviceError(
                    f"MAC address {candidate.mac} already used by '{device.name}'"
                )

    def _commit(self, devices: list[Device]) -> None:
        self._db.save_devices(devices)
        self._devices = devices
        self.version += 1
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Registry listener %r failed", listener)
