from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from wakemate.models import Device
from wakemate.models.device import validate_ipv4

logger = logging.getLogger(__name__)

DEVICES_FILE = "devices.json"
SERVER_FILE = "server.json"
DEVICES_KEY = "devices"
SERVER_KEY = "serverIp"


def _write_json_atomic(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w") as handle:
            json.dump(data, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class Database:
    """JSON files under the data directory: the device list and the server address."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._devices_path = data_dir / DEVICES_FILE
        self._server_path = data_dir / SERVER_FILE

    @property
    def path(self) -> Path:
        return self._data_dir

    @property
    def devices_path(self) -> Path:
        return self._devices_path

    @property
    def server_path(self) -> Path:
        return self._server_path

    def ensure_dirs(self) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            with path.open("r") as handle:
                data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path}\n{exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Invalid data file: {path} (expected a JSON object)")
        return data

    def load_devices(self) -> list[Device]:
        if not self._devices_path.exists():
            return []

        data = self._read(self._devices_path)
        try:
            return [Device.model_validate(item) for item in data.get(DEVICES_KEY, [])]
        except ValidationError as exc:
            raise ValueError(
                f"Invalid devices file: {self._devices_path}\n{exc}"
            ) from exc

    def save_devices(self, devices: list[Device]) -> None:
        payload = {DEVICES_KEY: [device.model_dump(mode="json") for device in devices]}
        _write_json_atomic(self._devices_path, payload)

    def load_server_address(self) -> str | None:
        if not self._server_path.exists():
            return None
        address = self._read(self._server_path).get(SERVER_KEY)
        if not address:
            return None
        try:
            return validate_ipv4(str(address))
        except ValueError:
            logger.warning(
                "Ignoring invalid server address %r in %s", address, self._server_path
            )
            return None

    def save_server_address(self, address: str | None) -> None:
        _write_json_atomic(self._server_path, {SERVER_KEY: address})

    def init(self, force: bool = False) -> bool:
        """Create the data directory and an empty registry.

        Returns True if the registry file was (re)written.
        """
        created = not self._devices_path.exists()
        self.ensure_dirs()
        if created or force:
            self.save_devices([])
        return created or force
