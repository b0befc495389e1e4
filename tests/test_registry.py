from __future__ import annotations

import pytest

from wakemate.core import DeviceRegistry
from wakemate.errors import DeviceNotFoundError, DuplicateDeviceError
from wakemate.models import DeviceStatus
from wakemate.storage import Database


@pytest.fixture
def registry(db: Database) -> DeviceRegistry:
    return DeviceRegistry(db)


def test_add_keeps_insertion_order_and_persists(db: Database, registry: DeviceRegistry):
    first = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    second = registry.add("Den", "aa:bb:cc:dd:ee:02", "192.168.1.11")

    assert [d.id for d in registry.list_devices()] == [first.id, second.id]
    assert registry.version == 2

    reloaded = DeviceRegistry(db)
    assert reloaded.list_devices() == [first, second]
    assert reloaded.get(second.id).mac == "AA:BB:CC:DD:EE:02"


@pytest.mark.parametrize(
    "mac,ip",
    [
        ("AA:BB:CC:DD:EE:99", "192.168.1.10"),
        ("aa:bb:cc:dd:ee:01", "192.168.1.99"),
    ],
)
def test_add_rejects_duplicate_addresses(registry: DeviceRegistry, mac: str, ip: str):
    registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")

    with pytest.raises(DuplicateDeviceError):
        registry.add("Other", mac, ip)
    assert len(registry) == 1
    assert registry.version == 1


def test_add_rejects_invalid_device_without_commit(registry: DeviceRegistry):
    with pytest.raises(ValueError):
        registry.add("Broken", "AA:BB:CC:DD:EE:01", "999.1.1.1")
    assert len(registry) == 0
    assert registry.version == 0


def test_update_validates_and_checks_uniqueness(registry: DeviceRegistry):
    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    registry.add("Den", "AA:BB:CC:DD:EE:02", "192.168.1.11")

    renamed = registry.update(office.id, name="Study")
    assert renamed.name == "Study"
    assert renamed.id == office.id
    assert registry.list_devices()[0] is renamed

    with pytest.raises(DuplicateDeviceError):
        registry.update(office.id, ip="192.168.1.11")
    with pytest.raises(ValueError):
        registry.update(office.id, mac="nope")
    with pytest.raises(ValueError):
        registry.update(office.id, status="online")
    assert registry.get(office.id).ip == "192.168.1.10"


def test_update_with_same_values_is_noop(registry: DeviceRegistry):
    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    version = registry.version

    # keeping its own ip must not trip the uniqueness check
    assert registry.update(office.id, ip="192.168.1.10") is office
    assert registry.version == version


def test_remove_clears_active_selection(registry: DeviceRegistry):
    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    den = registry.add("Den", "AA:BB:CC:DD:EE:02", "192.168.1.11")

    registry.select(office.id)
    assert registry.active == office

    registry.remove(den.id)
    assert registry.active == office

    registry.remove(office.id)
    assert registry.active is None
    assert len(registry) == 0


def test_unknown_ids(registry: DeviceRegistry):
    with pytest.raises(DeviceNotFoundError):
        registry.get("missing")
    with pytest.raises(DeviceNotFoundError):
        registry.remove("missing")
    with pytest.raises(DeviceNotFoundError):
        registry.select("missing")


def test_find_by_name_or_ip(registry: DeviceRegistry):
    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")

    assert registry.find("Office") is office
    assert registry.find("192.168.1.10") is office
    assert registry.find(office.id) is office
    with pytest.raises(DeviceNotFoundError):
        registry.find("Kitchen")


def test_apply_statuses_commits_only_transitions(
    db: Database, registry: DeviceRegistry
):
    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    den = registry.add("Den", "AA:BB:CC:DD:EE:02", "192.168.1.11")
    notified: list[int] = []
    registry.subscribe(lambda reg: notified.append(reg.version))
    version = registry.version

    changed = registry.apply_statuses(
        {
            office.id: DeviceStatus.ONLINE,
            den.id: DeviceStatus.OFFLINE,
            "gone": DeviceStatus.ONLINE,
        }
    )

    assert changed
    assert registry.version == version + 1
    assert notified == [version + 1]
    assert registry.get(office.id).online
    assert registry.list_devices()[1] is den
    assert DeviceRegistry(db).get(office.id).status is DeviceStatus.ONLINE

    assert not registry.apply_statuses({office.id: DeviceStatus.ONLINE})
    assert registry.version == version + 1
    assert notified == [version + 1]


def test_unsubscribe(registry: DeviceRegistry):
    calls: list[int] = []
    unsubscribe = registry.subscribe(lambda reg: calls.append(len(reg)))

    registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    unsubscribe()
    registry.clear()

    assert calls == [1]
    assert len(registry) == 0


def test_apply_statuses_skips_devices_with_changed_ip(registry: DeviceRegistry):
    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")
    den = registry.add("Den", "AA:BB:CC:DD:EE:02", "192.168.1.11")

    changed = registry.apply_statuses(
        {office.id: DeviceStatus.ONLINE, den.id: DeviceStatus.ONLINE},
        {office.id: "192.168.1.99", den.id: "192.168.1.11"},
    )

    assert changed
    assert not registry.get(office.id).online
    assert registry.get(den.id).online


def test_failing_listener_does_not_fail_mutation(
    db: Database, registry: DeviceRegistry, caplog
):
    seen: list[int] = []

    def broken(reg: DeviceRegistry) -> None:
        raise RuntimeError("listener bug")

    registry.subscribe(broken)
    registry.subscribe(lambda reg: seen.append(len(reg)))

    office = registry.add("Office", "AA:BB:CC:DD:EE:01", "192.168.1.10")

    assert seen == [1]
    assert registry.version == 1
    assert DeviceRegistry(db).get(office.id) == office
    assert "Registry listener" in caplog.text
