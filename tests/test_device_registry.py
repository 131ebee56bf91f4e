import threading

import pytest

from cyberasio.core.errors import InvalidTransition, NotFound
from cyberasio.core.models import AudioConfiguration, Device, DeviceStatus, DeviceType
from cyberasio.core.engine import AudioEngine
from cyberasio.devices.registry import DeviceRegistry, default_devices


def _statuses(registry: DeviceRegistry) -> dict:
    return {device.id: device.status for device in registry.get_devices()}


def _active_count(registry: DeviceRegistry) -> int:
    return sum(1 for device in registry.get_devices() if device.status == DeviceStatus.ACTIVE)


def test_seed_devices_in_insertion_order(registry) -> None:
    devices = registry.get_devices()

    assert [device.id for device in devices] == [1, 2, 3, 4]
    assert devices[0].name == "Generic HD Audio Device (WDM)"
    assert devices[1].device_type == DeviceType.KS
    assert devices[2].device_type == DeviceType.WASAPI
    assert _statuses(registry) == {
        1: DeviceStatus.ACTIVE,
        2: DeviceStatus.DISABLED,
        3: DeviceStatus.INACTIVE,
        4: DeviceStatus.INACTIVE,
    }
    assert registry.active_device_id == 1
    assert registry.is_active(1)


def test_activate_disabled_device_is_rejected(registry) -> None:
    with pytest.raises(InvalidTransition):
        registry.activate(2)

    assert registry.get_device(2).status == DeviceStatus.DISABLED
    assert registry.get_device(1).status == DeviceStatus.ACTIVE
    assert registry.active_device_id == 1


def test_activate_hands_off_from_previous_device(registry) -> None:
    registry.activate(3)

    assert registry.get_device(1).status == DeviceStatus.INACTIVE
    assert registry.get_device(3).status == DeviceStatus.ACTIVE
    assert registry.active_device_id == 3
    assert not registry.is_active(1)


def test_activate_emits_both_transitions_in_order(registry, notifier) -> None:
    events = []
    notifier.subscribe_device_status(events.append)

    registry.activate(3)

    assert [(e.device_id, e.old_status, e.new_status) for e in events] == [
        (1, DeviceStatus.ACTIVE, DeviceStatus.INACTIVE),
        (3, DeviceStatus.INACTIVE, DeviceStatus.ACTIVE),
    ]


def test_activate_already_active_device_emits_nothing(registry, notifier) -> None:
    events = []
    notifier.subscribe_device_status(events.append)

    registry.activate(1)

    assert events == []
    assert registry.active_device_id == 1


def test_unknown_device_raises_not_found(registry) -> None:
    with pytest.raises(NotFound):
        registry.activate(99)
    with pytest.raises(NotFound):
        registry.deactivate(99)
    with pytest.raises(NotFound):
        registry.set_status(99, DeviceStatus.ERROR)
    assert registry.get_device(99) is None


def test_deactivate_clears_active_pointer(registry) -> None:
    registry.deactivate(1)

    assert registry.get_device(1).status == DeviceStatus.INACTIVE
    assert registry.active_device_id is None
    assert _active_count(registry) == 0


def test_deactivate_inactive_device_is_a_no_op(registry, notifier) -> None:
    events = []
    notifier.subscribe_device_status(events.append)

    registry.deactivate(3)

    assert events == []
    assert registry.active_device_id == 1


def test_set_status_emits_only_on_change(registry, notifier) -> None:
    events = []
    notifier.subscribe_device_status(events.append)

    registry.set_status(3, DeviceStatus.ERROR)
    registry.set_status(3, DeviceStatus.ERROR)

    assert len(events) == 1
    assert events[0].old_status == DeviceStatus.INACTIVE
    assert events[0].new_status == DeviceStatus.ERROR


def test_set_status_on_active_device_clears_pointer(registry) -> None:
    registry.set_status(1, DeviceStatus.ERROR)

    assert registry.active_device_id is None
    assert registry.get_device(1).status == DeviceStatus.ERROR


def test_set_status_active_keeps_single_active_device(registry) -> None:
    registry.set_status(4, DeviceStatus.ACTIVE)

    assert registry.active_device_id == 4
    assert _active_count(registry) == 1
    with pytest.raises(InvalidTransition):
        registry.set_status(2, DeviceStatus.ACTIVE)


def test_disabled_reachable_through_set_status(registry) -> None:
    registry.set_status(3, DeviceStatus.DISABLED)

    with pytest.raises(InvalidTransition):
        registry.activate(3)


def test_random_sequences_keep_at_most_one_active(registry) -> None:
    operations = [
        ("activate", 3), ("activate", 4), ("deactivate", 4), ("activate", 1),
        ("activate", 2), ("deactivate", 1), ("activate", 3), ("activate", 3),
        ("deactivate", 2), ("activate", 4),
    ]
    for name, device_id in operations:
        try:
            getattr(registry, name)(device_id)
        except InvalidTransition:
            pass
        assert _active_count(registry) <= 1
        active = [d.id for d in registry.get_devices() if d.status == DeviceStatus.ACTIVE]
        assert active == ([registry.active_device_id] if registry.active_device_id else [])


def test_concurrent_activation_leaves_one_active_device(registry) -> None:
    barrier = threading.Barrier(3)

    def worker(device_id: int) -> None:
        barrier.wait()
        for _ in range(200):
            registry.activate(device_id)

    threads = [threading.Thread(target=worker, args=(device_id,)) for device_id in (1, 3, 4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert _active_count(registry) == 1
    assert registry.get_device(registry.active_device_id).status == DeviceStatus.ACTIVE


def test_snapshots_are_detached(registry) -> None:
    device = registry.get_device(3)
    device.status = DeviceStatus.ACTIVE

    assert registry.get_device(3).status == DeviceStatus.INACTIVE


def test_scan_replaces_device_set() -> None:
    found = [
        Device(10, "USB Interface", DeviceType.ASIO, DeviceStatus.INACTIVE),
        Device(11, "Line Out", DeviceType.WASAPI, DeviceStatus.ACTIVE),
    ]
    calls = []

    def enumerator():
        calls.append(1)
        return default_devices() if len(calls) == 1 else found

    registry = DeviceRegistry(enumerator=enumerator)
    success, devices = registry.scan()

    assert success is True
    assert [device.id for device in devices] == [10, 11]
    assert registry.active_device_id == 11


def test_empty_scan_keeps_previous_devices() -> None:
    results = [default_devices(), []]
    registry = DeviceRegistry(enumerator=lambda: results.pop(0))
    registry.activate(3)

    success, devices = registry.scan()

    assert success is False
    assert [device.id for device in devices] == [1, 2, 3, 4]
    assert registry.active_device_id == 3


def test_failing_enumerator_falls_back_to_defaults() -> None:
    def broken():
        raise RuntimeError("driver exploded")

    registry = DeviceRegistry(enumerator=broken)

    assert [device.id for device in registry.get_devices()] == [1, 2, 3, 4]
    success, _ = registry.scan()
    assert success is False


def test_install_demotes_extra_active_devices() -> None:
    registry = DeviceRegistry(enumerator=lambda: [
        Device(1, "A", DeviceType.WDM, DeviceStatus.ACTIVE),
        Device(2, "B", DeviceType.WDM, DeviceStatus.ACTIVE),
        Device(2, "B duplicate", DeviceType.WDM, DeviceStatus.INACTIVE),
    ])

    assert _active_count(registry) == 1
    assert [device.name for device in registry.get_devices()] == ["A", "B"]
    assert registry.get_device(2).status == DeviceStatus.INACTIVE


def test_device_info_fields(registry) -> None:
    info = registry.device_info(3)

    assert info["id"] == "3"
    assert info["type"] == "WASAPI"
    assert info["status"] == "Inactive"
    assert info["max_sample_rate"] == "192000"
    assert info["is_input"] == "true"


def test_check_capabilities(registry) -> None:
    assert registry.check_capabilities(1, AudioConfiguration()) == []
    with pytest.raises(NotFound):
        registry.check_capabilities(42, AudioConfiguration())


def test_enum_parsing_defaults() -> None:
    assert DeviceStatus.parse("Error") == DeviceStatus.ERROR
    assert DeviceStatus.parse("bogus") == DeviceStatus.INACTIVE
    assert DeviceType.parse("ASIO") == DeviceType.ASIO
    assert DeviceType.parse("bogus") == DeviceType.WDM


def test_rescan_reports_status_changes_to_listeners(registry, notifier) -> None:
    engine = AudioEngine()
    engine.set_active_device(registry.active_device_id)
    notifier.subscribe_device_status(engine.on_device_status_changed)
    registry.activate(3)
    events = []
    notifier.subscribe_device_status(events.append)

    success, _ = registry.scan()

    assert success is True
    assert registry.active_device_id == 1
    assert engine.active_device_id == 1
    assert [(e.device_id, e.old_status, e.new_status) for e in events] == [
        (3, DeviceStatus.ACTIVE, DeviceStatus.INACTIVE),
        (1, DeviceStatus.INACTIVE, DeviceStatus.ACTIVE),
    ]


def test_rescan_reports_vanished_and_new_active_devices(notifier) -> None:
    results = [
        default_devices(),
        [
            Device(10, "USB Interface", DeviceType.ASIO, DeviceStatus.ACTIVE),
            Device(11, "Line Out", DeviceType.WASAPI, DeviceStatus.INACTIVE),
        ],
    ]
    registry = DeviceRegistry(notifier=notifier, enumerator=lambda: results.pop(0))
    events = []
    notifier.subscribe_device_status(events.append)

    registry.scan()

    assert [(e.device_id, e.old_status, e.new_status) for e in events] == [
        (1, DeviceStatus.ACTIVE, DeviceStatus.INACTIVE),
        (10, DeviceStatus.INACTIVE, DeviceStatus.ACTIVE),
    ]


def test_unchanged_rescan_emits_nothing(registry, notifier) -> None:
    events = []
    notifier.subscribe_device_status(events.append)

    registry.scan()

    assert events == []


def test_transitions_return_active_id(registry) -> None:
    assert registry.activate(3) == 3
    assert registry.deactivate(4) == 3
    assert registry.deactivate(3) is None


def test_events_follow_activation_order_under_contention(registry, notifier) -> None:
    engine = AudioEngine()
    notifier.subscribe_device_status(engine.on_device_status_changed)
    first_seen = threading.Event()
    release = threading.Event()

    def slow_listener(event) -> None:
        if event.device_id == 3 and event.new_status == DeviceStatus.ACTIVE:
            first_seen.set()
            release.wait(timeout=5)

    notifier.subscribe_device_status(slow_listener)
    writer = threading.Thread(target=registry.activate, args=(3,))
    writer.start()
    assert first_seen.wait(timeout=5)

    registry.activate(4)
    release.set()
    writer.join(timeout=5)

    assert registry.active_device_id == 4
    assert engine.active_device_id == 4
