from cyberasio.core.errors import InvalidTransition, NotFound
from cyberasio.core.events import ChangeNotifier, EventQueue
from cyberasio.core.models import AudioConfiguration, Device, DeviceCapabilities, DeviceStatus, DeviceType, Violation
from cyberasio.utils.logger import logger
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import threading

Enumerator = Callable[[], Iterable[Device]]

def create_mock_device(device_id: int, name: str, device_type: DeviceType) -> Device:
    """Build a simulated endpoint; device 1 starts Active and device 2 Disabled"""
    status = DeviceStatus.INACTIVE
    if device_id == 1:
        status = DeviceStatus.ACTIVE
    elif device_id == 2:
        status = DeviceStatus.DISABLED
    return Device(
        id=device_id,
        name=name,
        device_type=device_type,
        status=status,
        capabilities=DeviceCapabilities()
    )

def default_devices() -> List[Device]:
    """Fixed device list standing in for a hardware scan"""
    return [
        create_mock_device(1, "Generic HD Audio Device (WDM)", DeviceType.WDM),
        create_mock_device(2, "Realtek ASIO (KS)", DeviceType.KS),
        create_mock_device(3, "NVIDIA Broadcast (WASAPI)", DeviceType.WASAPI),
        create_mock_device(4, "Focusrite USB ASIO (WDM)", DeviceType.WDM),
    ]

class DeviceRegistry:
    """Owns the known devices, their statuses and the active-device pointer.

    Every mutation runs under one lock so readers never observe two Active
    devices or a pointer that disagrees with the statuses. Change events are
    queued under the lock and delivered after it is released, in the order the
    transitions happened.
    """

    def __init__(self, notifier: Optional[ChangeNotifier] = None, enumerator: Optional[Enumerator] = None):
        self.notifier = notifier
        self.enumerator = enumerator or default_devices
        self._lock = threading.RLock()
        self._devices: Dict[int, Device] = {}
        self._active_device_id: Optional[int] = None
        self._events = EventQueue(self._deliver)

        devices = self._enumerate()
        self._install(devices or default_devices())

    # Enumeration
    def _enumerate(self) -> List[Device]:
        try:
            return list(self.enumerator())
        except Exception as e:
            logger.error(f"Device enumeration failed: {e}")
            return []

    def _install(self, devices: Iterable[Device]):
        """Replace the device set; caller holds the lock or is the constructor"""
        installed: Dict[int, Device] = {}
        active_id = None
        for device in devices:
            if device.id <= 0 or device.id in installed:
                logger.warning(f"Skipping device with invalid or duplicate id: {device.id}")
                continue
            device = device.snapshot()
            if device.status == DeviceStatus.ACTIVE:
                if active_id is None:
                    active_id = device.id
                else:
                    device.status = DeviceStatus.INACTIVE
            installed[device.id] = device
        self._devices = installed
        self._active_device_id = active_id

    def scan(self) -> Tuple[bool, List[Device]]:
        """Re-enumerate devices, keeping the previous set if the scan finds nothing"""
        logger.info("Scanning for audio devices...")
        found = self._enumerate()
        with self._lock:
            if not found:
                if not self._devices:
                    self._install(default_devices())
                logger.warning("Device scan found no devices, keeping previous device list")
                return False, self._snapshot()
            previous = {device_id: device.status for device_id, device in self._devices.items()}
            self._install(found)
            self._events.put(*self._rescan_events(previous))
            devices = self._snapshot()
        self._events.drain()
        logger.info(f"Found {len(devices)} audio devices")
        return True, devices

    def _rescan_events(self, previous: Dict[int, DeviceStatus]) -> List:
        """Transitions between two device sets, demotions before the new Active"""
        demoted, promoted = [], []
        for device_id, old_status in previous.items():
            device = self._devices.get(device_id)
            if device is None:
                if old_status == DeviceStatus.ACTIVE:
                    demoted.append((device_id, old_status, DeviceStatus.INACTIVE))
            elif device.status != old_status:
                target = promoted if device.status == DeviceStatus.ACTIVE else demoted
                target.append((device_id, old_status, device.status))
        for device_id, device in self._devices.items():
            if device_id not in previous and device.status == DeviceStatus.ACTIVE:
                promoted.append((device_id, DeviceStatus.INACTIVE, DeviceStatus.ACTIVE))
        return demoted + promoted

    # Queries
    def _snapshot(self) -> List[Device]:
        return [device.snapshot() for device in self._devices.values()]

    def get_devices(self) -> List[Device]:
        """Snapshot of all devices in enumeration order"""
        with self._lock:
            return self._snapshot()

    def get_device(self, device_id: int) -> Optional[Device]:
        with self._lock:
            device = self._devices.get(device_id)
            return device.snapshot() if device else None

    def is_active(self, device_id: int) -> bool:
        with self._lock:
            return self._active_device_id == device_id

    @property
    def active_device_id(self) -> Optional[int]:
        with self._lock:
            return self._active_device_id

    def device_info(self, device_id: int) -> Dict[str, str]:
        """Flat string description of one device"""
        device = self.get_device(device_id)
        if device is None:
            raise NotFound(device_id)
        caps = device.capabilities
        return {
            'id': str(device.id),
            'name': device.name,
            'type': device.device_type.value,
            'status': device.status.value,
            'max_sample_rate': str(caps.max_sample_rate),
            'min_buffer_size': str(caps.min_buffer_size),
            'max_buffer_size': str(caps.max_buffer_size),
            'is_input': 'true' if caps.is_input else 'false',
            'is_output': 'true' if caps.is_output else 'false'
        }

    def check_capabilities(self, device_id: int, config: AudioConfiguration) -> List[Violation]:
        """Validate a configuration against one device's capability ranges"""
        device = self.get_device(device_id)
        if device is None:
            raise NotFound(device_id)
        caps = device.capabilities
        violations = []
        if config.sample_rate not in caps.supported_sample_rates or config.sample_rate > caps.max_sample_rate:
            violations.append(Violation(
                'sample_rate', config.sample_rate,
                f"sample_rate {config.sample_rate} not supported by device {device_id}"
            ))
        if not caps.min_buffer_size <= config.buffer_size <= caps.max_buffer_size:
            violations.append(Violation(
                'buffer_size', config.buffer_size,
                f"buffer_size {config.buffer_size} outside device {device_id} range "
                f"[{caps.min_buffer_size}, {caps.max_buffer_size}]"
            ))
        if config.bit_depth not in caps.supported_bit_depths:
            violations.append(Violation(
                'bit_depth', config.bit_depth,
                f"bit_depth {config.bit_depth} not supported by device {device_id}"
            ))
        return violations

    # Status transitions
    def _require(self, device_id: int) -> Device:
        device = self._devices.get(device_id)
        if device is None:
            raise NotFound(device_id)
        return device

    def _transition(self, device: Device, status: DeviceStatus, events: List):
        if device.status == status:
            return
        events.append((device.id, device.status, status))
        device.status = status

    def _deliver(self, event: Tuple[int, DeviceStatus, DeviceStatus]):
        device_id, old_status, new_status = event
        if self.notifier:
            self.notifier.device_status_changed(device_id, old_status, new_status)
        else:
            logger.info(f"Device {device_id} status changed: {old_status.value} -> {new_status.value}")

    def activate(self, device_id: int) -> int:
        """Make a device the single active device; returns the new active id"""
        events = []
        with self._lock:
            device = self._require(device_id)
            if device.status == DeviceStatus.DISABLED:
                logger.warning(f"Refusing to activate disabled device {device_id}")
                raise InvalidTransition(device_id, device.status, DeviceStatus.ACTIVE)

            previous = self._devices.get(self._active_device_id)
            if previous is not None and previous.id != device_id:
                self._transition(previous, DeviceStatus.INACTIVE, events)

            self._transition(device, DeviceStatus.ACTIVE, events)
            self._active_device_id = device_id
            self._events.put(*events)
            name = device.name

        logger.info(f"Activated device: {name} (ID: {device_id})")
        self._events.drain()
        return device_id

    def deactivate(self, device_id: int) -> Optional[int]:
        """Set a device Inactive and clear the active pointer if it pointed here.

        Returns the active id as it stood right after this change.
        """
        events = []
        with self._lock:
            device = self._require(device_id)
            self._transition(device, DeviceStatus.INACTIVE, events)
            if self._active_device_id == device_id:
                self._active_device_id = None
            self._events.put(*events)
            active_id = self._active_device_id
            name = device.name

        if events:
            logger.info(f"Deactivated device: {name} (ID: {device_id})")
        self._events.drain()
        return active_id

    def set_status(self, device_id: int, status: DeviceStatus):
        """Low-level status change; Active goes through the activation hand-off"""
        if status == DeviceStatus.ACTIVE:
            self.activate(device_id)
            return

        events = []
        with self._lock:
            device = self._require(device_id)
            self._transition(device, status, events)
            if self._active_device_id == device_id:
                self._active_device_id = None
            self._events.put(*events)
        self._events.drain()
