from cyberasio.core.models import AudioConfiguration, DeviceStatus
from cyberasio.utils.logger import logger
from dataclasses import dataclass
from collections import deque
from typing import Any, Callable, Deque, Dict, List
import threading

@dataclass(frozen=True)
class DeviceStatusChanged:
    device_id: int
    old_status: DeviceStatus
    new_status: DeviceStatus

    def to_dict(self) -> Dict:
        return {
            'type': 'device_status_changed',
            'data': {
                'device_id': self.device_id,
                'old_status': self.old_status.value,
                'new_status': self.new_status.value
            }
        }

@dataclass(frozen=True)
class ConfigurationChanged:
    config: AudioConfiguration

    def to_dict(self) -> Dict:
        return {
            'type': 'configuration_changed',
            'data': self.config.to_dict()
        }

DeviceStatusListener = Callable[[DeviceStatusChanged], None]
ConfigurationListener = Callable[[ConfigurationChanged], None]

class ChangeNotifier:
    """Synchronous observer list for device status and configuration changes.

    Listeners run in registration order on the thread that performed the
    mutation. A failing listener is logged and skipped; it never fails the
    operation that triggered it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._device_listeners: List[DeviceStatusListener] = []
        self._config_listeners: List[ConfigurationListener] = []

    def subscribe_device_status(self, listener: DeviceStatusListener) -> Callable[[], None]:
        """Register a device status listener; returns an unsubscribe callable"""
        return self._subscribe(self._device_listeners, listener)

    def subscribe_configuration(self, listener: ConfigurationListener) -> Callable[[], None]:
        """Register a configuration listener; returns an unsubscribe callable"""
        return self._subscribe(self._config_listeners, listener)

    def _subscribe(self, listeners: List, listener: Callable) -> Callable[[], None]:
        with self._lock:
            listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def device_status_changed(self, device_id: int, old_status: DeviceStatus, new_status: DeviceStatus):
        """Broadcast a device status transition"""
        event = DeviceStatusChanged(device_id, old_status, new_status)
        logger.info(f"Device {device_id} status changed: {old_status.value} -> {new_status.value}")
        self._dispatch(self._device_listeners, event)

    def configuration_changed(self, config: AudioConfiguration):
        """Broadcast a new full audio configuration"""
        self._dispatch(self._config_listeners, ConfigurationChanged(config))

    def _dispatch(self, listeners: List, event):
        with self._lock:
            targets = list(listeners)
        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener {listener!r} failed handling {type(event).__name__}")

class EventQueue:
    """FIFO of pending notifications delivered by one thread at a time.

    Producers call put() while still holding their own state lock, so the
    queue order is the mutation order. drain() is called after that lock is
    released; if another thread is already delivering, it picks up the new
    items before it returns. A listener that mutates again on the same thread
    has its event queued behind the current one.
    """

    def __init__(self, deliver: Callable[[Any], None]):
        self._deliver = deliver
        self._lock = threading.Lock()
        self._pending: Deque[Any] = deque()
        self._draining = False

    def put(self, *items):
        with self._lock:
            self._pending.extend(items)

    def drain(self):
        with self._lock:
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._draining = False
                        return
                    item = self._pending.popleft()
                self._deliver(item)
        except BaseException:
            with self._lock:
                self._draining = False
            raise
