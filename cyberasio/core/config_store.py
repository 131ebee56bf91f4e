from cyberasio.core.errors import IOFailure, ValidationError
from cyberasio.core.events import ChangeNotifier, EventQueue
from cyberasio.core.models import (
    DEFAULT_AUDIO_FILE, MAX_BUFFER_SIZE, MAX_CHANNELS, MIN_BUFFER_SIZE, MIN_CHANNELS,
    VALID_BIT_DEPTHS, VALID_SAMPLE_RATES, AudioConfiguration, Device, PersistedState,
    SystemState, Violation,
)
from cyberasio.utils.logger import logger
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Union
import os
import tempfile
import threading

STATE_FILE_HEADER = (
    "# CyberASIO Core Configuration\n"
    "# Generated automatically - do not edit while application is running\n"
)

class CapabilitySource(Protocol):
    def get_device(self, device_id: int) -> Optional[Device]: ...

    def check_capabilities(self, device_id: int, config: AudioConfiguration) -> List[Violation]: ...

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)

def validate(config: AudioConfiguration) -> List[Violation]:
    """Check every field of a configuration; an empty list means valid"""
    violations = []

    if not _is_int(config.sample_rate) or config.sample_rate not in VALID_SAMPLE_RATES:
        allowed = ", ".join(str(rate) for rate in VALID_SAMPLE_RATES)
        violations.append(Violation(
            'sample_rate', config.sample_rate,
            f"sample_rate must be one of {allowed}"
        ))

    buffer_size = config.buffer_size
    if not _is_int(buffer_size) or not MIN_BUFFER_SIZE <= buffer_size <= MAX_BUFFER_SIZE:
        violations.append(Violation(
            'buffer_size', buffer_size,
            f"buffer_size must be between {MIN_BUFFER_SIZE} and {MAX_BUFFER_SIZE}"
        ))
    elif buffer_size & (buffer_size - 1) != 0:
        violations.append(Violation(
            'buffer_size', buffer_size,
            "buffer_size must be a power of two"
        ))

    if not _is_int(config.bit_depth) or config.bit_depth not in VALID_BIT_DEPTHS:
        allowed = ", ".join(str(depth) for depth in VALID_BIT_DEPTHS)
        violations.append(Violation(
            'bit_depth', config.bit_depth,
            f"bit_depth must be one of {allowed}"
        ))

    if not _is_int(config.channels) or not MIN_CHANNELS <= config.channels <= MAX_CHANNELS:
        violations.append(Violation(
            'channels', config.channels,
            f"channels must be between {MIN_CHANNELS} and {MAX_CHANNELS}"
        ))

    return violations

def parse_state_text(text: str) -> Optional[PersistedState]:
    """Parse the key=value state format; None if anything is garbled or invalid"""
    values: Dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#'):
            continue
        if '=' not in line:
            continue
        key, value = line.split('=', 1)
        values[key.strip()] = value.strip()

    if not values:
        return None

    defaults = AudioConfiguration()
    try:
        config = AudioConfiguration(
            sample_rate=int(values.get('sample_rate', defaults.sample_rate)),
            buffer_size=int(values.get('buffer_size', defaults.buffer_size)),
            bit_depth=int(values.get('bit_depth', defaults.bit_depth)),
            channels=int(values.get('channels', defaults.channels))
        )
        active_raw = values.get('active_device_id', '')
        active_device_id = int(active_raw) if active_raw else -1
    except ValueError:
        return None

    if validate(config) or active_device_id < -1:
        return None

    return PersistedState(
        config=config,
        active_device_id=active_device_id if active_device_id > 0 else None,
        current_audio_file=values.get('current_audio_file', DEFAULT_AUDIO_FILE)
    )

def render_state_text(config: AudioConfiguration, active_device_id: Optional[int], current_audio_file: str) -> str:
    lines = [
        STATE_FILE_HEADER,
        "# Audio Configuration",
        f"sample_rate={config.sample_rate}",
        f"buffer_size={config.buffer_size}",
        f"bit_depth={config.bit_depth}",
        f"channels={config.channels}",
        "",
        "# System Configuration",
        f"active_device_id={active_device_id if active_device_id is not None else -1}",
        f"current_audio_file={current_audio_file}",
    ]
    return "\n".join(lines) + "\n"

class ConfigurationStore:
    """Validated storage of the current audio configuration and per-device profiles"""

    def __init__(self, notifier: Optional[ChangeNotifier] = None, capabilities: Optional[CapabilitySource] = None,
                 auto_save: bool = True):
        self.notifier = notifier
        self.capabilities = capabilities
        self._lock = threading.RLock()
        self._current = AudioConfiguration()
        self._profiles: Dict[int, AudioConfiguration] = {}
        self._current_audio_file = DEFAULT_AUDIO_FILE
        self._auto_save = auto_save
        self._events = EventQueue(self._deliver)

    # Validation
    def validate(self, config: AudioConfiguration) -> List[Violation]:
        return validate(config)

    def validate_for_device(self, device_id: int, config: AudioConfiguration) -> List[Violation]:
        """Range checks plus the device's own capabilities when the device is known"""
        violations = validate(config)
        if violations or self.capabilities is None:
            return violations
        if self.capabilities.get_device(device_id) is None:
            return violations
        return self.capabilities.check_capabilities(device_id, config)

    # Current configuration
    def get_current(self) -> AudioConfiguration:
        with self._lock:
            return self._current

    def set_current(self, config: AudioConfiguration) -> AudioConfiguration:
        """Apply a configuration atomically or raise ValidationError leaving state unchanged"""
        violations = validate(config)
        if violations:
            logger.warning(f"Rejected audio configuration: {[v.message for v in violations]}")
            raise ValidationError(violations)

        with self._lock:
            self._current = config
            self._events.put(config)

        logger.info(
            f"Audio configuration updated - Sample Rate: {config.sample_rate} Hz, "
            f"Buffer: {config.buffer_size} samples, Bit Depth: {config.bit_depth} bits, "
            f"Channels: {config.channels}"
        )
        self._events.drain()
        return config

    def reset_to_defaults(self) -> AudioConfiguration:
        config = AudioConfiguration()
        with self._lock:
            self._current = config
            self._profiles.clear()
            self._current_audio_file = DEFAULT_AUDIO_FILE
            self._events.put(config)
        logger.info("Configuration reset to defaults")
        self._events.drain()
        return config

    def _deliver(self, config: AudioConfiguration):
        if self.notifier:
            self.notifier.configuration_changed(config)

    # Device profiles
    def save_profile(self, device_id: int, config: AudioConfiguration):
        """Store a profile for any device id, enumerated or not"""
        violations = self.validate_for_device(device_id, config)
        if violations:
            logger.warning(f"Rejected profile for device {device_id}: {[v.message for v in violations]}")
            raise ValidationError(violations)

        with self._lock:
            self._profiles[device_id] = config
        logger.info(f"Device profile saved for device {device_id}")

    def get_profile(self, device_id: int) -> AudioConfiguration:
        with self._lock:
            return self._profiles.get(device_id, AudioConfiguration())

    def has_profile(self, device_id: int) -> bool:
        with self._lock:
            return device_id in self._profiles

    def remove_profile(self, device_id: int):
        with self._lock:
            removed = self._profiles.pop(device_id, None)
        if removed is not None:
            logger.info(f"Device profile removed for device {device_id}")

    # Runtime settings
    @property
    def current_audio_file(self) -> str:
        with self._lock:
            return self._current_audio_file

    def set_current_audio_file(self, label: str):
        with self._lock:
            self._current_audio_file = label

    @property
    def auto_save(self) -> bool:
        return self._auto_save

    @auto_save.setter
    def auto_save(self, enabled: bool):
        self._auto_save = bool(enabled)

    def system_state(self, active_device_id: Optional[int]) -> SystemState:
        with self._lock:
            return SystemState(
                config=self._current,
                active_device_id=active_device_id,
                current_audio_file=self._current_audio_file,
                auto_save=self._auto_save
            )

    def export_dict(self, active_device_id: Optional[int] = None) -> Dict:
        with self._lock:
            profiles = {str(device_id): cfg.to_dict() for device_id, cfg in sorted(self._profiles.items())}
        return {
            'system': self.system_state(active_device_id).to_dict(),
            'device_profiles': profiles
        }

    # Persistence
    def load(self, path: Union[str, Path]) -> Optional[PersistedState]:
        """Restore persisted state; missing or garbled files leave defaults in place"""
        path = Path(path)
        logger.info(f"Loading configuration from: {path}")
        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            logger.info("No configuration file found, using defaults")
            return None
        except OSError as e:
            logger.error(f"Could not read configuration file: {e}")
            return None

        state = parse_state_text(text)
        if state is None:
            logger.warning("Configuration file is malformed, using defaults")
            return None

        with self._lock:
            self._current = state.config
            self._current_audio_file = state.current_audio_file
            self._events.put(state.config)
        logger.info("Configuration loaded successfully")
        self._events.drain()
        return state

    def save(self, path: Union[str, Path], active_device_id: Optional[int] = None) -> Path:
        """Write the state file; raises IOFailure without touching in-memory state"""
        path = Path(path)
        with self._lock:
            text = render_state_text(self._current, active_device_id, self._current_audio_file)

        logger.info(f"Saving configuration to: {path}")
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(text)
            os.replace(tmp_name, path)
        except OSError as e:
            logger.error(f"Failed to save configuration: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise IOFailure(path, str(e)) from e

        logger.info("Configuration saved successfully")
        return path
