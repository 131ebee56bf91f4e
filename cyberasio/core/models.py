from typing import Dict, List, Optional, Tuple
from enum import Enum
from dataclasses import dataclass, field, replace

class DeviceType(Enum):
    WDM = "WDM"
    KS = "KS"
    WASAPI = "WASAPI"
    ASIO = "ASIO"

    @classmethod
    def parse(cls, value: str) -> "DeviceType":
        """Convert a driver category name, defaulting to WDM"""
        try:
            return cls(value)
        except ValueError:
            return cls.WDM

class DeviceStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DISABLED = "Disabled"
    ERROR = "Error"

    @classmethod
    def parse(cls, value: str) -> "DeviceStatus":
        """Convert a status name, defaulting to Inactive"""
        try:
            return cls(value)
        except ValueError:
            return cls.INACTIVE

VALID_SAMPLE_RATES: Tuple[int, ...] = (44100, 48000, 88200, 96000, 192000)
VALID_BIT_DEPTHS: Tuple[int, ...] = (16, 24, 32)
MIN_BUFFER_SIZE = 32
MAX_BUFFER_SIZE = 2048
MIN_CHANNELS = 1
MAX_CHANNELS = 8

DEFAULT_AUDIO_FILE = "T-Rex Roar (Default)"

@dataclass(frozen=True)
class DeviceCapabilities:
    max_sample_rate: int = 192000
    min_buffer_size: int = MIN_BUFFER_SIZE
    max_buffer_size: int = MAX_BUFFER_SIZE
    supported_sample_rates: Tuple[int, ...] = VALID_SAMPLE_RATES
    supported_bit_depths: Tuple[int, ...] = VALID_BIT_DEPTHS
    is_input: bool = True
    is_output: bool = True

@dataclass
class Device:
    id: int
    name: str
    device_type: DeviceType
    status: DeviceStatus = DeviceStatus.INACTIVE
    capabilities: DeviceCapabilities = field(default_factory=DeviceCapabilities)

    def snapshot(self) -> "Device":
        """Detached copy safe to hand out of the registry lock"""
        return replace(self)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.device_type.value,
            'status': self.status.value
        }

@dataclass(frozen=True)
class AudioConfiguration:
    sample_rate: int = 48000
    buffer_size: int = 256
    bit_depth: int = 24
    channels: int = 2

    def to_dict(self) -> Dict[str, int]:
        return {
            'sample_rate': self.sample_rate,
            'buffer_size': self.buffer_size,
            'bit_depth': self.bit_depth,
            'channels': self.channels
        }

@dataclass(frozen=True)
class Violation:
    """A single configuration field failing its rule"""
    field: str
    value: object
    message: str

    def to_dict(self) -> Dict:
        return {'field': self.field, 'value': self.value, 'message': self.message}

@dataclass(frozen=True)
class SystemState:
    config: AudioConfiguration
    active_device_id: Optional[int]
    current_audio_file: str
    auto_save: bool

    def to_dict(self) -> Dict:
        return {
            'config': self.config.to_dict(),
            'active_device_id': self.active_device_id,
            'current_audio_file': self.current_audio_file,
            'auto_save': self.auto_save
        }

@dataclass(frozen=True)
class PersistedState:
    """What a state file restores at startup"""
    config: AudioConfiguration
    active_device_id: Optional[int]
    current_audio_file: str

@dataclass
class AudioMetrics:
    input_latency: float = 0.0
    output_latency: float = 0.0
    total_latency: float = 0.0
    spectrum_data: List[float] = None
    is_playing: bool = False

    def __post_init__(self):
        if self.spectrum_data is None:
            self.spectrum_data = []

    def to_dict(self) -> Dict:
        return {
            'input_latency': self.input_latency,
            'output_latency': self.output_latency,
            'total_latency': self.total_latency,
            'spectrum_data': list(self.spectrum_data),
            'is_playing': self.is_playing
        }
