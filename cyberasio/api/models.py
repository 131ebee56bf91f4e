from cyberasio.core.models import AudioConfiguration, AudioMetrics, Device
from pydantic import BaseModel
from typing import List, Optional

class DeviceSummary(BaseModel):
    id: int
    name: str
    type: str
    status: str

    @classmethod
    def from_device(cls, device: Device) -> "DeviceSummary":
        return cls(**device.to_dict())

class DevicesResponse(BaseModel):
    devices: List[DeviceSummary]

class AudioConfigPayload(BaseModel):
    sample_rate: int
    buffer_size: int
    bit_depth: int
    channels: int

    @classmethod
    def from_config(cls, config: AudioConfiguration) -> "AudioConfigPayload":
        return cls(**config.to_dict())

    def to_config(self) -> AudioConfiguration:
        return AudioConfiguration(
            sample_rate=self.sample_rate,
            buffer_size=self.buffer_size,
            bit_depth=self.bit_depth,
            channels=self.channels
        )

class ConfigResponse(BaseModel):
    config: AudioConfigPayload

class ComponentStatus(BaseModel):
    server: str = "online"
    audio_engine: str
    device_manager: str
    config_manager: str

class StatusResponse(BaseModel):
    status: ComponentStatus

class ProfileResponse(BaseModel):
    device_id: int
    stored: bool
    profile: AudioConfigPayload

class MetricsPayload(BaseModel):
    input_latency: float
    output_latency: float
    total_latency: float
    spectrum_data: List[float]
    is_playing: bool

    @classmethod
    def from_metrics(cls, metrics: AudioMetrics) -> "MetricsPayload":
        return cls(**metrics.to_dict())

class SystemStatePayload(BaseModel):
    config: AudioConfigPayload
    active_device_id: Optional[int]
    current_audio_file: str
    auto_save: bool
