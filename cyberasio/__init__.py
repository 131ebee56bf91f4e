"""CyberASIO Core - Simulated Audio Device Control Plane"""

__version__ = "1.1.0"

from cyberasio.core.config_store import ConfigurationStore
from cyberasio.core.engine import AudioEngine
from cyberasio.core.events import ChangeNotifier
from cyberasio.core.models import AudioConfiguration, DeviceStatus, DeviceType
from cyberasio.devices.registry import DeviceRegistry
from cyberasio.utils.config import ConfigManager

__all__ = [
    "AudioConfiguration",
    "AudioEngine",
    "ChangeNotifier",
    "ConfigManager",
    "ConfigurationStore",
    "DeviceRegistry",
    "DeviceStatus",
    "DeviceType",
]
