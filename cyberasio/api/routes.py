from cyberasio.api.models import (
    AudioConfigPayload, ComponentStatus, ConfigResponse, DeviceSummary, DevicesResponse,
    MetricsPayload, ProfileResponse, StatusResponse, SystemStatePayload,
)
from cyberasio.core.engine import AudioEngine
from cyberasio.core.errors import InvalidRequest, UnavailableComponent
from cyberasio.core.models import AudioConfiguration, Device, PersistedState, SystemState
from fastapi import APIRouter, Request
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple, Union

class DeviceSource(Protocol):
    """What the API needs from a device registry"""

    active_device_id: Optional[int]

    def get_devices(self) -> List[Device]: ...

    def device_info(self, device_id: int) -> Dict[str, str]: ...

    def activate(self, device_id: int) -> int: ...

    def deactivate(self, device_id: int) -> Optional[int]: ...

    def scan(self) -> Tuple[bool, List[Device]]: ...

class ConfigSource(Protocol):
    """What the API needs from a configuration store"""

    def get_current(self) -> AudioConfiguration: ...

    def set_current(self, config: AudioConfiguration) -> AudioConfiguration: ...

    def reset_to_defaults(self) -> AudioConfiguration: ...

    def save_profile(self, device_id: int, config: AudioConfiguration) -> None: ...

    def get_profile(self, device_id: int) -> AudioConfiguration: ...

    def has_profile(self, device_id: int) -> bool: ...

    def remove_profile(self, device_id: int) -> None: ...

    def system_state(self, active_device_id: Optional[int]) -> SystemState: ...

    def save(self, path: Union[str, Path], active_device_id: Optional[int] = None) -> Path: ...

    def load(self, path: Union[str, Path]) -> Optional[PersistedState]: ...

def parse_device_id(request: Request, name: str = "id") -> int:
    """Interpret a raw query-string value as a device id"""
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        raise InvalidRequest(f"Missing parameter: {name}")
    try:
        return int(raw)
    except ValueError:
        raise InvalidRequest(f"Invalid device id: {raw}") from None

def _online(component) -> str:
    return "online" if component is not None else "offline"

def create_api_router(
    devices: Optional[DeviceSource] = None,
    config_store: Optional[ConfigSource] = None,
    engine: Optional[AudioEngine] = None,
    state_file: Optional[Union[str, Path]] = None,
) -> APIRouter:
    """Routes over the registry, store and engine; a missing backend yields a soft error"""
    router = APIRouter()

    def require_devices() -> DeviceSource:
        if devices is None:
            raise UnavailableComponent("Device manager")
        return devices

    def require_config() -> ConfigSource:
        if config_store is None:
            raise UnavailableComponent("Config manager")
        return config_store

    def require_engine() -> AudioEngine:
        if engine is None:
            raise UnavailableComponent("Audio engine")
        return engine

    def device_list() -> List[DeviceSummary]:
        return [DeviceSummary.from_device(device) for device in require_devices().get_devices()]

    # ==========================================================================
    # Devices
    # ==========================================================================

    @router.get("/api/devices")
    async def get_devices():
        """List all known devices"""
        return DevicesResponse(devices=device_list()).model_dump()

    @router.get("/api/devices/info")
    async def get_device_info(request: Request):
        registry = require_devices()
        return {"device": registry.device_info(parse_device_id(request))}

    @router.post("/api/devices/activate")
    async def activate_device(request: Request):
        active_id = require_devices().activate(parse_device_id(request))
        return {"result": "success", "active_device_id": active_id}

    @router.post("/api/devices/deactivate")
    async def deactivate_device(request: Request):
        active_id = require_devices().deactivate(parse_device_id(request))
        return {"result": "success", "active_device_id": active_id}

    @router.post("/api/devices/scan")
    async def scan_devices():
        success, found = require_devices().scan()
        return {
            "result": "success" if success else "failed",
            "devices": [DeviceSummary.from_device(device).model_dump() for device in found]
        }

    # ==========================================================================
    # Configuration
    # ==========================================================================

    @router.get("/api/config")
    async def get_config():
        """Current global audio configuration"""
        config = require_config().get_current()
        return ConfigResponse(config=AudioConfigPayload.from_config(config)).model_dump()

    @router.post("/api/config")
    async def set_config(payload: AudioConfigPayload):
        applied = require_config().set_current(payload.to_config())
        return {"result": "success", "config": applied.to_dict()}

    @router.post("/api/config/reset")
    async def reset_config():
        config = require_config().reset_to_defaults()
        return {"result": "success", "config": config.to_dict()}

    @router.post("/api/config/save")
    def save_config():
        # Sync handler: runs in the worker pool while the file is written
        store = require_config()
        if state_file is None:
            raise UnavailableComponent("State file")
        active_id = devices.active_device_id if devices is not None else None
        path = store.save(state_file, active_id)
        return {"result": "success", "path": str(path)}

    @router.get("/api/profiles")
    async def get_profile(request: Request):
        store = require_config()
        device_id = parse_device_id(request, "device_id")
        return ProfileResponse(
            device_id=device_id,
            stored=store.has_profile(device_id),
            profile=AudioConfigPayload.from_config(store.get_profile(device_id))
        ).model_dump()

    @router.post("/api/profiles")
    async def save_profile(request: Request, payload: AudioConfigPayload):
        store = require_config()
        device_id = parse_device_id(request, "device_id")
        store.save_profile(device_id, payload.to_config())
        return {"result": "success", "device_id": device_id}

    @router.delete("/api/profiles")
    async def remove_profile(request: Request):
        store = require_config()
        device_id = parse_device_id(request, "device_id")
        store.remove_profile(device_id)
        return {"result": "success", "device_id": device_id}

    @router.get("/api/state")
    async def get_state():
        store = require_config()
        active_id = devices.active_device_id if devices is not None else None
        state = store.system_state(active_id)
        return {"state": SystemStatePayload(**state.to_dict()).model_dump()}

    # ==========================================================================
    # Status and audio engine
    # ==========================================================================

    @router.get("/api/status")
    async def get_status():
        """Component availability; managers are online once wired"""
        engine_online = engine is not None and engine.is_initialized
        return StatusResponse(status=ComponentStatus(
            audio_engine="online" if engine_online else "offline",
            device_manager=_online(devices),
            config_manager=_online(config_store)
        )).model_dump()

    @router.get("/api/metrics")
    async def get_metrics():
        metrics = require_engine().get_metrics()
        return {"metrics": MetricsPayload.from_metrics(metrics).model_dump()}

    @router.post("/api/audio/play")
    async def play_audio():
        audio = require_engine()
        if not audio.play():
            raise UnavailableComponent("Audio engine")
        return {"result": "success", "message": "Audio command processed"}

    @router.post("/api/audio/stop")
    async def stop_audio():
        audio = require_engine()
        audio.stop()
        return {"result": "success", "message": "Audio playback stopped"}

    return router
