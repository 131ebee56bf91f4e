# CyberASIO Core API Client
# Example client for communicating with the control-plane server

import requests
import json
import websockets
import asyncio
from typing import Callable, Dict, List, Optional

class ApiError(Exception):
    """Raised when the server answers with a soft error payload"""

    def __init__(self, payload: Dict):
        self.payload = payload
        super().__init__(payload.get("error", "Unknown error"))

class CyberAsioClient:
    """Client for communicating with the CyberASIO Core API"""
    
    def __init__(self, base_url: str = "http://localhost:7788", session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.websocket = None
        self.event_callbacks: Dict[str, Callable] = {}

    def _request(self, method: str, path: str, **kwargs) -> Dict:
        response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        response.raise_for_status()
        data = response.json()
        if isinstance(data, dict) and "error" in data:
            raise ApiError(data)
        return data
    
    # Device Management API
    def get_devices(self) -> List[Dict]:
        """Get all known audio devices"""
        return self._request("GET", "/api/devices")["devices"]

    def get_device_info(self, device_id: int) -> Dict:
        return self._request("GET", "/api/devices/info", params={"id": device_id})["device"]

    def activate_device(self, device_id: int) -> Dict:
        """Make a device the active device"""
        return self._request("POST", "/api/devices/activate", params={"id": device_id})

    def deactivate_device(self, device_id: int) -> Dict:
        return self._request("POST", "/api/devices/deactivate", params={"id": device_id})

    def scan_devices(self) -> Dict:
        return self._request("POST", "/api/devices/scan")
    
    # Configuration API
    def get_config(self) -> Dict:
        """Get the current audio configuration"""
        return self._request("GET", "/api/config")["config"]

    def set_config(self, sample_rate: int, buffer_size: int, bit_depth: int, channels: int) -> Dict:
        """Apply a new audio configuration"""
        data = {"sample_rate": sample_rate, "buffer_size": buffer_size, "bit_depth": bit_depth, "channels": channels}
        return self._request("POST", "/api/config", json=data)["config"]

    def reset_config(self) -> Dict:
        return self._request("POST", "/api/config/reset")["config"]

    def save_config(self) -> Dict:
        return self._request("POST", "/api/config/save")

    def get_profile(self, device_id: int) -> Dict:
        return self._request("GET", "/api/profiles", params={"device_id": device_id})

    def save_profile(self, device_id: int, config: Dict) -> Dict:
        return self._request("POST", "/api/profiles", params={"device_id": device_id}, json=config)

    def remove_profile(self, device_id: int) -> Dict:
        return self._request("DELETE", "/api/profiles", params={"device_id": device_id})

    def get_state(self) -> Dict:
        return self._request("GET", "/api/state")["state"]
    
    # Engine API
    def get_status(self) -> Dict:
        """Get component status"""
        return self._request("GET", "/api/status")["status"]

    def get_metrics(self) -> Dict:
        """Get latency and spectrum metrics"""
        return self._request("GET", "/api/metrics")["metrics"]

    def play(self) -> Dict:
        return self._request("POST", "/api/audio/play")

    def stop(self) -> Dict:
        return self._request("POST", "/api/audio/stop")
    
    # WebSocket Event Handling
    def register_event_callback(self, event_type: str, callback: Callable):
        """Register callback for a specific event type"""
        self.event_callbacks[event_type] = callback

    async def dispatch_message(self, message: str):
        """Route one websocket message to its registered callback"""
        data = json.loads(message)
        callback = self.event_callbacks.get(data.get("type"))
        if callback is None:
            return
        if asyncio.iscoroutinefunction(callback):
            await callback(data.get("data"))
        else:
            callback(data.get("data"))

    async def listen_events(self):
        """Connect to /ws/events and dispatch messages until the connection closes"""
        ws_url = self.base_url.replace("http", "ws", 1) + "/ws/events"
        async with websockets.connect(ws_url) as websocket:
            self.websocket = websocket
            try:
                async for message in websocket:
                    try:
                        await self.dispatch_message(message)
                    except Exception as e:
                        print(f"WebSocket message error: {e}")
            except websockets.exceptions.ConnectionClosed:
                print("WebSocket connection closed")
            finally:
                self.websocket = None

# Usage Example
if __name__ == "__main__":
    async def main():
        client = CyberAsioClient()

        print(f"Server status: {client.get_status()}")
        for device in client.get_devices():
            print(f"{device['id']}: {device['name']} [{device['status']}]")

        def on_status_change(data):
            print(f"Device {data['device_id']}: {data['old_status']} -> {data['new_status']}")

        client.register_event_callback("device_status_changed", on_status_change)

        try:
            await client.listen_events()
        except KeyboardInterrupt:
            print("Shutting down...")

    asyncio.run(main())
