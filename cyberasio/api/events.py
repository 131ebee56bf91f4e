from cyberasio.core.events import ChangeNotifier
from cyberasio.utils.logger import logger
from fastapi import APIRouter, WebSocket
from typing import Dict
import asyncio
import threading

class EventHub:
    """Fans change events out to websocket clients.

    Listeners fire on whatever thread mutated state, so each event is handed
    to the client's own event loop with call_soon_threadsafe.
    """

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._lock = threading.Lock()
        self._clients: Dict[asyncio.Queue, asyncio.AbstractEventLoop] = {}
        self._unsubscribers = []

    def attach(self, notifier: ChangeNotifier):
        self._unsubscribers.append(notifier.subscribe_device_status(self.publish))
        self._unsubscribers.append(notifier.subscribe_configuration(self.publish))

    def detach(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def subscribe(self) -> asyncio.Queue:
        """Register a queue bound to the running event loop"""
        queue = asyncio.Queue(maxsize=self.max_queue)
        with self._lock:
            self._clients[queue] = asyncio.get_running_loop()
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        with self._lock:
            self._clients.pop(queue, None)

    def publish(self, event):
        payload = event.to_dict()
        with self._lock:
            clients = list(self._clients.items())
        for queue, loop in clients:
            try:
                loop.call_soon_threadsafe(self._offer, queue, payload)
            except RuntimeError:
                # Loop already closed
                self.unsubscribe(queue)

    @staticmethod
    def _offer(queue: asyncio.Queue, payload: Dict):
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(payload)

def create_events_router(hub: EventHub) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/events")
    async def events_socket(websocket: WebSocket):
        """Push device status and configuration changes as JSON"""
        queue = hub.subscribe()
        await websocket.accept()
        receiver = asyncio.ensure_future(websocket.receive())
        try:
            while True:
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
                if receiver in done:
                    message = receiver.result()
                    if message["type"] == "websocket.disconnect":
                        getter.cancel()
                        break
                    # Client chatter is ignored
                    receiver = asyncio.ensure_future(websocket.receive())
                if getter in done:
                    await websocket.send_json(getter.result())
                else:
                    getter.cancel()
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
        finally:
            receiver.cancel()
            hub.unsubscribe(queue)

    return router
