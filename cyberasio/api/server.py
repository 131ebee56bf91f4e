from cyberasio.api.events import EventHub, create_events_router
from cyberasio.api.routes import ConfigSource, DeviceSource, create_api_router
from cyberasio.api.static import create_static_router, not_found_response
from cyberasio.core.config_store import ConfigurationStore
from cyberasio.core.engine import AudioEngine
from cyberasio.core.errors import CyberAsioError, IOFailure, ValidationError
from cyberasio.core.events import ChangeNotifier
from cyberasio.devices.registry import DeviceRegistry
from cyberasio.utils.logger import logger
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import uvicorn

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

@dataclass
class Components:
    """Everything the server process owns"""
    notifier: ChangeNotifier
    devices: DeviceRegistry
    config_store: ConfigurationStore
    engine: AudioEngine
    state_file: Optional[Path] = None

def build_components(state_file: Optional[Union[str, Path]] = None, auto_save: bool = True) -> Components:
    """Create and wire the registry, store and engine, restoring persisted state"""
    notifier = ChangeNotifier()
    devices = DeviceRegistry(notifier=notifier)
    config_store = ConfigurationStore(notifier=notifier, capabilities=devices, auto_save=auto_save)
    engine = AudioEngine()

    notifier.subscribe_configuration(engine.on_configuration_changed)
    notifier.subscribe_device_status(engine.on_device_status_changed)
    engine.set_active_device(devices.active_device_id)

    if state_file is not None:
        state_file = Path(state_file)
        persisted = config_store.load(state_file)
        if persisted and persisted.active_device_id is not None:
            try:
                devices.activate(persisted.active_device_id)
            except CyberAsioError as e:
                logger.warning(f"Could not restore active device: {e}")

    return Components(notifier, devices, config_store, engine, state_file)

def _error_payload(exc: CyberAsioError) -> Dict:
    payload = {"error": str(exc)}
    if isinstance(exc, ValidationError):
        payload["violations"] = [violation.to_dict() for violation in exc.violations]
    return payload

def create_app(
    devices: Optional[DeviceSource] = None,
    config_store: Optional[ConfigSource] = None,
    engine: Optional[AudioEngine] = None,
    notifier: Optional[ChangeNotifier] = None,
    static_dir: Union[str, Path] = "static",
    state_file: Optional[Union[str, Path]] = None,
) -> FastAPI:
    """Build the HTTP app over injected backends; any of them may be absent"""
    hub = EventHub()
    if notifier is not None:
        hub.attach(notifier)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """FastAPI lifespan handler"""
        # Startup
        if engine is not None and not engine.is_initialized:
            current = config_store.get_current() if config_store is not None else None
            engine.initialize(current)
            logger.info("Audio engine started successfully")
        try:
            yield
        finally:
            # Shutdown
            if engine is not None:
                engine.shutdown()
            if config_store is not None and state_file is not None and getattr(config_store, "auto_save", False):
                active_id = devices.active_device_id if devices is not None else None
                try:
                    config_store.save(state_file, active_id)
                except IOFailure as e:
                    logger.error(f"Could not persist configuration on shutdown: {e}")
            hub.detach()
            logger.info("Server components stopped")

    # Create FastAPI app
    app = FastAPI(
        title="CyberASIO Core API",
        description="Simulated audio device control plane",
        version="1.1.0",
        lifespan=lifespan
    )
    app.state.event_hub = hub

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        """Every HTTP response carries the CORS headers, with or without an Origin"""
        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    @app.exception_handler(CyberAsioError)
    async def soft_error_handler(request: Request, exc: CyberAsioError):
        return JSONResponse(_error_payload(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
            for error in exc.errors()
        ]
        return JSONResponse({"error": "Invalid request body", "details": details})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return not_found_response()
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        # Runs outside the http middleware, so the CORS headers are set here
        logger.error(f"Unhandled error serving {request.method} {request.url.path}: {exc!r}")
        return JSONResponse({"error": f"Internal server error: {exc}"}, headers=CORS_HEADERS)

    app.include_router(create_api_router(devices, config_store, engine, state_file))
    app.include_router(create_events_router(hub))
    # Static fallback last so API routes always win
    app.include_router(create_static_router(static_dir))
    return app

def create_server(components: Components, host: str = "127.0.0.1", port: int = 7788,
                  static_dir: Union[str, Path] = "static", log_level: str = "info") -> uvicorn.Server:
    """Build the uvicorn server; the caller owns it and its shutdown"""
    app = create_app(
        devices=components.devices,
        config_store=components.config_store,
        engine=components.engine,
        notifier=components.notifier,
        static_dir=static_dir,
        state_file=components.state_file
    )
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level.lower())
    return uvicorn.Server(config)

def run_api_server(settings: Dict):
    """Run the server until SIGINT/SIGTERM"""
    server_settings = settings['server']
    persistence = settings['persistence']

    components = build_components(
        state_file=persistence.get('state_file'),
        auto_save=persistence.get('auto_save', True)
    )
    server = create_server(
        components,
        host=server_settings['host'],
        port=int(server_settings['port']),
        static_dir=server_settings['static_dir'],
        log_level=settings.get('logging', {}).get('level', 'INFO')
    )

    logger.info(f"Starting CyberASIO Core on http://{server_settings['host']}:{server_settings['port']}")
    logger.info(f"Devices found: {len(components.devices.get_devices())}")
    server.run()
