"""Shared fixtures for the CyberASIO Core test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi.testclient import TestClient

from cyberasio.api.server import build_components, create_app
from cyberasio.core.config_store import ConfigurationStore
from cyberasio.core.events import ChangeNotifier
from cyberasio.devices.registry import DeviceRegistry


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def registry(notifier) -> DeviceRegistry:
    return DeviceRegistry(notifier=notifier)


@pytest.fixture
def store(notifier, registry) -> ConfigurationStore:
    return ConfigurationStore(notifier=notifier, capabilities=registry)


@pytest.fixture
def components(tmp_path):
    return build_components(state_file=tmp_path / "config.txt")


@pytest.fixture
def static_dir(tmp_path) -> Path:
    root = tmp_path / "static"
    root.mkdir()
    (root / "index.html").write_text("<html><body>CyberASIO</body></html>", encoding="utf-8")
    (root / "app.js").write_text("console.log('ready');", encoding="utf-8")
    return root


@pytest.fixture
def client(components, static_dir):
    app = create_app(
        devices=components.devices,
        config_store=components.config_store,
        engine=components.engine,
        notifier=components.notifier,
        static_dir=static_dir,
        state_file=components.state_file,
    )
    with TestClient(app) as test_client:
        yield test_client
