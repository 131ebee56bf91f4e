import time

import pytest

from cyberasio.core.engine import IDLE_LEVEL, SPECTRUM_BINS, AudioEngine
from cyberasio.core.events import ConfigurationChanged, DeviceStatusChanged
from cyberasio.core.models import AudioConfiguration, DeviceStatus


@pytest.fixture
def engine():
    audio = AudioEngine()
    yield audio
    audio.shutdown()


def test_latency_follows_configuration(engine) -> None:
    engine.initialize(AudioConfiguration(48000, 256, 24, 2))
    metrics = engine.get_metrics()

    assert metrics.input_latency == pytest.approx(256 / 48000 * 1000)
    assert metrics.total_latency == pytest.approx(2 * 256 / 48000 * 1000)

    engine.on_configuration_changed(ConfigurationChanged(AudioConfiguration(96000, 1024, 24, 2)))

    assert engine.get_metrics().output_latency == pytest.approx(1024 / 96000 * 1000)


def test_play_requires_initialization(engine) -> None:
    assert engine.play() is False
    assert engine.is_playing is False


def test_spectrum_updates_while_playing(engine) -> None:
    engine.initialize()
    engine.play()

    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline and not engine.get_metrics().is_playing:
        time.sleep(0.02)

    metrics = engine.get_metrics()
    assert metrics.is_playing is True
    assert len(metrics.spectrum_data) == SPECTRUM_BINS
    assert all(0.0 <= level <= 1.0 for level in metrics.spectrum_data)


def test_stop_resets_spectrum(engine) -> None:
    engine.initialize()
    engine.play()
    engine.stop()

    metrics = engine.get_metrics()
    assert metrics.is_playing is False
    assert all(level in (0.0, IDLE_LEVEL) for level in metrics.spectrum_data)


def test_shutdown_joins_monitor_thread(engine) -> None:
    engine.initialize()
    thread = engine.monitor_thread

    engine.shutdown()

    assert engine.is_initialized is False
    assert not thread.is_alive()


def test_tracks_active_device_from_status_events(engine) -> None:
    engine.on_device_status_changed(DeviceStatusChanged(3, DeviceStatus.INACTIVE, DeviceStatus.ACTIVE))
    assert engine.active_device_id == 3

    engine.on_device_status_changed(DeviceStatusChanged(1, DeviceStatus.ACTIVE, DeviceStatus.INACTIVE))
    assert engine.active_device_id == 3

    engine.on_device_status_changed(DeviceStatusChanged(3, DeviceStatus.ACTIVE, DeviceStatus.INACTIVE))
    assert engine.active_device_id is None
