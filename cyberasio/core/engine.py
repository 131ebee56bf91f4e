from cyberasio.core.events import ConfigurationChanged, DeviceStatusChanged
from cyberasio.core.models import AudioConfiguration, AudioMetrics, DeviceStatus
from cyberasio.utils.logger import logger
from typing import Optional
import numpy as np
import threading
import time

SPECTRUM_BINS = 32
UPDATE_INTERVAL = 0.05
IDLE_LEVEL = 0.1

class AudioEngine:
    """Simulated playback engine reporting latency and spectrum metrics"""

    def __init__(self, config: Optional[AudioConfiguration] = None):
        self.config = config or AudioConfiguration()
        self.active_device_id: Optional[int] = None

        # State
        self.is_initialized = False
        self.is_playing = False

        # Metrics
        self._metrics_lock = threading.Lock()
        self._metrics = AudioMetrics(spectrum_data=[0.0] * SPECTRUM_BINS)
        self._rng = np.random.default_rng()
        self._bin_index = np.arange(SPECTRUM_BINS, dtype=np.float32)

        # Threading
        self._stop_event = threading.Event()
        self.monitor_thread = None

    def initialize(self, config: Optional[AudioConfiguration] = None) -> bool:
        """Initialize the engine and start the metrics thread"""
        if self.is_initialized:
            self.shutdown()
        if config is not None:
            self.config = config

        self._calculate_latency()
        self._stop_event.clear()
        self.monitor_thread = threading.Thread(target=self._metrics_monitor, name="audio-metrics", daemon=True)
        self.monitor_thread.start()
        self.is_initialized = True

        logger.info(
            f"Audio Engine initialized - Sample Rate: {self.config.sample_rate} Hz, "
            f"Buffer Size: {self.config.buffer_size} samples, Bit Depth: {self.config.bit_depth} bits"
        )
        return True

    def shutdown(self):
        """Stop playback and join the metrics thread"""
        if not self.is_initialized:
            return

        self.stop()
        self._stop_event.set()
        if self.monitor_thread and self.monitor_thread.is_alive():
            self.monitor_thread.join(timeout=1.0)
        self.monitor_thread = None
        self.is_initialized = False
        logger.info("Audio Engine shut down")

    # Configuration
    def apply_config(self, config: AudioConfiguration) -> bool:
        """Adopt a new configuration, recomputing latency when the format changed"""
        needs_update = (
            config.sample_rate != self.config.sample_rate
            or config.buffer_size != self.config.buffer_size
            or config.bit_depth != self.config.bit_depth
        )
        self.config = config
        if needs_update:
            self._calculate_latency()
            logger.info(
                f"Engine configuration updated - Sample Rate: {config.sample_rate} Hz, "
                f"Buffer: {config.buffer_size} samples"
            )
        return True

    def set_active_device(self, device_id: Optional[int]):
        self.active_device_id = device_id
        logger.info(f"Active audio device set to ID: {device_id}")

    # Change notifier hooks
    def on_configuration_changed(self, event: ConfigurationChanged):
        self.apply_config(event.config)

    def on_device_status_changed(self, event: DeviceStatusChanged):
        if event.new_status == DeviceStatus.ACTIVE:
            self.set_active_device(event.device_id)
        elif self.active_device_id == event.device_id:
            self.set_active_device(None)

    # Playback control
    def play(self) -> bool:
        if not self.is_initialized:
            return False
        self.is_playing = True
        logger.info("Audio playback started")
        return True

    def pause(self):
        self.is_playing = False
        logger.info("Audio playback paused")

    def stop(self):
        self.is_playing = False
        with self._metrics_lock:
            self._metrics.spectrum_data = [0.0] * SPECTRUM_BINS
            self._metrics.is_playing = False
        logger.info("Audio playback stopped")

    # Metrics
    def get_metrics(self) -> AudioMetrics:
        with self._metrics_lock:
            return AudioMetrics(
                input_latency=self._metrics.input_latency,
                output_latency=self._metrics.output_latency,
                total_latency=self._metrics.total_latency,
                spectrum_data=list(self._metrics.spectrum_data),
                is_playing=self._metrics.is_playing
            )

    def _calculate_latency(self):
        buffer_time_ms = self.config.buffer_size / self.config.sample_rate * 1000.0
        with self._metrics_lock:
            self._metrics.input_latency = buffer_time_ms
            self._metrics.output_latency = buffer_time_ms
            self._metrics.total_latency = buffer_time_ms * 2

    def _metrics_monitor(self):
        """Refresh spectrum data until shutdown"""
        while not self._stop_event.wait(UPDATE_INTERVAL):
            try:
                self._update_spectrum()
            except Exception as e:
                logger.error(f"Metrics monitor error: {e}")

    def _update_spectrum(self):
        if self.is_playing:
            # Lower bins carry more energy, modulated over time
            base_level = np.maximum(IDLE_LEVEL, 1.0 - self._bin_index / SPECTRUM_BINS)
            random_factor = self._rng.uniform(0.1, 1.0, SPECTRUM_BINS)
            time_ms = time.monotonic() * 1000.0
            time_factor = 0.5 + 0.5 * np.sin(time_ms / 100.0 + self._bin_index * 0.5)
            spectrum = (base_level * random_factor * time_factor).astype(float).tolist()
        else:
            spectrum = [IDLE_LEVEL] * SPECTRUM_BINS

        with self._metrics_lock:
            self._metrics.spectrum_data = spectrum
            self._metrics.is_playing = self.is_playing
