"""Factory for creating pluck-tuner components from configuration."""

from typing import Optional

import soundfile as sf

from ..logging_config import get_logger
from ..audio.audio_config import AudioConfig, frame_length_for
from ..audio.frame_sources import SoundDeviceFrameSource
from ..audio.wav_source import WavFileFrameSource
from ..audio.tuner_service import TunerService
from ..detection.autocorrelation import AutocorrelationEstimator
from ..detection.harmonic_peaks import HarmonicPeakEstimator
from ..dsp.preprocess import FramePreprocessor
from ..note_types import Tuning
from ..tuner_engine import TunerEngine
from .config import ConfigManager
from .events import TunerEvents
from .interfaces import IFrameSource, IRenderingSink

logger = get_logger(__name__)


class ComponentFactory:
    """Builds engines, frame sources and services from a ConfigManager."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

    def _section(self, name: str, overrides: dict) -> dict:
        config = self.config_manager.get_config(name)
        config.update(overrides)
        return config

    def create_preprocessor(self, **kwargs) -> FramePreprocessor:
        return FramePreprocessor(**self._section("preprocess", kwargs))

    def create_peak_estimator(self, **kwargs) -> HarmonicPeakEstimator:
        return HarmonicPeakEstimator(**self._section("harmonic_peaks", kwargs))

    def create_fallback_estimator(self, **kwargs) -> AutocorrelationEstimator:
        return AutocorrelationEstimator(**self._section("autocorrelation", kwargs))

    def create_engine(
        self, events: Optional[TunerEvents] = None, **kwargs
    ) -> TunerEngine:
        """Create a tuner engine.

        Args:
            events: Observer hooks passed to the engine
            **kwargs: Overrides for the ``tuner_engine`` section, or
                ``fixed_sample_rate``

        Returns:
            Tuner engine with configured preprocessor and estimators
        """
        config = self._section("tuner_engine", kwargs)
        engine = TunerEngine(
            preprocessor=self.create_preprocessor(),
            peak_estimator=self.create_peak_estimator(),
            fallback_estimator=self.create_fallback_estimator(),
            events=events,
            **config,
        )
        logger.info("Created tuner engine")
        return engine

    def create_audio_config(self, **kwargs) -> AudioConfig:
        config = self._section("audio_input", kwargs)
        return AudioConfig.default(
            device_id=config.get("device_id"),
            sample_rate=config.get("sample_rate"),
            frame_seconds=config.get("frame_seconds", 0.046),
        )

    def create_live_source(self, **kwargs) -> SoundDeviceFrameSource:
        """Create a capture source, probing the device unless a rate is given."""
        source = SoundDeviceFrameSource(self.create_audio_config(**kwargs))
        logger.info("Created live frame source")
        return source

    def create_wav_source(
        self, path: str, frame_length: Optional[int] = None, **kwargs
    ) -> WavFileFrameSource:
        """Create a WAV source; frame length defaults to ~46 ms at the file's rate."""
        if frame_length is None:
            audio = self.config_manager.get_config("audio_input")
            frame_seconds = audio.get("frame_seconds", 0.046)
            frame_length = frame_length_for(sf.info(path).samplerate, 0, frame_seconds)
        return WavFileFrameSource(path, frame_length, **kwargs)

    def create_service(
        self,
        source: IFrameSource,
        sink: IRenderingSink,
        tuning: Optional[Tuning] = None,
        events: Optional[TunerEvents] = None,
        engine: Optional[TunerEngine] = None,
    ) -> TunerService:
        """Create a tuner service around ``source`` and ``sink``."""
        service = TunerService(
            source=source,
            engine=engine or self.create_engine(events=events),
            tuning=tuning or Tuning.standard(),
            sink=sink,
            events=events,
        )
        logger.info("Created tuner service")
        return service
