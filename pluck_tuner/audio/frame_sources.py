"""Live capture through sounddevice."""

from __future__ import annotations

import queue
import threading
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from ..core.interfaces import IFrameSource
from ..logging_config import get_logger
from .audio_config import AudioConfig, AudioDeviceError

logger = get_logger(__name__)

FrameCallback = Callable[[np.ndarray], None]


class SoundDeviceFrameSource(IFrameSource):
    """Mono int16 capture with in-order delivery on one worker thread.

    The PortAudio callback only copies blocks into a bounded queue; the
    worker thread drains it and calls the consumer, so a slow consumer
    drops frames instead of stalling the audio thread.
    """

    def __init__(self, config: AudioConfig, queue_size: int = 32) -> None:
        self._config = config
        self._queue: "queue.Queue[Optional[np.ndarray]]" = queue.Queue(maxsize=queue_size)
        self._stream: Optional[sd.InputStream] = None
        self._worker: Optional[threading.Thread] = None
        self._callback: Optional[FrameCallback] = None
        self._running = False
        self.dropped_frames = 0

    @property
    def sample_rate(self) -> int:
        return self._config.sample_rate

    @property
    def frame_length(self) -> int:
        return self._config.frame_length

    def is_running(self) -> bool:
        return self._running

    def start(self, callback: FrameCallback) -> bool:
        """Open the input stream and start the delivery thread.

        Raises:
            AudioDeviceError: If the stream cannot be opened
        """
        if self._running:
            logger.warning("Frame source already running")
            return False

        self._callback = callback
        try:
            self._stream = sd.InputStream(
                device=self._config.device_id,
                samplerate=self._config.sample_rate,
                blocksize=self._config.frame_length,
                channels=1,
                dtype="int16",
                callback=self._audio_callback,
            )
            self._stream.start()
        except Exception as e:  # PortAudioError and invalid-parameter errors alike
            self._stream = None
            raise AudioDeviceError(f"Could not open input stream: {e}") from e

        self._running = True
        self._worker = threading.Thread(target=self._deliver, name="frame-delivery", daemon=True)
        self._worker.start()
        logger.info(
            f"Capture started: {self.sample_rate} Hz, {self.frame_length} samples per frame"
        )
        return True

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            pass  # the worker exits on its next wake-up
        if self._worker is not None:
            self._worker.join(timeout=2.0)
            self._worker = None
        logger.info("Capture stopped")

    def _audio_callback(self, indata: np.ndarray, _frames: int, _time_info, status) -> None:
        if status:
            logger.warning(f"Audio callback status: {status}")
        block = indata[:, 0] if indata.ndim > 1 else indata
        try:
            self._queue.put_nowait(block.copy())
        except queue.Full:
            self.dropped_frames += 1

    def _deliver(self) -> None:
        while self._running:
            frame = self._queue.get()
            if frame is None:
                break
            if self._callback:
                self._callback(frame)
