"""Frames read from audio files through soundfile."""

from __future__ import annotations

import threading
import time
from typing import Callable, Iterator, Optional

import numpy as np
import soundfile as sf

from ..core.interfaces import IFrameSource
from ..logging_config import get_logger

logger = get_logger(__name__)

FrameCallback = Callable[[np.ndarray], None]


class WavFileFrameSource(IFrameSource):
    """Fixed-size int16 frames read from an audio file.

    Multichannel files use their first channel; a trailing partial frame
    is dropped.
    """

    def __init__(
        self, file_path: str, frame_length: int, loop: bool = False, realtime: bool = False
    ) -> None:
        if frame_length < 1:
            raise ValueError(f"Frame length must be positive, got {frame_length}")
        self._file_path = file_path
        self._frame_length = frame_length
        self._loop = loop
        self._realtime = realtime
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._callback: Optional[FrameCallback] = None

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._channels = f.channels

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def frame_length(self) -> int:
        return self._frame_length

    @property
    def channels(self) -> int:
        return self._channels

    def frames(self) -> Iterator[np.ndarray]:
        """Yield every full frame once, in file order."""
        with sf.SoundFile(self._file_path) as f:
            for block in f.blocks(blocksize=self._frame_length, dtype="int16", always_2d=True):
                if len(block) < self._frame_length:
                    break
                yield np.ascontiguousarray(block[:, 0])

    def is_running(self) -> bool:
        return self._running

    def start(self, callback: FrameCallback) -> bool:
        if self._running:
            return False
        self._callback = callback
        self._running = True
        self._thread = threading.Thread(target=self._stream_frames, name="wav-frames", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> None:
        self._running = False
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until a non-looping playback has delivered every frame."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _stream_frames(self) -> None:
        period = self._frame_length / self._sample_rate
        try:
            while self._running:
                delivered = 0
                for frame in self.frames():
                    if not self._running:
                        break
                    if self._callback:
                        self._callback(frame)
                    delivered += 1
                    if self._realtime:
                        time.sleep(period)
                if not self._loop or delivered == 0:
                    break
        except (OSError, RuntimeError) as e:
            logger.error(f"Error streaming {self._file_path}: {e}")
        finally:
            self._running = False
