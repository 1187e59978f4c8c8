"""Tuner service that connects a frame source, the engine and a rendering sink."""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np

from ..core.events import TunerEvents
from ..core.interfaces import IFrameSource, IRenderingSink
from ..logging_config import get_logger
from ..note_types import FrameResult, Tuning
from ..tuner_engine import TunerEngine

logger = get_logger(__name__)


class TunerService:
    """Facade over frame source, engine and sink.

    Frames arrive on the source's delivery thread and are processed one at
    a time, in order. Only the resulting :class:`RenderingState` values
    reach the sink; the engine's memory never leaves this object.
    """

    def __init__(
        self,
        source: IFrameSource,
        engine: TunerEngine,
        tuning: Tuning,
        sink: IRenderingSink,
        events: Optional[TunerEvents] = None,
    ) -> None:
        self._source = source
        self._engine = engine
        self._tuning = tuning
        self._sink = sink
        self._events = events
        self._lock = threading.Lock()
        self._pending_reset = False
        self._running = False
        self.frames_processed = 0

    @property
    def tuning(self) -> Tuning:
        return self._tuning

    def start(self) -> bool:
        """Start the frame source; frames flow until :meth:`stop`."""
        if self._running:
            logger.warning("Tuner already running")
            return False
        self._engine.reset()
        self._running = True
        try:
            started = self._source.start(self._on_frame)
        except Exception:
            self._running = False
            raise
        if not started:
            self._running = False
            return False
        logger.info(f"Tuner started with {self._tuning!r}")
        return True

    def stop(self) -> None:
        if not self._running:
            return
        self._source.stop()
        self._running = False
        logger.info(f"Tuner stopped after {self.frames_processed} frames")

    def is_running(self) -> bool:
        return self._running and self._source.is_running()

    def reset(self) -> None:
        """Drop the engine's memory before the next frame."""
        with self._lock:
            self._pending_reset = True

    def set_tuning(self, tuning: Tuning) -> None:
        """Switch tuning; takes effect from the next frame."""
        with self._lock:
            self._tuning = tuning
        logger.info(f"Tuning set to {tuning!r}")

    def process(self, frame: np.ndarray) -> FrameResult:
        """Run one frame through the engine and hand the result to the sink."""
        with self._lock:
            if self._pending_reset:
                self._engine.reset()
                self._pending_reset = False
            tuning = self._tuning

        result = self._engine.process_frame(frame, tuning, self._source.sample_rate)
        self.frames_processed += 1

        if result.should_hide:
            self._sink.hide()
            if self._events:
                self._events.emit_hidden()
        elif result.state is not None:
            self._sink.render(result.state)
            if self._events:
                self._events.emit_state_rendered(result.state)
        return result

    def _on_frame(self, frame: np.ndarray) -> None:
        try:
            self.process(frame)
        except Exception as e:
            logger.error(f"Error processing frame: {e}")
            if self._events:
                self._events.emit_error(e)
