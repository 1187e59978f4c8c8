"""Event system for pluck-tuner components."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logging_config import get_logger

logger = get_logger(__name__)


class TunerEventType(Enum):
    """Event types emitted while tuning."""

    FRAME_PROCESSED = auto()
    STATE_RENDERED = auto()
    HIDDEN = auto()
    RESET = auto()
    ERROR = auto()


class EventEmitter:
    """Minimal synchronous event emitter."""

    def __init__(self):
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        listeners = self._listeners.setdefault(event_type, [])
        if callback not in listeners:
            listeners.append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Remove a previously registered callback, if present."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Call every listener of ``event_type``.

        A listener that raises is logged and skipped; the remaining
        listeners still run.
        """
        for callback in list(self._listeners.get(event_type, ())):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}")

    def has_listeners(self, event_type: Any) -> bool:
        return bool(self._listeners.get(event_type))

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class TunerEvents:
    """Observability hooks handed to the engine and service.

    Replaces process-wide debug switches: whoever wants per-frame traces
    registers a callback here and passes the object in.
    """

    def __init__(self):
        self._emitter = EventEmitter()

    def on_frame_processed(self, callback: Callable) -> None:
        """Called with a :class:`FrameDiagnostics` after every frame."""
        self._emitter.on(TunerEventType.FRAME_PROCESSED, callback)

    def on_state_rendered(self, callback: Callable) -> None:
        """Called with each :class:`RenderingState` sent to the sink."""
        self._emitter.on(TunerEventType.STATE_RENDERED, callback)

    def on_hidden(self, callback: Callable) -> None:
        self._emitter.on(TunerEventType.HIDDEN, callback)

    def on_reset(self, callback: Callable) -> None:
        self._emitter.on(TunerEventType.RESET, callback)

    def on_error(self, callback: Callable) -> None:
        """Called with the exception when frame handling fails."""
        self._emitter.on(TunerEventType.ERROR, callback)

    def wants_frames(self) -> bool:
        """True when someone listens for per-frame diagnostics."""
        return self._emitter.has_listeners(TunerEventType.FRAME_PROCESSED)

    def emit_frame_processed(self, diagnostics) -> None:
        self._emitter.emit(TunerEventType.FRAME_PROCESSED, diagnostics)

    def emit_state_rendered(self, state) -> None:
        self._emitter.emit(TunerEventType.STATE_RENDERED, state)

    def emit_hidden(self) -> None:
        self._emitter.emit(TunerEventType.HIDDEN)

    def emit_reset(self) -> None:
        self._emitter.emit(TunerEventType.RESET)

    def emit_error(self, error: Exception) -> None:
        self._emitter.emit(TunerEventType.ERROR, error)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
