"""Terminal rendering sink: one line per frame with a text needle."""

from __future__ import annotations

import sys
import threading
from typing import Optional, TextIO

import pyfiglet

from ..core.interfaces import IRenderingSink
from ..note_types import RenderingState


def needle_position(detected_hz: float, reference_hz: float, width: int, range_hz: float) -> int:
    """Column of the needle; the centre column means in tune.

    The Hz offset is clamped to ``+-range_hz`` and mapped onto ``width``
    columns.
    """
    offset = max(-range_hz, min(range_hz, detected_hz - reference_hz))
    half = (width - 1) / 2.0
    return int(round(half + offset / range_hz * half))


def needle_bar(detected_hz: float, reference_hz: float, width: int = 41, range_hz: float = 20.0) -> str:
    """Text gauge like ``[----|---*----]``."""
    cells = ["-"] * width
    cells[(width - 1) // 2] = "|"
    cells[needle_position(detected_hz, reference_hz, width, range_hz)] = "*"
    return "[" + "".join(cells) + "]"


class ConsoleRenderer(IRenderingSink):
    """Writes tuning states to a text stream."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        width: int = 41,
        range_hz: float = 20.0,
        banner: bool = False,
        font: str = "standard",
    ) -> None:
        """Initialize the renderer.

        Args:
            stream: Output stream, stdout by default
            width: Needle columns, odd so there is a centre column
            range_hz: Hz offset at either end of the needle
            banner: Print the note name in large letters when it changes
            font: pyfiglet font for the banner
        """
        if width < 3:
            raise ValueError(f"Needle width must be at least 3, got {width}")
        self.stream = stream or sys.stdout
        self.width = width
        self.range_hz = range_hz
        self.banner = banner
        self.font = font
        self._last_note: Optional[str] = None
        self._hidden = False
        self._lock = threading.Lock()

    def format_state(self, state: RenderingState) -> str:
        return (
            f"{state.note_name:<4} {state.note_frequency:7.2f} Hz  "
            f"{state.detected_frequency:7.2f} Hz  {state.cents:+6.1f}c  "
            f"{needle_bar(state.detected_frequency, state.note_frequency, self.width, self.range_hz)}"
        )

    def render(self, state: RenderingState) -> None:
        with self._lock:
            if self.banner and state.note_name != self._last_note:
                self.stream.write(pyfiglet.figlet_format(state.note_name, font=self.font))
            self._last_note = state.note_name
            self._hidden = False
            self.stream.write(self.format_state(state) + "\n")
            self.stream.flush()

    def hide(self) -> None:
        """Print one placeholder line per run of hide signals."""
        with self._lock:
            if self._hidden:
                return
            self._hidden = True
            self._last_note = None
            self.stream.write("---\n")
            self.stream.flush()
