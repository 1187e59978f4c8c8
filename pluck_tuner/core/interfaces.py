"""Defines the core interfaces for pluck-tuner."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from ..note_types import F0Estimate, RenderingState


class IFrequencyEstimator(ABC):
    """Interface for fundamental-frequency estimators."""

    @abstractmethod
    def estimate(
        self, frame, sample_rate: int, hint: Optional[float] = None
    ) -> F0Estimate:
        """Estimate the fundamental of one frame.

        ``hint`` is the last stable pitch, for estimators that can use it.
        """
        pass


class IFrameSource(ABC):
    """Interface for producers of fixed-size PCM16 frames."""

    @abstractmethod
    def start(self, callback: Callable[[np.ndarray], None]) -> bool:
        """Start delivering frames, in order, to ``callback``."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop delivering frames."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if frames are being delivered."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        pass

    @property
    @abstractmethod
    def frame_length(self) -> int:
        pass


class IRenderingSink(ABC):
    """Interface for whatever shows the tuning needle."""

    @abstractmethod
    def render(self, state: RenderingState) -> None:
        """Show a new rendering state."""
        pass

    @abstractmethod
    def hide(self) -> None:
        """Hide the display."""
        pass
