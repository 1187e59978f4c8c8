"""Core components for pluck-tuner."""

# Import interfaces for easier access
from .interfaces import (
    IFrequencyEstimator,
    IFrameSource,
    IRenderingSink,
)

__all__ = ["IFrequencyEstimator", "IFrameSource", "IRenderingSink"]
