"""Logging setup for pluck-tuner.

Every module asks for its logger through :func:`get_logger`; the CLI calls
:func:`setup_logging` once to attach the shared handler and per-module levels.
"""

import logging
import sys
from typing import Dict, Optional, TextIO

# Log levels for different modules
MODULE_LOG_LEVELS = {
    "pluck_tuner": logging.INFO,
    "pluck_tuner.tuner_engine": logging.INFO,
    "pluck_tuner.core": logging.INFO,
    "pluck_tuner.core.config": logging.INFO,
    "pluck_tuner.core.events": logging.INFO,
    "pluck_tuner.core.factory": logging.INFO,
    # Estimators trace every frame at DEBUG, keep them quiet by default
    "pluck_tuner.dsp": logging.WARNING,
    "pluck_tuner.detection": logging.WARNING,
    "pluck_tuner.detection.autocorrelation": logging.WARNING,
    "pluck_tuner.detection.harmonic_peaks": logging.WARNING,
    "pluck_tuner.detection.note_classifier": logging.WARNING,
    # Audio plumbing
    "pluck_tuner.audio": logging.INFO,
    "pluck_tuner.audio.audio_config": logging.INFO,
    "pluck_tuner.audio.frame_sources": logging.INFO,
    "pluck_tuner.audio.wav_source": logging.INFO,
    "pluck_tuner.audio.tuner_service": logging.INFO,
    "pluck_tuner.ui": logging.WARNING,
    "pluck_tuner.cli": logging.INFO,
    "sounddevice": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

_logger_cache: Dict[str, logging.Logger] = {}
_console_handler: Optional[logging.StreamHandler] = None


def get_logger(name: str) -> logging.Logger:
    """Return the cached logger for a module name (e.g. ``pluck_tuner.tuner_engine``)."""
    if name not in _logger_cache:
        _logger_cache[name] = logging.getLogger(name)
    return _logger_cache[name]


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'pluck_tuner' log levels with this level (e.g., "DEBUG").
        stream: Where log records go; stderr by default so command output stays clean.
    """
    global _console_handler

    target = stream or sys.stderr
    if _console_handler is None:
        _console_handler = logging.StreamHandler(target)
        _console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        _console_handler.setStream(target)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("pluck_tuner"):
                    log_levels[module_name] = numeric_level
        else:
            get_logger(__name__).error(f"Invalid log level: {level}")

    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name)
        logger.setLevel(module_level)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.addHandler(_console_handler)
        logger.propagate = False

    get_logger("pluck_tuner").debug("Logging configured")
