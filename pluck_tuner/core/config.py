"""Configuration management for pluck-tuner components."""

from typing import Dict, Any, Optional
import copy
import json
import os
from pathlib import Path

from ..logging_config import get_logger

logger = get_logger(__name__)


DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "tuner_engine": {
        "rms_threshold": 300.0,
        "invalid_hide_frames": 2,
        "min_peak_confidence": 0.10,
        "peak_min_hz": 60.0,
        "peak_max_hz": 1000.0,
        "valid_min_hz": 20.0,
        "valid_max_hz": 2000.0,
        "median_capacity": 5,
        "stick_in_cents": 3.0,
        "stick_out_cents": 5.0,
        "collapse_min_hz": 250.0,
        "collapse_ratio": 1.8,
        "collapse_confirm_frames": 3,
    },
    "preprocess": {
        "low_hz": 60.0,
        "high_hz": 1200.0,
        "target_rms": 1200.0,
        "min_rms": 200.0,
    },
    "harmonic_peaks": {
        "f_min": 60.0,
        "f_max": 1200.0,
        "bins": 640,
        "top_n": 5,
        "nms_hz": 18.0,
        "rival_bins": 3.0,
    },
    "autocorrelation": {
        "prefer_double_ratio": 1.04,
        "rescue_ratio": 1.02,
    },
    "audio_input": {
        "device_id": None,
        "sample_rate": None,
        "frame_seconds": 0.046,
    },
}


class ConfigManager:
    """JSON configuration files, one per section."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            # Use ~/.config/pluck_tuner by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "pluck_tuner")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)

        # Load existing configurations or create default ones
        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if not config_file.exists():
            config = default_config.copy()
            self.save_config(name, config)
            return config

        try:
            with open(config_file, "r") as f:
                config = json.load(f)
            if not isinstance(config, dict):
                raise ValueError(f"expected a JSON object, got {type(config).__name__}")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {config_file}: {e}")
            return default_config.copy()

        logger.info(f"Loaded configuration from {config_file}")
        # Ensure all default keys are present
        for key, value in default_config.items():
            config.setdefault(key, value)
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of a configuration section ({} if unknown)."""
        return self.configs.get(name, {}).copy()

    def all_configs(self) -> Dict[str, Dict[str, Any]]:
        """Copies of every section, keyed by name."""
        return {name: self.get_config(name) for name in self.configs}

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])
