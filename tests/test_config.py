import json
import unittest
import tempfile
import shutil
from pathlib import Path

from pluck_tuner.core.config import DEFAULT_CONFIGS, ConfigManager


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self.config_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.config_dir)

    def test_defaults_written_on_first_use(self):
        manager = ConfigManager(self.config_dir)
        for name in DEFAULT_CONFIGS:
            path = Path(self.config_dir) / f"{name}.json"
            self.assertTrue(path.exists())
            self.assertEqual(json.loads(path.read_text()), DEFAULT_CONFIGS[name])
        self.assertEqual(manager.get_config("tuner_engine")["rms_threshold"], 300.0)

    def test_missing_keys_filled_from_defaults(self):
        (Path(self.config_dir) / "tuner_engine.json").write_text(json.dumps({"rms_threshold": 500.0}))
        config = ConfigManager(self.config_dir).get_config("tuner_engine")
        self.assertEqual(config["rms_threshold"], 500.0)
        self.assertEqual(config["invalid_hide_frames"], 2)

    def test_corrupt_file_falls_back_to_defaults(self):
        (Path(self.config_dir) / "preprocess.json").write_text("{not json")
        (Path(self.config_dir) / "autocorrelation.json").write_text("[1, 2]")
        manager = ConfigManager(self.config_dir)
        self.assertEqual(manager.get_config("preprocess"), DEFAULT_CONFIGS["preprocess"])
        self.assertEqual(manager.get_config("autocorrelation"), DEFAULT_CONFIGS["autocorrelation"])

    def test_get_config_returns_copy(self):
        manager = ConfigManager(self.config_dir)
        manager.get_config("harmonic_peaks")["bins"] = 1
        self.assertEqual(manager.get_config("harmonic_peaks")["bins"], 640)
        self.assertEqual(manager.get_config("nope"), {})

    def test_update_persists(self):
        manager = ConfigManager(self.config_dir)
        self.assertTrue(manager.update_config("tuner_engine", {"invalid_hide_frames": 4}))
        reloaded = ConfigManager(self.config_dir)
        self.assertEqual(reloaded.get_config("tuner_engine")["invalid_hide_frames"], 4)
        self.assertFalse(manager.update_config("nope", {"x": 1}))

    def test_reset(self):
        manager = ConfigManager(self.config_dir)
        manager.update_config("audio_input", {"sample_rate": 22050})
        self.assertTrue(manager.reset_config("audio_input"))
        self.assertIsNone(ConfigManager(self.config_dir).get_config("audio_input")["sample_rate"])
        self.assertFalse(manager.reset_config("nope"))

    def test_all_configs(self):
        configs = ConfigManager(self.config_dir).all_configs()
        self.assertEqual(set(configs), set(DEFAULT_CONFIGS))


if __name__ == "__main__":
    unittest.main()
