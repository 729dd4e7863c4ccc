import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config import (
    FLAG_PRESETS, ConfigurationManager, FlagcatConfig, ImageConfig, Orientation,
    ScalingAlgorithm, StreamConfig, StripeConfig, default_flag_preset, flag_by_name,
    get_config, iter_flag_presets, reload_config,
)
from flagcat_color import Color


class ConfigValidationTests(unittest.TestCase):
    def test_defaults_are_valid(self):
        self.assertTrue(FlagcatConfig().validate())

    def test_deadzone_must_be_below_one(self):
        with self.assertRaises(ValueError):
            StripeConfig(deadzone=1.0).validate()

    def test_speed_and_phase_step_must_be_finite(self):
        for value in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(ValueError):
                StripeConfig(speed=value).validate()
            with self.assertRaises(ValueError):
                StripeConfig(phase_step=value).validate()

    def test_tab_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            StreamConfig(tab_size=0).validate()

    def test_cell_aspect_ratio_must_be_positive(self):
        with self.assertRaises(ValueError):
            ImageConfig(cell_aspect_ratio=0).validate()

    def test_unknown_log_level_rejected(self):
        with self.assertRaises(ValueError):
            FlagcatConfig(log_level="CHATTY").validate()


class EnvironmentOverrideTests(unittest.TestCase):
    def test_overrides_applied(self):
        config = FlagcatConfig()
        ConfigurationManager._load_environment_overrides(config, {
            'FLAGCAT_SPEED': '0.5',
            'FLAGCAT_ORIENTATION': 'Vertical',
            'FLAGCAT_NO_RGB24': 'yes',
            'FLAGCAT_SCALING': 'lanczos',
            'FLAGCAT_TAB_SIZE': '4',
            'FLAGCAT_LOG_LEVEL': 'debug',
        })
        self.assertEqual(config.stripes.speed, 0.5)
        self.assertIs(config.stripes.orientation, Orientation.VERTICAL)
        self.assertFalse(config.stream.rgb24)
        self.assertIs(config.image.algorithm, ScalingAlgorithm.LANCZOS)
        self.assertEqual(config.stream.tab_size, 4)
        self.assertEqual(config.log_level, 'DEBUG')

    def test_empty_environment_keeps_defaults(self):
        config = FlagcatConfig()
        ConfigurationManager._load_environment_overrides(config, {})
        self.assertEqual(config, FlagcatConfig())


class ReloadTests(unittest.TestCase):
    def tearDown(self):
        reload_config(FlagcatConfig())

    def test_singleton(self):
        self.assertIs(ConfigurationManager(), ConfigurationManager())

    def test_reload_with_valid_config(self):
        new_config = FlagcatConfig(stripes=StripeConfig(speed=0.3))
        self.assertTrue(reload_config(new_config))
        self.assertEqual(get_config().stripes.speed, 0.3)

    def test_invalid_reload_keeps_old_config(self):
        before = get_config()
        with self.assertLogs('flagcat.config', 'ERROR'):
            ok = reload_config(FlagcatConfig(stripes=StripeConfig(deadzone=2.0)))
        self.assertFalse(ok)
        self.assertIs(get_config(), before)

    def test_reload_from_environment_mapping(self):
        self.assertTrue(reload_config(environ={'FLAGCAT_DEADZONE': '0.25'}))
        self.assertEqual(get_config().stripes.deadzone, 0.25)


class PresetCatalogTests(unittest.TestCase):
    def test_lookup_is_case_insensitive(self):
        self.assertEqual(flag_by_name('PRIDE')['name'], 'Pride')
        self.assertEqual(flag_by_name('trans')['name'], 'Trans')

    def test_lookup_by_alias(self):
        self.assertIs(flag_by_name('rainbow'), flag_by_name('pride'))
        self.assertIs(flag_by_name('Bisexual'), flag_by_name('bi'))
        self.assertIs(flag_by_name('enby'), flag_by_name('nonbinary'))

    def test_unknown_name(self):
        self.assertIsNone(flag_by_name('plaid'))

    def test_default_is_lesbian(self):
        self.assertEqual(default_flag_preset()['name'], 'Lesbian')

    def test_catalog_is_read_only(self):
        with self.assertRaises(TypeError):
            FLAG_PRESETS['new'] = {}
        with self.assertRaises(TypeError):
            FLAG_PRESETS['pride']['name'] = 'Other'

    def test_every_preset_has_valid_stripes(self):
        names = []
        for preset in iter_flag_presets():
            names.append(preset['name'])
            self.assertGreater(len(preset['stripes']), 0)
            for value in preset['stripes']:
                Color.from_hex(value)
        self.assertIn('Progress', names)
        self.assertIn('Gay', names)


if __name__ == "__main__":
    unittest.main()
