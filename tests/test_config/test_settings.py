"""
Tests for configuration loading.
"""

import json
import unittest

import pytest

from ledgercheck.config import (
    default_config, get_config, reset_config, set_config, validate_detection_config
)
from ledgercheck.utils.config import (
    ConfigError, get_env_config, load_config, load_config_file, merge_configs, parse_config_value
)


class TestConfigUtils(unittest.TestCase):
    """Test the configuration helpers."""

    def test_merge_configs_is_recursive(self):
        base = {'detection': {'split_min_bookings': 3, 'duplicate_day_window': 30}, 'runner': {'max_workers': 1}}
        override = {'detection': {'split_min_bookings': 4}}

        merged = merge_configs(base, override)

        self.assertEqual(merged['detection'], {'split_min_bookings': 4, 'duplicate_day_window': 30})
        self.assertEqual(merged['runner'], {'max_workers': 1})
        # Inputs are left alone
        self.assertEqual(base['detection']['split_min_bookings'], 3)

    def test_parse_config_value(self):
        self.assertIs(parse_config_value('true'), True)
        self.assertIs(parse_config_value('off'), False)
        self.assertIsNone(parse_config_value('null'))
        self.assertEqual(parse_config_value('4'), 4)
        self.assertEqual(parse_config_value('0.25'), 0.25)
        self.assertEqual(parse_config_value('8000,8999'), [8000, 8999])
        self.assertEqual(parse_config_value('DEBUG'), 'DEBUG')

    def test_default_config_is_a_copy(self):
        config = default_config()
        config['detection']['split_min_bookings'] = 99

        self.assertEqual(default_config()['detection']['split_min_bookings'], 3)


def test_env_config(monkeypatch):
    monkeypatch.setenv("LEDGERCHECK_DETECTION__SPLIT_MIN_BOOKINGS", "4")
    monkeypatch.setenv("LEDGERCHECK_LOGGING__LEVEL", "DEBUG")
    monkeypatch.setenv("LEDGERCHECK_CONFIG", "/somewhere/config.yaml")

    assert get_env_config("LEDGERCHECK") == {
        'detection': {'split_min_bookings': 4},
        'logging': {'level': 'DEBUG'},
    }


def test_load_yaml_and_json(tmp_path):
    yaml_path = tmp_path / "ledgercheck.yaml"
    yaml_path.write_text("detection:\n  unusual_vendor_min_amount: 2500\n", encoding="utf-8")
    json_path = tmp_path / "ledgercheck.json"
    json_path.write_text(json.dumps({'runner': {'max_workers': 4}}), encoding="utf-8")

    assert load_config_file(yaml_path) == {'detection': {'unusual_vendor_min_amount': 2500}}
    assert load_config_file(str(json_path)) == {'runner': {'max_workers': 4}}


@pytest.mark.parametrize("name, content", [
    ("config.toml", "x = 1"),
    ("config.yaml", "- a list\n"),
    ("config.json", "{not json"),
])
def test_invalid_config_files(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config_file(path)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config_file(tmp_path / "missing.yaml")


def test_load_config_priority(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("detection:\n  split_min_bookings: 5\n  duplicate_day_window: 10\n", encoding="utf-8")
    monkeypatch.setenv("LEDGERCHECK_DETECTION__SPLIT_MIN_BOOKINGS", "6")

    config = load_config(path, default_config=default_config())

    assert config['detection']['split_min_bookings'] == 6
    assert config['detection']['duplicate_day_window'] == 10
    assert config['detection']['split_bands'] == [[2000, 5000], [5000, 10000]]


def test_get_config_reads_working_directory(tmp_path, monkeypatch):
    (tmp_path / "ledgercheck.yaml").write_text("runner:\n  max_workers: 3\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("LEDGERCHECK_LOGGING__LEVEL", "WARNING")

    config = get_config()

    assert config['runner']['max_workers'] == 3
    assert config['logging']['level'] == 'WARNING'
    assert get_config() is config


def test_get_config_ignores_broken_file(tmp_path, monkeypatch):
    (tmp_path / "ledgercheck.json").write_text("{broken", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    assert get_config()['runner']['max_workers'] == 1


def test_set_and_reset_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    set_config({'detection': {'split_min_bookings': 7}})
    assert get_config()['detection']['split_min_bookings'] == 7
    assert get_config()['detection']['duplicate_day_window'] == 30

    reset_config()
    assert get_config()['detection']['split_min_bookings'] == 3


def test_default_detection_section_is_valid():
    settings = validate_detection_config(default_config()['detection'])

    assert settings['split_min_bookings'] == 3
    assert settings['revenue_account_range'] == (8000, 8999)
    assert 'account_mappings_file' not in settings


def test_detection_values_are_typed():
    settings = validate_detection_config({'split_min_bookings': '4', 'duplicate_amount_tolerance': 0.1})

    assert settings == {'split_min_bookings': 4, 'duplicate_amount_tolerance': 0.1}


@pytest.mark.parametrize("section", [
    {'split_min_bookings': 0},
    {'split_min_bookings': 'many'},
    {'duplicate_amount_tolerance': -0.05},
    {'revenue_account_range': [8999, 8000]},
    {'split_bands': [[5000, 2000]]},
    {'round_number_divisors': [1000, 0]},
    {'split_min_booking': 3},
])
def test_invalid_detection_values(section):
    with pytest.raises(ConfigError):
        validate_detection_config(section)
