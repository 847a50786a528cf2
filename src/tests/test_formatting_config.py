"""
Tests for display formatting and YAML configuration loading.
"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest
import yaml

from kartograph.config import DEFAULT_CONFIG, load_config
from kartograph.core.constants import ONE_DAY, ONE_HOUR, ONE_YEAR
from kartograph.core.formatting import format_duration, format_epoch, format_number


# =============================================================================
# Formatting
# =============================================================================

class TestFormatNumber:

    @pytest.mark.parametrize("value, expected", [
        (12.3456, "12.35 "),
        (25000.0, "25.00 k"),
        (12345678.0, "12.35 M"),
        (0.0, "0.00 "),
        (-5.0, "-5.00 "),
    ])
    def test_suffixes(self, value, expected):
        assert format_number(value) == expected

    def test_scientific_for_extremes(self):
        assert format_number(2.0e13) == "2.000000e+13 "
        assert format_number(0.001) == "1.000000e-03 "


class TestFormatDuration:

    def test_hours_minutes_seconds(self):
        assert format_duration(3725.5) == "1 h,2 m,5.50 s"

    def test_seconds_only(self):
        assert format_duration(12.0) == "12.00 s"

    def test_negative(self):
        assert format_duration(-90.0) == "-1 m,30.00 s"

    def test_home_world_calendar(self):
        assert format_duration(ONE_YEAR + 2 * ONE_DAY + ONE_HOUR + 1.0) == "1 y,2 d,1 h,1.00 s"

    def test_epoch_counts_from_year_one_day_one(self):
        assert format_epoch(10.0) == "1 y,1 d,10.00 s"


# =============================================================================
# Configuration
# =============================================================================

class TestLoadConfig:

    def test_defaults_are_a_copy(self):
        config = load_config()
        config["engine"]["node_default_offset_s"] = 1.0
        assert DEFAULT_CONFIG["engine"]["node_default_offset_s"] == 600.0

    def test_partial_file_merges_over_defaults(self, tmp_path):
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.safe_dump({
            "warp": {"overshoot_tolerance_s": 2.5},
            "simulation": {"dt": 0.1},
        }))
        config = load_config(str(path))
        assert config["warp"]["overshoot_tolerance_s"] == 2.5
        assert config["simulation"]["dt"] == 0.1
        assert config["simulation"]["rate_change_delay_ticks"] == 3
        assert config["engine"]["node_default_offset_s"] == 600.0

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == DEFAULT_CONFIG

    def test_empty_sections_keep_defaults(self, tmp_path):
        path = tmp_path / "sections.yaml"
        path.write_text("engine:\nwarp:\n")
        config = load_config(str(path))
        assert config["engine"] == DEFAULT_CONFIG["engine"]
        assert config["warp"] == DEFAULT_CONFIG["warp"]

    def test_non_mapping_root_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.yaml"))

    def test_example_config_loads(self):
        path = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'kartograph.yaml')
        config = load_config(path)
        assert set(config["scenario"]["bodies"]) == {"Kerbin", "Mun"}
        assert len(config["scenario"]["vessel"]["patches"]) == 2
        assert config["scenario"]["target"]["inclination"] == 6.0
