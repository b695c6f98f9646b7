"""
Unit tests for configuration loading and validation.
"""

import pytest
import toml

from arborbuild.config import (
    clear_config_cache,
    get_config,
    is_config_loaded,
    set_config_path,
    validate_app_config,
)
from arborbuild.validation import ValidationError


@pytest.mark.unit
class TestConfigManager:
    """Test cases for the configuration singleton."""

    def test_loads_values_from_file(self, temp_dir):
        config_file = temp_dir / "config.toml"
        with open(config_file, "w") as f:
            toml.dump({
                "supervisor": {"poll_interval_seconds": 0.1},
                "bootstrap": {"build_timeout_seconds": 60, "package_source": str(temp_dir)},
                "logging": {"level": "debug"},
            }, f)

        set_config_path(config_file)
        config = get_config()

        assert config.supervisor.poll_interval_seconds == 0.1
        assert config.bootstrap.build_timeout_seconds == 60
        assert config.bootstrap.package_source == temp_dir
        assert config.bootstrap.cache_dir is None
        assert config.logging.level == "DEBUG"
        assert get_config() is config

    def test_missing_file_gives_defaults(self, temp_dir):
        set_config_path(temp_dir / "missing.toml")

        config = get_config()

        assert config.bootstrap.build_timeout_seconds == 900
        assert config.build.exit_delay_ms == 50
        assert config.supervisor.quick_call_timeout_seconds == 5.0

    def test_clear_cache(self, temp_dir):
        set_config_path(temp_dir / "missing.toml")
        get_config()
        assert is_config_loaded()

        clear_config_cache()

        assert not is_config_loaded()

    def test_invalid_file_raises(self, temp_dir):
        config_file = temp_dir / "config.toml"
        with open(config_file, "w") as f:
            toml.dump({"bootstrap": {"build_timeout_seconds": -5}}, f)

        set_config_path(config_file)
        with pytest.raises(ValidationError):
            get_config()


@pytest.mark.unit
class TestConfigValidation:
    """Test cases for validate_app_config."""

    def test_empty_config_uses_defaults(self):
        config = validate_app_config({})

        assert config.bootstrap.package_name == "arbor-build"
        assert config.bootstrap.max_exit_delay_ms == 10_000

    @pytest.mark.parametrize("section,field,value", [
        ("supervisor", "poll_interval_seconds", 0),
        ("supervisor", "kill_wait_timeout_seconds", "fast"),
        ("bootstrap", "package_name", ""),
        ("bootstrap", "build_timeout_seconds", True),
        ("build", "exit_delay_ms", -1),
        ("logging", "level", "LOUD"),
    ])
    def test_invalid_values(self, section, field, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_app_config({section: {field: value}})

        assert field in str(exc_info.value) or exc_info.value.field_name.endswith(field)
