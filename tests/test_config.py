"""
Tests for configuration loading and validation.
"""
import pytest
from pathlib import Path

from usbtrim.config import DEFAULT_DISCARD_CEILING, DEFAULT_UNMAP_UNITS, find_config, load_config


def write(tmp_path, text):
    p = tmp_path / "usbtrim.toml"
    p.write_text(text)
    return p


def test_load_config_basic(tmp_path):
    """Test basic configuration loading."""
    cfg = load_config(write(tmp_path, """
version = 1

[paths]
udev_rule_dir = "/run/udev/rules.d"
systemd_dir = "/run/systemd/system"

[trim]
default_unmap_units = 1024
discard_ceiling_bytes = 1073741824
apply_runtime = false

[timer]
schedule = "daily"
accuracy_sec = "6h"

[runtime]
log_level = "DEBUG"
"""))
    assert cfg.udev_rule_dir == Path("/run/udev/rules.d")
    assert cfg.systemd_dir == Path("/run/systemd/system")
    assert cfg.default_unmap_units == 1024
    assert cfg.discard_ceiling_bytes == 1073741824
    assert cfg.apply_runtime is False
    assert cfg.schedule == "daily"
    assert cfg.accuracy_sec == "6h"
    assert cfg.log_level == "DEBUG"


def test_config_defaults():
    """No file means built-in defaults."""
    cfg = load_config(None)
    assert cfg.udev_rule_dir == Path("/etc/udev/rules.d")
    assert cfg.systemd_dir == Path("/etc/systemd/system")
    assert cfg.sys_root == Path("/sys")
    assert cfg.default_unmap_units == DEFAULT_UNMAP_UNITS == 4194240
    assert cfg.discard_ceiling_bytes == DEFAULT_DISCARD_CEILING == 4294967295
    assert cfg.schedule == "weekly"
    assert cfg.timer_unit == "fstrim.timer"
    assert cfg.override_name == "99-usbtrim-override.conf"


def test_invalid_schedule(tmp_path):
    """Test unknown schedule value is rejected."""
    with pytest.raises(ValueError, match="schedule"):
        load_config(write(tmp_path, '[timer]\nschedule = "hourly"\n'))


@pytest.mark.parametrize("key", ["default_unmap_units", "discard_ceiling_bytes"])
def test_non_positive_trim_values(tmp_path, key):
    """Test non-positive trim values are rejected."""
    with pytest.raises(ValueError, match=key):
        load_config(write(tmp_path, f"[trim]\n{key} = 0\n"))


def test_find_config_explicit_missing(tmp_path):
    """Test explicit missing config path raises."""
    with pytest.raises(FileNotFoundError):
        find_config(str(tmp_path / "missing.toml"))


def test_find_config_explicit(tmp_path):
    """Test explicit config path is used as given."""
    p = write(tmp_path, "")
    assert find_config(str(p)) == p
