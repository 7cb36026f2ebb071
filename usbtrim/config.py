"""
config.py
Load and validate configuration from TOML (Python 3.11+ tomllib).
Search order:
  1) explicit --config path (must exist)
  2) adjacent DEFAULT_CONFIG_PATH (bundle root / 'usbtrim.toml')
  3) /etc/usbtrim.toml
A missing auto-discovered file means built-in defaults.
"""

from __future__ import annotations
import tomllib
from pathlib import Path
from typing import Any, Dict
from .types import Config
from .bundle import DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH

SCHEDULES = ("daily", "weekly", "monthly")

# ~2 GiB worth of 512-byte units; used when only the hdparm fallback confirms TRIM
DEFAULT_UNMAP_UNITS = 4194240
# 4 GiB - 1
DEFAULT_DISCARD_CEILING = 4 * 1024**3 - 1


def _gv(d: Dict[str, Any], path: list[str], default=None):
    cur = d
    for k in path:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


def _load_toml(path: Path) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def find_config(path_arg: str | None) -> Path | None:
    """Pick the best config path based on CLI arg and availability."""
    if path_arg:
        p = Path(path_arg)
        if not p.exists():
            raise FileNotFoundError(f"Specified config file does not exist: {path_arg}")
        return p
    for candidate in (DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH):
        p = Path(candidate)
        if p.exists():
            return p
    return None


def load_config(path: Path | None) -> Config:
    cfg = _load_toml(path) if path else {}

    def gv(keys, default=None):
        return _gv(cfg, keys, default)

    schedule = gv(["timer", "schedule"], "weekly")
    if schedule not in SCHEDULES:
        raise ValueError(f"timer.schedule must be one of {', '.join(SCHEDULES)}, got {schedule!r}")
    default_units = int(gv(["trim", "default_unmap_units"], DEFAULT_UNMAP_UNITS))
    if default_units <= 0:
        raise ValueError("trim.default_unmap_units must be positive")
    ceiling = int(gv(["trim", "discard_ceiling_bytes"], DEFAULT_DISCARD_CEILING))
    if ceiling <= 0:
        raise ValueError("trim.discard_ceiling_bytes must be positive")

    return Config(
        udev_rule_dir=Path(gv(["paths", "udev_rule_dir"], "/etc/udev/rules.d")),
        systemd_dir=Path(gv(["paths", "systemd_dir"], "/etc/systemd/system")),
        sys_root=Path(gv(["paths", "sys_root"], "/sys")),
        default_unmap_units=default_units,
        discard_ceiling_bytes=ceiling,
        apply_runtime=bool(gv(["trim", "apply_runtime"], True)),
        schedule=schedule,
        timer_unit=gv(["timer", "unit"], "fstrim.timer"),
        service_unit=gv(["timer", "service"], "fstrim.service"),
        override_name=gv(["timer", "override_name"], "99-usbtrim-override.conf"),
        accuracy_sec=str(gv(["timer", "accuracy_sec"], "1h")),
        log_level=gv(["runtime", "log_level"], "INFO"),
    )
