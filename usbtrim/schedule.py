"""
schedule.py
Periodic TRIM via the systemd fstrim timer.

Writes <systemd_dir>/<timer>.d/<override_name> that resets OnCalendar to the
chosen period, then daemon-reload, enable and restart the timer and read back
its state. Never raises: failures land in ScheduleOutcome and are reported,
leaving the udev configuration untouched.
"""

from __future__ import annotations
import logging
from pathlib import Path
from .types import Config, ScheduleOutcome
from .probes import ProbeRunner, SYSTEMCTL
from .config import SCHEDULES
from .util import write_text_atomic
from .logs import SUCCESS

log = logging.getLogger(__name__)

OVERRIDE = """\
# systemd drop-in generated by usbtrim
# Sets the schedule for the main {timer} unit.
[Unit]
Description=Periodic TRIM of filesystems (schedule configured by usbtrim)

[Timer]
OnCalendar=
OnCalendar={schedule}
AccuracySec={accuracy}
Persistent=true
"""


def render_override(schedule: str, timer_unit: str = "fstrim.timer", accuracy: str = "1h") -> str:
    return OVERRIDE.format(timer=timer_unit, schedule=schedule, accuracy=accuracy)


def override_path(cfg: Config) -> Path:
    return cfg.systemd_dir / f"{cfg.timer_unit}.d" / cfg.override_name


class ScheduleConfigurator:
    def __init__(self, cfg: Config, runner: ProbeRunner):
        self.cfg = cfg
        self.runner = runner

    def service_present(self) -> bool:
        res = self.runner.probe(SYSTEMCTL, "list-unit-files", self.cfg.service_unit)
        return res.ok and self.cfg.service_unit in res.output

    def state(self) -> tuple[str, str]:
        active = self.runner.probe(SYSTEMCTL, "is-active", self.cfg.timer_unit)
        enabled = self.runner.probe(SYSTEMCTL, "is-enabled", self.cfg.timer_unit)
        return (active.output.strip() or "failed-read"), (enabled.output.strip() or "failed-read")

    def configure(self, schedule: str) -> ScheduleOutcome:
        unit = self.cfg.timer_unit
        log.info("Configuring systemd %s for schedule: %s", unit, schedule)
        if schedule not in SCHEDULES:
            log.error("Invalid timer schedule: %r. Use %s.", schedule, ", ".join(SCHEDULES))
            return ScheduleOutcome(schedule, False, error="invalid schedule")

        if not self.service_present():
            log.error("%s not found. It is usually part of util-linux.", self.cfg.service_unit)
            return ScheduleOutcome(schedule, False, error=f"{self.cfg.service_unit} not installed")

        path = override_path(self.cfg)
        content = render_override(schedule, unit, self.cfg.accuracy_sec)
        if self.runner.dry:
            log.info("[dry-run] would write %s:\n%s", path, content)
            return ScheduleOutcome(schedule, True, override_path=path, active="dry-run", enabled="dry-run")
        try:
            changed = write_text_atomic(path, content)
        except OSError as e:
            log.error("Failed to write timer override file %s: %s", path, e)
            return ScheduleOutcome(schedule, False, override_path=path, error=str(e))
        log.debug("Timer override %s %s", path, "written" if changed else "unchanged")

        if not self.runner.apply(SYSTEMCTL, "daemon-reload").ok:
            log.warning("systemctl daemon-reload failed. Configuration might be stale.")
        if not self.runner.apply(SYSTEMCTL, "enable", unit).ok:
            log.warning("Failed to enable %s. It might be masked.", unit)
        if not self.runner.apply(SYSTEMCTL, "restart", unit).ok:
            log.warning("Failed to restart %s. Check 'systemctl status %s'.", unit, unit)

        active, enabled = self.state()
        outcome = ScheduleOutcome(schedule, True, override_path=path, active=active, enabled=enabled)
        if outcome.healthy:
            log.log(SUCCESS, "%s is now active and enabled with schedule: %s", unit, schedule)
        else:
            log.warning("Could not fully activate/enable %s. Active: %s, Enabled: %s", unit, active, enabled)
        return outcome
