"""
orchestrator.py
Coordinates one single-device run:
  - Check tools (optionally install)
  - Pick the device (argument or interactive selection)
  - Identity -> capability (confirmation gate) -> parameters -> udev rules
  - Optional fstrim timer, then a live fstrim test
  - Print the summary

RunState is the only mutable record; every step reads facts from it and
stores its result back through RunState.advance().
"""

from __future__ import annotations
import dataclasses, logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional
from .types import (
    CapabilityVerdict,
    Config,
    ConfigArtifact,
    DeviceRef,
    DiscardParameters,
    ExitCode,
    HardwareIdentity,
    ScheduleOutcome,
    UNKNOWN_IDENTITY,
    VerificationOutcome,
)
from .errors import ArtifactWriteError, DeviceNotFoundError
from .bundle import prepend_bin_to_path
from .probes import ProbeRunner
from .identity import IdentityResolver
from .capability import CapabilityProber
from .parameters import ParameterCalculator
from .rules import synthesize, activate_rules
from .schedule import ScheduleConfigurator, override_path
from .verify import run_verification
from .discover import list_usb_disks, resolve_device, print_plan
from .packages import ensure_tools
from .prompt import Prompter
from .report import print_summary
from .sysfs import apply_runtime_limits
from .util import write_text_atomic
from .logs import SUCCESS

log = logging.getLogger(__name__)


class Stage(str, Enum):
    INIT = "init"
    IDENTITY_RESOLVED = "identity_resolved"
    CAPABILITY_KNOWN = "capability_known"
    PARAMETERS_COMPUTED = "parameters_computed"
    CONFIGURED = "configured"
    SCHEDULE_CONFIGURED = "schedule_configured"
    VERIFIED = "verified"
    DONE = "done"
    ABORTED_UNSUPPORTED = "aborted_unsupported"


TRANSITIONS = {
    Stage.INIT: {Stage.IDENTITY_RESOLVED},
    Stage.IDENTITY_RESOLVED: {Stage.CAPABILITY_KNOWN},
    Stage.CAPABILITY_KNOWN: {Stage.PARAMETERS_COMPUTED, Stage.ABORTED_UNSUPPORTED},
    Stage.PARAMETERS_COMPUTED: {Stage.CONFIGURED},
    Stage.CONFIGURED: {Stage.SCHEDULE_CONFIGURED, Stage.VERIFIED},
    Stage.SCHEDULE_CONFIGURED: {Stage.VERIFIED},
    Stage.VERIFIED: {Stage.DONE},
}


@dataclass
class ArtifactRecord:
    artifact: ConfigArtifact
    status: str = "pending"  # pending | written | unchanged | failed | skipped
    error: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.status in ("written", "unchanged")


@dataclass
class RunState:
    device: DeviceRef
    stage: Stage = Stage.INIT
    identity: HardwareIdentity = UNKNOWN_IDENTITY
    verdict: Optional[CapabilityVerdict] = None
    params: Optional[DiscardParameters] = None
    artifacts: List[ArtifactRecord] = field(default_factory=list)
    runtime_applied: Optional[bool] = None
    rules_activated: Optional[bool] = None
    schedule_requested: bool = False
    schedule: Optional[ScheduleOutcome] = None
    verification: Optional[VerificationOutcome] = None

    def advance(self, stage: Stage) -> None:
        if stage not in TRANSITIONS.get(self.stage, set()):
            raise RuntimeError(f"Illegal run transition {self.stage.value} -> {stage.value}")
        log.debug("Run stage: %s -> %s", self.stage.value, stage.value)
        self.stage = stage

    def confirmed_paths(self) -> List[Path]:
        return [r.artifact.destination for r in self.artifacts if r.confirmed]

    def missing_paths(self) -> List[Path]:
        return [r.artifact.destination for r in self.artifacts if not r.confirmed]

    @property
    def exit_code(self) -> ExitCode:
        if self.stage is Stage.ABORTED_UNSUPPORTED:
            return ExitCode.ABORTED_UNSUPPORTED
        if self.schedule_requested and (self.schedule is None or not self.schedule.configured):
            return ExitCode.SCHEDULE
        return ExitCode.SUCCESS


class Orchestrator:
    def __init__(
        self,
        cfg: Config,
        runner: ProbeRunner,
        prompter: Optional[Prompter] = None,
        enable_timer: bool = False,
        schedule: Optional[str] = None,
    ):
        self.cfg = cfg
        self.runner = runner
        self.prompter = prompter
        self.enable_timer = enable_timer
        self.schedule = schedule or cfg.schedule
        self.state: Optional[RunState] = None
        self.resolver = IdentityResolver(runner, cfg.sys_root)
        self.prober = CapabilityProber(runner, cfg.default_unmap_units)
        self.calculator = ParameterCalculator(runner, cfg.discard_ceiling_bytes)

    def run(self, dev: DeviceRef) -> RunState:
        state = RunState(dev, schedule_requested=self.enable_timer)
        self.state = state
        self.resolve_identity(state)
        if not self.check_capability(state):
            return state
        self.compute_parameters(state)
        self.configure(state)
        if self.enable_timer:
            self.configure_schedule(state)
        else:
            log.info("Automatic TRIM timer setup skipped (use --enable-timer to activate).")
        self.run_verification(state)
        state.advance(Stage.DONE)
        return state

    def resolve_identity(self, state: RunState) -> None:
        ident = self.resolver.resolve(state.device)
        if not ident.known and self.prompter is not None:
            manual = self.prompter.manual_identity(state.device.path)
            if manual is not None:
                ident = manual
        if ident.known:
            log.info("Detected USB ID for %s: %s (%s)", state.device.path, ident, ident.confidence.value)
        else:
            log.warning("Could not determine USB ID for %s. A generic udev rule will be created.", state.device.path)
        state.identity = ident
        state.advance(Stage.IDENTITY_RESOLVED)

    def check_capability(self, state: RunState) -> bool:
        """False when the user declined to continue with an unsupported device."""
        verdict = self.prober.probe(state.device)
        state.verdict = verdict
        state.advance(Stage.CAPABILITY_KNOWN)
        if verdict.supported:
            return True

        accepted = self.prompter is not None and self.prompter.confirm_unsupported(state.device.path)
        if not accepted:
            log.info("User aborted due to lack of detected TRIM support.")
            state.advance(Stage.ABORTED_UNSUPPORTED)
            return False
        log.warning("User chose to continue despite lack of detected TRIM support.")
        units = verdict.max_unmap_units or self.cfg.default_unmap_units
        if verdict.max_unmap_units == 0:
            log.warning("Using default Max Unmap LBA Count (%d) for calculation.", units)
        state.verdict = dataclasses.replace(verdict, forced=True, max_unmap_units=units)
        return True

    def compute_parameters(self, state: RunState) -> None:
        state.params = self.calculator.calculate(state.verdict, state.device)
        state.advance(Stage.PARAMETERS_COMPUTED)

    def _planned_schedule_paths(self) -> List[Path]:
        return [override_path(self.cfg)] if self.enable_timer else []

    def configure(self, state: RunState) -> None:
        log.info("Applying TRIM configuration for %s...", state.device.path)
        artifacts = synthesize(state.identity, state.params, state.device, self.cfg.udev_rule_dir)
        state.artifacts = [ArtifactRecord(a) for a in artifacts]
        for rec in state.artifacts:
            if not rec.artifact.portable:
                log.warning(
                    "This generic rule (%s) might affect other devices if kernel names change or are reused.",
                    state.device.base_name,
                )
            self._write_artifact(state, rec)

        if self.runner.dry:
            log.info("[dry-run] skipping udev reload and runtime sysfs writes")
        else:
            state.rules_activated = activate_rules(self.runner, state.device)
            if self.cfg.apply_runtime:
                log.info("Attempting to set runtime values (best effort)...")
                state.runtime_applied = apply_runtime_limits(
                    self.cfg.sys_root, state.device.base_name, state.params.discard_max_bytes
                )
        log.info("Udev rule created/updated. A reboot or replug is recommended for reliable application.")
        state.advance(Stage.CONFIGURED)

    def _write_artifact(self, state: RunState, rec: ArtifactRecord) -> None:
        dest = rec.artifact.destination
        if self.runner.dry:
            log.info("[dry-run] would write %s:\n%s", dest, rec.artifact.payload)
            rec.status = "skipped"
            return
        log.debug("Writing udev rule content to %s", dest)
        try:
            changed = write_text_atomic(dest, rec.artifact.payload)
        except OSError as e:
            rec.status = "failed"
            rec.error = str(e)
            log.error("Failed to write udev rule file %s: %s", dest, e)
            raise ArtifactWriteError(
                dest,
                str(e),
                confirmed=state.confirmed_paths(),
                missing=state.missing_paths() + self._planned_schedule_paths(),
            )
        rec.status = "written" if changed else "unchanged"
        log.log(SUCCESS, "Created udev rule: %s%s", dest, "" if changed else " (unchanged)")

    def configure_schedule(self, state: RunState) -> None:
        outcome = ScheduleConfigurator(self.cfg, self.runner).configure(self.schedule)
        state.schedule = outcome
        if outcome.configured:
            state.advance(Stage.SCHEDULE_CONFIGURED)
        else:
            log.error("Timer configuration failed: %s. The udev configuration is kept.", outcome.error)

    def run_verification(self, state: RunState) -> None:
        state.verification = run_verification(self.runner, state.device)
        state.advance(Stage.VERIFIED)


def pick_device(runner: ProbeRunner, prompter: Prompter) -> DeviceRef:
    log.info("Scanning for USB block devices using lsblk...")
    disks = list_usb_disks(runner)
    if not disks:
        raise DeviceNotFoundError("No suitable USB block devices found (must be whole disk, writable, type USB).")
    picked = prompter.select_device(disks)
    return resolve_device(picked["path"], runner)


def run_plan(
    cfg: Config,
    device: Optional[str],
    select_usb: bool,
    list_only: bool,
    enable_timer: bool,
    schedule: Optional[str],
    auto_install: bool,
    dry: bool,
    prompter: Optional[Prompter] = None,
    runner: Optional[ProbeRunner] = None,
) -> int:
    prepend_bin_to_path()
    runner = runner or ProbeRunner(dry=dry)
    prompter = prompter or Prompter()

    if list_only:
        print_plan(list_usb_disks(runner))
        return ExitCode.SUCCESS

    ensure_tools(runner, auto_install)

    if select_usb:
        dev = pick_device(runner, prompter)
    else:
        log.info("Using specified device: %s", device)
        dev = resolve_device(device, runner)
    log.debug("Proceeding with device: %s (base %s)", dev.path, dev.base_name)

    orch = Orchestrator(cfg, runner, prompter, enable_timer=enable_timer, schedule=schedule)
    try:
        state = orch.run(dev)
    except ArtifactWriteError as e:
        log.error("Confirmed artifacts: %s", ", ".join(map(str, e.confirmed)) or "none")
        log.error("Missing artifacts: %s", ", ".join(map(str, e.missing)) or "none")
        print_summary(orch.state, dry=dry)
        raise
    print_summary(state, dry=dry)
    return state.exit_code
