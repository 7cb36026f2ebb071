"""
types.py
Dataclasses and enums used across modules: Config, DeviceRef, HardwareIdentity,
CapabilityVerdict, DiscardParameters, ConfigArtifact, outcomes and ExitCode.

Fact records are frozen; the Orchestrator swaps them wholesale on RunState.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional, Union


class ExitCode(IntEnum):
    SUCCESS = 0
    NOT_ROOT = 1
    ARGS = 2
    DEPENDENCY_MISSING = 3
    PACKAGE_INSTALL = 4
    DEVICE_NOT_FOUND = 5
    DEVICE_INVALID = 6
    ABORTED_UNSUPPORTED = 7
    ARTIFACT_WRITE = 8
    SCHEDULE = 9
    LOG_INIT = 10
    INTERNAL = 99


@dataclass
class Config:
    # paths
    udev_rule_dir: Path
    systemd_dir: Path
    sys_root: Path
    # trim
    default_unmap_units: int
    discard_ceiling_bytes: int
    apply_runtime: bool
    # timer
    schedule: str
    timer_unit: str
    service_unit: str
    override_name: str
    accuracy_sec: str
    # runtime
    log_level: str


@dataclass(frozen=True)
class DeviceRef:
    path: str
    name: str
    base_name: str
    transport: str
    vendor: Optional[str] = None
    model: Optional[str] = None

    @property
    def base_path(self) -> str:
        return f"/dev/{self.base_name}"


class Confidence(str, Enum):
    EXACT = "exact"
    DERIVED = "derived"
    HEURISTIC = "heuristic"
    MANUAL = "manual"
    NONE = "none"


@dataclass(frozen=True)
class HardwareIdentity:
    vendor_id: Optional[str] = None
    product_id: Optional[str] = None
    confidence: Confidence = Confidence.NONE

    @property
    def known(self) -> bool:
        return self.confidence is not Confidence.NONE

    def __str__(self) -> str:
        if not self.known:
            return "unknown"
        return f"{self.vendor_id}:{self.product_id}"


UNKNOWN_IDENTITY = HardwareIdentity()


class CapabilitySource(str, Enum):
    PROTOCOL_PRIMARY = "protocolPrimary"
    PROTOCOL_FALLBACK = "protocolFallback"
    NONE = "none"


@dataclass(frozen=True)
class CapabilityVerdict:
    supported: bool
    max_unmap_units: int
    source: CapabilitySource
    lbpu: bool = False
    reported_units: int = 0
    fallback_indicated: bool = False
    forced: bool = False


@dataclass(frozen=True)
class DiscardParameters:
    block_size_bytes: int
    discard_max_bytes: int
    clamped: bool = False


@dataclass(frozen=True)
class IdentitySelector:
    vendor_id: str
    product_id: str


@dataclass(frozen=True)
class NameSelector:
    kernel_name: str


Selector = Union[IdentitySelector, NameSelector]


@dataclass(frozen=True)
class ConfigArtifact:
    selector: Selector
    payload: str
    destination: Path

    @property
    def portable(self) -> bool:
        return isinstance(self.selector, IdentitySelector)


@dataclass
class ScheduleOutcome:
    schedule: str
    configured: bool
    override_path: Optional[Path] = None
    active: str = "unknown"
    enabled: str = "unknown"
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.configured and self.active == "active" and self.enabled == "enabled"


@dataclass
class VerificationOutcome:
    status: str  # passed | failed | unsupported | skipped
    mountpoint: Optional[str] = None
    output: str = ""
