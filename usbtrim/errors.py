"""
errors.py
Exceptions that terminate a run. Each carries the process exit code that
cli.main reports; everything softer is logged and never raised.
"""
from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from .types import ExitCode


class UsbTrimError(Exception):
    exit_code = ExitCode.INTERNAL


class DependencyError(UsbTrimError):
    exit_code = ExitCode.DEPENDENCY_MISSING

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class PackageInstallError(UsbTrimError):
    exit_code = ExitCode.PACKAGE_INSTALL


class DeviceNotFoundError(UsbTrimError):
    exit_code = ExitCode.DEVICE_NOT_FOUND


class InvalidDeviceError(UsbTrimError):
    exit_code = ExitCode.DEVICE_INVALID


class LogInitError(UsbTrimError):
    exit_code = ExitCode.LOG_INIT


class ArtifactWriteError(UsbTrimError):
    """A configuration artifact could not be persisted."""

    exit_code = ExitCode.ARTIFACT_WRITE

    def __init__(
        self,
        path: Path,
        reason: str,
        confirmed: Optional[List[Path]] = None,
        missing: Optional[List[Path]] = None,
    ):
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = path
        self.reason = reason
        self.confirmed = confirmed or []
        self.missing = missing or [path]
