"""
packages.py
Required command check and optional automatic installation.

- Core commands (util-linux, systemd) missing -> DependencyError; the base
  system is broken and nothing here can fix it.
- Probe tools missing -> warning and a degraded run, or with --auto an attempt
  to install their packages through the first package manager found.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Tuple
from .errors import DependencyError, PackageInstallError
from .probes import ProbeRunner
from .util import which_quiet
from .logs import SUCCESS, TRACE

log = logging.getLogger(__name__)

CORE_PACKAGES = ("util-linux", "systemd")

TOOLS: Dict[str, str] = {
    "sg_vpd": "sg3-utils",
    "sg_readcap": "sg3-utils",
    "lsscsi": "lsscsi",
    "lsusb": "usbutils",
    "hdparm": "hdparm",
    "lsblk": "util-linux",
    "fstrim": "util-linux",
    "udevadm": "systemd",
    "systemctl": "systemd",
}

# (binary, update command, install command)
PACKAGE_MANAGERS: List[Tuple[str, Optional[List[str]], List[str]]] = [
    ("apt-get", ["apt-get", "update"], ["apt-get", "install", "-y"]),
    ("dnf", None, ["dnf", "install", "-y"]),
    ("yum", None, ["yum", "install", "-y"]),
    ("pacman", ["pacman", "-Sy", "--noconfirm"], ["pacman", "-S", "--noconfirm"]),
]


def package_for(tool: str, manager: Optional[str] = None) -> str:
    pkg = TOOLS[tool]
    if pkg == "sg3-utils" and manager in ("dnf", "yum"):
        return "sg3_utils"
    return pkg


def missing_tools(which=which_quiet) -> List[str]:
    missing = []
    for tool in TOOLS:
        if which(tool):
            log.log(TRACE, "Command '%s' found.", tool)
        else:
            log.warning("Required command not found: %s (package: %s)", tool, TOOLS[tool])
            missing.append(tool)
    return missing


def detect_package_manager(which=which_quiet):
    for entry in PACKAGE_MANAGERS:
        if which(entry[0]):
            return entry
    return None


def ensure_tools(runner: ProbeRunner, auto_install: bool, which=which_quiet) -> List[str]:
    """
    Returns the probe tools still missing after this call (the run degrades
    without them). Raises when a core command is missing or --auto fails.
    """
    log.info("Checking for required commands...")
    missing = missing_tools(which)
    if not missing:
        log.info("All required commands are available.")
        return []

    core = [t for t in missing if TOOLS[t] in CORE_PACKAGES]
    if core:
        raise DependencyError(
            f"Core command(s) {', '.join(core)} missing. This indicates a broken base system.", core
        )

    if not auto_install:
        log.warning(
            "Probe tools missing: %s. Detection will be degraded; use --auto to install them.",
            ", ".join(missing),
        )
        return missing

    entry = detect_package_manager(which)
    if entry is None:
        raise PackageInstallError("No supported package manager (apt-get, dnf, yum, pacman) found.")
    manager, update_cmd, install_cmd = entry
    packages = sorted({package_for(t, manager) for t in missing})
    log.info("Attempting automatic installation with %s: %s", manager, " ".join(packages))

    if update_cmd:
        log.info("Updating package lists...")
        if not runner.apply(*update_cmd).ok:
            log.warning("Package list update failed. Continuing install attempt...")
    res = runner.apply(*install_cmd, *packages)
    if not res.ok:
        raise PackageInstallError(f"Failed to install packages ({res.rc}): {' '.join(packages)}")
    if runner.dry:
        return []

    still = [t for t in missing if not which(t)]
    if still:
        raise PackageInstallError(f"Command(s) still not found after installation: {', '.join(still)}")
    log.log(SUCCESS, "Packages installed successfully.")
    return []
