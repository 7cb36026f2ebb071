"""
verify.py
Live check: run `fstrim -v` on the first mounted filesystem of the device.

Outcomes: passed | failed | unsupported | skipped (nothing mounted, or dry-run).
Failure is expected before a reboot/replug since the new rules only apply on
the next attach event; the outcome is reported, nothing is undone.
"""

from __future__ import annotations
import logging
from typing import Optional
from .types import DeviceRef, VerificationOutcome
from .probes import ProbeRunner, LSBLK, FSTRIM
from .parsers import first_mountpoint, discard_not_supported, parse_fstrim_bytes
from .logs import SUCCESS

log = logging.getLogger(__name__)


def find_mountpoint(runner: ProbeRunner, dev: DeviceRef) -> Optional[str]:
    res = runner.probe(LSBLK, "-no", "MOUNTPOINT", dev.base_path)
    if not res.ok:
        return None
    return first_mountpoint(res.output)


def run_verification(runner: ProbeRunner, dev: DeviceRef) -> VerificationOutcome:
    log.info("Attempting to test TRIM using fstrim...")
    mp = find_mountpoint(runner, dev)
    if not mp:
        log.info("Device %s (or its partitions) does not appear to be mounted.", dev.path)
        log.info("Test manually after mounting: sudo fstrim -v /path/to/mountpoint")
        return VerificationOutcome("skipped")
    if runner.dry:
        runner.apply(FSTRIM, "-v", mp)
        return VerificationOutcome("skipped", mountpoint=mp)

    log.info("Found related mounted filesystem at %s. Testing TRIM there.", mp)
    res = runner.apply(FSTRIM, "-v", mp)
    output = res.output.strip()
    if res.ok:
        trimmed = parse_fstrim_bytes(output)
        log.log(SUCCESS, "fstrim test successful on %s.", mp)
        if trimmed is not None:
            log.info("%d bytes trimmed", trimmed)
        return VerificationOutcome("passed", mountpoint=mp, output=output)

    if discard_not_supported(output):
        log.error("fstrim test FAILED on %s: the discard operation is not supported.", mp)
        log.error("Possible reasons:")
        log.error("  1. Filesystem type on %s does not support TRIM.", mp)
        log.error("  2. TRIM commands do not pass through the adapter yet (a reboot or replug may be needed).")
        log.info("Periodic TRIM via fstrim.timer does NOT require the 'discard' mount option.")
        return VerificationOutcome("unsupported", mountpoint=mp, output=output)

    log.error("fstrim test FAILED on %s (exit %d): %s", mp, res.rc, output)
    return VerificationOutcome("failed", mountpoint=mp, output=output)
