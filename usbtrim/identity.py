"""
identity.py
Resolve a stable vendor:product identity for a USB block device.

Strategies run in a fixed order; the first one returning a well-formed pair wins:
  1. udevadm property query            -> Confidence.EXACT
  2. sysfs topology walk               -> Confidence.DERIVED
  3. lsscsi/lsusb text correlation     -> Confidence.HEURISTIC
The heuristic stays last so it can never outrank a structured answer.
Manual entry is a UI concern and is handled by the orchestrator.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple
from .types import Confidence, DeviceRef, HardwareIdentity, UNKNOWN_IDENTITY
from .probes import ProbeRunner, UDEVADM, LSSCSI, LSUSB
from .parsers import parse_udev_ids, parse_lsscsi_line, find_usb_id
from .logs import TRACE
from . import sysfs

log = logging.getLogger(__name__)

IdPair = Tuple[str, str]
Strategy = Callable[[DeviceRef], Optional[IdPair]]


class IdentityResolver:
    def __init__(self, runner: ProbeRunner, sys_root: Path = Path("/sys")):
        self.runner = runner
        self.sys_root = sys_root
        self.strategies: List[Tuple[str, Confidence, Strategy]] = [
            ("udevadm", Confidence.EXACT, self.from_udev),
            ("sysfs", Confidence.DERIVED, self.from_sysfs),
            ("lsscsi/lsusb", Confidence.HEURISTIC, self.from_text_match),
        ]

    def resolve(self, dev: DeviceRef) -> HardwareIdentity:
        log.debug("Attempting to get USB Vendor:Product IDs for %s", dev.path)
        for name, confidence, strategy in self.strategies:
            log.log(TRACE, "Trying %s for %s", name, dev.base_name)
            try:
                pair = strategy(dev)
            except OSError as e:
                log.log(TRACE, "%s strategy failed: %s", name, e)
                pair = None
            if pair:
                ident = HardwareIdentity(pair[0], pair[1], confidence)
                log.debug("Found USB IDs via %s: %s (%s)", name, ident, confidence.value)
                return ident
        log.warning("Could not automatically determine USB Vendor/Product IDs for %s", dev.path)
        return UNKNOWN_IDENTITY

    def from_udev(self, dev: DeviceRef) -> Optional[IdPair]:
        res = self.runner.probe(UDEVADM, "info", "--query=property", f"--name={dev.base_path}")
        if not res.ok:
            log.log(TRACE, "udevadm info failed for %s (exit %d)", dev.base_path, res.rc)
            return None
        pair = parse_udev_ids(res.output)
        if not pair:
            log.log(TRACE, "udevadm did not provide valid Vendor/Product IDs")
        return pair

    def from_sysfs(self, dev: DeviceRef) -> Optional[IdPair]:
        return sysfs.find_usb_ids(self.sys_root, dev.base_name)

    def from_text_match(self, dev: DeviceRef) -> Optional[IdPair]:
        res = self.runner.probe(LSSCSI)
        if not res.ok:
            return None
        row = parse_lsscsi_line(res.output, dev.base_name)
        if not row:
            log.log(TRACE, "lsscsi provided no info for %s", dev.base_name)
            return None
        vendor, model = row
        log.log(TRACE, "lsscsi info: vendor=%r model=%r", vendor, model)
        usb = self.runner.probe(LSUSB)
        if not usb.ok:
            return None
        pair = find_usb_id(usb.output, vendor, model)
        if pair:
            log.debug("Potential USB ID match via lsusb/lsscsi (matched on vendor/model text)")
        return pair
