"""
capability.py
TRIM/unmap capability probe.

Primary (SCSI VPD pages via sg_vpd):
  - Block Limits (bl):                  Maximum unmap LBA count
  - Logical Block Provisioning (lbpv):  Unmap command supported (LBPU)
Fallback (hdparm -I): "Data Set Management TRIM supported", consulted only when
the primary answer is incomplete or negative.

Verdict: supported = (lbpu and count > 0) or fallback_indicated
"""

from __future__ import annotations
import logging
from typing import Optional
from .types import CapabilitySource, CapabilityVerdict, DeviceRef
from .probes import ProbeRunner, SG_VPD, HDPARM
from .parsers import parse_max_unmap_count, parse_lbpu, hdparm_reports_trim
from .config import DEFAULT_UNMAP_UNITS
from .logs import SUCCESS

log = logging.getLogger(__name__)


def decide(
    lbpu: bool, count: int, fallback_indicated: bool, default_units: int = DEFAULT_UNMAP_UNITS
) -> CapabilityVerdict:
    """Combine the three signals. Pure; the order signals were gathered in is irrelevant."""
    primary = lbpu and count > 0
    if primary:
        source = CapabilitySource.PROTOCOL_PRIMARY
    elif fallback_indicated:
        source = CapabilitySource.PROTOCOL_FALLBACK
    else:
        source = CapabilitySource.NONE
    supported = primary or fallback_indicated
    units = count
    if supported and count == 0:
        units = default_units
    return CapabilityVerdict(
        supported=supported,
        max_unmap_units=units,
        source=source,
        lbpu=lbpu,
        reported_units=count,
        fallback_indicated=fallback_indicated,
    )


class CapabilityProber:
    def __init__(self, runner: ProbeRunner, default_units: int = DEFAULT_UNMAP_UNITS):
        self.runner = runner
        self.default_units = default_units

    def max_unmap_count(self, dev: DeviceRef) -> Optional[int]:
        """None when the query failed outright."""
        res = self.runner.probe(SG_VPD, "-p", "bl", dev.path)
        if not res.ok:
            log.warning(
                "sg_vpd -p bl failed (exit %d). Cannot determine Max Unmap LBA count.", res.rc
            )
            return None
        count = parse_max_unmap_count(res.output)
        if count is None:
            log.warning("Could not parse numeric value for 'Maximum unmap LBA count' from sg_vpd output.")
            return 0
        return count

    def unmap_supported(self, dev: DeviceRef) -> Optional[bool]:
        """None when the query failed outright."""
        res = self.runner.probe(SG_VPD, "-p", "lbpv", dev.path)
        if not res.ok:
            log.warning("sg_vpd -p lbpv failed (exit %d). Cannot determine LBPU status.", res.rc)
            return None
        lbpu = parse_lbpu(res.output)
        if lbpu is None:
            log.warning("Could not determine LBPU status from sg_vpd output. Assuming not supported.")
            return False
        return lbpu

    def hdparm_indicates_trim(self, dev: DeviceRef) -> bool:
        res = self.runner.probe(HDPARM, "-I", dev.path)
        if not res.ok:
            log.warning("hdparm -I failed (exit %d). Cannot verify via hdparm.", res.rc)
            return False
        if hdparm_reports_trim(res.output):
            log.info("TRIM support indicated by hdparm (Data Set Management).")
            return True
        log.info("TRIM support not indicated by hdparm.")
        return False

    def probe(self, dev: DeviceRef) -> CapabilityVerdict:
        log.info("Checking TRIM/Unmap support for %s...", dev.path)
        count = self.max_unmap_count(dev)
        lbpu = self.unmap_supported(dev)
        log.debug("Reported Maximum unmap LBA count: %s", count if count is not None else "n/a")
        log.debug("Reported Unmap command supported (LBPU): %s", lbpu if lbpu is not None else "n/a")

        failed = count is None or lbpu is None
        count = count or 0
        lbpu = bool(lbpu)
        fallback = False
        if count == 0 or not lbpu or failed:
            log.info("Primary TRIM check (sg_vpd) indicates no/limited support or failed. Trying hdparm as fallback...")
            fallback = self.hdparm_indicates_trim(dev)

        verdict = decide(lbpu, count, fallback, self.default_units)
        if verdict.supported:
            log.log(SUCCESS, "Device %s appears to support TRIM/Unmap/Discard commands.", dev.path)
            if verdict.reported_units == 0:
                log.warning(
                    "Using default Max Unmap LBA Count (%d) as sg_vpd gave none but hdparm detected support.",
                    verdict.max_unmap_units,
                )
        else:
            log.error("Device %s does not appear to support TRIM/Unmap/Discard.", dev.path)
        return verdict
