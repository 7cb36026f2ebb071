"""
probes.py
ProbeRunner: the single seam through which every external command runs.

- probe(): read-only diagnostics, always executed (also in dry-run)
- apply(): state-changing commands (udevadm, systemctl, package managers),
  only echoed in dry-run
Output is returned raw; interpretation lives in parsers.py.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Sequence
from .logs import TRACE
from .util import run

log = logging.getLogger(__name__)

# Tool names (PATH lookup; bundle.prepend_bin_to_path may put ./bin first)
UDEVADM = "udevadm"
LSSCSI = "lsscsi"
LSUSB = "lsusb"
LSBLK = "lsblk"
SG_VPD = "sg_vpd"
SG_READCAP = "sg_readcap"
HDPARM = "hdparm"
FSTRIM = "fstrim"
SYSTEMCTL = "systemctl"


@dataclass(frozen=True)
class ProbeResult:
    argv: tuple
    rc: int
    output: str

    @property
    def ok(self) -> bool:
        return self.rc == 0


class ProbeRunner:
    def __init__(self, dry: bool = False):
        self.dry = dry

    def _exec(self, argv: Sequence[str], dry: bool) -> ProbeResult:
        log.debug("Running: %s", " ".join(argv))
        rc, out = run(argv, dry=dry)
        result = ProbeResult(tuple(argv), rc, out)
        if rc != 0:
            log.log(TRACE, "%s exited %d: %s", argv[0], rc, out.strip())
        else:
            log.log(TRACE, "%s output:\n%s", argv[0], out.rstrip())
        return result

    def probe(self, *argv: str) -> ProbeResult:
        return self._exec(argv, dry=False)

    def apply(self, *argv: str) -> ProbeResult:
        return self._exec(argv, dry=self.dry)
