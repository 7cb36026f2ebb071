"""
parameters.py
Turn a capability verdict into the kernel-facing discard_max_bytes value.

discard_max_bytes = min(max_unmap_units * logical_block_size, ceiling)
Python ints do not overflow, so the product is exact before clamping.
"""

from __future__ import annotations
import logging
from typing import Tuple
from .types import CapabilityVerdict, DeviceRef, DiscardParameters
from .probes import ProbeRunner, SG_READCAP
from .parsers import parse_block_length
from .config import DEFAULT_DISCARD_CEILING
from .util import is_power_of_two

log = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 512


def discard_max_bytes(units: int, block_size: int, ceiling: int = DEFAULT_DISCARD_CEILING) -> Tuple[int, bool]:
    """(value, clamped). Zero units always means zero, whatever the block size."""
    if units <= 0:
        return 0, False
    product = units * block_size
    if product > ceiling:
        return ceiling, True
    return product, False


class ParameterCalculator:
    def __init__(self, runner: ProbeRunner, ceiling: int = DEFAULT_DISCARD_CEILING):
        self.runner = runner
        self.ceiling = ceiling

    def block_size(self, dev: DeviceRef) -> int:
        res = self.runner.probe(SG_READCAP, "-l", dev.path)
        if not res.ok:
            log.warning("sg_readcap failed (exit %d). Using default block size %d.", res.rc, DEFAULT_BLOCK_SIZE)
            return DEFAULT_BLOCK_SIZE
        size = parse_block_length(res.output)
        if size is None or not is_power_of_two(size):
            log.warning("Could not parse valid block size from sg_readcap. Using default: %d.", DEFAULT_BLOCK_SIZE)
            return DEFAULT_BLOCK_SIZE
        return size

    def calculate(self, verdict: CapabilityVerdict, dev: DeviceRef) -> DiscardParameters:
        log.info("Calculating discard_max_bytes for %s...", dev.path)
        block_size = self.block_size(dev)
        log.debug("Using block size: %d bytes", block_size)

        units = verdict.max_unmap_units
        if not (verdict.supported or verdict.forced):
            units = 0
        log.debug("Using Max Unmap LBA Count: %d", units)

        value, clamped = discard_max_bytes(units, block_size, self.ceiling)
        if units == 0:
            log.warning("Max Unmap LBA count is 0. Setting discard_max_bytes to 0.")
        elif clamped:
            log.warning(
                "%d units x %d bytes exceeds the %d byte ceiling; clamping.", units, block_size, self.ceiling
            )
        log.info("Calculated discard_max_bytes: %d", value)
        return DiscardParameters(block_size_bytes=block_size, discard_max_bytes=value, clamped=clamped)
