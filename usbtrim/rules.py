"""
rules.py
Render udev rule artifacts from identity + discard parameters, and ask udev to
pick them up.

Two shapes:
  - identity selector: 10-usbtrim-<vid>-<pid>.rules, matches ATTRS{idVendor}/ATTRS{idProduct}
  - name selector:     11-usbtrim-generic-<kernel>.rules, matches KERNEL=="<kernel>"
synthesize() is pure: same inputs, byte-identical payload, same file name.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import List
from .types import (
    ConfigArtifact,
    DeviceRef,
    DiscardParameters,
    HardwareIdentity,
    IdentitySelector,
    NameSelector,
)
from .probes import ProbeRunner, UDEVADM

log = logging.getLogger(__name__)

GENERATOR = "usbtrim"

IDENTITY_RULE = """\
# udev rule generated by {generator} for USB device {vid}:{pid}
# Target device hint (at generation time): {device}
# Rule 1: set discard_max_bytes on the whole block device behind this USB ID
ACTION=="add|change", SUBSYSTEM=="block", KERNEL=="sd*[!0-9]", ATTRS{{idVendor}}=="{vid}", ATTRS{{idProduct}}=="{pid}", ATTR{{queue/discard_max_bytes}}="{discard_max}"

# Rule 2: set provisioning_mode on the scsi_disk node behind this USB ID
ACTION=="add|change", SUBSYSTEM=="scsi_disk", ATTRS{{idVendor}}=="{vid}", ATTRS{{idProduct}}=="{pid}", ATTR{{provisioning_mode}}="unmap"
"""

NAME_RULE = """\
# Generic udev rule generated by {generator} for device {kernel}
# WARNING: matches on the kernel name only. Kernel names are not stable hardware
# identifiers; another device attached as {kernel} will receive these settings.
# Rule 1: set discard_max_bytes on the block device
ACTION=="add|change", SUBSYSTEM=="block", KERNEL=="{kernel}", ATTR{{queue/discard_max_bytes}}="{discard_max}"

# Rule 2: set provisioning_mode on every scsi_disk node under /sys/block/%k
ACTION=="add|change", SUBSYSTEM=="block", KERNEL=="{kernel}", RUN+="/bin/sh -c 'for p in /sys/block/%k/device/scsi_disk/*/provisioning_mode; do [ -f \\"$p\\" ] && echo unmap > \\"$p\\"; done'"
"""


def identity_rule_name(vendor_id: str, product_id: str) -> str:
    return f"10-usbtrim-{vendor_id}-{product_id}.rules"


def name_rule_name(kernel_name: str) -> str:
    return f"11-usbtrim-generic-{kernel_name}.rules"


def render(selector, params: DiscardParameters, device_path: str) -> str:
    if isinstance(selector, IdentitySelector):
        return IDENTITY_RULE.format(
            generator=GENERATOR,
            vid=selector.vendor_id,
            pid=selector.product_id,
            device=device_path,
            discard_max=params.discard_max_bytes,
        )
    return NAME_RULE.format(
        generator=GENERATOR,
        kernel=selector.kernel_name,
        discard_max=params.discard_max_bytes,
    )


def synthesize(
    identity: HardwareIdentity,
    params: DiscardParameters,
    dev: DeviceRef,
    rule_dir: Path = Path("/etc/udev/rules.d"),
) -> List[ConfigArtifact]:
    if identity.known:
        selector = IdentitySelector(identity.vendor_id, identity.product_id)
        dest = rule_dir / identity_rule_name(identity.vendor_id, identity.product_id)
    else:
        selector = NameSelector(dev.base_name)
        dest = rule_dir / name_rule_name(dev.base_name)
    return [ConfigArtifact(selector=selector, payload=render(selector, params, dev.base_path), destination=dest)]


def activate_rules(runner: ProbeRunner, dev: DeviceRef) -> bool:
    """Reload rules and re-evaluate the device. Failures are warnings only."""
    log.info("Reloading udev rules (udevadm control --reload-rules)...")
    res = runner.apply(UDEVADM, "control", "--reload-rules")
    if not res.ok:
        log.warning(
            "Failed to reload udev rules (exit %d). Rules will likely only apply after reboot or replug.", res.rc
        )
        return False
    trig = runner.apply(UDEVADM, "trigger", "--action=change", f"--sysname-match={dev.base_name}")
    if not trig.ok:
        log.warning("udevadm trigger for %s failed (exit %d).", dev.base_name, trig.rc)
        return False
    return True
