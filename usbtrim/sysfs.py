"""
sysfs.py
Direct sysfs access:
- find_usb_ids: walk from /sys/class/block/<dev> up the device topology to the
  USB device node carrying idVendor/idProduct
- apply_runtime_limits: best-effort immediate provisioning_mode / discard_max_bytes
  writes so the new limits take effect before the next attach event
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Tuple
from .logs import TRACE
from .parsers import id_pair

log = logging.getLogger(__name__)


def read_attr(path: Path) -> Optional[str]:
    try:
        return path.read_text().strip()
    except OSError:
        return None


def _ids_at(node: Path) -> Optional[Tuple[str, str]]:
    vendor, product = node / "idVendor", node / "idProduct"
    if not (vendor.is_file() and product.is_file()):
        return None
    return id_pair(read_attr(vendor), read_attr(product))


def find_usb_ids(sys_root: Path, base_name: str) -> Optional[Tuple[str, str]]:
    """
    Resolve <sys_root>/class/block/<base_name> and walk upward. At each step the
    node and its parent are checked, since interface and device nodes sit at
    different depths. Stops at the sysfs root.
    """
    link = sys_root / "class" / "block" / base_name
    if not link.exists():
        log.log(TRACE, "Could not resolve sysfs link %s", link)
        return None
    root = sys_root.resolve()
    current = link.resolve()
    while current != root and current != current.parent and root in current.parents:
        for node in (current, current.parent):
            pair = _ids_at(node)
            if pair:
                log.debug("Found USB IDs via sysfs traversal at %s: %s:%s", node, *pair)
                return pair
        current = current.parent
    log.log(TRACE, "sysfs traversal did not yield IDs for %s", base_name)
    return None


def _write_attr(path: Path, value: str) -> bool:
    try:
        path.write_text(value)
    except OSError as e:
        log.warning("Failed to write '%s' to %s: %s", value, path, e)
        return False
    log.log(TRACE, "Set %s to '%s'", path, value)
    return True


def apply_runtime_limits(sys_root: Path, base_name: str, discard_max_bytes: int) -> bool:
    """Returns True only if both attributes were written."""
    block = sys_root / "block" / base_name
    prov_ok = False
    prov_paths = sorted((block / "device" / "scsi_disk").glob("*/provisioning_mode"))
    if prov_paths:
        prov_ok = _write_attr(prov_paths[0], "unmap")
    else:
        log.warning("Could not find runtime provisioning_mode path under %s", block)

    discard_path = block / "queue" / "discard_max_bytes"
    discard_ok = False
    if discard_path.is_file():
        discard_ok = _write_attr(discard_path, str(discard_max_bytes))
    else:
        log.warning("Runtime discard_max_bytes path not found: %s", discard_path)
    return prov_ok and discard_ok
