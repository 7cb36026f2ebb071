"""
discover.py
Device discovery and validation:
- Enumerate writable USB whole disks with lsblk (JSON) for --list / --select-usb
- Resolve a user-supplied path into a DeviceRef (base disk, transport)
- Derive base names (strip partition suffixes)
"""

from __future__ import annotations
import json, os, re, stat
from pathlib import Path
from typing import Any, Dict, List, Optional
from .types import DeviceRef
from .errors import DeviceNotFoundError, InvalidDeviceError
from .probes import ProbeRunner, LSBLK

LSBLK_COLUMNS = "NAME,KNAME,PATH,SIZE,VENDOR,MODEL,TRAN,RM,RO,TYPE,PKNAME"

# nvme0n1p2 / mmcblk0p1 / loop0p1 carry a 'p' separator; sdb1 does not
_P_SUFFIX = re.compile(r"^((?:nvme\d+n\d+)|(?:mmcblk\d+)|(?:loop\d+)|(?:nbd\d+))p\d+$")
_DIGIT_SUFFIX = re.compile(r"^([a-z]+?)\d+$")


def base_name(name: str) -> str:
    name = Path(name).name
    m = _P_SUFFIX.match(name)
    if m:
        return m.group(1)
    if re.match(r"^(nvme\d+n\d+|mmcblk\d+|loop\d+|nbd\d+)$", name):
        return name
    m = _DIGIT_SUFFIX.match(name)
    if m:
        return m.group(1)
    return name


def _flag(v: Any) -> bool:
    return v in (True, 1, "1", "true")


def lsblk_json(runner: ProbeRunner, *args: str) -> Dict[str, Any]:
    res = runner.probe(LSBLK, "-b", "-J", "-o", LSBLK_COLUMNS, *args)
    if not res.ok:
        raise RuntimeError(f"lsblk command failed (rc={res.rc}). This usually requires root access.")
    try:
        return json.loads(res.output)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"lsblk output is not valid JSON: {e}")


def list_usb_disks(runner: ProbeRunner) -> List[Dict[str, Any]]:
    """Whole disks on the usb transport that are not read-only, sorted by path."""
    data = lsblk_json(runner, "-d", "-p")
    disks = []
    for d in data.get("blockdevices", []):
        if d.get("type") != "disk" or (d.get("tran") or "").lower() != "usb":
            continue
        if _flag(d.get("ro")):
            continue
        disks.append(d)
    return sorted(disks, key=lambda d: d.get("path") or d.get("name") or "")


def _is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def _parent_disk(runner: ProbeRunner, node: Dict[str, Any]) -> str:
    """Walk PKNAME until reaching a 'disk' node; fall back to the name rule."""
    kname = node.get("kname") or node.get("name") or ""
    seen = set()
    cur = node
    for _ in range(8):
        if cur.get("type") == "disk":
            return cur.get("kname") or cur.get("name")
        pk = cur.get("pkname")
        if not pk or pk in seen:
            break
        seen.add(pk)
        try:
            devs = lsblk_json(runner, "-d", f"/dev/{pk}").get("blockdevices", [])
        except RuntimeError:
            break
        if not devs:
            break
        cur = devs[0]
    return base_name(kname)


def resolve_device(path: str, runner: ProbeRunner, is_block=_is_block_device) -> DeviceRef:
    if not os.path.exists(path):
        raise DeviceNotFoundError(f"Device path '{path}' does not exist.")
    if not is_block(path):
        raise InvalidDeviceError(f"Device path '{path}' is not a valid block device.")
    try:
        nodes = lsblk_json(runner, "-d", path).get("blockdevices", [])
    except RuntimeError as e:
        raise InvalidDeviceError(f"Cannot inspect {path}: {e}")
    if not nodes:
        raise InvalidDeviceError(f"lsblk returned no information for {path}.")
    node = nodes[0]
    name = node.get("kname") or node.get("name") or Path(path).name
    base = _parent_disk(runner, node)
    disk = node
    if base != name:
        try:
            disk = (lsblk_json(runner, "-d", f"/dev/{base}").get("blockdevices") or [node])[0]
        except RuntimeError:
            disk = node
    tran = (disk.get("tran") or "").lower()
    if tran != "usb":
        raise InvalidDeviceError(
            f"{path} is attached via '{tran or 'unknown'}', not USB. Only USB devices are configured."
        )
    if _flag(disk.get("ro")):
        raise InvalidDeviceError(f"{path} is read-only; discard settings cannot take effect.")
    return DeviceRef(
        path=path,
        name=name,
        base_name=base,
        transport=tran,
        vendor=(disk.get("vendor") or "").strip() or None,
        model=(disk.get("model") or "").strip() or None,
    )


def _human_size(n: Optional[Any]) -> str:
    try:
        size = float(n)
    except (TypeError, ValueError):
        return "-"
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            return f"{size:.1f}{unit}"
        size /= 1024
    return "-"


def print_plan(disks: List[Dict[str, Any]]) -> None:
    """Human-readable table for --list and interactive selection."""
    print(f"{'NUM':<4} {'DEVICE':<15} {'SIZE':>8} {'VENDOR':<15} {'MODEL'}")
    for i, d in enumerate(disks, 1):
        print(
            f"{str(i) + '.':<4} {d.get('path') or '-':<15} {_human_size(d.get('size')):>8} "
            f"{(d.get('vendor') or '-').strip():<15} {(d.get('model') or '-').strip()}"
        )
