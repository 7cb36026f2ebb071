"""
parsers.py
One small function per probe output format. Each takes raw text and returns a
typed value or None; none of them log or raise.
"""

from __future__ import annotations
import re
from typing import Dict, Optional, Tuple

HEX4 = re.compile(r"^[0-9a-fA-F]{4}$")
USB_ID = re.compile(r"^([0-9a-fA-F]{4}):([0-9a-fA-F]{4})$")
LSUSB_ID = re.compile(r"\bID ([0-9a-fA-F]{4}):([0-9a-fA-F]{4})\b")

_MAX_UNMAP = re.compile(r"Maximum unmap LBA count:\s*(-?\d+)(\s*\[unbounded\])?", re.IGNORECASE)
_LBPU = re.compile(r"Unmap command supported \(LBPU\):\s*(\d+)", re.IGNORECASE)
_HDPARM_TRIM = re.compile(r"Data Set Management TRIM supported", re.IGNORECASE)
_BLOCK_LENGTH = re.compile(r"Logical block length\s*=\s*(\d+)", re.IGNORECASE)
_FSTRIM_BYTES = re.compile(r"\((\d+) bytes\) trimmed")
_HEX_ESCAPE = re.compile(r"\\x([0-9a-fA-F]{2})")
_DISCARD_UNSUPPORTED = re.compile(r"discard operation is not supported", re.IGNORECASE)

# Maximum unmap LBA count field width (32 bits, all ones)
UNBOUNDED_UNMAP = 0xFFFFFFFF

UDEV_ID_KEYS = (
    ("ID_VENDOR_ID", "ID_MODEL_ID"),
    ("ID_USB_VENDOR_ID", "ID_USB_MODEL_ID"),
)


def is_hex4(value: Optional[str]) -> bool:
    return bool(value) and bool(HEX4.match(value))


def id_pair(vendor: Optional[str], product: Optional[str]) -> Optional[Tuple[str, str]]:
    """Normalized (vendor, product) if both are 4 hex digits, else None."""
    if vendor is not None:
        vendor = vendor.strip()
    if product is not None:
        product = product.strip()
    if is_hex4(vendor) and is_hex4(product):
        return vendor.lower(), product.lower()
    return None


def parse_usb_id(text: str) -> Optional[Tuple[str, str]]:
    """'04e8:61f5' -> ('04e8', '61f5')"""
    m = USB_ID.match((text or "").strip())
    if not m:
        return None
    return m.group(1).lower(), m.group(2).lower()


def parse_udev_properties(text: str) -> Dict[str, str]:
    props = {}
    for line in text.splitlines():
        if "=" in line:
            k, v = line.split("=", 1)
            props.setdefault(k.strip(), v.strip())
    return props


def parse_udev_ids(text: str) -> Optional[Tuple[str, str]]:
    props = parse_udev_properties(text)
    for vkey, pkey in UDEV_ID_KEYS:
        pair = id_pair(props.get(vkey), props.get(pkey))
        if pair:
            return pair
    return None


def parse_max_unmap_count(text: str) -> Optional[int]:
    """sg3_utils shows 0xffffffff as '-1 [unbounded]'; that maps to UNBOUNDED_UNMAP."""
    m = _MAX_UNMAP.search(text or "")
    if not m:
        return None
    count = int(m.group(1))
    if m.group(2) or count < 0:
        return UNBOUNDED_UNMAP
    return count


def parse_lbpu(text: str) -> Optional[bool]:
    """True/False for an explicit 1/0; None when the field is absent or odd."""
    m = _LBPU.search(text or "")
    if not m:
        return None
    if m.group(1) == "1":
        return True
    if m.group(1) == "0":
        return False
    return None


def hdparm_reports_trim(text: str) -> bool:
    return bool(_HDPARM_TRIM.search(text or ""))


def parse_block_length(text: str) -> Optional[int]:
    m = _BLOCK_LENGTH.search(text or "")
    return int(m.group(1)) if m else None


def parse_lsscsi_line(text: str, base_name: str) -> Optional[Tuple[str, str]]:
    """
    Find the lsscsi row for /dev/<base_name> and return (vendor, model).
    Row layout: [H:C:T:L] type vendor model... rev /dev/node
    """
    target = f"/dev/{base_name}"
    for line in (text or "").splitlines():
        tokens = line.split()
        if len(tokens) < 4 or tokens[-1] != target:
            continue
        vendor = tokens[2] if len(tokens) > 4 else ""
        model = " ".join(tokens[3:-2]) if len(tokens) > 5 else ""
        if vendor == "-":
            vendor = ""
        return vendor, model
    return None


def find_usb_id(lsusb_text: str, vendor: str, model: str) -> Optional[Tuple[str, str]]:
    """First lsusb 'ID xxxx:xxxx' on a line mentioning vendor or model (case-insensitive)."""
    needles = [n.lower() for n in (vendor, model) if n and n.strip()]
    if not needles:
        return None
    for line in (lsusb_text or "").splitlines():
        m = LSUSB_ID.search(line)
        if not m:
            continue
        low = line.lower()
        if any(n in low for n in needles):
            return m.group(1).lower(), m.group(2).lower()
    return None


def unescape_lsblk(value: str) -> str:
    """Undo lsblk's \\xHH escaping (raw and pairs output modes)."""
    return _HEX_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)


def first_mountpoint(text: str) -> Optional[str]:
    for line in (text or "").splitlines():
        if line.strip():
            return unescape_lsblk(line.strip())
    return None


def parse_fstrim_bytes(text: str) -> Optional[int]:
    m = _FSTRIM_BYTES.search(text or "")
    return int(m.group(1)) if m else None


def discard_not_supported(text: str) -> bool:
    return bool(_DISCARD_UNSUPPORTED.search(text or ""))
