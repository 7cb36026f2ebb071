"""
Tests for the per-probe output parsers.
"""
import pytest
from usbtrim.parsers import (
    id_pair,
    parse_usb_id,
    parse_udev_ids,
    parse_max_unmap_count,
    parse_lbpu,
    hdparm_reports_trim,
    parse_block_length,
    parse_lsscsi_line,
    find_usb_id,
    first_mountpoint,
    parse_fstrim_bytes,
    discard_not_supported,
    unescape_lsblk,
    UNBOUNDED_UNMAP,
)

SG_VPD_BL = """\
VPD INQUIRY: Block limits page (SBC)
  Write same non-zero (WSNZ): 0
  Maximum compare and write length: 0 blocks [Command not implemented]
  Optimal transfer length granularity: 1 blocks
  Maximum transfer length: 65535 blocks
  Optimal transfer length: 65535 blocks
  Maximum prefetch transfer length: 0 blocks [ignored]
  Maximum unmap LBA count: 4194304
  Maximum unmap block descriptor count: 1
"""

SG_VPD_LBPV = """\
VPD INQUIRY: Logical block provisioning page (SBC)
  Unmap command supported (LBPU): 1
  Write same (16) with unmap bit supported (LBPWS): 0
  Write same (10) with unmap bit supported (LBPWS10): 0
"""

LSSCSI = """\
[0:0:0:0]    disk    ATA      WDC WD10EZEX-08W 1A01  /dev/sda
[6:0:0:0]    disk    Samsung  Portable SSD T5  0     /dev/sdb
[7:0:0:0]    disk    JMicron  Generic          0508  /dev/sdba
"""

LSUSB = """\
Bus 002 Device 001: ID 1d6b:0003 Linux Foundation 3.0 root hub
Bus 002 Device 003: ID 04E8:61F5 Samsung Electronics Co., Ltd Portable SSD T5
Bus 001 Device 002: ID 152d:0578 JMicron Technology Corp. / JMicron USA Technology Corp. JMS578 SATA 6Gb/s
"""


@pytest.mark.parametrize("value", ["04e8", "61F5", "0000", "ffff", "AbCd"])
def test_id_pair_accepts_four_hex_digits(value):
    """Test well formed vendor/product pairs."""
    assert id_pair(value, value) == (value.lower(), value.lower())


@pytest.mark.parametrize("value", ["", "4e8", "04e81", "04g8", "0x04", " 04 ", "04e8:", None])
def test_id_pair_rejects_malformed(value):
    """Test malformed vendor/product pairs."""
    assert id_pair(value, "61f5") is None
    assert id_pair("04e8", value) is None


def test_parse_usb_id():
    """Test xxxx:xxxx parsing."""
    assert parse_usb_id("1B1C:1a0e") == ("1b1c", "1a0e")
    assert parse_usb_id("  04e8:61f5\n") == ("04e8", "61f5")
    assert parse_usb_id("04e8-61f5") is None
    assert parse_usb_id("") is None


def test_parse_udev_ids_prefers_plain_keys():
    """Test ID_VENDOR_ID keys win over ID_USB_ keys."""
    text = "ID_VENDOR_ID=04e8\nID_MODEL_ID=61f5\nID_USB_VENDOR_ID=1111\nID_USB_MODEL_ID=2222\n"
    assert parse_udev_ids(text) == ("04e8", "61f5")


def test_parse_udev_ids_falls_back_to_usb_keys():
    """Test ID_USB_ keys are used when plain keys are absent."""
    text = "ID_VENDOR=Samsung\nID_USB_VENDOR_ID=04e8\nID_USB_MODEL_ID=61f5\n"
    assert parse_udev_ids(text) == ("04e8", "61f5")


def test_parse_udev_ids_partial_pair_rejected():
    """Test half a pair is rejected."""
    assert parse_udev_ids("ID_VENDOR_ID=04e8\nID_MODEL_ID=Portable\n") is None
    assert parse_udev_ids("ID_VENDOR_ID=04e8\n") is None


def test_parse_max_unmap_count():
    """Test maximum unmap LBA count parsing."""
    assert parse_max_unmap_count(SG_VPD_BL) == 4194304
    assert parse_max_unmap_count("Maximum unmap LBA count: 0 [Unmap command not implemented]") == 0
    assert parse_max_unmap_count("garbage") is None


def test_parse_max_unmap_count_unbounded():
    """Test unbounded unmap count parsing."""
    assert parse_max_unmap_count("  Maximum unmap LBA count: -1 [unbounded]") == UNBOUNDED_UNMAP
    assert parse_max_unmap_count("  Maximum unmap LBA count: 4294967295 [unbounded]") == UNBOUNDED_UNMAP


def test_parse_lbpu():
    """Test LBPU flag parsing."""
    assert parse_lbpu(SG_VPD_LBPV) is True
    assert parse_lbpu("  Unmap command supported (LBPU): 0") is False
    assert parse_lbpu("  Unmap command supported (LBPU): 2") is None
    assert parse_lbpu("") is None


def test_hdparm_reports_trim():
    """Test hdparm TRIM line detection."""
    assert hdparm_reports_trim("\t   *\tData Set Management TRIM supported (limit 8 blocks)")
    assert not hdparm_reports_trim("\t   *\tSMART feature set")


def test_parse_block_length():
    """Test logical block length parsing."""
    out = "Read Capacity results:\n   Last LBA=976773167 (0x3a386f2f), Number of logical blocks=976773168\n   Logical block length=512 bytes\n"
    assert parse_block_length(out) == 512
    assert parse_block_length("Logical block length=4096 bytes") == 4096
    assert parse_block_length("nothing") is None


def test_parse_lsscsi_line_exact_device_column():
    """Test lsscsi row matches the exact device column."""
    assert parse_lsscsi_line(LSSCSI, "sdb") == ("Samsung", "Portable SSD T5")
    assert parse_lsscsi_line(LSSCSI, "sdba") == ("JMicron", "Generic")
    assert parse_lsscsi_line(LSSCSI, "sdc") is None


def test_find_usb_id_case_insensitive():
    """Test lsusb matching ignores case."""
    assert find_usb_id(LSUSB, "samsung", "") == ("04e8", "61f5")
    assert find_usb_id(LSUSB, "", "JMS578") == ("152d", "0578")
    assert find_usb_id(LSUSB, "Kingston", "DataTraveler") is None
    assert find_usb_id(LSUSB, "", "") is None


def test_first_mountpoint():
    """Test first mountpoint extraction."""
    assert first_mountpoint("\n\n/media/usb\n/mnt/other\n") == "/media/usb"
    assert first_mountpoint("\n  \n") is None
    assert first_mountpoint("/media/pi/My\\x20SSD\n") == "/media/pi/My SSD"
    assert unescape_lsblk("/mnt/a\\x5cb") == "/mnt/a\\b"


def test_fstrim_output():
    """Test fstrim output classification."""
    assert parse_fstrim_bytes("/media/usb: 1.2 GiB (1288490188 bytes) trimmed") == 1288490188
    assert discard_not_supported("fstrim: /media/usb: the discard operation is not supported")
    assert not discard_not_supported("fstrim: /media/usb: FITRIM ioctl failed: Input/output error")
