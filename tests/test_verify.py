"""
Tests for the live fstrim check.
"""
from usbtrim.verify import find_mountpoint, run_verification
from usbtrim.probes import LSBLK, FSTRIM

MOUNTS = (LSBLK, "-no", "MOUNTPOINT")


def test_not_mounted_is_skipped(fake_runner, usb_device):
    """Test unmounted device skips fstrim."""
    runner = fake_runner({MOUNTS: "\n\n"})
    outcome = run_verification(runner, usb_device)
    assert outcome.status == "skipped"
    assert not runner.called(FSTRIM)


def test_first_mountpoint_used(fake_runner, usb_device):
    """Test first mountpoint is used."""
    runner = fake_runner({MOUNTS: "\n/media/usb\n/media/usb2\n"})
    assert find_mountpoint(runner, usb_device) == "/media/usb"
    assert (LSBLK, "-no", "MOUNTPOINT", "/dev/sdb") in runner.calls


def test_passed(fake_runner, usb_device):
    """Test successful fstrim."""
    runner = fake_runner({
        MOUNTS: "/media/usb\n",
        (FSTRIM, "-v"): "/media/usb: 1.2 GiB (1288490188 bytes) trimmed\n",
    })
    outcome = run_verification(runner, usb_device)
    assert outcome.status == "passed"
    assert outcome.mountpoint == "/media/usb"


def test_discard_not_supported(fake_runner, usb_device):
    """Test fstrim reporting discard not supported."""
    runner = fake_runner({
        MOUNTS: "/media/usb\n",
        (FSTRIM, "-v"): (1, "fstrim: /media/usb: the discard operation is not supported\n"),
    })
    assert run_verification(runner, usb_device).status == "unsupported"


def test_other_failure(fake_runner, usb_device):
    """Test other fstrim failures."""
    runner = fake_runner({MOUNTS: "/media/usb\n", (FSTRIM, "-v"): (32, "fstrim: FITRIM ioctl failed")})
    assert run_verification(runner, usb_device).status == "failed"


def test_dry_run_skips(fake_runner, usb_device):
    """Test dry run skips fstrim."""
    runner = fake_runner({MOUNTS: "/media/usb\n"}, dry=True)
    outcome = run_verification(runner, usb_device)
    assert outcome.status == "skipped"
    assert outcome.mountpoint == "/media/usb"


def test_mountpoint_with_space(fake_runner, usb_device):
    """Test a mountpoint with a space reaches fstrim unchanged."""
    runner = fake_runner({
        MOUNTS: "\n/media/pi/My SSD\n",
        (FSTRIM, "-v", "/media/pi/My SSD"): "/media/pi/My SSD: 0 B (0 bytes) trimmed\n",
    })
    outcome = run_verification(runner, usb_device)
    assert outcome.status == "passed"
    assert outcome.mountpoint == "/media/pi/My SSD"
    assert (FSTRIM, "-v", "/media/pi/My SSD") in runner.calls


def test_escaped_mountpoint_is_decoded(fake_runner, usb_device):
    """Test hex-escaped lsblk output is decoded."""
    runner = fake_runner({MOUNTS: "\n/media/pi/My\\x20SSD\n"})
    assert find_mountpoint(runner, usb_device) == "/media/pi/My SSD"
