"""
Pytest configuration and shared fixtures.
"""
import pytest
from pathlib import Path
from usbtrim.types import Config, DeviceRef
from usbtrim.probes import ProbeResult, ProbeRunner


class FakeRunner(ProbeRunner):
    """
    Scripted ProbeRunner. `responses` maps an argv prefix (tuple) to either an
    output string (exit 0) or an (rc, output) pair; the longest matching prefix
    wins. Unscripted commands behave like a missing tool (exit 127).
    """

    def __init__(self, responses=None, dry=False):
        super().__init__(dry=dry)
        self.responses = dict(responses or {})
        self.calls = []

    def _exec(self, argv, dry):
        argv = tuple(argv)
        self.calls.append(argv)
        if dry:
            result = ProbeResult(argv, 0, "")
        else:
            rc, out = 127, f"{argv[0]}: command not found"
            best = -1
            for prefix, value in self.responses.items():
                if argv[: len(prefix)] == prefix and len(prefix) > best:
                    best = len(prefix)
                    rc, out = (0, value) if isinstance(value, str) else value
            result = ProbeResult(argv, rc, out)
        return result

    def called(self, *prefix):
        return any(c[: len(prefix)] == prefix for c in self.calls)


@pytest.fixture
def fake_runner():
    def make(responses=None, dry=False):
        return FakeRunner(responses, dry=dry)
    return make


@pytest.fixture
def sample_config(tmp_path):
    """Configuration with every path redirected under tmp_path."""
    return Config(
        udev_rule_dir=tmp_path / "etc" / "udev" / "rules.d",
        systemd_dir=tmp_path / "etc" / "systemd" / "system",
        sys_root=tmp_path / "sys",
        default_unmap_units=4194240,
        discard_ceiling_bytes=4 * 1024**3 - 1,
        apply_runtime=True,
        schedule="weekly",
        timer_unit="fstrim.timer",
        service_unit="fstrim.service",
        override_name="99-usbtrim-override.conf",
        accuracy_sec="1h",
        log_level="DEBUG",
    )


@pytest.fixture
def usb_device():
    return DeviceRef(
        path="/dev/sdb",
        name="sdb",
        base_name="sdb",
        transport="usb",
        vendor="Samsung",
        model="Portable SSD T5",
    )


def build_sysfs(sys_root: Path, name: str = "sdb", vendor: str = "04e8", product: str = "61f5",
                ids_on_device_node: bool = True) -> Path:
    """
    Lay out a minimal USB storage topology:
      devices/pci0000:00/0000:00:14.0/usb2/2-1/2-1:1.0/host6/target6:0:0/6:0:0:0/block/<name>
    with idVendor/idProduct on the 2-1 USB device node. Returns the block node.
    """
    usb_dev = sys_root / "devices" / "pci0000:00" / "0000:00:14.0" / "usb2" / "2-1"
    scsi = usb_dev / "2-1:1.0" / "host6" / "target6:0:0" / "6:0:0:0"
    block = scsi / "block" / name
    (block / "queue").mkdir(parents=True)
    (block / "queue" / "discard_max_bytes").write_text("0\n")
    prov = scsi / "scsi_disk" / "6:0:0:0"
    prov.mkdir(parents=True)
    (prov / "provisioning_mode").write_text("full\n")
    if ids_on_device_node:
        (usb_dev / "idVendor").write_text(f"{vendor}\n")
        (usb_dev / "idProduct").write_text(f"{product}\n")

    (sys_root / "class" / "block").mkdir(parents=True)
    (sys_root / "class" / "block" / name).symlink_to(block)
    (sys_root / "block").mkdir(parents=True)
    (sys_root / "block" / name).symlink_to(block)
    # /sys/block/<name>/device -> the scsi device
    (block / "device").symlink_to(scsi)
    return block


@pytest.fixture
def fake_sysfs(tmp_path):
    def make(**kwargs):
        return build_sysfs(tmp_path / "sys", **kwargs)
    return make
