"""
Tests for discard_max_bytes calculation.
"""
import pytest
from usbtrim.parameters import DEFAULT_BLOCK_SIZE, ParameterCalculator, discard_max_bytes
from usbtrim.probes import SG_READCAP
from usbtrim.types import CapabilitySource, CapabilityVerdict

READCAP = (SG_READCAP, "-l")
CEILING = 4 * 1024**3 - 1


def readcap(size):
    return {READCAP: f"Read Capacity results:\n   Logical block length={size} bytes\n"}


def verdict(units, supported=True, forced=False):
    source = CapabilitySource.PROTOCOL_PRIMARY if supported else CapabilitySource.NONE
    return CapabilityVerdict(supported=supported, max_unmap_units=units, source=source, forced=forced)


def test_product_under_ceiling():
    """Test product below the ceiling is kept."""
    assert discard_max_bytes(4194304, 512, CEILING) == (2147483648, False)


def test_product_clamped_to_ceiling():
    """Test product above the ceiling is clamped."""
    assert discard_max_bytes(4194304, 4096, CEILING) == (CEILING, True)
    assert discard_max_bytes(2**40, 2**12, CEILING) == (CEILING, True)


@pytest.mark.parametrize("block_size", [512, 4096, 0])
def test_zero_units_is_zero(block_size):
    """Test zero units give zero bytes."""
    assert discard_max_bytes(0, block_size, CEILING) == (0, False)


def test_calculate_primary(fake_runner, usb_device):
    """Test parameters for a primary verdict."""
    runner = fake_runner(readcap(512))
    params = ParameterCalculator(runner, CEILING).calculate(verdict(4194304), usb_device)
    assert params.block_size_bytes == 512
    assert params.discard_max_bytes == 2147483648
    assert not params.clamped


def test_calculate_4k_blocks_clamps(fake_runner, usb_device):
    """Test 4K blocks push the product over the ceiling."""
    runner = fake_runner(readcap(4096))
    params = ParameterCalculator(runner, CEILING).calculate(verdict(4194304), usb_device)
    assert params.discard_max_bytes == CEILING
    assert params.clamped


def test_block_size_defaults_when_probe_fails(fake_runner, usb_device):
    """Test block size defaults to 512 when sg_readcap fails."""
    calc = ParameterCalculator(fake_runner(), CEILING)
    assert calc.block_size(usb_device) == DEFAULT_BLOCK_SIZE


@pytest.mark.parametrize("size", [0, 520, 3000])
def test_block_size_rejects_odd_values(fake_runner, usb_device, size):
    """Test non power of two block sizes are rejected."""
    calc = ParameterCalculator(fake_runner(readcap(size)), CEILING)
    assert calc.block_size(usb_device) == DEFAULT_BLOCK_SIZE


def test_unsupported_verdict_yields_zero(fake_runner, usb_device):
    """Test unsupported verdict gives zero discard bytes."""
    runner = fake_runner(readcap(512))
    params = ParameterCalculator(runner, CEILING).calculate(verdict(4194304, supported=False), usb_device)
    assert params.discard_max_bytes == 0


def test_forced_verdict_uses_units(fake_runner, usb_device):
    """Test forced verdict uses its unit count."""
    runner = fake_runner(readcap(512))
    params = ParameterCalculator(runner, CEILING).calculate(
        verdict(1000, supported=False, forced=True), usb_device
    )
    assert params.discard_max_bytes == 512000
