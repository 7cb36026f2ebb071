"""
report.py
Final human-readable summary. Anything that was not established is shown as
"unknown" or "failed", never as a silent default.
"""

from __future__ import annotations
from typing import List


def _capability_line(state) -> str:
    v = state.verdict
    if v is None:
        return "unknown"
    if v.supported:
        return f"Detected via {v.source.value} (reported max unmap LBA count: {v.reported_units})"
    if v.forced:
        return "Not detected (or check failed) - proceeded at user request"
    return "Not detected (or check failed)"


def _artifact_lines(state) -> List[str]:
    if not state.artifacts:
        return ["none"]
    lines = []
    for rec in state.artifacts:
        kind = "USB ID specific" if rec.artifact.portable else f"generic, by kernel name {state.device.base_name}"
        status = rec.status if rec.status != "failed" else f"failed ({rec.error})"
        lines.append(f"{rec.artifact.destination} [{kind}] {status}")
    return lines


def _timer_line(state) -> str:
    s = state.schedule
    if not state.schedule_requested:
        return "Not enabled (use --enable-timer)"
    if s is None:
        return "not configured"
    if not s.configured:
        return f"failed ({s.error}) - schedule {s.schedule}"
    if s.healthy:
        return f"Enabled & active (schedule: {s.schedule})"
    return f"Configured (schedule: {s.schedule}) - active: {s.active}, enabled: {s.enabled}; verify after reboot"


def _verification_line(state) -> str:
    v = state.verification
    if v is None:
        return "N/A"
    if v.status == "passed":
        return f"Successful on {v.mountpoint}"
    if v.status == "unsupported":
        return f"Failed on {v.mountpoint}: discard operation not supported (see log)"
    if v.status == "failed":
        return f"Failed on {v.mountpoint} (see log)"
    return "N/A (device not mounted?)"


def summary_lines(state) -> List[str]:
    dev = state.device
    lines = [
        "--- TRIM Configuration Summary ---",
        f" Target device:          {dev.path}",
        f" USB Vendor:Product ID:  {state.identity} ({state.identity.confidence.value})",
        f" Firmware TRIM support:  {_capability_line(state)}",
    ]
    if state.stage.value == "aborted_unsupported":
        lines.append(" Configuration:          aborted by user, nothing written")
        return lines
    if state.params is not None:
        lines.append(f" Effective unmap count:  {state.verdict.max_unmap_units}")
        lines.append(f" Logical block size:     {state.params.block_size_bytes} bytes")
        clamp = " (clamped to ceiling)" if state.params.clamped else ""
        lines.append(f" discard_max_bytes:      {state.params.discard_max_bytes}{clamp}")
    else:
        lines.append(" discard_max_bytes:      unknown")
    artifacts = _artifact_lines(state)
    lines.append(f" udev rule:              {artifacts[0]}")
    lines.extend(f"                         {a}" for a in artifacts[1:])
    lines.append(f" Periodic TRIM timer:    {_timer_line(state)}")
    lines.append(f" Runtime fstrim test:    {_verification_line(state)}")
    return lines


def print_summary(state, dry: bool = False) -> None:
    print()
    for line in summary_lines(state):
        print(line)
    if dry:
        print("\n(dry-run: nothing was written or activated)")
        return
    if state.stage.value == "aborted_unsupported":
        return
    if any(rec.status == "failed" for rec in state.artifacts):
        print("\nConfiguration incomplete: fix the write error above and run again.")
        return
    base = state.device.base_name
    discard = state.params.discard_max_bytes if state.params else "?"
    print()
    print("=== IMPORTANT: REBOOT OR REPLUG RECOMMENDED ===")
    print("udev rules apply reliably on the next attach event.")
    print()
    print("After reboot, verify:")
    print(f" 1. cat /sys/block/{base}/queue/discard_max_bytes   (expect {discard})")
    print(f" 2. cat /sys/block/{base}/device/scsi_disk/*/provisioning_mode   (expect 'unmap')")
    print(" 3. sudo fstrim -v /path/to/mountpoint")
    print(" 4. systemctl status fstrim.timer")
