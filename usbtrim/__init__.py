"""
usbtrim package
- Detect TRIM/unmap support on USB block devices, compute a safe discard limit,
  and persist it as udev rules plus an optional fstrim timer override.
"""
__all__ = [
    "cli", "config", "orchestrator", "discover", "probes", "parsers", "identity",
    "capability", "parameters", "rules", "schedule", "sysfs", "verify", "prompt",
    "packages", "report", "logs", "errors", "util", "types", "bundle",
]
__version__ = "3.1.0"
