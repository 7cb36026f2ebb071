"""
bundle.py
Utilities that make the program work as a portable, bundled tool.

Responsibilities
- Determine the "bundle root": where the binary (or script) lives.
- Prefer a local ./bin directory (next to the binary) for probe tools
  (sg_vpd, sg_readcap, hdparm, ...) shipped alongside it.
- Provide DEFAULT_CONFIG_PATH that points to an adjacent `usbtrim.toml`.
"""
from __future__ import annotations
import os, sys
from pathlib import Path

def bundle_root() -> Path:
    """
    Return the directory that contains the program.
    - PyInstaller onefile: sys.executable points to the extracted binary; use parent.
    - Source run: look for main.py or a project root containing usbtrim.toml
    """
    if getattr(sys, "_MEIPASS", None):
        return Path(sys.executable).resolve().parent

    current = Path(__file__).resolve()
    for parent in [current.parent.parent] + list(current.parents):
        if (parent / "main.py").exists() or (parent / "usbtrim.toml").exists():
            return parent

    return current.parent.parent

BUNDLE_DIR: Path = bundle_root()
BIN_DIR: Path = (BUNDLE_DIR / "bin")
DEFAULT_CONFIG_PATH: str = str(BUNDLE_DIR / "usbtrim.toml")
SYSTEM_CONFIG_PATH: str = "/etc/usbtrim.toml"

def prepend_bin_to_path(bin_dir: Path | None = None) -> bool:
    """
    Put ./bin (next to the binary) first on PATH so bundled probe tools win.
    Idempotent; returns True only when PATH was changed.
    """
    bin_dir = bin_dir or BIN_DIR
    if not bin_dir.is_dir():
        return False
    parts = [p for p in os.environ.get("PATH", "").split(os.pathsep) if p]
    if parts and parts[0] == str(bin_dir):
        return False
    parts = [str(bin_dir)] + [p for p in parts if p != str(bin_dir)]
    os.environ["PATH"] = os.pathsep.join(parts)
    return True
