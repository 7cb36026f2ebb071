"""
util.py
Cross-cutting utilities:
- Process execution (list of args, output captured) with dry-run support
- PATH lookup for required commands (which_quiet)
- Small helpers: power-of-two check, directory creation, atomic text writes
"""

from __future__ import annotations
import logging, os, shlex, shutil, subprocess, tempfile
from pathlib import Path

log = logging.getLogger(__name__)

# Shell convention for "command not found"
RC_NOT_FOUND = 127


def run(cmd, dry=False):
    """
    Execute a command (list of args) and capture stdout+stderr.
    Returns (rc, output_str). Never raises for a failing or missing command.
    """
    cmd_list = list(cmd)
    if dry:
        log.info("[dry-run] %s", " ".join(shlex.quote(c) for c in cmd_list))
        return 0, ""
    try:
        out = subprocess.check_output(cmd_list, stderr=subprocess.STDOUT)
        return 0, out.decode("utf-8", "replace")
    except subprocess.CalledProcessError as e:
        return e.returncode, e.output.decode("utf-8", "replace") if e.output else ""
    except FileNotFoundError:
        return RC_NOT_FOUND, f"{cmd_list[0]}: command not found"
    except PermissionError as e:
        return 126, str(e)


def which_quiet(name: str) -> bool:
    """Check if command exists silently."""
    return bool(shutil.which(name))


def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def ensure_dir(p: Path):
    """Create directory with better error reporting."""
    try:
        p.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        raise PermissionError(f"Cannot create directory {p} - insufficient permissions")
    except OSError as e:
        raise OSError(f"Cannot create directory {p}: {e}")


def write_text_atomic(path: Path, text: str, mode: int = 0o644) -> bool:
    """
    Write text through a temporary file in the same directory, then rename.
    Returns False when the file already holds exactly this text.
    A failed write leaves neither the temporary file nor a truncated target.
    """
    ensure_dir(path.parent)
    try:
        if path.read_text() == text:
            return False
    except (FileNotFoundError, IsADirectoryError, UnicodeDecodeError):
        pass
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
        os.chmod(tmp, mode)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    return True
