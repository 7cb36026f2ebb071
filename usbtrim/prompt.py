"""
prompt.py
Interactive pieces: device selection, manual USB ID entry, and the
"continue without detected TRIM support?" gate. `ask` is injectable so the
orchestrator can be driven without a terminal.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional
from .types import HardwareIdentity, Confidence
from .errors import DeviceNotFoundError
from .parsers import parse_usb_id
from .discover import print_plan

log = logging.getLogger(__name__)

Ask = Callable[[str], str]


class Prompter:
    def __init__(self, ask: Ask = input):
        self.ask = ask

    def _ask(self, question: str) -> Optional[str]:
        """None once stdin is closed."""
        try:
            return self.ask(question)
        except EOFError:
            return None

    def select_device(self, disks: List[Dict[str, Any]]) -> Dict[str, Any]:
        print("\nAvailable USB Block Devices:")
        print_plan(disks)
        while True:
            choice = self._ask(f"Select device number (1-{len(disks)}): ")
            if choice is None:
                raise DeviceNotFoundError("No device selected (input closed).")
            choice = choice.strip()
            if choice.isdigit() and 1 <= int(choice) <= len(disks):
                picked = disks[int(choice) - 1]
                log.info("Selected device: %s", picked.get("path"))
                return picked
            log.error("Invalid selection. Please enter a number between 1 and %d.", len(disks))

    def manual_identity(self, device_path: str) -> Optional[HardwareIdentity]:
        print(f"\nCould not automatically determine USB vendor and product IDs for {device_path}.")
        print("You can run 'lsusb' in another terminal to find the 'ID xxxx:xxxx' value.")
        answer = self._ask("Enter the vendor:product ID (e.g., 1b1c:1a0e, leave blank to skip): ")
        pair = parse_usb_id(answer or "")
        if not pair:
            log.warning("Invalid or no manual USB ID entered. A generic udev rule will be created.")
            return None
        ident = HardwareIdentity(pair[0], pair[1], Confidence.MANUAL)
        log.info("Using manually entered USB ID: %s", ident)
        return ident

    def confirm_unsupported(self, device_path: str) -> bool:
        print("\nWARNING: TRIM (discard/unmap) does not appear to be supported by this device's")
        print("firmware or the USB adapter. Configuring TRIM may have no effect or, in rare")
        print("cases, cause issues. Make sure important data on this drive is backed up.")
        answer = self._ask("Do you want to continue anyway and create the configuration? (y/N): ")
        return (answer or "").strip().lower() in ("y", "yes")
