#!/usr/bin/env python3
"""
cli.py
Command-line interface for usbtrim.
Parses arguments, loads config, sets up logging, and invokes the orchestrator.
All run-terminating exceptions are mapped to exit codes here.
"""
from __future__ import annotations
import argparse, logging, os, sys
from .bundle import DEFAULT_CONFIG_PATH, SYSTEM_CONFIG_PATH
from .config import SCHEDULES, find_config, load_config
from .errors import UsbTrimError, LogInitError
from .logs import setup_logging
from .orchestrator import run_plan
from .types import ExitCode
from . import __version__

log = logging.getLogger(__name__)


def check_root_access() -> None:
    """Exit with NOT_ROOT unless running as root."""
    if os.geteuid() != 0:
        print("\nusbtrim needs root privileges to:", file=sys.stderr)
        print("   • Query SCSI VPD pages and ATA identify data", file=sys.stderr)
        print("   • Write udev rules and systemd overrides under /etc", file=sys.stderr)
        print("   • Set sysfs attributes for the device", file=sys.stderr)
        print(f"\nTry this instead: sudo {' '.join(sys.argv)}\n", file=sys.stderr)
        sys.exit(ExitCode.NOT_ROOT)


def validate_arguments(ap: argparse.ArgumentParser, args) -> None:
    """Exactly one of --device / --select-usb, unless only listing."""
    if args.list:
        return
    if args.select_usb and args.device:
        ap.error("Cannot use both --select-usb (-u) and --device (-d) options together.")
    if not args.select_usb and not args.device:
        ap.error("Must specify a target device using --device (-d) or interactive selection with --select-usb (-u).")
    if args.device and not args.device.startswith("/dev/"):
        ap.error(f"--device must be a /dev path, got {args.device}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="usbtrim",
        description=(
            "Configure TRIM (discard/unmap) for external USB SSDs: check firmware support, "
            "create persistent udev rules, and optionally enable the systemd fstrim timer."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "\nRequired packages: sg3-utils, lsscsi, usbutils, hdparm, util-linux, systemd"
            "\nExample (interactive): sudo usbtrim --select-usb --auto --enable-timer -v --log /var/log/usbtrim.log"
            "\nExample (specific):    sudo usbtrim -d /dev/sdb -t daily -a -e -v"
            "\nA reboot is strongly recommended after configuration."
        ),
    )
    ap.add_argument("-d", "--device", help="target block device (e.g. /dev/sdb)")
    ap.add_argument("-u", "--select-usb", action="store_true", help="interactively select the target USB disk")
    ap.add_argument(
        "-t", "--timer", choices=SCHEDULES, default=None,
        help="fstrim timer schedule (default from config, normally weekly)",
    )
    ap.add_argument("-e", "--enable-timer", action="store_true", help="enable and start the systemd fstrim.timer")
    ap.add_argument("-a", "--auto", action="store_true", help="install missing probe packages automatically")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="verbose logging (-vv for TRACE)")
    ap.add_argument("-l", "--log", metavar="FILE", help="also write the log to FILE")
    ap.add_argument(
        "--config",
        default=None,
        help=f"path to usbtrim.toml (default: {DEFAULT_CONFIG_PATH} then {SYSTEM_CONFIG_PATH})",
    )
    ap.add_argument("--dry-run", action="store_true", help="probe only; show artifacts and commands without applying")
    ap.add_argument("--list", action="store_true", help="list candidate USB disks and exit")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv=None) -> int:
    ap = build_parser()
    try:
        args = ap.parse_args(argv)
    except SystemExit as e:
        return ExitCode.SUCCESS if e.code == 0 else ExitCode.ARGS
    try:
        validate_arguments(ap, args)
    except SystemExit:
        return ExitCode.ARGS

    cfg_path = None
    try:
        cfg_path = find_config(args.config)
        cfg = load_config(cfg_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.ARGS
    except (OSError, ValueError) as e:
        print(f"Error: Invalid configuration file {cfg_path}: {e}", file=sys.stderr)
        return ExitCode.ARGS

    try:
        setup_logging(args.verbose, args.log, cfg.log_level)
    except LogInitError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return e.exit_code

    if not args.list:
        check_root_access()

    log.info("--- usbtrim %s started ---", __version__)
    log.debug(
        "Initial config: device=%r schedule=%r auto=%s enable_timer=%s select_usb=%s verbose=%d config=%s",
        args.device, args.timer or cfg.schedule, args.auto, args.enable_timer, args.select_usb,
        args.verbose, cfg_path or "(defaults)",
    )
    try:
        rc = run_plan(
            cfg,
            device=args.device,
            select_usb=args.select_usb,
            list_only=args.list,
            enable_timer=args.enable_timer,
            schedule=args.timer,
            auto_install=args.auto,
            dry=args.dry_run,
        )
    except UsbTrimError as e:
        log.error("%s", e)
        return e.exit_code
    except KeyboardInterrupt:
        print("\n\nInterrupted by user.", file=sys.stderr)
        return 130
    except Exception:
        log.exception("Unexpected internal error")
        return ExitCode.INTERNAL
    log.info("--- usbtrim finished (exit %d) ---", int(rc))
    return int(rc)


if __name__ == "__main__":
    sys.exit(main())
