import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from rstrtr import console
from rstrtr.config import MergedSettings
from rstrtr.control import resolve_control_path
from rstrtr.log import setup_logging

log = logging.getLogger("console")


def build_parser() -> argparse.ArgumentParser:
    """Builds the command-line parser."""
    parser = argparse.ArgumentParser(prog="rstrtr", description="Run a command and restart it on request.")
    parser.add_argument("-r", "--rstrtr", type=Path, default=None, help="Change control file path.")
    parser.add_argument("-t", "--tmp-dir", action="store_true", help="Use a control file in a tmp dir.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show DEBUG log output.")

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")
    run_parser = subparsers.add_parser("run", help="Run & restart command upon it exiting.")
    run_parser.add_argument("args", nargs=argparse.REMAINDER, metavar="CMD", help="The command to run. Separate with -- if required.")
    subparsers.add_parser("restart", help="Instruct rstrtr to kill and restart the command.")
    subparsers.add_parser("quit", help="Instruct rstrtr to kill the command and quit.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the command-line application."""
    parser = build_parser()
    flags = parser.parse_args(argv)

    args = list(getattr(flags, "args", []))
    if args and args[0] == "--":
        args = args[1:]
    if flags.command == "run" and not args:
        parser.error("run: the command to run is required")

    settings = MergedSettings()
    if flags.verbose:
        settings.override("VERBOSE_LOGGING", True)
    if flags.rstrtr is not None:
        settings.override("DEFAULT_CONTROL_PATH", flags.rstrtr)

    setup_logging(logging.DEBUG if settings.VERBOSE_LOGGING else logging.INFO)
    log.debug(f"Parsed flags: {vars(flags)}")
    log.debug(f"Effective settings: {settings.as_dict()}")

    control_path = resolve_control_path(settings.DEFAULT_CONTROL_PATH, flags.tmp_dir)
    return console.execute_command(flags.command, args, control_path, settings)


if __name__ == "__main__":
    sys.exit(main())
