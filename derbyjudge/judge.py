"""Command line lane judge for a serial race timer.

Opens the timer, learns its lane count from the reset banner and then runs
races until the operator types X. Usage::

    derby-judge -p /dev/ttyUSB0
    derby-judge -d -p /dev/pts/3      # debug: plain file, no rearm
"""

from __future__ import annotations

import argparse
import functools
import signal
import sys
from typing import List, Optional

from .config import load_config
from .console import ConsoleOperator
from .display import make_sink
from .errors import LinkFailure, UnparseableBanner
from .link import LineRecorder, TimerLink
from .protocol import read_lane_count
from .recovery import RecoveryStateMachine
from .session import SessionLoop
from .utils import parse_serial_settings


EXIT_INTERRUPTED = 130


def usage() -> None:
    print("Invalid command line - you must specify a port name or debug "
          "option!", file=sys.stderr)
    print("Valid options:", file=sys.stderr)
    print("\t-p <filename>    -  serial port device path, e.g. /dev/ttyS0",
          file=sys.stderr)
    print("\t                    *** Make sure you have write access to the "
          "port!", file=sys.stderr)
    print("\t-d               - debug mode; do not initialize serial port",
          file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="derby-judge",
        description="Text-only lane judge for a serial race timer.",
    )
    parser.add_argument(
        "-p", "--port",
        required=True,
        help="Serial port device path, e.g. /dev/ttyS0",
    )
    parser.add_argument(
        "-d", "--debug",
        action="store_true",
        help="Debug mode; do not initialize the serial port or rearm",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Config file (default: derby-judge/config.json in the user "
             "config directory)",
    )
    parser.add_argument(
        "-s", "--settings",
        default=None,
        help="Serial settings as 'baud,data,parity,stop' (default: 1200,7,n,2)",
    )
    parser.add_argument(
        "--capture",
        default=None,
        help="Append every line exchanged with the timer to this JSONL file",
    )
    parser.add_argument(
        "--display",
        choices=("text", "toilet"),
        default=None,
        help="How to show results (default: text)",
    )
    return parser


def _shutdown_handler(signum, _frame) -> None:
    raise KeyboardInterrupt


def _install_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _shutdown_handler)
    signal.signal(signal.SIGTERM, _shutdown_handler)
    sigbreak = getattr(signal, "SIGBREAK", None)
    if sigbreak is not None:
        signal.signal(sigbreak, _shutdown_handler)


def _open_failed(exc: LinkFailure) -> None:
    print(f"[judge] ERROR: {exc}", file=sys.stderr)
    print("Eek! Unable to open timer port! Cannot continue.", file=sys.stderr)
    print("Possible problems:", file=sys.stderr)
    print("\tbad filename for port (if USB timer, check dmesg for port id)",
          file=sys.stderr)
    print("\tno write access to device (check permissions or run as root)",
          file=sys.stderr)
    print("\tUSB timer not connected", file=sys.stderr)


def main(argv: Optional[List[str]] = None,
         operator: Optional[ConsoleOperator] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        usage()
        return 0

    args = build_parser().parse_args(argv)
    if args.debug:
        print("Debugging mode enabled")

    config = load_config(args.config)
    settings = args.settings or config["com_settings"]
    capture_path = args.capture if args.capture is not None \
        else config["capture_path"]
    display = args.display or config["display"]

    recorder = LineRecorder()
    recorder.configure(capture_path)

    opener = functools.partial(
        TimerLink.open,
        args.port,
        configure=not args.debug,
        serial_kwargs=parse_serial_settings(settings),
        recorder=recorder,
    )
    if operator is None:
        operator = ConsoleOperator()
        _install_signal_handlers()

    link: Optional[TimerLink] = None
    session: Optional[SessionLoop] = None
    status = 0
    try:
        try:
            link = opener()
        except LinkFailure as exc:
            _open_failed(exc)
            return 1

        try:
            lanes = read_lane_count(link)
        except (LinkFailure, UnparseableBanner) as exc:
            print(f"[judge] ERROR: {exc}", file=sys.stderr)
            print("Eek! Cannot initialize timer! Cannot continue!",
                  file=sys.stderr)
            print("Make sure your timer is supported by this program.",
                  file=sys.stderr)
            return 1

        operator.wait_for_enter("Press enter to continue.")

        session = SessionLoop(
            link,
            lanes,
            sink=make_sink(display, config["winner_font"],
                           config["times_font"]),
            operator=operator,
            recovery=RecoveryStateMachine(opener, operator, lanes),
            debug=args.debug,
        )
        session.run()
    except KeyboardInterrupt:
        print("\n[judge] Interrupted, shutting down.")
        status = EXIT_INTERRUPTED
    except EOFError:
        print("\n[judge] Operator input closed, shutting down.")
    finally:
        if session is not None:
            session.link.close()
        elif link is not None:
            link.close()
        recorder.close()

    print("\nDone.")
    return status


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
