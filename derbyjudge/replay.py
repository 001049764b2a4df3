"""Stand in for the lane timer using a judge capture log.

``derby-judge --capture`` records every line the timer sent (``rx``) and
every rearm byte the judge sent back (``tx``). Replaying walks the capture in
order, acting as the timer: timer lines are written to the port, and at each
recorded rearm the replay waits until the judge really sends that byte. A
race day can then be rehearsed at the judge's own pace::

    socat -d -d pty,raw,echo=0 pty,raw,echo=0
    derby-judge-replay --port /dev/pts/4 race-day.jsonl
    derby-judge -p /dev/pts/5

A judge in debug mode never rearms, so replay to it with ``--no-handshake``;
the lines then follow the gaps recorded in the capture.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
import json
from pathlib import Path
import sys
import time
from typing import Callable, List, Optional, Sequence

import serial

from .errors import EndOfStream
from .utils import DEFAULT_SERIAL_SETTINGS, parse_serial_settings


@dataclass(frozen=True)
class CapturedStep:
    direction: str
    payload: bytes
    ts: Optional[float]

    @property
    def from_timer(self) -> bool:
        return self.direction == "rx"


def load_capture(path: Path) -> List[CapturedStep]:
    """Read a capture file, skipping entries that cannot be replayed."""

    steps: List[CapturedStep] = []
    with path.open("r", encoding="utf-8") as fh:
        for line_no, raw in enumerate(fh, start=1):
            if not raw.strip():
                continue
            try:
                entry = json.loads(raw)
                payload = bytes.fromhex(entry["data_hex"])
                direction = entry.get("dir", "rx")
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                print(f"[replay] WARNING: skipping line {line_no}: {exc!r}",
                      file=sys.stderr)
                continue

            if direction not in ("rx", "tx") or not payload:
                continue

            ts = entry.get("ts_epoch")
            steps.append(CapturedStep(
                direction=direction,
                payload=payload,
                ts=float(ts) if isinstance(ts, (int, float)) else None,
            ))
    return steps


class TimerReplay:
    """Plays captured steps into an open port, timer side.

    ``speed`` scales the recorded gaps between steps; 0 sends as fast as the
    handshake allows.
    """

    def __init__(self, port, handshake: bool = True, speed: float = 1.0,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self.port = port
        self.handshake = handshake
        self.speed = speed
        self.sleep = sleep

    def play(self, steps: Sequence[CapturedStep]) -> int:
        sent = 0
        previous: Optional[CapturedStep] = None

        for step in steps:
            if not step.from_timer:
                if self.handshake:
                    self._await_judge(step.payload)
                    previous = step
                continue

            self._pause(previous, step)
            self.port.write(step.payload)
            self.port.flush()
            sent += 1
            print(f"[replay] timer -> judge: "
                  f"{step.payload.decode('ascii', errors='replace').strip()}")
            previous = step

        return sent

    def _await_judge(self, expected: bytes) -> None:
        print("[replay] waiting for the judge to rearm the timer...")
        for want in expected:
            while True:
                got = self.port.read(1)
                if not got:
                    raise EndOfStream("port closed while waiting for the "
                                      "judge")
                if got[0] == want:
                    break
                print(f"[replay] WARNING: ignoring unexpected byte {got!r} "
                      "from the judge", file=sys.stderr)

    def _pause(self, previous: Optional[CapturedStep],
               step: CapturedStep) -> None:
        if self.speed <= 0 or previous is None:
            return
        if previous.ts is None or step.ts is None:
            return
        gap = (step.ts - previous.ts) / self.speed
        if gap > 0:
            self.sleep(gap)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="derby-judge-replay",
        description="Act as the lane timer by replaying a judge capture log.",
    )
    parser.add_argument(
        "--port",
        required=True,
        help="Serial port the judge listens on the other end of",
    )
    parser.add_argument(
        "--settings",
        default=DEFAULT_SERIAL_SETTINGS,
        help=("Serial settings as 'baud,data,parity,stop' "
              f"(default: {DEFAULT_SERIAL_SETTINGS})"),
    )
    parser.add_argument(
        "--speed",
        type=float,
        default=1.0,
        help="Divide the recorded gaps between lines by this (default: 1.0)",
    )
    parser.add_argument(
        "--no-sleep",
        action="store_true",
        help="Ignore the recorded gaps",
    )
    parser.add_argument(
        "--no-handshake",
        action="store_true",
        help="Do not wait for rearm bytes (for a judge in debug mode)",
    )
    parser.add_argument(
        "logfile",
        help="Capture file written by derby-judge --capture",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log_path = Path(args.logfile).expanduser()
    if not log_path.is_file():
        print(f"[replay] ERROR: capture file not found: {log_path}",
              file=sys.stderr)
        return 1

    steps = load_capture(log_path)
    if not any(step.from_timer for step in steps):
        print(f"[replay] ERROR: no timer lines in {log_path}",
              file=sys.stderr)
        return 1

    serial_kwargs = parse_serial_settings(args.settings)
    serial_kwargs["port"] = args.port
    player_speed = 0.0 if args.no_sleep else args.speed

    try:
        with serial.Serial(**serial_kwargs) as port:
            sent = TimerReplay(port, handshake=not args.no_handshake,
                               speed=player_speed).play(steps)
    except serial.SerialException as exc:
        print(f"[replay] ERROR: {exc}", file=sys.stderr)
        return 1
    except EndOfStream as exc:
        print(f"[replay] ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n[replay] Interrupted.")
        return 130

    print(f"[replay] Done; sent {sent} timer lines.")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
