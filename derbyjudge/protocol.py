"""Decoding of the two kinds of line the lane timer sends.

Reset banner, free-form text ending in the lane count::

    SuperDuper Timer v9.3 - 4 Lanes found

Race result, one ``<lane> <seconds>`` pair per lane in finishing order::

    1 3.2001 2 3.5512 4 4.0012 3 0.0000

Lanes that did not finish within the timer's window are reported with a time
of zero, which ends the useful part of the line.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
import re
import sys
from typing import List, Optional, Tuple

from .errors import UnparseableBanner
from .link import LINE_LEN, TimerLink


SUPPORTED_LANES = (8, 4, 2)

# Unsigned fixed or floating point seconds, e.g. "3.2001" or "3.2e0".
_DECIMAL = re.compile(r"(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class RaceResult:
    """Lane times of one run plus the lane that finished first.

    ``winning_lane`` is 0 when no lane has a valid time (null race).
    """

    times: Tuple[float, ...]
    winning_lane: int

    @property
    def is_null(self) -> bool:
        return self.winning_lane == 0


def _decode(line: bytes | str) -> str:
    if isinstance(line, bytes):
        line = line[:LINE_LEN].decode("ascii", errors="replace")
    return line.strip()


def parse_init_banner(line: bytes | str) -> int:
    """Return the lane count announced by the reset banner.

    The banner is searched for an '8', then a '4', then a '2', in that order,
    anywhere in the text. "Timer v8.1 - 4 Lanes found" therefore reads as 8
    lanes. Timers in the field rely on this, so it stays.
    """

    text = _decode(line)
    for lanes in SUPPORTED_LANES:
        if str(lanes) in text:
            return lanes
    raise UnparseableBanner(text)


def _int_or_zero(token: Optional[str]) -> int:
    try:
        return int(token) if token is not None else 0
    except ValueError:
        return 0


def _time_or_zero(token: Optional[str]) -> float:
    if token is None or not _DECIMAL.fullmatch(token):
        return 0.0
    value = float(token)
    # 1e400 overflows to inf
    if not math.isfinite(value):
        return 0.0
    return value


def parse_result_line(line: bytes | str, lanes: int) -> RaceResult:
    """Decode one race result line for a ``lanes`` lane timer."""

    tokens = _decode(line).split()
    times: List[float] = [0.0] * lanes
    winner = 0

    for i in range(lanes):
        lane_tok = tokens[2 * i] if 2 * i < len(tokens) else None
        time_tok = tokens[2 * i + 1] if 2 * i + 1 < len(tokens) else None
        lane = _int_or_zero(lane_tok)
        elapsed = _time_or_zero(time_tok)

        if elapsed == 0.0:
            break

        if not 1 <= lane <= lanes:
            print(f"[protocol] WARNING: ignoring time {elapsed} for "
                  f"unknown lane {lane_tok!r}", file=sys.stderr)
            continue

        if i == 0:
            winner = lane
        times[lane - 1] = elapsed

    return RaceResult(times=tuple(times), winning_lane=winner)


def read_lane_count(link: TimerLink) -> int:
    """Ask for a timer reset and read the lane count from its banner."""

    print("\nPlease reset the timer. Hold switch closed for 1 second, "
          "then open.")
    line = link.read_line()
    lanes = parse_init_banner(line)
    print(f"Timer initialized. Timer reports \n\t{_decode(line)}")
    print(f"Found {lanes} lanes")
    return lanes
