"""Where race results end up.

The session only knows the :class:`ResultsSink` interface. ``TextSink``
prints plain lines; ``ToiletSink`` renders big banner text with the external
``toilet`` program, for a screen the whole pit can read.
"""

from __future__ import annotations

import os
import subprocess
import sys
from typing import Optional, Protocol, Sequence, TextIO

from .utils import format_times


CLEAR_COMMAND = ["cmd", "/c", "cls"] if os.name == "nt" else ["clear"]


class ResultsSink(Protocol):
    def announce_winner(self, lane: int) -> None:
        ...

    def announce_times(self, times: Sequence[float]) -> None:
        ...

    def announce_history(self, entries: Sequence[Sequence[float]]) -> None:
        ...


class TextSink:
    """Print results as plain text."""

    def __init__(self, stdout: Optional[TextIO] = None) -> None:
        self._stdout = stdout if stdout is not None else sys.stdout

    def announce_winner(self, lane: int) -> None:
        print(f"\nLane {lane} wins!\n", file=self._stdout)

    def announce_times(self, times: Sequence[float]) -> None:
        print(format_times(times, sep="  "), file=self._stdout)

    def announce_history(self, entries: Sequence[Sequence[float]]) -> None:
        print("\nPrevious results:", file=self._stdout)
        for entry in entries:
            print("\t" + format_times(entry), file=self._stdout)
        self._stdout.flush()


class ToiletSink(TextSink):
    """Render winner and times as banner text with ``toilet``.

    Falls back to plain text for good if ``toilet`` is not installed or
    fails to run.
    """

    def __init__(self, winner_font: str = "bigmono12",
                 times_font: str = "future",
                 stdout: Optional[TextIO] = None) -> None:
        super().__init__(stdout)
        self.winner_font = winner_font
        self.times_font = times_font
        self.available = True

    def announce_winner(self, lane: int) -> None:
        if self.available:
            self._clear_screen()
        if not self._render(["-f", self.winner_font, "-F", "border",
                             f"Lane {lane}"]):
            super().announce_winner(lane)

    def announce_times(self, times: Sequence[float]) -> None:
        if not self._render(["-f", self.times_font,
                             format_times(times, sep=" ")]):
            super().announce_times(times)

    def _clear_screen(self) -> None:
        try:
            subprocess.run(CLEAR_COMMAND, check=False)
        except OSError as exc:
            print(f"[display] WARNING: could not clear screen: {exc}",
                  file=sys.stderr)

    def _render(self, args: Sequence[str]) -> bool:
        if not self.available:
            return False
        try:
            subprocess.run(["toilet", *args], check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            print(f"[display] WARNING: toilet failed ({exc}); "
                  "falling back to plain text", file=sys.stderr)
            self.available = False
            return False
        return True


def make_sink(kind: str, winner_font: str = "bigmono12",
              times_font: str = "future") -> ResultsSink:
    if kind == "toilet":
        return ToiletSink(winner_font=winner_font, times_font=times_font)
    return TextSink()
