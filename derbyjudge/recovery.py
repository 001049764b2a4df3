"""Operator guided reconnect after the timer link fails.

Link failures are nearly always physical (a loose USB cable, a timer that
lost power), so nothing is retried on its own: every reconnect attempt waits
for the operator to power cycle the timer and press Enter. The loop only ends
when the timer comes back with the same number of lanes, or when the process
is interrupted.
"""

from __future__ import annotations

import enum
import sys
from typing import Callable, Optional

from .console import ConsoleOperator
from .errors import LaneCountMismatch, LinkFailure, UnparseableBanner
from .link import TimerLink
from .protocol import read_lane_count


class RecoveryState(enum.Enum):
    ACTIVE = "active"
    AWAITING_OPERATOR = "awaiting_operator"
    REOPENING = "reopening"


RETRY_PROMPT = ("Press Enter to try again. "
                "(Ctrl-C to give up - you will lose all results.)")


class RecoveryStateMachine:
    """Brings a failed :class:`TimerLink` back with the same lane count."""

    def __init__(self, opener: Callable[[], TimerLink],
                 operator: ConsoleOperator, lanes_expected: int) -> None:
        self.opener = opener
        self.operator = operator
        self.lanes_expected = lanes_expected
        self.state = RecoveryState.ACTIVE
        self.attempts = 0

    def recover(self, failed: Optional[TimerLink]) -> TimerLink:
        """Close ``failed`` and loop until a matching timer is reopened."""

        say = self.operator.say
        self.attempts = 0
        self.state = RecoveryState.AWAITING_OPERATOR

        say("Wow, something's messed with your timer. Let's try again.")
        if failed is not None:
            failed.close()
        say("Please power cycle your timer.")
        say("If you have a USB timer, just unplug it, wait a few seconds, "
            "and reconnect")
        say("it to the SAME port.")
        say("\nWhen you're done, press Enter and we'll try to get "
            "reconnected.")

        while True:
            self.operator.wait_for_enter()
            self.attempts += 1
            self.state = RecoveryState.REOPENING

            link = self._reopen()
            if link is not None:
                self.state = RecoveryState.ACTIVE
                return link

            self.state = RecoveryState.AWAITING_OPERATOR
            say(RETRY_PROMPT)

    def _reopen(self) -> Optional[TimerLink]:
        say = self.operator.say
        say("Opening port.")
        try:
            link = self.opener()
        except LinkFailure as exc:
            print(f"[judge] ERROR: {exc}", file=sys.stderr)
            say("Eek! Unable to open timer port! Please power cycle it "
                "again.")
            say("Double-check that you plugged your USB timer into the "
                "same port!")
            return None

        try:
            lanes = read_lane_count(link)
            if lanes != self.lanes_expected:
                raise LaneCountMismatch(self.lanes_expected, lanes)
        except LaneCountMismatch as exc:
            link.close()
            say(f"Eek! Invalid number of lanes! (Expected {exc.expected}, "
                f"got {exc.actual} from timer.)")
            say("Please power cycle your timer again and check all sensor "
                "connections.")
            return None
        except (LinkFailure, UnparseableBanner) as exc:
            link.close()
            print(f"[judge] ERROR: {exc}", file=sys.stderr)
            say("Eek! The timer did not identify itself. Please power cycle "
                "your timer again and check all sensor connections.")
            return None
        except BaseException:
            # interrupted while waiting for the banner
            link.close()
            raise

        return link
