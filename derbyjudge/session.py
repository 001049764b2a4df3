"""The race loop: wait for a run, show it, rearm the timer, repeat."""

from __future__ import annotations

import enum
from typing import Optional

from .console import ConsoleOperator
from .display import ResultsSink
from .errors import LinkFailure
from .history import ResultHistory
from .link import REARM, TimerLink
from .protocol import RaceResult, parse_result_line
from .recovery import RecoveryStateMachine


class RaceOutcome(enum.Enum):
    GOOD = "good"
    NULL = "null"
    LINK_FAILURE = "link_failure"


class SessionLoop:
    """Runs races on one timer until the operator stops.

    ``debug`` means there is no real timer on the other end, so the rearm
    byte is never sent.
    """

    def __init__(self, link: TimerLink, lanes: int, sink: ResultsSink,
                 operator: ConsoleOperator,
                 recovery: RecoveryStateMachine,
                 history: Optional[ResultHistory] = None,
                 debug: bool = False) -> None:
        self.link = link
        self.lanes = lanes
        self.sink = sink
        self.operator = operator
        self.recovery = recovery
        self.history = history if history is not None else ResultHistory()
        self.debug = debug
        self.last_result: Optional[RaceResult] = None

    def run_once(self) -> RaceOutcome:
        try:
            line = self.link.read_line()
        except LinkFailure as exc:
            self.operator.say(f"Eek! Error reading from serial port! "
                              f"Please check timer. ({exc})")
            self.link = self.recovery.recover(self.link)
            return RaceOutcome.LINK_FAILURE

        result = parse_result_line(line, self.lanes)
        self.last_result = result
        self.operator.say("Run is complete. Results:")

        if result.is_null:
            self.operator.say("Null race result! Please redo this run.")
            return RaceOutcome.NULL

        self.sink.announce_winner(result.winning_lane)
        self.sink.announce_times(result.times)
        self.history.push(result.times)
        self.sink.announce_history(self.history.recent())
        return RaceOutcome.GOOD

    def rearm(self) -> None:
        if self.debug:
            return
        try:
            self.link.write_byte(REARM)
        except LinkFailure as exc:
            self.operator.say(f"Eek! Could not rearm the timer. ({exc})")
            self.link = self.recovery.recover(self.link)

    def run(self) -> ResultHistory:
        while True:
            self.operator.say("Begin racing when ready.")
            self.run_once()
            if not self.operator.ask_continue():
                break
            self.rearm()
        return self.history
