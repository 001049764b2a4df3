"""Operator prompts on the terminal."""

from __future__ import annotations

import sys
from typing import Optional, TextIO


class ConsoleOperator:
    """The person at the keyboard running the races."""

    def __init__(self, stdin: Optional[TextIO] = None,
                 stdout: Optional[TextIO] = None) -> None:
        self._stdin = stdin if stdin is not None else sys.stdin
        self._stdout = stdout if stdout is not None else sys.stdout

    def say(self, message: str) -> None:
        print(message, file=self._stdout, flush=True)

    def wait_for_enter(self, prompt: str = "") -> None:
        """Block until the operator presses Enter.

        Raises EOFError when the terminal is gone, since nobody is left to
        confirm anything.
        """

        if prompt:
            self.say(prompt)
        if self._stdin.readline() == "":
            raise EOFError("operator input closed")

    def ask_continue(self) -> bool:
        """Return False when the operator asks to stop (X or end of input)."""

        self.say("Press enter to continue, X to exit.")
        answer = self._stdin.readline()
        if answer == "":
            return False
        return "x" not in answer.lower()
