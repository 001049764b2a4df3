"""Exceptions raised while talking to the lane timer."""

from __future__ import annotations


class TimerError(Exception):
    """Base class for every timer related failure."""


class LinkFailure(TimerError):
    """The serial link could not be opened, read or written."""


class EndOfStream(LinkFailure):
    """The link returned no data; the device went away."""


class UnparseableBanner(TimerError):
    """The reset banner did not contain a supported lane count."""

    def __init__(self, text: str) -> None:
        super().__init__(f"unable to parse timer string {text!r}")
        self.text = text


class LaneCountMismatch(LinkFailure):
    """A reconnected timer reports a different number of lanes."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"expected {expected} lanes, got {actual} "
                         "from timer")
        self.expected = expected
        self.actual = actual
