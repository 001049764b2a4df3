"""Shared fakes for the judge tests."""

import io
from typing import Iterable, List, Union

import pytest

from derbyjudge.console import ConsoleOperator
from derbyjudge.link import TimerLink


Chunk = Union[bytes, BaseException]


class FakeStream:
    """Scripted stand-in for a serial port.

    Each chunk is handed out by ``readline``; exceptions are raised when
    their turn comes. Writes are collected in ``written``.
    """

    def __init__(self, chunks: Iterable[Chunk]) -> None:
        self.chunks: List[Chunk] = list(chunks)
        self.written = b""
        self.closed = False

    def readline(self, size: int = -1) -> bytes:
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if isinstance(chunk, BaseException):
            raise chunk
        if 0 <= size < len(chunk):
            self.chunks.insert(0, chunk[size:])
            return chunk[:size]
        return chunk

    def write(self, data: bytes) -> int:
        self.written += data
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True


def make_link(*chunks: Chunk, name: str = "/dev/fake") -> TimerLink:
    return TimerLink(FakeStream(chunks), name=name)


def make_operator(answers: str = "") -> ConsoleOperator:
    return ConsoleOperator(stdin=io.StringIO(answers), stdout=io.StringIO())


class RecordingSink:
    def __init__(self) -> None:
        self.winners: List[int] = []
        self.times: List[tuple] = []
        self.histories: List[list] = []

    def announce_winner(self, lane):
        self.winners.append(lane)

    def announce_times(self, times):
        self.times.append(tuple(times))

    def announce_history(self, entries):
        self.histories.append([tuple(e) for e in entries])


@pytest.fixture
def sink():
    return RecordingSink()
