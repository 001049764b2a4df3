"""Replaying a capture as the timer."""

import json

import pytest

from derbyjudge import replay as replay_module
from derbyjudge.errors import EndOfStream
from derbyjudge.replay import CapturedStep, TimerReplay, load_capture, main


BANNER = b"Timer - 4 Lanes found\n"
RACE_1 = b"1 3.2 2 3.3 3 3.4 4 0.0\n"
RACE_2 = b"2 3.1 1 3.5 4 3.6 3 3.9\n"


class FakePort:
    """Timer end of the cable. ``incoming`` is what the judge sends."""

    def __init__(self, incoming=b""):
        self.incoming = bytearray(incoming)
        self.events = []

    def read(self, size=1):
        if not self.incoming:
            return b""
        data = bytes(self.incoming[:size])
        del self.incoming[:size]
        self.events.append(("read", data))
        return data

    def write(self, data):
        self.events.append(("write", data))
        return len(data)

    def flush(self):
        pass

    @property
    def written(self):
        return [data for kind, data in self.events if kind == "write"]


class FakeSerial(FakePort):
    instances = []

    def __init__(self, **kwargs):
        super().__init__(FakeSerial.incoming)
        self.kwargs = kwargs
        FakeSerial.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def fake_serial(monkeypatch):
    FakeSerial.instances = []
    FakeSerial.incoming = b""
    monkeypatch.setattr(replay_module.serial, "Serial", FakeSerial)
    return FakeSerial


def write_log(path, entries, extra_lines=()):
    lines = [json.dumps(e) for e in entries] + list(extra_lines)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def entry(ts, data, direction="rx"):
    return {"ts": f"t{ts}", "ts_epoch": ts, "dir": direction,
            "data_hex": data.hex()}


def race_day():
    return [
        CapturedStep("rx", BANNER, 10.0),
        CapturedStep("rx", RACE_1, 40.0),
        CapturedStep("tx", b" ", 55.0),
        CapturedStep("rx", RACE_2, 95.0),
    ]


def test_load_capture_keeps_both_directions(tmp_path):
    log = tmp_path / "capture.jsonl"
    write_log(log, [entry(1.0, BANNER), entry(2.0, b" ", "tx"),
                    entry(3.0, b"", "rx"), entry(4.0, b"x", "status")],
              extra_lines=["{broken", json.dumps({"ts": "no data"}), ""])

    steps = load_capture(log)

    assert steps == [CapturedStep("rx", BANNER, 1.0),
                     CapturedStep("tx", b" ", 2.0)]
    assert steps[0].from_timer
    assert not steps[1].from_timer


def test_next_race_waits_for_rearm():
    port = FakePort(incoming=b" ")

    sent = TimerReplay(port, speed=0).play(race_day())

    assert sent == 3
    assert port.events == [
        ("write", BANNER),
        ("write", RACE_1),
        ("read", b" "),
        ("write", RACE_2),
    ]


def test_stray_bytes_from_judge_are_ignored(capsys):
    port = FakePort(incoming=b"\r\n ")

    TimerReplay(port, speed=0).play(race_day())

    assert port.written == [BANNER, RACE_1, RACE_2]
    assert port.incoming == bytearray()
    assert capsys.readouterr().err.count("unexpected byte") == 2


def test_judge_gone_before_rearm():
    port = FakePort()

    with pytest.raises(EndOfStream):
        TimerReplay(port, speed=0).play(race_day())
    assert port.written == [BANNER, RACE_1]


def test_gaps_are_scaled_from_the_previous_step():
    sleeps = []
    port = FakePort(incoming=b" ")

    TimerReplay(port, speed=2.0, sleep=sleeps.append).play(race_day())

    # banner -> race 1, then rearm -> race 2
    assert sleeps == [15.0, 20.0]


def test_without_handshake_follows_recorded_timing():
    sleeps = []
    port = FakePort()

    sent = TimerReplay(port, handshake=False,
                       sleep=sleeps.append).play(race_day())

    assert sent == 3
    assert port.written == [BANNER, RACE_1, RACE_2]
    assert sleeps == [30.0, 55.0]


def test_missing_timestamps_do_not_pause():
    sleeps = []
    steps = [CapturedStep("rx", BANNER, None), CapturedStep("rx", RACE_1, 5.0)]

    TimerReplay(FakePort(), sleep=sleeps.append).play(steps)
    assert sleeps == []


def test_main_replays_to_port(tmp_path, fake_serial, capsys):
    fake_serial.incoming = b" "
    log = tmp_path / "capture.jsonl"
    write_log(log, [entry(10.0, BANNER), entry(11.0, RACE_1),
                    entry(12.0, b" ", "tx"), entry(13.0, RACE_2)])

    assert main(["--port", "/dev/pts/4", "--no-sleep", str(log)]) == 0

    port = fake_serial.instances[0]
    assert port.kwargs["port"] == "/dev/pts/4"
    assert port.kwargs["baudrate"] == 1200
    assert port.kwargs["timeout"] is None
    assert port.written == [BANNER, RACE_1, RACE_2]
    assert "sent 3 timer lines" in capsys.readouterr().out


def test_main_judge_never_rearms(tmp_path, fake_serial, capsys):
    log = tmp_path / "capture.jsonl"
    write_log(log, [entry(10.0, BANNER), entry(11.0, b" ", "tx"),
                    entry(12.0, RACE_1)])

    assert main(["--port", "p", "--no-sleep", str(log)]) == 1
    assert fake_serial.instances[0].written == [BANNER]
    assert "waiting for the judge" in capsys.readouterr().err


def test_main_no_handshake(tmp_path, fake_serial):
    log = tmp_path / "capture.jsonl"
    write_log(log, [entry(10.0, BANNER), entry(11.0, b" ", "tx"),
                    entry(12.0, RACE_1)])

    assert main(["--port", "p", "--no-sleep", "--no-handshake",
                 str(log)]) == 0
    assert fake_serial.instances[0].written == [BANNER, RACE_1]


def test_main_missing_log(tmp_path, capsys):
    assert main(["--port", "p", str(tmp_path / "missing.jsonl")]) == 1
    assert "not found" in capsys.readouterr().err


def test_main_log_without_timer_lines(tmp_path, fake_serial):
    log = tmp_path / "capture.jsonl"
    write_log(log, [entry(1.0, b" ", "tx")])

    assert main(["--port", "p", str(log)]) == 1
    assert fake_serial.instances == []
