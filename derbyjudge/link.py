"""Byte-stream link to the lane timer.

The timer is a line oriented device: it prints an identification banner when
it is reset and one line of lane times after every race, and it waits for a
single space before arming itself for the next run. :class:`TimerLink` wraps
the serial port (or, in debug mode, any plain file such as a pty or FIFO) and
reports every failure as :class:`~derbyjudge.errors.LinkFailure`. Recovery is
left to the caller.
"""

from __future__ import annotations

import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, TextIO

import serial

from .errors import EndOfStream, LinkFailure
from .utils import parse_serial_settings


LINE_LEN = 80

# Sent after each run to get the timer ready for the next one.
REARM = b"\x20"


class LineRecorder:
    """Append every line read and byte written to a JSONL capture file."""

    def __init__(self) -> None:
        self.enabled = False
        self.file_path: Optional[Path] = None
        self._fh: Optional[TextIO] = None

    def configure(self, file_name: str) -> None:
        path_str = (file_name or "").strip()
        if not path_str:
            self._disable()
            return

        path = Path(path_str).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fh = path.open("a", encoding="utf-8")
        except OSError as exc:
            print(f"[link] WARNING: could not open capture file {path}: "
                  f"{exc}; disabling capture", file=sys.stderr)
            self._disable()
            return

        self._disable()
        print(f"[link] Capture enabled; writing to {path}")
        self.enabled = True
        self.file_path = path
        self._fh = fh

    def record(self, direction: str, payload: bytes,
               ts: Optional[float] = None) -> None:
        if not payload or not self.enabled or self._fh is None:
            return

        if ts is None:
            ts = time.time()
        entry = {
            "ts": datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(),
            "ts_epoch": ts,
            "dir": direction,
            "byte_count": len(payload),
            "data_hex": payload.hex(),
        }
        try:
            self._fh.write(json.dumps(entry))
            self._fh.write("\n")
            self._fh.flush()
        except OSError as exc:
            print(f"[link] WARNING: failed to write capture entry: {exc}",
                  file=sys.stderr)
            self._disable()

    def close(self) -> None:
        self._disable()

    def _disable(self) -> None:
        self.enabled = False
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
        self._fh = None
        self.file_path = None


class TimerLink:
    """An open connection to the timer."""

    def __init__(self, stream: BinaryIO, name: str = "",
                 recorder: Optional[LineRecorder] = None) -> None:
        self._stream: Optional[BinaryIO] = stream
        self.name = name
        self.recorder = recorder

    @classmethod
    def open(cls, port: str, configure: bool = True,
             serial_kwargs: Optional[Dict[str, Any]] = None,
             recorder: Optional[LineRecorder] = None) -> "TimerLink":
        """Open ``port``.

        With ``configure`` the port is opened through pyserial using the
        timer's line settings. Without it the path is opened as a plain byte
        stream and left exactly as the OS hands it over, which is what debug
        mode wants for ptys and FIFOs.
        """

        if not port:
            raise LinkFailure("no timer port given")

        try:
            if configure:
                kwargs = dict(serial_kwargs or parse_serial_settings(None))
                kwargs["port"] = port
                stream = serial.Serial(**kwargs)
            else:
                stream = open(port, "r+b", buffering=0)
        except (serial.SerialException, OSError, ValueError) as exc:
            raise LinkFailure(f"unable to open {port}: {exc}") from exc

        return cls(stream, name=port, recorder=recorder)

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def read_line(self, max_len: int = LINE_LEN) -> bytes:
        """Block until the timer sends a line and return it.

        Lines longer than ``max_len`` are cut to ``max_len`` bytes and the
        rest of the line is thrown away.
        """

        stream = self._require_stream()
        try:
            line = stream.readline(max_len)
            if not line:
                raise EndOfStream(f"no data from {self.name}")

            if len(line) >= max_len and not line.endswith(b"\n"):
                dropped = 0
                while True:
                    rest = stream.readline(max_len)
                    dropped += len(rest)
                    if not rest or rest.endswith(b"\n"):
                        break
                print(f"[link] WARNING: line longer than {max_len} bytes; "
                      f"dropped {dropped} bytes", file=sys.stderr)
        except (serial.SerialException, OSError) as exc:
            raise LinkFailure(f"error reading from {self.name}: "
                              f"{exc}") from exc

        if self.recorder is not None:
            self.recorder.record("rx", line)
        return line

    def write_byte(self, value: bytes = REARM) -> None:
        if len(value) != 1:
            raise ValueError("write_byte expects exactly one byte")

        stream = self._require_stream()
        try:
            stream.write(value)
            stream.flush()
        except (serial.SerialException, OSError) as exc:
            raise LinkFailure(f"error writing to {self.name}: "
                              f"{exc}") from exc

        if self.recorder is not None:
            self.recorder.record("tx", value)

    def close(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.close()
        except (serial.SerialException, OSError) as exc:
            print(f"[link] WARNING: error closing {self.name}: {exc}",
                  file=sys.stderr)

    def _require_stream(self) -> BinaryIO:
        if self._stream is None:
            raise LinkFailure(f"{self.name or 'timer link'} is closed")
        return self._stream
