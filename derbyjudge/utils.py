"""Shared helpers for the derby judge."""

from __future__ import annotations

from typing import Dict, Iterable

import serial


# The timer talks 1200 baud, 7 data bits, no parity, 2 stop bits.
DEFAULT_SERIAL_SETTINGS = "1200,7,n,2"

_BYTESIZES = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}

_PARITIES = {
    "N": serial.PARITY_NONE,
    "E": serial.PARITY_EVEN,
    "O": serial.PARITY_ODD,
    "M": serial.PARITY_MARK,
    "S": serial.PARITY_SPACE,
}

_STOPBITS = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}


def parse_serial_settings(value: str | None) -> Dict[str, object]:
    """Turn a "baud,bits,parity,stop" string into pyserial keyword args.

    Every part is optional; parts that are missing or do not parse keep the
    timer defaults (1200,7,n,2). Reads never time out: the timer only speaks
    when a race finishes.
    """

    baudrate = 1200
    bytesize = 7
    parity = "N"
    stopbits = 2

    parts = [p.strip() for p in (value or "").split(",")]
    if len(parts) >= 1 and parts[0].isdigit():
        baudrate = int(parts[0])
    if len(parts) >= 2 and parts[1].isdigit():
        bytesize = int(parts[1])
    if len(parts) >= 3 and parts[2]:
        parity = parts[2][0].upper()
    if len(parts) >= 4 and parts[3].isdigit():
        stopbits = int(parts[3])

    return {
        "baudrate": baudrate,
        "bytesize": _BYTESIZES.get(bytesize, serial.SEVENBITS),
        "parity": _PARITIES.get(parity, serial.PARITY_NONE),
        "stopbits": _STOPBITS.get(stopbits, serial.STOPBITS_TWO),
        "timeout": None,
    }


def format_time(seconds: float) -> str:
    return f"{seconds:1.4f}"


def format_times(times: Iterable[float], sep: str = "\t") -> str:
    """Format a lane time vector the way the timer reports it."""

    return sep.join(format_time(t) for t in times)
