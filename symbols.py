"""Decoder for compact OCC-like option symbols.

A position row carries only its instrument code, e.g. ``TSLA260320C00440000``:

    TSLA   260320   C   00440000
    ticker YYMMDD  C/P  strike * 1000

``decode_symbol`` turns that into an ``InstrumentDescriptor`` for display. It
is called once per rendered row on every refresh, so it must never raise:
equities, cash lines and malformed codes all fall back to a SPOT descriptor.
"""

import re
from typing import Any

from models import InstrumentDescriptor

OPTION_SYMBOL = re.compile(r"^([A-Z]+)(\d{6})([CP])(\d{1,8})$")

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
          "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

NO_EXPIRY = "NO EXPIRY"
OUTRIGHT = "OUTRIGHT"


def _spot(symbol: str) -> InstrumentDescriptor:
    return InstrumentDescriptor(ticker=symbol, expiry=NO_EXPIRY, type="SPOT", strike=OUTRIGHT)


def decode_symbol(symbol: Any) -> InstrumentDescriptor:
    """Decode ``symbol`` into ticker, expiry, option type and strike.

    Contract:
    - Match: expiry rendered as ``MON DD, YYYY`` (year ``20YY``), type CALL/PUT,
      strike divided by 1000 and shown with one decimal, e.g. ``$440.0``.
    - No match: ticker is the input as-is, type SPOT, sentinel expiry/strike.
    - A date with a month outside 1..12 is not a valid option code and decodes
      as SPOT.
    """
    text = "" if symbol is None else str(symbol)
    match = OPTION_SYMBOL.match(text)
    if not match:
        return _spot(text)

    ticker, date_str, kind, strike_str = match.groups()
    month = int(date_str[2:4])
    if not 1 <= month <= 12:
        return _spot(text)

    year = "20" + date_str[0:2]
    day = date_str[4:6]
    strike = int(strike_str) / 1000

    return InstrumentDescriptor(
        ticker=ticker,
        expiry=f"{MONTHS[month - 1]} {day}, {year}",
        type="CALL" if kind == "C" else "PUT",
        strike=f"${strike:.1f}",
    )
