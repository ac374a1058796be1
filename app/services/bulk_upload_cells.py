"""
Spreadsheet cell values as a small closed set of types.

openpyxl hands back whatever the authoring tool stored (str, int, float,
datetime, bool, None). Rules need to know whether a value was typed as text
or as a number, so cells are wrapped at the parser boundary and never
coerced early. Every consumer checks the concrete type explicitly.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Union

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TRUE_TOKENS = {"Y", "YES", "TRUE", "1"}
_FALSE_TOKENS = {"N", "NO", "FALSE", "0"}


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Number:
    value: int | float

    @property
    def is_integral(self) -> bool:
        return float(self.value).is_integer()


@dataclass(frozen=True)
class DateValue:
    value: date


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class Empty:
    pass


Cell = Union[Text, Number, DateValue, Boolean, Empty]

EMPTY = Empty()


def from_native(value: Any) -> Cell:
    if value is None:
        return EMPTY
    # bool is a subclass of int, check it first.
    if isinstance(value, bool):
        return Boolean(value)
    if isinstance(value, (int, float)):
        return Number(value)
    if isinstance(value, datetime):
        return DateValue(value.date())
    if isinstance(value, date):
        return DateValue(value)
    if isinstance(value, time):
        return Text(value.isoformat())
    text = str(value).strip()
    if not text:
        return EMPTY
    return Text(text)


def is_empty(cell: Cell) -> bool:
    return isinstance(cell, Empty)


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def display(cell: Cell) -> str | None:
    """Human readable rendering used in messages and text columns."""
    if isinstance(cell, Text):
        return cell.value
    if isinstance(cell, Number):
        return _format_number(cell.value)
    if isinstance(cell, DateValue):
        return cell.value.isoformat()
    if isinstance(cell, Boolean):
        return "TRUE" if cell.value else "FALSE"
    return None


def number_of(cell: Cell) -> float | None:
    """Numeric value of a cell; numeric text counts. Raises ValueError otherwise."""
    if isinstance(cell, Empty):
        return None
    if isinstance(cell, Number):
        return float(cell.value)
    if isinstance(cell, Text):
        try:
            parsed = float(cell.value.replace(",", ""))
        except ValueError:
            raise ValueError(f"'{cell.value}' is not a number") from None
        if not math.isfinite(parsed):
            raise ValueError(f"'{cell.value}' is not a number")
        return parsed
    raise ValueError(f"'{display(cell)}' is not a number")


def date_of(cell: Cell) -> date | None:
    """Date value of a cell; text must be YYYY-MM-DD. Raises ValueError otherwise."""
    if isinstance(cell, Empty):
        return None
    if isinstance(cell, DateValue):
        return cell.value
    if isinstance(cell, Text) and _ISO_DATE_RE.match(cell.value):
        try:
            return date.fromisoformat(cell.value)
        except ValueError:
            raise ValueError(f"'{cell.value}' is not a calendar date") from None
    raise ValueError(f"'{display(cell)}' is not a YYYY-MM-DD date")


def flag_of(cell: Cell) -> bool | None:
    """Y/N style flag. Raises ValueError for anything else."""
    if isinstance(cell, Empty):
        return None
    if isinstance(cell, Boolean):
        return cell.value
    token = (display(cell) or "").strip().upper()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise ValueError(f"'{display(cell)}' is not Y or N")


def to_json(cell: Cell) -> dict[str, Any] | None:
    """Tagged JSON form so persisted rows can be re-rendered with their original types."""
    if isinstance(cell, Text):
        return {"t": "text", "v": cell.value}
    if isinstance(cell, Number):
        return {"t": "number", "v": cell.value}
    if isinstance(cell, DateValue):
        return {"t": "date", "v": cell.value.isoformat()}
    if isinstance(cell, Boolean):
        return {"t": "bool", "v": cell.value}
    return None


def from_json(payload: dict[str, Any] | None) -> Cell:
    if not payload:
        return EMPTY
    kind = payload.get("t")
    value = payload.get("v")
    if kind == "text":
        return Text(str(value))
    if kind == "number":
        return Number(value)
    if kind == "date":
        return DateValue(date.fromisoformat(str(value)))
    if kind == "bool":
        return Boolean(bool(value))
    return EMPTY


def to_excel(cell: Cell) -> Any:
    """Native value for writing the cell back into a workbook."""
    if isinstance(cell, (Text, Number, DateValue, Boolean)):
        return cell.value
    return None


def try_number(cell: Cell) -> float | None:
    """number_of for rules that run after type checks already reported bad input."""
    try:
        return number_of(cell)
    except ValueError:
        return None


def try_date(cell: Cell) -> date | None:
    try:
        return date_of(cell)
    except ValueError:
        return None
