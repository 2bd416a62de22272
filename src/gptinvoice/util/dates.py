from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from ..models import Invoice


_TARGET_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

MONTH_ABBREVIATIONS: tuple[str, ...] = (
    "jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec",
)
MONTH_NAMES: tuple[str, ...] = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)


def is_valid_month_format(value: str) -> bool:
    """
    True for "YYYY-MM" with a month in 01-12:
    - "2024-01" -> True
    - "2024-13" -> False
    - "24-01"   -> False
    """
    return bool(_TARGET_MONTH_RE.match(value or ""))


@dataclass(frozen=True)
class TargetMonth:
    year: str
    month: str

    @classmethod
    def parse(cls, value: str) -> "TargetMonth":
        s = (value or "").strip()
        if not is_valid_month_format(s):
            raise ValueError(f'Invalid month format "{value}". Expected format: YYYY-MM (e.g., 2024-01)')
        year, month = s.split("-", 1)
        return cls(year=year, month=month)

    def __str__(self) -> str:
        return f"{self.year}-{self.month}"


def matches_month(date_text: str, year: str, month: str) -> bool:
    """
    Loose month/year match for the date text captured from a portal row.

    Handles "Jan 15, 2024", "January 15, 2024" and "2024-01-15". Month names are matched as plain
    substrings ("december" also contains "dec"), and the year may appear anywhere in the text.
    Anything unrecognised (including "unknown") is simply not a match.
    """
    text = date_text or ""
    lowered = text.lower()

    for idx, (abbr, name) in enumerate(zip(MONTH_ABBREVIATIONS, MONTH_NAMES), start=1):
        if abbr in lowered or name in lowered:
            if f"{idx:02d}" == month and year in text:
                return True

    return text.startswith(f"{year}-{month}")


def filter_invoices_by_month(invoices: Iterable[Invoice], target_month: str | TargetMonth) -> list[Invoice]:
    target = target_month if isinstance(target_month, TargetMonth) else TargetMonth.parse(target_month)
    return [inv for inv in invoices if matches_month(inv.date, target.year, target.month)]
