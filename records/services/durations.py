"""
Parse free-text prescription durations written in Arabic or English.

Doctors type durations such as ``"7 days"``, ``"3 أسابيع"``, ``"2 months"`` or
``"مستمر"``.  :func:`parse_duration` turns the text into a :class:`DurationSpec`
and never raises: anything it cannot read is ``UNKNOWN``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

CONTINUOUS = 'continuous'
DAYS = 'days'
WEEKS = 'weeks'
MONTHS = 'months'
UNKNOWN = 'unknown'


@dataclass(frozen=True)
class DurationSpec:
    kind: str
    amount: Optional[int] = None

    def __str__(self) -> str:
        if self.amount is None:
            return self.kind
        return f"{self.amount} {self.kind}"


CONTINUOUS_SPEC = DurationSpec(CONTINUOUS)
UNKNOWN_SPEC = DurationSpec(UNKNOWN)

CONTINUOUS_PATTERN = re.compile(r'مستمر|continuous|ongoing', re.IGNORECASE)

# An integer not glued to a decimal point or another number, then the unit.
_NUMBER = r'(?<![\d.,])(\d+)(?![.,]\d)\s*'

# Checked in order; the first unit that matches wins.
UNIT_PATTERNS = (
    (DAYS, re.compile(_NUMBER + r'(?:يوم|أيام|ايام|day)', re.IGNORECASE)),
    (WEEKS, re.compile(_NUMBER + r'(?:أسبوع|اسبوع|أسابيع|اسابيع|week)', re.IGNORECASE)),
    (MONTHS, re.compile(_NUMBER + r'(?:شهر|شهور|أشهر|اشهر|month)', re.IGNORECASE)),
)


def parse_duration(text: Optional[str]) -> DurationSpec:
    if not text or not text.strip():
        return UNKNOWN_SPEC
    if CONTINUOUS_PATTERN.search(text):
        return CONTINUOUS_SPEC
    for kind, pattern in UNIT_PATTERNS:
        match = pattern.search(text)
        if match:
            return DurationSpec(kind, int(match.group(1)))
    return UNKNOWN_SPEC
