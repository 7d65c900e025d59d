from __future__ import annotations

import math
import re
import statistics
from collections.abc import Sequence
from datetime import date, datetime
from typing import Any

import pandas as pd

from kinetic_import.models.time_axis import TimeMetrics, TimeNormalization, TimeType, TimeUnit

from .cells import is_blank, parse_numeric_cell

"""Time-axis normalization: raw time column -> elapsed seconds.

All functions here are pure. Timestamps are expressed in epoch milliseconds.
Numeric values at or above DATETIME_THRESHOLD are treated as epoch-ms timestamps
rather than elapsed time.
"""

__all__ = [
    "DATETIME_THRESHOLD",
    "EXCEL_SERIAL_THRESHOLD",
    "check_timezone",
    "parse_timestamp",
    "parse_time_cell",
    "detect_time_type",
    "detect_declared_unit",
    "normalize_time_to_seconds",
    "compute_time_metrics",
]

DATETIME_THRESHOLD = 10_000_000_000
EXCEL_SERIAL_THRESHOLD = 1e4

_UNIT_TOKENS: dict[str, TimeUnit] = {
    "s": TimeUnit.SECONDS,
    "sec": TimeUnit.SECONDS,
    "secs": TimeUnit.SECONDS,
    "second": TimeUnit.SECONDS,
    "seconds": TimeUnit.SECONDS,
    "min": TimeUnit.MINUTES,
    "mins": TimeUnit.MINUTES,
    "minute": TimeUnit.MINUTES,
    "minutes": TimeUnit.MINUTES,
    "h": TimeUnit.HOURS,
    "hr": TimeUnit.HOURS,
    "hrs": TimeUnit.HOURS,
    "hour": TimeUnit.HOURS,
    "hours": TimeUnit.HOURS,
    "d": TimeUnit.DAYS,
    "day": TimeUnit.DAYS,
    "days": TimeUnit.DAYS,
}
_BRACKETED_UNIT = re.compile(r"[(\[]\s*([a-z]+)\s*[)\]]")
_TRAILING_UNIT = re.compile(r"[_\s/-]([a-z]+)\s*$")
_SPELLED_UNIT = re.compile(r"\b(seconds|minutes|hours|days)\b")
# a four-digit year or a d/m/y style date; "now", "today" and bare times of day have neither
_DATE_PART = re.compile(r"(?<![\d.:,])\d{4}(?!\d)|\d{1,2}[./-]\d{1,2}[./-]\d{2,4}")
_TIMEZONE_ERRORS = (KeyError, ValueError, TypeError, OSError)


def check_timezone(name: str) -> str:
    """Return ``name`` if pandas can localize to it.

    Raises:
        ValueError: unknown or malformed timezone name
    """
    try:
        pd.Timestamp("2000-01-01").tz_localize(name)
    except _TIMEZONE_ERRORS as e:
        raise ValueError(f"unknown timezone '{name}'") from e
    return name


def parse_timestamp(value: Any, timezone: str = "UTC") -> float | None:
    """Epoch milliseconds for a datetime-like value, or None.

    Numbers are taken to already be epoch milliseconds. Strings must carry a
    date part, so clock-relative input ("now", "10:00") is rejected. Naive
    datetimes and strings without an offset are localized to ``timezone``;
    wall times skipped by a DST change shift forward, repeated ones take the
    first occurrence.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, (datetime, date)):
        ts = pd.Timestamp(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        numeric = parse_numeric_cell(text)
        if numeric is not None:
            return numeric
        if not _DATE_PART.search(text):
            return None
        try:
            ts = pd.Timestamp(text)
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        try:
            ts = ts.tz_localize(timezone, ambiguous=True, nonexistent="shift_forward")
        except _TIMEZONE_ERRORS:
            return None
    return ts.value / 1_000_000


def parse_time_cell(value: Any, time_type: TimeType, timezone: str = "UTC") -> float | None:
    """Per-row coercion of one time cell under the column's detected type."""
    if time_type is TimeType.NUMERIC:
        return parse_numeric_cell(value)
    if time_type is TimeType.DATETIME:
        return parse_timestamp(value, timezone)
    return None


def detect_time_type(values: Sequence[Any], timezone: str = "UTC") -> TimeType:
    """Classify a raw time column as numeric, datetime or invalid.

    - datetime: date strings outnumber numeric cells, or any numeric value
      reaches DATETIME_THRESHOLD (epoch ms)
    - numeric: otherwise, when at least one numeric cell exists
    - invalid: nothing parseable at all
    """
    numeric: list[float] = []
    datetime_like = 0
    for value in values:
        if is_blank(value):
            continue
        number = parse_numeric_cell(value)
        if number is not None:
            numeric.append(number)
        elif parse_timestamp(value, timezone) is not None:
            datetime_like += 1

    if not numeric and datetime_like == 0:
        return TimeType.INVALID
    if datetime_like > len(numeric):
        return TimeType.DATETIME
    if any(abs(n) >= DATETIME_THRESHOLD for n in numeric):
        return TimeType.DATETIME
    return TimeType.NUMERIC


def detect_declared_unit(header: str | None) -> TimeUnit | None:
    """Unit annotated in a header, e.g. 'time (min)', 't [h]', 'Time_s'."""
    if not header:
        return None
    text = header.strip().lower()
    for pattern in (_BRACKETED_UNIT, _TRAILING_UNIT, _SPELLED_UNIT):
        match = pattern.search(text)
        if match and match.group(1) in _UNIT_TOKENS:
            return _UNIT_TOKENS[match.group(1)]
    return None


def normalize_time_to_seconds(
    raw_values: Sequence[Any],
    detected_type: TimeType,
    selected_unit: TimeUnit,
    declared_unit: TimeUnit | None = None,
    *,
    timezone: str = "UTC",
    excel_serial_threshold: float = EXCEL_SERIAL_THRESHOLD,
) -> TimeNormalization:
    """Convert a raw time column into elapsed seconds.

    datetime: every value must parse, otherwise the whole column is invalid.
    Seconds are relative to the FIRST encountered timestamp (not the minimum).

    numeric: values are scaled by the declared unit when present, else by the
    selected unit. Non-numeric entries are skipped. ``excel_like`` flags values
    above the serial threshold with a fractional part; it never changes output.
    """
    if detected_type is TimeType.INVALID:
        return TimeNormalization(
            seconds=[],
            time_type=TimeType.INVALID,
            excel_like=False,
            used_unit=declared_unit or selected_unit,
        )

    if detected_type is TimeType.DATETIME:
        timestamps = [parse_timestamp(v, timezone) for v in raw_values]
        if not timestamps or any(ts is None for ts in timestamps):
            return TimeNormalization(
                seconds=[],
                time_type=TimeType.INVALID,
                excel_like=False,
                used_unit=TimeUnit.SECONDS,
            )
        t0 = timestamps[0]
        return TimeNormalization(
            seconds=[(ts - t0) / 1000 for ts in timestamps],
            time_type=TimeType.DATETIME,
            excel_like=False,
            used_unit=TimeUnit.SECONDS,
            reference_timestamp=t0,
        )

    numbers = [n for n in (parse_numeric_cell(v) for v in raw_values) if n is not None]
    unit = declared_unit or selected_unit
    excel_like = any(abs(n) > excel_serial_threshold and not n.is_integer() for n in numbers)
    return TimeNormalization(
        seconds=[n * unit.factor for n in numbers],
        time_type=TimeType.NUMERIC,
        excel_like=excel_like,
        used_unit=unit,
    )


def compute_time_metrics(seconds: Sequence[float]) -> TimeMetrics:
    if not seconds:
        return TimeMetrics(
            points=0, min_time=0.0, max_time=0.0, dt_min=0.0, dt_median=0.0, monotonic=True
        )

    monotonic = True
    positive: list[float] = []
    for prev, cur in zip(seconds, seconds[1:]):
        diff = cur - prev
        if diff <= 0:
            monotonic = False
        else:
            positive.append(diff)

    return TimeMetrics(
        points=len(seconds),
        min_time=min(seconds),
        max_time=max(seconds),
        dt_min=min(positive) if positive else 0.0,
        dt_median=statistics.median(positive) if positive else 0.0,
        monotonic=monotonic,
        positive_diffs=positive,
    )
