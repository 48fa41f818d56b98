"""Helpers turning timeline dates into the year labels used as table keys."""

from __future__ import annotations

import numbers
from typing import Any, Iterable, List

import pandas as pd

from lucc_results.errors import ValidationError, require_defined


def year_of(value: Any) -> int:
    """Return the calendar year of a date-like ``value``.

    ``value`` may be an ISO-like date string (``"2001-09-01"``), a
    :class:`datetime.date`, a :class:`pandas.Timestamp`, a
    :class:`numpy.datetime64`, or something that already is a year
    (``2001`` or ``"2001"``).
    """
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        if pd.isna(value):
            raise ValidationError(f"Cannot extract a year from {value!r}.")
        return int(value)

    text = str(value).strip()
    if text.isdigit() and len(text) <= 4:
        return int(text)

    try:
        stamp = pd.Timestamp(value)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Cannot extract a year from {value!r}.") from exc

    # None and "NaT" parse to NaT
    if pd.isna(stamp):
        raise ValidationError(f"Cannot extract a year from {value!r}.")
    return stamp.year


def timeline_years(timeline: Iterable[Any]) -> List[str]:
    """Return the year label (as a string) of every date in ``timeline``.

    Raises
    ------
    ValidationError
        If the timeline is missing, empty, or two dates fall in the same year.
    """
    require_defined(timeline, "timeline must be defined!")
    years = [str(year_of(date)) for date in timeline]

    if not years:
        raise ValidationError("timeline must contain at least one date.")

    duplicated = sorted({year for year in years if years.count(year) > 1})
    if duplicated:
        raise ValidationError(f"timeline has more than one date for years {duplicated}.")

    return years
