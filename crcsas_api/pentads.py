"""
Pentad Calendar Utilities

Converts between calendar dates and the fixed pentad calendar used by the
CRC-SAS services.

Scientific Context:
Drought indices and precipitation aggregates published by CRC-SAS are
computed over pentads rather than weeks. Every month is split into exactly
six pentads: pentads 1-5 start on days 1, 6, 11, 16 and 21 and last five
days each, while pentad 6 starts on day 26 and absorbs the remainder of the
month (3 to 6 days depending on month length and leap years). A pentad never
crosses a month boundary, so a year always holds 72 pentads.

Examples:
    >>> pentad_of_year(date(2021, 2, 27))
    12
    >>> start_date_of_year_pentad(12, 2021)
    datetime.date(2021, 2, 26)
    >>> end_date_of_pentad(date(2020, 2, 27))
    datetime.date(2020, 2, 29)
"""

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import List, Tuple, Union

import numpy as np
import pandas as pd

from .logging_utils import InvalidDateError

logger = logging.getLogger(__name__)

PENTADS_PER_MONTH = 6
PENTADS_PER_YEAR = 72
PENTAD_LENGTH_DAYS = 5
LAST_PENTAD_START_DAY = 26

DateLike = Union[date, datetime, pd.Timestamp, np.datetime64, str]


def _coerce_date(value: DateLike) -> date:
    """Normalize supported date inputs to ``datetime.date``."""
    # NaT is a datetime instance too
    if value is pd.NaT:
        raise InvalidDateError("Cannot compute pentad of NaT")
    # datetime and pd.Timestamp are date subclasses; drop the time part
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            raise InvalidDateError("Cannot compute pentad of NaT")
        return pd.Timestamp(value).date()
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError as e:
            raise InvalidDateError(f"Malformed date string: {value!r}") from e
    raise InvalidDateError(
        f"Expected a date, datetime or ISO string. Got: {type(value).__name__}"
    )


def _validate_year(year: int) -> None:
    if not isinstance(year, (int, np.integer)) or isinstance(year, bool) or not (1 <= year <= 9999):
        raise InvalidDateError(f"Year must be an integer between 1 and 9999. Got: {year!r}")


def _validate_year_pentad(pentad: int) -> None:
    if not isinstance(pentad, (int, np.integer)) or isinstance(pentad, bool) \
            or not (1 <= pentad <= PENTADS_PER_YEAR):
        raise InvalidDateError(
            f"Pentad of year must be an integer between 1 and {PENTADS_PER_YEAR}. Got: {pentad!r}"
        )


def pentad_of_month(value: DateLike) -> int:
    """
    Pentad of the month (1-6) containing a date.

    Args:
        value: Date to classify

    Returns:
        int: 6 for days after the 25th, otherwise ``(day - 1) // 5 + 1``
    """
    day = _coerce_date(value).day
    if day >= LAST_PENTAD_START_DAY:
        return PENTADS_PER_MONTH
    return (day - 1) // PENTAD_LENGTH_DAYS + 1


def pentad_of_year(value: DateLike) -> int:
    """
    Pentad of the year (1-72) containing a date.

    Args:
        value: Date to classify

    Returns:
        int: ``pentad_of_month + 6 * (month - 1)``
    """
    d = _coerce_date(value)
    return pentad_of_month(d) + PENTADS_PER_MONTH * (d.month - 1)


def start_date_of_year_pentad(pentad: int, year: int) -> date:
    """
    First day of a pentad of the year.

    Args:
        pentad: Pentad of year (1-72)
        year: Calendar year

    Returns:
        date: Start date of the pentad

    Raises:
        InvalidDateError: If pentad or year are out of range
    """
    _validate_year_pentad(pentad)
    _validate_year(year)

    month_pentad = (pentad - 1) % PENTADS_PER_MONTH + 1
    month = (pentad - 1) // PENTADS_PER_MONTH + 1
    return date(int(year), int(month), 1 + PENTAD_LENGTH_DAYS * (month_pentad - 1))


def start_date_of_pentad(value: DateLike) -> date:
    """First day of the pentad containing a date (same month and year)."""
    d = _coerce_date(value)
    return d.replace(day=1 + PENTAD_LENGTH_DAYS * (pentad_of_month(d) - 1))


def end_date_of_pentad(value: DateLike) -> date:
    """
    Last day of the pentad containing a date.

    Pentads 1-5 end on days 5, 10, 15, 20 and 25. Pentad 6 ends on the last
    day of the month, accounting for leap years.
    """
    d = _coerce_date(value)
    month_pentad = pentad_of_month(d)
    if month_pentad < PENTADS_PER_MONTH:
        return d.replace(day=PENTAD_LENGTH_DAYS + PENTAD_LENGTH_DAYS * (month_pentad - 1))
    last_day = calendar.monthrange(d.year, d.month)[1]
    return d.replace(day=last_day)


def end_date_of_year_pentad(pentad: int, year: int) -> date:
    """Last day of a pentad of the year."""
    return end_date_of_pentad(start_date_of_year_pentad(pentad, year))


def pentad_length(value: DateLike) -> int:
    """Number of days in the pentad containing a date (3-6 for pentad 6)."""
    return (end_date_of_pentad(value) - start_date_of_pentad(value)).days + 1


def pentads_between(start: DateLike, end: DateLike) -> List[Tuple[int, date]]:
    """
    List the pentads overlapping a date range.

    Args:
        start: First date of the range (inclusive)
        end: Last date of the range (inclusive)

    Returns:
        List[Tuple[int, date]]: (pentad of year, pentad start date) pairs in
            chronological order. Pentads from different years share indices,
            so the start date disambiguates them.

    Raises:
        InvalidDateError: If start is after end
    """
    start_d = _coerce_date(start)
    end_d = _coerce_date(end)
    if start_d > end_d:
        raise InvalidDateError(f"Start date {start_d} is after end date {end_d}")

    pentads = []
    current = start_date_of_pentad(start_d)
    while current <= end_d:
        pentads.append((pentad_of_year(current), current))
        current = end_date_of_pentad(current) + timedelta(days=1)

    logger.debug(f"Found {len(pentads)} pentads between {start_d} and {end_d}")
    return pentads


def add_pentad_columns(df: pd.DataFrame, date_column: str) -> pd.DataFrame:
    """
    Append pentad columns to a table of dated records.

    Useful for tabular API responses (daily records, index values) that need
    to be grouped by pentad.

    Args:
        df: Table with a date column
        date_column: Name of the column holding dates

    Returns:
        pd.DataFrame: Copy of ``df`` with ``pentad_of_month``,
            ``pentad_of_year`` and ``pentad_start`` columns appended

    Raises:
        InvalidDateError: If the column is missing or holds unparseable dates
    """
    if date_column not in df.columns:
        raise InvalidDateError(f"Column '{date_column}' not found in table")

    try:
        dates = pd.to_datetime(df[date_column])
    except (ValueError, TypeError) as e:
        raise InvalidDateError(f"Column '{date_column}' contains invalid dates: {e}") from e
    if dates.isna().any():
        raise InvalidDateError(f"Column '{date_column}' contains missing dates")

    day = dates.dt.day
    month_pentad = np.where(day >= LAST_PENTAD_START_DAY, PENTADS_PER_MONTH,
                            (day - 1) // PENTAD_LENGTH_DAYS + 1)

    result = df.copy()
    result['pentad_of_month'] = month_pentad.astype(int)
    result['pentad_of_year'] = result['pentad_of_month'] + PENTADS_PER_MONTH * (dates.dt.month - 1)
    result['pentad_start'] = (
        dates.dt.normalize()
        - pd.to_timedelta(day - (1 + PENTAD_LENGTH_DAYS * (result['pentad_of_month'] - 1)), unit='D')
    ).dt.date
    return result
