"""Year/week arithmetic for the sortable yyyyww week keys."""

import logging
from typing import Iterable, List, Mapping, Optional, Tuple, TypedDict

from .config import (
    DEFAULT_WEEK_COUNT,
    MAX_WEIRD_WEEK,
    WEEK_GENERATION_YEAR_LIMIT,
    WEEK_KEY_FACTOR,
    WEIRD_WEEK_COUNT_LOOKUP,
)

logger = logging.getLogger(__name__)


class RangeWarning(TypedDict):
    """A week or year outside the range the calendar table covers."""
    kind: str
    week_key: Optional[int]
    message: str


def encode_week_key(year: int, week_no: int) -> int:
    """Build a sortable key of format yyyyww (where ww is week number)."""
    return year * WEEK_KEY_FACTOR + week_no


def decode_week_key(week_key: int) -> Tuple[int, int]:
    """Take a yyyyww key and return (year, week_number)."""
    return week_key // WEEK_KEY_FACTOR, week_key % WEEK_KEY_FACTOR


def is_supported_year(year: int) -> bool:
    """Whether the long-year table is known to be complete for ``year``."""
    return year <= MAX_WEIRD_WEEK


def weeks_in_year(year: int) -> int:
    """
    Return the number of weeks in a year.

    Years past the end of the lookup table still get the default count,
    but a warning is logged because the answer has not been validated.
    """
    if not is_supported_year(year):
        logger.warning(
            "Week count lookup does not contain enough data for year: %d",
            year
        )
    return WEIRD_WEEK_COUNT_LOOKUP.get(year, DEFAULT_WEEK_COUNT)


def is_encodable_week(week_no: int) -> bool:
    """Whether ``week_no`` fits the two week digits of a yyyyww key."""
    return 0 <= week_no < WEEK_KEY_FACTOR


def is_valid_week(year: int, week_no: int) -> bool:
    """Whether ``week_no`` exists in ``year``."""
    return 1 <= week_no <= weeks_in_year(year)


def find_resource_period(
    resource_usages: Iterable[Mapping[int, float]]
) -> Optional[Tuple[int, int]]:
    """
    Return the min and max week keys seen across all usages.

    Parameters
    ----------
    resource_usages : Iterable[Mapping[int, float]]
        Week key to quantity mappings, one per resource group

    Returns
    -------
    Optional[Tuple[int, int]]
        (min, max), or None when no usage was recorded at all
    """
    seen_time_points = set()
    for usage in resource_usages:
        seen_time_points.update(usage.keys())

    if not seen_time_points:
        logger.info("No week data found, time axis is empty")
        return None
    return min(seen_time_points), max(seen_time_points)


def gen_all_weeks(min_time: int, max_time: int) -> Tuple[List[int], List[RangeWarning]]:
    """
    Return every week key from ``min_time`` to ``max_time`` inclusive.

    Weeks roll over to week 1 of the next year once they pass that year's
    week count. Generation stops at the year limit and reports it rather
    than running away.

    Parameters
    ----------
    min_time : int
        First week key (yyyyww)
    max_time : int
        Last week key (yyyyww)

    Returns
    -------
    Tuple[List[int], List[RangeWarning]]
        Tuple containing:
        - Ascending week keys
        - Year range problems met along the way
    """
    week_keys: List[int] = []
    warnings: List[RangeWarning] = []
    cur_yr, cur_wk = decode_week_key(min_time)
    checked_year = None
    year_weeks = 0

    while encode_week_key(cur_yr, cur_wk) <= max_time:
        if cur_yr >= WEEK_GENERATION_YEAR_LIMIT:
            message = (
                f"Generating weeks is out of bounds at year {cur_yr}, "
                f"stopping before {encode_week_key(cur_yr, cur_wk)}"
            )
            logger.error(message)
            warnings.append(RangeWarning(
                kind="week-generation-runaway",
                week_key=encode_week_key(cur_yr, cur_wk),
                message=message
            ))
            break

        if cur_yr != checked_year:
            checked_year = cur_yr
            year_weeks = weeks_in_year(cur_yr)
            if not is_supported_year(cur_yr):
                message = f"Week count for year {cur_yr} is not validated, assuming {year_weeks}"
                warnings.append(RangeWarning(
                    kind="unsupported-year",
                    week_key=encode_week_key(cur_yr, cur_wk),
                    message=message
                ))

        week_keys.append(encode_week_key(cur_yr, cur_wk))
        cur_wk += 1
        if cur_wk > year_weeks:
            cur_wk = 1
            cur_yr += 1

    return week_keys, warnings
