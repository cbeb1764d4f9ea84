"""Expected end date of a batch.

A batch teaches a fixed number of lectures (see :mod:`academy_calc.lectures`)
on the weekdays listed in its weekly schedule. Starting from the batch start
date, the calculator walks the calendar one day at a time and counts the days
that have a class; the day the last lecture falls on is the expected end date.
Batches without a schedule are assumed to meet every day.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Mapping, Optional, Union

from .data_models import DaySchedule, WeeklySchedule
from .lectures import total_lectures
from .utils import normalize_weekday, parse_user_date

logger = logging.getLogger(__name__)

# The scan gives up after SCAN_LIMIT_FACTOR * lectures * 7 calendar days.
SCAN_LIMIT_FACTOR = 10

ONE_DAY = timedelta(days=1)


class InvalidScheduleError(ValueError):
    """The weekly schedule has entries but none of them names a weekday."""


def parse_schedule(raw: Union[WeeklySchedule, Mapping[Any, Any], None]) -> WeeklySchedule:
    """Build a :class:`WeeklySchedule` from the batch JSON shape.

    ``raw`` looks like ``{"Monday": {"startTime": "10:00", "endTime": "12:00"}}``
    where the day key may be any spelling accepted by
    :func:`~academy_calc.utils.normalize_weekday`. If two keys name the same
    weekday the first one wins.
    """
    if isinstance(raw, WeeklySchedule):
        return raw
    schedule = WeeklySchedule()
    if not raw:
        return schedule
    for key, value in raw.items():
        weekday = normalize_weekday(key)
        if weekday is None:
            schedule.unmatched_keys.append(str(key))
            continue
        if weekday in schedule.days:
            continue
        if isinstance(value, DaySchedule):
            schedule.days[weekday] = value
        else:
            if not isinstance(value, Mapping):
                value = {}
            schedule.days[weekday] = DaySchedule(
                start_time=str(value.get("startTime", "")),
                end_time=str(value.get("endTime", "")),
            )
    return schedule


def expected_end_date(
    start_date: Union[date, str, None],
    software: Optional[str],
    schedule: Union[WeeklySchedule, Mapping[Any, Any], None] = None,
) -> Optional[date]:
    """Return the date of the batch's last lecture.

    Returns ``None`` when the start date or the software list is missing, and
    the start date itself when none of the software is recognised.

    With a schedule, the first scheduled day on or after ``start_date`` is
    lecture 1 and every following scheduled day adds one more. Without one,
    the result is ``start_date`` plus one calendar day per lecture.

    Raises
    ------
    InvalidScheduleError
        If the schedule is not empty but no scheduled weekday can be found
        within the scan limit.
    """
    if not start_date or not software:
        return None
    if isinstance(start_date, str):
        start_date = parse_user_date(start_date)

    lectures = total_lectures(software)
    if lectures == 0:
        logger.debug("No known software in %r; end date is the start date", software)
        return start_date

    weekly = parse_schedule(schedule)
    if weekly.is_empty:
        end = start_date + timedelta(days=lectures)
        logger.debug("No schedule: %d lectures end on %s", lectures, end)
        return end
    if not weekly.days:
        raise InvalidScheduleError(
            "Schedule has no recognisable weekday: " + ", ".join(weekly.unmatched_keys)
        )

    limit = SCAN_LIMIT_FACTOR * lectures * 7
    cursor = start_date
    steps = 0
    while cursor.weekday() not in weekly.days:
        cursor += ONE_DAY
        steps += 1
        if steps > limit:
            raise InvalidScheduleError(f"No scheduled day found within {limit} days")

    sessions = 1
    while sessions < lectures:
        cursor += ONE_DAY
        steps += 1
        if steps > limit:
            raise InvalidScheduleError(f"Schedule did not reach {lectures} lectures within {limit} days")
        if cursor.weekday() in weekly.days:
            sessions += 1

    logger.debug("%d lectures on %d weekday(s) end on %s", lectures, len(weekly.days), cursor)
    return cursor
