from datetime import date

import pytest

from academy_calc.batch_schedule import InvalidScheduleError, expected_end_date, parse_schedule
from academy_calc.data_models import DaySchedule

MONDAY = {"startTime": "10:00", "endTime": "12:00"}


def test_weekly_schedule_counts_only_class_days():
    # 23 Photoshop lectures, every Monday from Monday 2024-01-01.
    assert expected_end_date(date(2024, 1, 1), "Photoshop", {"Monday": MONDAY}) == date(2024, 6, 3)


@pytest.mark.parametrize("key", ["Monday", "Mon", "monday", "mon", "1"])
def test_day_key_spellings_are_equivalent(key):
    assert expected_end_date(date(2024, 1, 1), "Photoshop", {key: MONDAY}) == date(2024, 6, 3)


@pytest.mark.parametrize("key", ["Sunday", "0", "7"])
def test_sunday_keys(key):
    assert expected_end_date(date(2024, 1, 1), "Photoshop", {key: MONDAY}) == date(2024, 6, 9)


def test_start_on_unscheduled_day_moves_to_first_class():
    # Wednesday start, Monday classes: lecture 1 is on 2024-01-08.
    assert expected_end_date(date(2024, 1, 3), "Photoshop", {"Monday": MONDAY}) == date(2024, 6, 10)


def test_several_class_days_per_week():
    schedule = {"Monday": MONDAY, "Wed": MONDAY}
    # XD has 6 lectures: Jan 1, 3, 8, 10, 15, 17.
    assert expected_end_date(date(2024, 1, 1), "XD", schedule) == date(2024, 1, 17)


def test_without_schedule_one_lecture_per_day():
    assert expected_end_date(date(2024, 1, 1), "Photoshop", None) == date(2024, 1, 24)
    assert expected_end_date(date(2024, 1, 1), "Photoshop", {}) == date(2024, 1, 24)


def test_missing_inputs_give_no_date():
    assert expected_end_date(None, "Photoshop", {"Monday": MONDAY}) is None
    assert expected_end_date(date(2024, 1, 1), "", {"Monday": MONDAY}) is None


def test_unknown_software_ends_on_start_date():
    assert expected_end_date(date(2024, 1, 1), "Excel", {"Monday": MONDAY}) == date(2024, 1, 1)


def test_start_date_may_be_a_string():
    assert expected_end_date("2024-01-01", "Photoshop", {"Monday": MONDAY}) == date(2024, 6, 3)
    assert expected_end_date("01/01/2024", "Photoshop", {"Monday": MONDAY}) == date(2024, 6, 3)


def test_schedule_without_weekdays_is_rejected():
    with pytest.raises(InvalidScheduleError):
        expected_end_date(date(2024, 1, 1), "Photoshop", {"foo": {"startTime": "9:00", "endTime": "10:00"}})


def test_parse_schedule_keeps_first_entry_per_weekday():
    schedule = parse_schedule(
        {
            "Monday": {"startTime": "10:00", "endTime": "12:00"},
            "mon": {"startTime": "14:00", "endTime": "16:00"},
            "holiday": {},
        }
    )
    assert schedule.days == {0: DaySchedule("10:00", "12:00")}
    assert schedule.unmatched_keys == ["holiday"]
    assert not schedule.is_empty
    assert parse_schedule(None).is_empty
