from datetime import date

import pytest

from curlbot.services.date_utils import next_n_dates, next_weekday_date, parse_weekday_name

MONDAY = date(2024, 1, 1)


class TestNextNDates:
    def test_includes_start_date(self):
        assert next_n_dates(3, MONDAY) == ["2024-01-01", "2024-01-02", "2024-01-03"]

    def test_crosses_month_end(self):
        assert next_n_dates(2, date(2024, 1, 31)) == ["2024-01-31", "2024-02-01"]

    def test_zero(self):
        assert next_n_dates(0, MONDAY) == []


class TestNextWeekdayDate:
    def test_later_this_week(self):
        assert next_weekday_date(2, MONDAY) == "2024-01-02"

    def test_sunday_is_zero(self):
        assert next_weekday_date(0, MONDAY) == "2024-01-07"

    def test_same_weekday_moves_a_week(self):
        assert next_weekday_date(1, MONDAY) == "2024-01-08"

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            next_weekday_date(7, MONDAY)


class TestParseWeekdayName:
    def test_full_name(self):
        assert parse_weekday_name("Wednesday") == 3

    def test_abbreviation(self):
        assert parse_weekday_name("WEDS") == 3

    def test_sunday(self):
        assert parse_weekday_name("sun") == 0

    def test_too_short(self):
        assert parse_weekday_name("tu") is None

    def test_unknown(self):
        assert parse_weekday_name("someday") is None

    def test_empty(self):
        assert parse_weekday_name(None) is None
