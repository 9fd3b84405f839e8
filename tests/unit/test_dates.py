"""
Unit tests for date extraction (Step 3).
"""
import pytest
from datetime import date

from packages.shared.models import DateClassification, PagePosition
from apps.worker.steps.step03_dates import (
    find_dates,
    get_dates,
    has_date,
    order_dates,
    page_position,
    parse_date,
)


class TestParseDate:
    @pytest.mark.parametrize("raw,expected", [
        ("2024-11-22", date(2024, 11, 22)),
        ("2024/11/22", date(2024, 11, 22)),
        ("2024.11.22", date(2024, 11, 22)),
        ("11/22/2024", date(2024, 11, 22)),
        ("11-22-24", date(2024, 11, 22)),
        ("11.22.2024", date(2024, 11, 22)),
        ("22/11/2024", date(2024, 11, 22)),
        ("20241122", date(2024, 11, 22)),
        ("Nov 22, 2024", date(2024, 11, 22)),
        ("November 22nd 2024", date(2024, 11, 22)),
        ("Sept. 3, 2023", date(2023, 9, 3)),
        ("22 Nov 2024", date(2024, 11, 22)),
        ("22nd of November, 2024", date(2024, 11, 22)),
        ("November 2024", date(2024, 11, 1)),
        ("11/2024", date(2024, 11, 1)),
    ])
    def test_supported_forms(self, raw, expected):
        assert parse_date(raw) == expected

    def test_two_digit_year_is_this_century(self):
        assert parse_date("03/15/24") == date(2024, 3, 15)

    def test_month_first_when_ambiguous(self):
        assert parse_date("03/04/2024") == date(2024, 3, 4)

    def test_day_first_fallback(self):
        assert parse_date("15/03/2024") == date(2024, 3, 15)

    @pytest.mark.parametrize("raw", ["", "hello", "2024-02-30", "13/13/2024", "Feb 30, 2024"])
    def test_invalid(self, raw):
        assert parse_date(raw) is None


class TestFindDates:
    def test_empty_text(self):
        assert find_dates("") == []

    def test_text_order_and_no_overlap(self):
        text = "Seen 01/05/2024 and again on Feb 3, 2024; imaging 2024-03-10."
        dates = find_dates(text)
        assert [d.iso for d in dates] == ["2024-01-05", "2024-02-03", "2024-03-10"]
        offsets = [d.offset for d in dates]
        assert offsets == sorted(offsets)
        for a, b in zip(dates, dates[1:]):
            assert a.offset + len(a.raw) <= b.offset

    def test_raw_and_offset_point_into_text(self):
        text = "Visit on 03/15/2024."
        d = find_dates(text)[0]
        assert text[d.offset:d.offset + len(d.raw)] == d.raw == "03/15/2024"

    def test_invalid_calendar_date_dropped(self):
        dates = find_dates("Seen 02/30/2024 then 03/01/2024")
        assert [d.iso for d in dates] == ["2024-03-01"]

    def test_context_windows_are_trimmed(self):
        d = find_dates("Date of Service:   03/15/2024   follow up")[0]
        assert d.context_before == "Date of Service:"
        assert d.context_after == "follow up"

    def test_classification_attached(self):
        text = "DOB: 01/02/1980\n" + "x " * 40 + "\nDate of Service: 03/15/2024"
        dates = find_dates(text)
        assert dates[0].classification == DateClassification.DATE_OF_BIRTH
        assert dates[1].classification == DateClassification.DATE_OF_SERVICE

    def test_date_inside_word_not_matched(self):
        assert find_dates("ref A12/12/2024B") == []


class TestPagePosition:
    def test_zero_length_is_top(self):
        assert page_position(0, 0) == PagePosition.TOP

    @pytest.mark.parametrize("offset,expected", [
        (0, PagePosition.TOP),
        (19, PagePosition.TOP),
        (20, PagePosition.MIDDLE),
        (80, PagePosition.MIDDLE),
        (81, PagePosition.BOTTOM),
    ])
    def test_thresholds(self, offset, expected):
        assert page_position(offset, 100) == expected


class TestHelpers:
    def test_has_date(self):
        assert has_date("Seen March 3, 2024")
        assert not has_date("No dates at all, 500 mg BID")

    def test_get_dates(self):
        assert get_dates("01/05/2024 then 2024-01-04") == ["2024-01-05", "2024-01-04"]

    def test_order_dates_chronological_with_invalid_last(self):
        values = ["03/15/2024", "garbage", "2023-01-01", "Feb 1, 2024", "nope"]
        assert order_dates(values) == ["2023-01-01", "Feb 1, 2024", "03/15/2024", "garbage", "nope"]
