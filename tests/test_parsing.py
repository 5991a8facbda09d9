"""Tests for value parsing."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from medisync.core.normalize.parsing import (
    clean_text,
    parse_amount,
    parse_date,
    parse_date_value,
    parse_datetime_value,
    parse_duration_minutes,
    parse_flag,
    parse_int,
)


class TestDates:
    def test_swiss_date(self):
        parsed = parse_date("31.12.2024")

        assert parsed.value == datetime(2024, 12, 31)
        assert parsed.format_detected == "swiss"
        assert parsed.confidence == 1.0

    def test_swiss_datetime(self):
        assert parse_datetime_value("05.03.2025 14:30") == datetime(2025, 3, 5, 14, 30)

    def test_swiss_datetime_with_h_separator(self):
        assert parse_datetime_value("05.03.2025 9h15") == datetime(2025, 3, 5, 9, 15)

    def test_iso(self):
        assert parse_datetime_value("2025-03-05T08:45") == datetime(2025, 3, 5, 8, 45)

    def test_day_first_slash(self):
        assert parse_date_value("04/05/2025") == date(2025, 5, 4)

    def test_seconds_dropped(self):
        assert parse_datetime_value(datetime(2025, 1, 2, 3, 4, 59)) == datetime(2025, 1, 2, 3, 4)

    def test_date_object(self):
        assert parse_datetime_value(date(2025, 1, 2)) == datetime(2025, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank(self, value):
        parsed = parse_date(value)

        assert parsed.value is None
        assert parsed.confidence == 0.0


class TestAmounts:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("CHF 1'234.50", Decimal("1234.50")),
            ("1 234,50", Decimal("1234.50")),
            ("1.234,56", Decimal("1234.56")),
            ("12.-", Decimal("12")),
            ("-48.00", Decimal("-48.00")),
            ("96", Decimal("96")),
        ],
    )
    def test_formats(self, text, expected):
        assert parse_amount(text) == expected

    def test_no_number(self):
        assert parse_amount("gratuit") is None

    def test_numbers_pass_through(self):
        assert parse_amount(Decimal("1.5")) == Decimal("1.5")
        assert parse_amount(3) == Decimal("3")


class TestDurations:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("45", 45),
            ("45 min", 45),
            ("1h30", 90),
            ("01:30", 90),
            ("2h", 120),
        ],
    )
    def test_formats(self, text, expected):
        assert parse_duration_minutes(text) == expected

    def test_blank(self):
        assert parse_duration_minutes("") is None
        assert parse_duration_minutes(None) is None

    def test_leading_integer(self):
        assert parse_int("Séance 3") == 3
        assert parse_int("aucune") is None


class TestFlagsAndText:
    @pytest.mark.parametrize("text", ["Oui", "true", "checked", "1"])
    def test_true(self, text):
        assert parse_flag(text) is True

    @pytest.mark.parametrize("text", ["Non", "false", "0"])
    def test_false(self, text):
        assert parse_flag(text) is False

    def test_unknown_flag(self):
        assert parse_flag("peut-être") is None

    def test_clean_text(self):
        assert clean_text("  Jean\xa0 Dupont \n") == "Jean Dupont"
        assert clean_text("   ") is None
        assert clean_text(None) is None
