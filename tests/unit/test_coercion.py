"""Tests for answer coercion helpers."""

from datetime import date, datetime

import pytest

from formflow.utils.coercion import as_text, is_empty, normalize_number, to_date, to_number


class TestIsEmpty:
    @pytest.mark.parametrize("value", [None, "", "   ", [], (), {}, set()])
    def test_empty(self, value):
        assert is_empty(value)

    @pytest.mark.parametrize("value", ["a", 0, False, ["x"], 0.0])
    def test_not_empty(self, value):
        assert not is_empty(value)


class TestToNumber:
    @pytest.mark.parametrize("value,expected", [
        (3, 3.0),
        (2.5, 2.5),
        ("42", 42.0),
        (" -7.5 ", -7.5),
        ("1,250", 1250.0),
        (".5", 0.5),
        ("1e3", 1000.0),
    ])
    def test_parses(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [None, True, False, "", "abc", "12abc", ["1"], {"a": 1}])
    def test_rejects(self, value):
        assert to_number(value) is None


class TestNormalizeNumber:
    def test_integral_float_becomes_int(self):
        assert normalize_number(27.0) == 27
        assert isinstance(normalize_number(27.0), int)

    def test_fraction_kept(self):
        assert normalize_number(1.5) == 1.5


class TestToDate:
    def test_iso(self):
        assert to_date("2026-03-15") == date(2026, 3, 15)
        assert to_date("2026-03-15T10:30:00Z") == date(2026, 3, 15)

    def test_us(self):
        assert to_date("03/15/2026") == date(2026, 3, 15)

    def test_date_objects(self):
        assert to_date(date(2026, 1, 2)) == date(2026, 1, 2)
        assert to_date(datetime(2026, 1, 2, 8, 0)) == date(2026, 1, 2)

    @pytest.mark.parametrize("value", ["2026-02-30", "15.03.2026", "", None, 20260315])
    def test_invalid(self, value):
        assert to_date(value) is None


class TestAsText:
    def test_render(self):
        assert as_text(None) == ""
        assert as_text(True) == "true"
        assert as_text(3.0) == "3"
        assert as_text(3.5) == "3.5"
        assert as_text("x") == "x"
