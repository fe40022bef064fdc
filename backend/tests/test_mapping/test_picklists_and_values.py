from datetime import date, datetime

import pytest

from docgen.mapping import picklists
from docgen.normalize.dates import to_iso_date
from docgen.normalize.values import as_int, as_text, is_true


class TestPicklists:
    def test_known_code(self):
        assert picklists.resolve("residence_duration", 612320000) == "Less than 3 years"

    def test_numeric_string_code(self):
        assert picklists.resolve("licensed_function", "4") == "Responsible Officer"

    def test_none_stays_blank(self):
        assert picklists.resolve("country", None) == ""

    def test_unknown_code_uses_list_default(self):
        assert picklists.resolve("country", 999) == "Unknown Country"
        assert picklists.resolve("citizenship_count", 999) == "N/A"
        assert picklists.resolve("country", 999, default="?") == "?"

    def test_text_passes_through_as_label(self):
        assert picklists.resolve("country", " Oman ") == "Oman"

    def test_unknown_list(self):
        with pytest.raises(KeyError):
            picklists.resolve("no_such_list", 1)


class TestValues:
    def test_as_text(self):
        assert as_text("  x ") == "x"
        assert as_text("   ") is None
        assert as_text(None) is None
        assert as_text(12) == "12"
        with pytest.raises(TypeError):
            as_text(True)

    def test_is_true_is_strict(self):
        assert is_true(True) is True
        assert is_true(1) is False
        assert is_true("true") is False

    def test_as_int(self):
        assert as_int(5) == 5
        assert as_int(" 612320000 ") == 612320000
        assert as_int(True) is None
        assert as_int("abc") is None


class TestDates:
    def test_iso_variants(self):
        assert to_iso_date("2024-02-29") == "2024-02-29"
        assert to_iso_date("2024-02-29T10:00:00Z") == "2024-02-29"
        assert to_iso_date(date(2024, 1, 2)) == "2024-01-02"
        assert to_iso_date(datetime(2024, 1, 2, 3, 4)) == "2024-01-02"
        assert to_iso_date("") is None
        assert to_iso_date(None) is None

    @pytest.mark.parametrize("bad", ["29.02.2024", "2023-02-29", "yesterday"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            to_iso_date(bad)
