"""
Node Extraction Tests

Covers tolerant text/number/date extraction, Experian compact date decoding,
and dotted-path resolution over parsed XML trees.
"""
import pytest
import sys
import os
from datetime import date

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from credit_ingest.services.parsing.extractors import (
    as_list,
    extract_date,
    extract_number,
    extract_text,
    find_value_from_paths,
    get_nested_value,
    parse_compact_date,
)
from credit_ingest.services.parsing.nodes import TextNode


# =============================================================================
# TEST: extract_text
# =============================================================================

class TestExtractText:

    def test_string_is_trimmed(self):
        assert extract_text("  John  ") == "John"

    def test_numbers_are_stringified(self):
        assert extract_text(750) == "750"
        assert extract_text(750.0) == "750"
        assert extract_text(12.5) == "12.5"
        assert extract_text(0) == "0"

    def test_text_node(self):
        assert extract_text(TextNode(text=" 500 ", attributes={"currency": "INR"})) == "500"

    def test_mapping_with_text_key(self):
        assert extract_text({"#text": " Mumbai ", "@type": "city"}) == "Mumbai"
        assert extract_text({"#text": 400001}) == "400001"

    def test_mapping_without_text_key_returns_first_string(self):
        assert extract_text({"Code": 10, "Label": "Credit Card", "Other": "x"}) == "Credit Card"

    def test_mapping_without_strings_is_empty(self):
        assert extract_text({"a": 1, "b": {"c": "nested"}}) == ""

    @pytest.mark.parametrize("node", [None, [], ["a"], True, object()])
    def test_unsupported_nodes_are_empty(self, node):
        assert extract_text(node) == ""


# =============================================================================
# TEST: extract_number
# =============================================================================

class TestExtractNumber:

    def test_plain_numbers(self):
        assert extract_number("75000") == 75000.0
        assert extract_number(42) == 42.0

    def test_currency_and_grouping_stripped(self):
        assert extract_number("1,25,000") == 125000.0
        assert extract_number("₹ 2,500.50") == 2500.5

    def test_negative(self):
        assert extract_number("-150") == -150.0

    @pytest.mark.parametrize("node", ["", "N/A", None, {}, "--", "."])
    def test_invalid_is_zero(self, node):
        assert extract_number(node) == 0.0

    def test_leading_number_wins(self):
        assert extract_number("12.5.1") == 12.5


# =============================================================================
# TEST: extract_date
# =============================================================================

class TestExtractDate:

    def test_empty_is_none(self):
        assert extract_date("") is None
        assert extract_date(None) is None

    def test_iso_date(self):
        assert extract_date("2024-10-15") == date(2024, 10, 15)

    def test_compact_date(self):
        assert extract_date("20241015") == date(2024, 10, 15)

    def test_day_first_date(self):
        assert extract_date("15/10/2024") == date(2024, 10, 15)

    def test_free_form_date(self):
        assert extract_date("15 Oct 2024") == date(2024, 10, 15)

    def test_garbage_is_none(self):
        assert extract_date("not a date") is None


# =============================================================================
# TEST: parse_compact_date
# =============================================================================

class TestParseCompactDate:

    def test_valid_code(self):
        result = parse_compact_date("19900515")
        assert result == date(1990, 5, 15)
        assert result.month == 5

    @pytest.mark.parametrize("code", ["00010201", "00011231", "00010101"])
    def test_year_0001_is_absent(self, code):
        assert parse_compact_date(code) is None

    @pytest.mark.parametrize("code", ["", "2024101", "202410150", "2024-10-15", None])
    def test_wrong_length_is_absent(self, code):
        assert parse_compact_date(code) is None

    def test_impossible_calendar_date_is_absent(self):
        assert parse_compact_date("20241340") is None

    def test_non_digit_is_absent(self):
        assert parse_compact_date("2024AB01") is None


# =============================================================================
# TEST: path resolution
# =============================================================================

class TestPathResolution:

    @pytest.fixture
    def doc(self):
        return {
            "XMLResponse": {
                "Response": {"CreditReport": {"Name": "Jane"}},
                "Empty": None,
            },
            "Flat": "value",
        }

    def test_get_nested_value(self, doc):
        assert get_nested_value(doc, "XMLResponse.Response.CreditReport.Name") == "Jane"

    def test_missing_intermediate_is_none(self, doc):
        assert get_nested_value(doc, "XMLResponse.Missing.CreditReport") is None

    def test_walking_through_scalar_is_none(self, doc):
        assert get_nested_value(doc, "Flat.Deeper") is None

    def test_explicit_none_is_none(self, doc):
        assert get_nested_value(doc, "XMLResponse.Empty") is None

    def test_non_mapping_doc(self):
        assert get_nested_value(None, "a.b") is None
        assert get_nested_value(["a"], "a") is None

    def test_find_value_from_paths_first_match(self, doc):
        paths = ["Nope", "XMLResponse.Empty", "XMLResponse.Response.CreditReport.Name", "Flat"]
        assert find_value_from_paths(doc, paths) == "Jane"

    def test_find_value_from_paths_no_match(self, doc):
        assert find_value_from_paths(doc, ["Nope", "Also.Nope"]) is None

    def test_as_list(self):
        assert as_list(None) == []
        assert as_list({"a": 1}) == [{"a": 1}]
        assert as_list([1, 2]) == [1, 2]
