"""
Tests for censored ("less than") quantities.
"""

import math

import pytest

from labcert.analysis.censored import (
    CensoredQuantity,
    InvalidQuantity,
    format_censored,
    format_stored_concentration,
    parse_censored,
)
from labcert.errors import InvalidMeasurement


class TestParse:
    """Tests for parse_censored."""

    def test_plain_number(self):
        value = parse_censored("12.5")
        assert value == CensoredQuantity(magnitude=12.5, censored=False)

    def test_censored_number(self):
        value = parse_censored("<0.05")
        assert value.censored is True
        assert value.magnitude == pytest.approx(0.05)

    def test_whitespace_after_prefix(self):
        value = parse_censored("  < 2 ")
        assert value == CensoredQuantity(magnitude=2.0, censored=True)

    @pytest.mark.parametrize("raw", ["", "   ", "<", None, "abc", "<abc", "-1", "<-0.5", "nan", "inf"])
    def test_invalid_inputs(self, raw):
        value = parse_censored(raw)
        assert isinstance(value, InvalidQuantity)
        assert not value

    def test_numeric_input(self):
        assert parse_censored(3) == CensoredQuantity(magnitude=3.0)


class TestCensoredQuantity:
    """Tests for the quantity value type."""

    def test_rejects_negative(self):
        with pytest.raises(InvalidMeasurement):
            CensoredQuantity(magnitude=-0.1)

    def test_rejects_non_finite(self):
        with pytest.raises(InvalidMeasurement):
            CensoredQuantity(magnitude=math.inf)

    def test_rejects_bool(self):
        with pytest.raises(InvalidMeasurement):
            CensoredQuantity(magnitude=True)

    def test_invalid_measurement_is_value_error(self):
        with pytest.raises(ValueError):
            CensoredQuantity(magnitude="1.0")

    def test_format_precision(self):
        assert CensoredQuantity(0.05).format() == "0.0500"
        assert CensoredQuantity(0.05, censored=True).format(2) == "<0.05"

    def test_format_keeps_prefix_through_parse(self):
        assert parse_censored("<0.0123").format() == "<0.0123"
        assert parse_censored("0.0123").format() == "0.0123"


    def test_negative_zero_formats_as_zero(self):
        assert parse_censored("-0").format() == "0.0000"
        assert parse_censored("<-0").format() == "<0.0000"
        assert CensoredQuantity(-0.0).format() == "0.0000"


class TestFormatting:
    """Tests for display helpers."""

    def test_format_none(self):
        assert format_censored(None) == "-"

    def test_format_invalid(self):
        assert format_censored(parse_censored("n/a")) == "-"

    def test_stored_concentration_reformatted(self):
        assert format_stored_concentration("<0.00052") == "<0.0005"
        assert format_stored_concentration("0.025") == "0.0250"

    def test_stored_concentration_blank(self):
        assert format_stored_concentration("") == "-"
        assert format_stored_concentration(None) == "-"

    def test_stored_concentration_note_passthrough(self):
        assert format_stored_concentration("Failed") == "Failed"
