"""Tests for number parsing of mention text."""

import pytest

from kbp_relations.numbers import word_to_number


class TestWordToNumber:
    """Tests for word_to_number."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("25", 25),
            ("-5", -5),
            ("1,200", 1200),
            ("twenty-five", 25),
            ("Twenty five", 25),
            ("one hundred and five", 105),
            ("a hundred", 100),
            ("two thousand three hundred", 2300),
            ("3 million", 3_000_000),
            ("minus three", -3),
        ],
    )
    def test_integers(self, text, expected):
        value = word_to_number(text)
        assert value == expected
        assert isinstance(value, int)

    def test_decimal(self):
        value = word_to_number("2.5")
        assert value == pytest.approx(2.5)
        assert isinstance(value, float)

    def test_scaled_decimal_is_integer(self):
        """Should return an int when a decimal times a scale is whole."""
        value = word_to_number("1.5 million")
        assert value == 1_500_000
        assert isinstance(value, int)

    def test_other_scaled_decimals(self):
        value = word_to_number("1.25 thousand")
        assert value == 1250
        assert isinstance(value, int)
        assert word_to_number("0.5 hundred") == 50

    @pytest.mark.parametrize(
        "text",
        ["nineteen eighty-four", "twenty fifteen", "five six", "twenty thirty", "3 4"],
    )
    def test_adjacent_groups_rejected(self, text):
        """Should refuse to sum two number groups that are not joined by a scale."""
        with pytest.raises(ValueError):
            word_to_number(text)

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty(self, text):
        assert word_to_number(text) is None

    @pytest.mark.parametrize("text", ["several", "and", "25 years", "1.2.3"])
    def test_not_a_number(self, text):
        with pytest.raises(ValueError):
            word_to_number(text)
