"""Tests for input validation."""

import pytest

from tallyboard.models import Category
from tallyboard.validation import CounterValidator, IncomeValidator


class TestCounterValidator:
    """Tests for counter and category input."""

    def setup_method(self):
        self.validator = CounterValidator()

    def test_valid_counter(self):
        assert self.validator.validate_counter("Push-ups", 10).is_valid
        assert self.validator.validate_counter("Push-ups", None).is_valid

    def test_missing_name(self):
        result = self.validator.validate_counter("   ")
        assert not result.is_valid
        assert result.issues[0].field == "name"
        assert result.issues[0].issue_type == "missing"

    def test_none_name(self):
        assert not self.validator.validate_counter(None).is_valid

    def test_name_too_long(self):
        result = self.validator.validate_counter("x" * 101)
        assert result.issues[0].issue_type == "too_long"

    @pytest.mark.parametrize("max_value", [0, -1, 1.5, "3", True])
    def test_bad_threshold(self, max_value):
        result = self.validator.validate_counter("x", max_value)
        assert [i.field for i in result.issues] == ["maxValue"]

    def test_reports_every_issue(self):
        result = self.validator.validate_counter("", 0)
        assert result.error_count == 2

    def test_category_duplicate(self):
        categories = [Category(id=1, name="Daily"), Category(id=2, name="Weekly")]
        result = self.validator.validate_category_name("  DAILY ", categories)
        assert result.issues[0].issue_type == "duplicate"

    def test_category_rename_to_itself(self):
        categories = [Category(id=1, name="Daily")]
        assert self.validator.validate_category_name("daily", categories, exclude_id=1).is_valid

    def test_category_non_text(self):
        result = self.validator.validate_category_name(42, [])
        assert result.issues[0].issue_type == "invalid_type"


class TestIncomeValidator:
    """Tests for ledger input."""

    def setup_method(self):
        self.validator = IncomeValidator()

    def test_valid_item(self):
        assert self.validator.validate_item("Gold", 1.25, 3).is_valid
        assert self.validator.validate_item("Gold", 0, 0).is_valid

    @pytest.mark.parametrize("price, qty, field", [
        (-0.1, 1, "price"),
        (None, 1, "price"),
        (1, -1, "qty"),
        (1, 2.0, "qty"),
    ])
    def test_bad_numbers(self, price, qty, field):
        result = self.validator.validate_item("x", price, qty)
        assert [i.field for i in result.issues] == [field]

    def test_gold_price(self):
        assert self.validator.validate_gold_price(0).is_valid
        assert self.validator.validate_gold_price(612.3).is_valid
        assert not self.validator.validate_gold_price(-1).is_valid
        assert not self.validator.validate_gold_price("600").is_valid
