"""
Input Validation

DESIGN DECISION: Every user input is checked before any state changes.
Validators return a ValidationResult listing every issue; they never
raise and never fix values. The controllers turn a failed result into a
ValidationFailedError and leave state untouched, so the UI can re-prompt.

Two validators:
- CounterValidator: counter names, thresholds and category names
- IncomeValidator: ledger item names, prices, quantities and the daily
  gold price
"""

from numbers import Real
from typing import Any, Iterable, Optional

from tallyboard.models.counter import Category
from tallyboard.models.validation import ValidationIssue, ValidationResult


NAME_MAX_LENGTH = 100


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _check_name(field: str, name: Optional[str], label: str) -> list[ValidationIssue]:
    issues = []
    if name is not None and not isinstance(name, str):
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_type",
            message=f"{label} must be text",
        ))
        return issues

    stripped = (name or "").strip()
    if not stripped:
        issues.append(ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{label} is required",
            suggested_fix=f"Enter a {label.lower()}",
        ))
    elif len(stripped) > NAME_MAX_LENGTH:
        issues.append(ValidationIssue(
            field=field,
            issue_type="too_long",
            message=f"{label} must be at most {NAME_MAX_LENGTH} characters",
        ))
    return issues


class CounterValidator:
    """Validates counter and category input."""

    def validate_counter(self, name: Optional[str], max_value: Any = None) -> ValidationResult:
        """
        Check a counter's name and optional threshold.

        The threshold, when given, must be a positive integer.
        """
        issues = _check_name("name", name, "Counter name")
        issues.extend(self.validate_max_value(max_value).issues)
        return ValidationResult(issues=issues)

    def validate_max_value(self, max_value: Any) -> ValidationResult:
        issues = []
        if max_value is not None and not (_is_int(max_value) and max_value >= 1):
            issues.append(ValidationIssue(
                field="maxValue",
                issue_type="invalid_value",
                message="Maximum value must be a positive integer",
                suggested_fix="Enter a whole number of at least 1, or leave it empty",
            ))
        return ValidationResult(issues=issues)

    def validate_category_name(
        self,
        name: Optional[str],
        categories: Iterable[Category],
        exclude_id: Optional[int] = None,
    ) -> ValidationResult:
        """
        Check a category name for presence and case-insensitive uniqueness.

        Args:
            name: Proposed name
            categories: Existing categories
            exclude_id: Category being renamed (compared against everyone else)
        """
        issues = _check_name("name", name, "Category name")
        if issues:
            return ValidationResult(issues=issues)

        wanted = name.strip().casefold()
        for category in categories:
            if category.id == exclude_id:
                continue
            if category.name.strip().casefold() == wanted:
                issues.append(ValidationIssue(
                    field="name",
                    issue_type="duplicate",
                    message=f"A category named '{category.name}' already exists",
                    suggested_fix="Choose a different name",
                ))
                break
        return ValidationResult(issues=issues)


class IncomeValidator:
    """Validates income ledger input."""

    def validate_item(
        self,
        name: Optional[str],
        price: Any = 0,
        qty: Any = 0,
    ) -> ValidationResult:
        issues = _check_name("name", name, "Item name")

        if not _is_number(price) or price < 0:
            issues.append(ValidationIssue(
                field="price",
                issue_type="invalid_value",
                message="Price must be a number of at least 0",
            ))

        if not _is_int(qty) or qty < 0:
            issues.append(ValidationIssue(
                field="qty",
                issue_type="invalid_value",
                message="Quantity must be a whole number of at least 0",
            ))

        return ValidationResult(issues=issues)

    def validate_gold_price(self, price: Any) -> ValidationResult:
        issues = []
        if not _is_number(price) or price < 0:
            issues.append(ValidationIssue(
                field="dailyGoldPrice",
                issue_type="invalid_value",
                message="Daily gold price must be a number of at least 0",
            ))
        return ValidationResult(issues=issues)
