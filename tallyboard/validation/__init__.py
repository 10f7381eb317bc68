"""Validation package."""

from tallyboard.validation.validator import CounterValidator, IncomeValidator

__all__ = ["CounterValidator", "IncomeValidator"]
