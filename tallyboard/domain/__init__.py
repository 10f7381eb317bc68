"""Domain logic package."""

from tallyboard.domain.base import StateController
from tallyboard.domain.counters import CounterController, ThresholdReached
from tallyboard.domain.errors import (
    CategoryNotFoundError,
    ConfirmationRequiredError,
    CounterNotFoundError,
    IncomeItemNotFoundError,
    NoCategoryError,
    NotFoundError,
    TallyboardError,
    ValidationFailedError,
)
from tallyboard.domain.income import IncomeLedgerController

__all__ = [
    # Controllers
    "CounterController",
    "IncomeLedgerController",
    "StateController",
    "ThresholdReached",
    # Exceptions
    "CategoryNotFoundError",
    "ConfirmationRequiredError",
    "CounterNotFoundError",
    "IncomeItemNotFoundError",
    "NoCategoryError",
    "NotFoundError",
    "TallyboardError",
    "ValidationFailedError",
]
