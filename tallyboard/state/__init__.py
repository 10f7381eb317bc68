"""Persisted state package."""

from tallyboard.state.repository import (
    CounterStateRepository,
    IncomeStateRepository,
    ThemeRepository,
    dumps_root,
)
from tallyboard.state.sync import StateChangeBus

__all__ = [
    # Repositories
    "CounterStateRepository",
    "IncomeStateRepository",
    "ThemeRepository",
    "dumps_root",
    # Sync
    "StateChangeBus",
]
