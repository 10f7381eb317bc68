"""Exceptions raised by the domain controllers."""

from tallyboard.models.validation import ValidationResult


class TallyboardError(Exception):
    """Base exception for domain operations."""
    pass


class ValidationFailedError(TallyboardError):
    """User input was rejected; state is unchanged."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.summary() or "Validation failed")


class ConfirmationRequiredError(TallyboardError):
    """A destructive operation was called without confirmation."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"'{action}' requires explicit confirmation")


class NoCategoryError(TallyboardError):
    """A counter cannot be created before any category exists."""
    pass


class NotFoundError(TallyboardError):
    """Base exception for unknown ids."""

    entity = "entity"

    def __init__(self, entity_id: int):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")


class CounterNotFoundError(NotFoundError):
    entity = "Counter"


class CategoryNotFoundError(NotFoundError):
    entity = "Category"


class IncomeItemNotFoundError(NotFoundError):
    entity = "Income item"
