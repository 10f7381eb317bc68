"""
Data Models Package

This package contains all Pydantic models used in Tallyboard.
All data flowing through the system must conform to these schemas.
"""

from tallyboard.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from tallyboard.models.counter import (
    COUNTERS_STORAGE_KEY,
    DEFAULT_CATEGORY_NAME,
    LEGACY_DEFAULT_CATEGORY_ID,
    Category,
    Counter,
    PersistedRoot,
)
from tallyboard.models.image import (
    ImageRef,
    InlineImage,
    StoredImage,
    decode_data_uri,
    parse_image_ref,
    reference_basename,
)
from tallyboard.models.income import (
    DEFAULT_ITEM_NAME,
    INCOME_STORAGE_KEY,
    WAN,
    IncomeItem,
    IncomeRoot,
    IncomeTotals,
)
from tallyboard.models.preferences import DEFAULT_THEME, THEME_STORAGE_KEY, Theme
from tallyboard.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Counter models
    "COUNTERS_STORAGE_KEY",
    "DEFAULT_CATEGORY_NAME",
    "LEGACY_DEFAULT_CATEGORY_ID",
    "Category",
    "Counter",
    "PersistedRoot",
    # Image references
    "ImageRef",
    "InlineImage",
    "StoredImage",
    "decode_data_uri",
    "parse_image_ref",
    "reference_basename",
    # Income ledger
    "DEFAULT_ITEM_NAME",
    "INCOME_STORAGE_KEY",
    "WAN",
    "IncomeItem",
    "IncomeRoot",
    "IncomeTotals",
    # Preferences
    "DEFAULT_THEME",
    "THEME_STORAGE_KEY",
    "Theme",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
