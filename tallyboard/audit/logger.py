"""
Audit Logger

Every state change and image-store operation in Tallyboard is logged.
This provides:
1. Traceability of counter and category changes
2. Debugging capability for failed saves and deletes
3. A record of orphaned image files

The audit logger:
- Is synchronous, like the rest of the domain layer
- Never raises: a logging failure must not break a user action
"""

import logging
import sys
from typing import Optional

import structlog

from tallyboard.models.audit import AuditEvent, AuditSeverity


_configured = False


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure stdlib logging and structlog once per process.

    Later calls are no-ops.
    """
    global _configured
    if _configured:
        return

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None):
    """Get a structlog logger bound to a module name."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Writes each AuditEvent to the structured local log at a level
    matching its severity.
    """

    def __init__(self, logger_name: str = "tallyboard.audit"):
        self._logger = structlog.get_logger(logger_name)
        self._events: list[AuditEvent] = []
        self._keep_history = False

    def keep_history(self, enabled: bool = True) -> None:
        """Keep emitted events in memory (used by the UI's activity panel and tests)."""
        self._keep_history = enabled
        if not enabled:
            self._events.clear()

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        if self._keep_history:
            self._events.append(event)

        try:
            log_dict = event.to_log_dict()
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            logging.getLogger(__name__).error("audit logging failed: %s", e)
