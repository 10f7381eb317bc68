"""
Application Wiring for Tallyboard

This module builds every component the UI needs and connects them:
1. Settings and logging
2. The local key-value store and the state repositories
3. The image store, with its transport chosen here and only here
4. The counter and income controllers, sharing one change bus

DESIGN DECISION: The domain layer never asks which transport it is
using. The choice between the in-process store and the HTTP client is
made once, from settings, and injected.
"""

from typing import Callable, Optional

from tallyboard.audit import AuditLogger, configure_logging, get_logger
from tallyboard.config import ImageTransport, Settings, get_settings
from tallyboard.domain import CounterController, IncomeLedgerController, ThresholdReached
from tallyboard.services.image import (
    HttpImageStore,
    ImageCompressor,
    ImageStoreInterface,
    InProcessImageStore,
    LocalImageStore,
)
from tallyboard.services.storage import JsonFileStore, KeyValueStore
from tallyboard.state import (
    CounterStateRepository,
    IncomeStateRepository,
    StateChangeBus,
    ThemeRepository,
)


logger = get_logger(__name__)


class AppComponents:
    """Everything the UI shell talks to."""

    def __init__(
        self,
        counters: CounterController,
        income: IncomeLedgerController,
        themes: ThemeRepository,
        image_store: ImageStoreInterface,
        compressor: ImageCompressor,
        bus: StateChangeBus,
        audit_logger: AuditLogger,
    ):
        self.counters = counters
        self.income = income
        self.themes = themes
        self.image_store = image_store
        self.compressor = compressor
        self.bus = bus
        self.audit_logger = audit_logger

    def close(self) -> None:
        self.counters.close()
        self.income.close()


def create_image_store(
    settings: Settings,
    audit_logger: Optional[AuditLogger] = None,
) -> ImageStoreInterface:
    """Pick the image store transport from settings."""
    transport = settings.app.image_transport
    if transport == ImageTransport.HTTP:
        base_url = settings.upload_server.base_url
        logger.info("image_transport_selected", transport=transport.value, base_url=base_url)
        return HttpImageStore(base_url)

    storage = settings.storage
    local_store = LocalImageStore(
        storage.uploads_dir,
        assets_dir=storage.assets_dir,
        audit_logger=audit_logger,
    )
    logger.info("image_transport_selected", transport=transport.value, uploads_dir=str(local_store.uploads_dir))
    return InProcessImageStore(local_store)


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    image_store: Optional[ImageStoreInterface] = None,
    on_threshold: Optional[Callable[[ThresholdReached], None]] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to get_settings()
        store: Key-value store; defaults to the JSON file from settings
        image_store: Overrides the transport chosen from settings
        on_threshold: Called when a counter lands on its threshold

    Returns:
        AppComponents
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level, settings.app.json_logs)

    audit_logger = AuditLogger()
    audit_logger.keep_history()
    storage = settings.storage
    if store is None:
        store = JsonFileStore(storage.state_file, quota_bytes=storage.store_quota_bytes)
    if image_store is None:
        image_store = create_image_store(settings, audit_logger)

    bus = StateChangeBus()
    counters = CounterController(
        CounterStateRepository(store, audit_logger),
        image_store,
        bus=bus,
        audit_logger=audit_logger,
        on_threshold=on_threshold,
    )
    income = IncomeLedgerController(
        IncomeStateRepository(store, audit_logger),
        image_store,
        bus=bus,
        audit_logger=audit_logger,
    )
    compressor = ImageCompressor(
        max_width=settings.app.max_image_width,
        qualities=settings.app.quality_ladder,
        max_upload_bytes=settings.app.max_upload_size_bytes,
        max_dimension=settings.app.max_image_dimension,
        audit_logger=audit_logger,
    )

    return AppComponents(
        counters=counters,
        income=income,
        themes=ThemeRepository(store),
        image_store=image_store,
        compressor=compressor,
        bus=bus,
        audit_logger=audit_logger,
    )
