"""
Service wiring.

Builds the store, lifecycle service, access-link service and template cache
from a ``FormwrightConfig``, the way an embedding application would start
formwright.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from formwright.config import FormwrightConfig, load_config
from formwright.core.compiler import TemplateCache
from formwright.runtime.access_links import AccessLinkService
from formwright.runtime.sqlite_store import SQLiteStore
from formwright.runtime.workflow import FormInstanceService

logger = logging.getLogger(__name__)


@dataclass
class FormwrightServices:
    """Configured services sharing one store."""

    config: FormwrightConfig
    store: SQLiteStore
    instances: FormInstanceService
    links: AccessLinkService
    templates: TemplateCache

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> FormwrightServices:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def create_services(
    config: FormwrightConfig | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FormwrightServices:
    """
    Create the formwright services.

    Args:
        config: Loaded configuration (default: ``load_config()``)
        clock: Current-time source shared by the services (default: UTC now)

    Example:
        >>> with create_services() as services:
        ...     instance = services.instances.create(form_id="f1", campaign_id="c1")
    """
    config = config or load_config()
    store = SQLiteStore(config.storage.db_path)

    clock_kwargs = {"clock": clock} if clock is not None else {}
    instances = FormInstanceService(
        store, default_signing_mode=config.signing.default_mode, **clock_kwargs
    )
    links = AccessLinkService(
        store, expires_in_hours=config.links.expires_in_hours, **clock_kwargs
    )
    templates = TemplateCache(ttl_seconds=config.cache.ttl_seconds)

    logger.info(
        "Services started",
        extra={"context": {"env": config.env.value, "db_path": config.storage.db_path}},
    )
    return FormwrightServices(
        config=config, store=store, instances=instances, links=links, templates=templates
    )
