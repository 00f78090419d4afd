"""Shared utilities for hotel ERP services."""

from .config import DEFAULT_APP_NAME, ServiceSettings
from .instrumentation import build_app, instrument_app
from .logging import configure_logging
from .database import (
    create_engine,
    create_schema,
    dispose_engines,
    get_session_factory,
    lifespan_session,
    resolve_database_url,
)
from .events import EventConsumer, EventProducer, InMemoryEventBus

__all__ = [
    "ServiceSettings",
    "build_app",
    "instrument_app",
    "configure_logging",
    "DEFAULT_APP_NAME",
    "create_engine",
    "create_schema",
    "dispose_engines",
    "get_session_factory",
    "lifespan_session",
    "resolve_database_url",
    "EventProducer",
    "EventConsumer",
    "InMemoryEventBus",
]
