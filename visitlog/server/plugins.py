"""Plugin and configuration builders.

The database URL is only known after secret resolution, so the engine and
SQLAlchemy plugin are built per application instead of at import time.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any

from litestar.logging import LoggingConfig
from litestar.serialization import decode_json, encode_json
from litestar.status_codes import HTTP_400_BAD_REQUEST, HTTP_429_TOO_MANY_REQUESTS
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyInitPlugin,
)

from visitlog.domain.visits.models import Visit

if TYPE_CHECKING:
    from visitlog.config.settings import APISettings, DatabaseSettings


def create_engine(url: str, settings: "DatabaseSettings") -> AsyncEngine:
    """Create the process-wide async engine."""
    engine_options: dict[str, Any] = {
        "echo": settings.echo,
        "echo_pool": settings.echo_pool,
        "json_serializer": encode_json,
        "json_deserializer": decode_json,
    }
    if settings.pool_disabled:
        engine_options["poolclass"] = NullPool
    else:
        engine_options.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
            pool_recycle=settings.pool_recycle,
            pool_pre_ping=True,
            pool_use_lifo=True,  # use lifo to reduce the number of idle connections
        )
    return create_async_engine(url, **engine_options)


def create_sqlalchemy_config(url: str, settings: "DatabaseSettings") -> SQLAlchemyAsyncConfig:
    """SQLAlchemy configuration for Litestar; schema is created in on_startup."""
    return SQLAlchemyAsyncConfig(
        engine_instance=create_engine(url, settings),
        session_config=AsyncSessionConfig(expire_on_commit=False),
        create_all=False,
        metadata=Visit.metadata,
    )


def create_sqlalchemy_plugin(config: SQLAlchemyAsyncConfig) -> SQLAlchemyInitPlugin:
    return SQLAlchemyInitPlugin(config=config)


def create_logging_config(settings: "APISettings") -> LoggingConfig:
    """Root logger routed through Litestar's queue listener."""
    return LoggingConfig(
        root={"level": settings.log_level, "handlers": ["queue_listener"]},
        formatters={
            "standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}
        },
        log_exceptions="always",
        # Client errors are expected traffic, not faults
        disable_stack_trace={HTTP_400_BAD_REQUEST, HTTP_429_TOO_MANY_REQUESTS},
    )
