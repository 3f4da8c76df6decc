"""
Config -> Kernel bridges.

Functions that convert ``ExpenseConfig`` into kernel inputs.  These live
in expense_config because the kernel must never import expense_config.

Usage:
    from expense_config.bridges import build_routing_limits, init_engine

    config = get_active_config()
    engine = init_engine(config)
    limits = build_routing_limits(config)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from expense_config.loader import log_level
from expense_config.schema import ExpenseConfig
from expense_kernel.db.engine import init_engine_from_url
from expense_kernel.logging_config import configure_logging
from expense_kernel.services.lookup_guard import RoutingLimits


def build_routing_limits(config: ExpenseConfig) -> RoutingLimits:
    """RoutingLimits from the ``routing`` section."""
    return RoutingLimits(
        max_hierarchy_depth=config.routing.max_hierarchy_depth,
        lookup_timeout_seconds=config.routing.lookup_timeout_seconds,
        read_retry_attempts=config.routing.read_retry_attempts,
    )


def init_engine(config: ExpenseConfig, database_url: str | None = None) -> Engine:
    """Configure logging and initialise the global engine from settings.

    ``database_url`` overrides ``config.database.url``.
    """
    configure_logging(level=log_level(config))
    db = config.database
    return init_engine_from_url(
        database_url or db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        statement_timeout_ms=db.statement_timeout_ms,
    )
