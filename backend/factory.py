"""Composition root for backend services."""

from __future__ import annotations

import logging

from backend.db.supabase_client import SupabaseClient, SupabaseSettings
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
    TransactionsRepository,
)
from backend.services.query_engine import QueryEngine, QueryEngineSettings
from shared import config
from shared.models import MonthMatchMode, SoldItemsPolicy


logger = logging.getLogger(__name__)


def build_transactions_repository() -> TransactionsRepository:
    """Build the Supabase repository when configured, else an empty in-memory store."""

    supabase_url = config.supabase_url()
    supabase_key = config.supabase_service_role_key()
    if supabase_url and supabase_key:
        client = SupabaseClient(
            settings=SupabaseSettings(
                url=supabase_url,
                service_role_key=supabase_key,
            )
        )
        logger.info("transactions_repository=supabase url=%s", supabase_url)
        return SupabaseTransactionsRepository(client=client)

    logger.info("transactions_repository=in_memory")
    return InMemoryTransactionsRepository()


def build_query_engine_settings() -> QueryEngineSettings:
    return QueryEngineSettings(
        month_match_mode=MonthMatchMode(config.month_match_mode()),
        sold_items_policy=SoldItemsPolicy(config.sold_items_policy()),
    )


def build_query_engine(repository: TransactionsRepository | None = None) -> QueryEngine:
    return QueryEngine(
        repository=repository if repository is not None else build_transactions_repository(),
        settings=build_query_engine_settings(),
    )
