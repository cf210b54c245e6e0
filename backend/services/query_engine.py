"""Read-only query operations over seeded product transactions.

Each operation turns loose request parameters (month, search text, page)
into repository filters and shapes the result. Storage failures are
normalized into `ToolError` at this boundary and are never retried.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field

from backend.repositories.transactions_repository import TransactionsRepository
from backend.services.price_bands import DEFAULT_PRICE_BANDS, PriceBand, count_prices_by_band
from shared.models import (
    CategoryCount,
    CombinedResult,
    MonthFilter,
    MonthMatchMode,
    PriceBandCount,
    SoldItemsPolicy,
    StatisticsResult,
    ToolError,
    ToolErrorCode,
    TransactionFilters,
    TransactionSearchResult,
)
from shared.months import build_month_filter


logger = logging.getLogger(__name__)


DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10


def normalize_positive_int(value: object, default: int) -> int:
    """Return `value` as a positive int, or `default` when it is missing or invalid."""

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    raw_value = str(value).strip()
    try:
        parsed = int(raw_value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclass(frozen=True, slots=True)
class QueryEngineSettings:
    month_match_mode: MonthMatchMode = MonthMatchMode.CALENDAR
    # ALL keeps the observed behavior: every month match counts as sold,
    # whatever its price. PRICED requires price > 0.
    sold_items_policy: SoldItemsPolicy = SoldItemsPolicy.ALL
    price_bands: tuple[PriceBand, ...] = DEFAULT_PRICE_BANDS


@dataclass(slots=True)
class QueryEngine:
    repository: TransactionsRepository
    settings: QueryEngineSettings = field(default_factory=QueryEngineSettings)

    def month_filter(self, month: str | None) -> MonthFilter:
        return build_month_filter(month, self.settings.month_match_mode)

    @staticmethod
    def _backend_error(operation: str, exc: Exception) -> ToolError:
        logger.exception("query_engine_operation_failed operation=%s", operation)
        return ToolError(
            code=ToolErrorCode.BACKEND_ERROR,
            message=str(exc),
            details={"operation": operation},
        )

    def list_transactions(
        self,
        *,
        month: str | None = None,
        search: str | None = None,
        page: object = None,
        per_page: object = None,
    ) -> TransactionSearchResult | ToolError:
        page_number = normalize_positive_int(page, DEFAULT_PAGE)
        page_size = normalize_positive_int(per_page, DEFAULT_PER_PAGE)
        try:
            filters = TransactionFilters(
                month=self.month_filter(month),
                search=(search or "").strip() or None,
                limit=page_size,
                offset=(page_number - 1) * page_size,
            )
            items = self.repository.search_transactions(filters)
        except Exception as exc:
            return self._backend_error("list_transactions", exc)
        return TransactionSearchResult(items=items, page=page_number, per_page=page_size)

    def statistics(self, *, month: str | None = None) -> StatisticsResult | ToolError:
        try:
            prices = self.repository.list_prices(self.month_filter(month))
        except Exception as exc:
            return self._backend_error("statistics", exc)

        if self.settings.sold_items_policy == SoldItemsPolicy.PRICED:
            sold_count = sum(1 for price in prices if price > 0)
        else:
            sold_count = len(prices)

        return StatisticsResult(
            total_sale_amount=math.fsum(prices),
            total_sold_items=sold_count,
            total_not_sold_items=sum(1 for price in prices if price == 0),
        )

    def bar_chart(self, *, month: str | None = None) -> list[PriceBandCount] | ToolError:
        try:
            prices = self.repository.list_prices(self.month_filter(month))
            return count_prices_by_band(prices, self.settings.price_bands)
        except Exception as exc:
            return self._backend_error("bar_chart", exc)

    def pie_chart(self, *, month: str | None = None) -> list[CategoryCount] | ToolError:
        try:
            groups = self.repository.count_by_category(self.month_filter(month))
        except Exception as exc:
            return self._backend_error("pie_chart", exc)
        return [CategoryCount(category=category, count=count) for category, count in groups if count > 0]

    async def combined(self, *, month: str | None = None) -> CombinedResult | ToolError:
        """Run the four single-view operations concurrently for the same month."""

        transactions, statistics, bar_chart, pie_chart = await asyncio.gather(
            asyncio.to_thread(self.list_transactions, month=month),
            asyncio.to_thread(self.statistics, month=month),
            asyncio.to_thread(self.bar_chart, month=month),
            asyncio.to_thread(self.pie_chart, month=month),
        )
        for result in (transactions, statistics, bar_chart, pie_chart):
            if isinstance(result, ToolError):
                return result

        return CombinedResult(
            transactions=transactions.items,
            statistics=statistics,
            bar_chart=bar_chart,
            pie_chart=pie_chart,
        )
