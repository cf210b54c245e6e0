"""Transactions repository adapters.

Product transactions are written once by the seeder and only read afterwards.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Protocol

from backend.db.supabase_client import SupabaseClient
from shared.models import MonthFilter, MonthMatchMode, ProductTransaction, TransactionFilters
from shared.months import month_matches


TRANSACTIONS_TABLE = "product_transactions"
_SELECT_COLUMNS = "id,title,description,price,category,date_of_sale"
_INSERT_BATCH_SIZE = 500
# PostgREST caps responses at 1000 rows by default.
_AGGREGATE_PAGE_SIZE = 1000


class TransactionsRepository(Protocol):
    def search_transactions(self, filters: TransactionFilters) -> list[ProductTransaction]:
        """Return one page of transactions matching month and search filters."""

    def list_prices(self, month: MonthFilter) -> list[float]:
        """Return the price of every transaction matching the month filter."""

    def count_by_category(self, month: MonthFilter) -> list[tuple[str, int]]:
        """Return (category, count) for categories present among month matches."""

    def count_transactions(self) -> int:
        """Return the number of stored transactions."""

    def insert_transactions_bulk(self, records: list[ProductTransaction]) -> int:
        """Insert seed records and return inserted count."""

    def close(self) -> None:
        """Release store resources."""


def search_matches(record: ProductTransaction, search: str | None) -> bool:
    needle = (search or "").strip().lower()
    if not needle:
        return True
    return (
        needle in record.title.lower()
        or needle in record.description.lower()
        or needle in record.price_text.lower()
    )


class InMemoryTransactionsRepository:
    """In-memory store used for local dev/tests when Supabase is not configured."""

    def __init__(self, records: Iterable[ProductTransaction] | None = None) -> None:
        self._records: list[ProductTransaction] = list(records or [])

    def _month_rows(self, month: MonthFilter) -> list[ProductTransaction]:
        if month.matches_nothing:
            return []
        return [row for row in self._records if month_matches(month, row.date_of_sale)]

    def search_transactions(self, filters: TransactionFilters) -> list[ProductTransaction]:
        rows = [row for row in self._month_rows(filters.month) if search_matches(row, filters.search)]
        return rows[filters.offset : filters.offset + filters.limit]

    def list_prices(self, month: MonthFilter) -> list[float]:
        return [row.price for row in self._month_rows(month)]

    def count_by_category(self, month: MonthFilter) -> list[tuple[str, int]]:
        # Counter keeps first-seen order.
        return list(Counter(row.category for row in self._month_rows(month)).items())

    def count_transactions(self) -> int:
        return len(self._records)

    def insert_transactions_bulk(self, records: list[ProductTransaction]) -> int:
        self._records.extend(records)
        return len(records)

    def close(self) -> None:
        return None


def _escape_like(value: str) -> str:
    # PostgREST turns every `*` into `%`, so a literal star can only be kept as `_`.
    return (
        value.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
        .replace("*", "_")
    )


def _quote_or_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SupabaseTransactionsRepository:
    """Supabase repository where transactions live in `public.product_transactions`.

    The seeder stores derived columns next to the record fields so that month
    and search filters run server-side: `sale_month` (1-12, UTC),
    `date_of_sale_text` (ISO-8601 UTC) and `price_text`.
    """

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    @staticmethod
    def _month_query(month: MonthFilter) -> list[tuple[str, str | int]]:
        if month.is_empty:
            return []
        if month.mode == MonthMatchMode.SUBSTRING:
            return [("date_of_sale_text", f"ilike.*{_escape_like(month.pattern or '')}*")]
        return [("sale_month", f"eq.{month.month_number}")]

    def _build_query(self, filters: TransactionFilters) -> list[tuple[str, str | int]]:
        query = self._month_query(filters.month)
        search = (filters.search or "").strip()
        if search:
            pattern = _quote_or_value(f"*{_escape_like(search)}*")
            query.append(
                (
                    "or",
                    f"(title.ilike.{pattern},description.ilike.{pattern},price_text.ilike.{pattern})",
                )
            )
        return query

    @staticmethod
    def _parse_row(row: dict[str, object]) -> ProductTransaction:
        # Postgres trims trailing zeros from fractional seconds ("...54.12+00:00").
        return ProductTransaction.model_validate(row)

    def _select_all(self, query: list[tuple[str, str | int]], *, order: str) -> list[dict[str, object]]:
        """Read every matching row, one page at a time, past the server row cap."""

        rows: list[dict[str, object]] = []
        offset = 0
        while True:
            page, _ = self._client.get_rows(
                table=TRANSACTIONS_TABLE,
                query=[*query, ("order", order), ("limit", _AGGREGATE_PAGE_SIZE), ("offset", offset)],
                with_count=False,
            )
            rows.extend(page)
            if len(page) < _AGGREGATE_PAGE_SIZE:
                return rows
            offset += _AGGREGATE_PAGE_SIZE

    @staticmethod
    def _to_payload(record: ProductTransaction) -> dict[str, object]:
        payload: dict[str, object] = {
            "title": record.title,
            "description": record.description,
            "price": record.price,
            "category": record.category,
            "date_of_sale": record.date_of_sale_text,
            "sale_month": record.date_of_sale.month,
            "date_of_sale_text": record.date_of_sale_text,
            "price_text": record.price_text,
        }
        if record.id is not None:
            payload["id"] = record.id
        return payload

    def search_transactions(self, filters: TransactionFilters) -> list[ProductTransaction]:
        if filters.month.matches_nothing:
            return []
        query = [
            *self._build_query(filters),
            ("select", _SELECT_COLUMNS),
            ("order", "id.asc"),
            ("limit", filters.limit),
            ("offset", filters.offset),
        ]
        rows, _ = self._client.get_rows(table=TRANSACTIONS_TABLE, query=query, with_count=False)
        return [self._parse_row(row) for row in rows]

    def list_prices(self, month: MonthFilter) -> list[float]:
        if month.matches_nothing:
            return []
        rows = self._select_all([*self._month_query(month), ("select", "price")], order="id.asc")
        return [float(row.get("price") or 0) for row in rows]

    def count_by_category(self, month: MonthFilter) -> list[tuple[str, int]]:
        if month.matches_nothing:
            return []
        rows = self._select_all(
            [*self._month_query(month), ("select", "category")],
            order="category.asc,id.asc",
        )
        return list(Counter(str(row.get("category") or "") for row in rows).items())

    def count_transactions(self) -> int:
        _, total = self._client.get_rows(
            table=TRANSACTIONS_TABLE,
            query=[("select", "id"), ("limit", 1)],
            with_count=True,
        )
        return total or 0

    def insert_transactions_bulk(self, records: list[ProductTransaction]) -> int:
        if not records:
            return 0
        inserted = 0
        for start in range(0, len(records), _INSERT_BATCH_SIZE):
            batch = records[start : start + _INSERT_BATCH_SIZE]
            rows = self._client.post_rows(
                table=TRANSACTIONS_TABLE,
                payload=[self._to_payload(record) for record in batch],
            )
            inserted += len(rows)
        return inserted

    def close(self) -> None:
        return None
