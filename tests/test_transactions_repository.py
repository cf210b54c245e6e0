"""Unit tests for transactions repository adapters."""

from __future__ import annotations

from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
)
from shared.models import MonthMatchMode, TransactionFilters
from shared.months import build_month_filter
from tests.fakes import catalog, make_transaction


class _ClientStub:
    def __init__(self, rows: list[dict[str, object]], total: int | None = None) -> None:
        self.rows = rows
        self.total = total
        self.calls: list[dict[str, object]] = []
        self.posted: list[list[dict[str, object]]] = []

    def get_rows(self, *, table, query, with_count):
        self.calls.append({"table": table, "query": query, "with_count": with_count})
        return self.rows, self.total

    def post_rows(self, *, table, payload):
        self.posted.append(payload)
        return payload


class _PagedClientStub(_ClientStub):
    """Serves one queued page per request, like a capped PostgREST endpoint."""

    def __init__(self, pages: list[list[dict[str, object]]]) -> None:
        super().__init__(rows=[])
        self.pages = list(pages)

    def get_rows(self, *, table, query, with_count):
        self.calls.append({"table": table, "query": query, "with_count": with_count})
        return (self.pages.pop(0) if self.pages else []), None


def _calendar(month: str | None):
    return build_month_filter(month, MonthMatchMode.CALENDAR)


def test_in_memory_search_matches_title_description_and_price() -> None:
    repository = InMemoryTransactionsRepository(catalog())

    by_title = repository.search_transactions(TransactionFilters(search="jacket"))
    by_description = repository.search_transactions(TransactionFilters(search="WATERPROOF"))
    by_price = repository.search_transactions(TransactionFilters(search="450.5"))

    assert [row.id for row in by_title] == [2]
    assert [row.id for row in by_description] == [2]
    assert [row.id for row in by_price] == [8]


def test_in_memory_search_treats_whole_prices_without_decimal_suffix() -> None:
    repository = InMemoryTransactionsRepository([make_transaction(id=1, price=850)])

    assert repository.search_transactions(TransactionFilters(search="850")) != []
    assert repository.search_transactions(TransactionFilters(search="850.0")) == []


def test_in_memory_search_combines_month_and_search() -> None:
    repository = InMemoryTransactionsRepository(catalog())

    rows = repository.search_transactions(
        TransactionFilters(month=_calendar("11"), search="gold", limit=10)
    )

    assert [row.id for row in rows] == [3, 9]


def test_in_memory_pagination_keeps_insertion_order() -> None:
    repository = InMemoryTransactionsRepository(catalog())

    first = repository.search_transactions(TransactionFilters(limit=5, offset=0))
    last = repository.search_transactions(TransactionFilters(limit=5, offset=10))

    assert [row.id for row in first] == [1, 2, 3, 4, 5]
    assert [row.id for row in last] == [11, 12]


def test_in_memory_unknown_month_matches_nothing() -> None:
    repository = InMemoryTransactionsRepository(catalog())

    assert repository.list_prices(_calendar("not-a-month")) == []
    assert repository.count_by_category(_calendar("not-a-month")) == []


def test_in_memory_count_by_category_keeps_first_seen_order() -> None:
    repository = InMemoryTransactionsRepository(catalog())

    groups = repository.count_by_category(_calendar("3"))

    assert groups == [
        ("men's clothing", 2),
        ("women's clothing", 2),
        ("electronics", 2),
        ("jewelery", 1),
    ]


def test_in_memory_insert_bulk_appends_records() -> None:
    repository = InMemoryTransactionsRepository()

    inserted = repository.insert_transactions_bulk(catalog()[:3])

    assert inserted == 3
    assert repository.count_transactions() == 3


def test_supabase_search_builds_month_search_and_pagination_query() -> None:
    client = _ClientStub(
        rows=[
            {
                "id": 4,
                "title": "SSD 1TB",
                "description": "Internal solid state drive",
                "price": "109",
                "category": "electronics",
                "date_of_sale": "2021-01-01T00:00:00Z",
            }
        ]
    )
    repository = SupabaseTransactionsRepository(client=client)

    rows = repository.search_transactions(
        TransactionFilters(month=_calendar("January"), search="ssd", limit=10, offset=20)
    )

    assert rows[0].id == 4
    assert rows[0].price == 109.0
    assert rows[0].date_of_sale.month == 1
    call = client.calls[0]
    assert call["table"] == "product_transactions"
    query = call["query"]
    assert ("sale_month", "eq.1") in query
    assert (
        "or",
        '(title.ilike."*ssd*",description.ilike."*ssd*",price_text.ilike."*ssd*")',
    ) in query
    assert ("order", "id.asc") in query
    assert ("limit", 10) in query
    assert ("offset", 20) in query


def test_supabase_search_escapes_reserved_characters() -> None:
    client = _ClientStub(rows=[])
    repository = SupabaseTransactionsRepository(client=client)

    repository.search_transactions(TransactionFilters(search='50%,"x"'))

    query = dict(client.calls[0]["query"])
    assert query["or"] == (
        '(title.ilike."*50\\\\%,\\"x\\"*",'
        'description.ilike."*50\\\\%,\\"x\\"*",'
        'price_text.ilike."*50\\\\%,\\"x\\"*")'
    )


def test_supabase_substring_month_filters_on_serialized_date() -> None:
    client = _ClientStub(rows=[{"price": 10}, {"price": "0"}])
    repository = SupabaseTransactionsRepository(client=client)

    prices = repository.list_prices(build_month_filter("-03-", MonthMatchMode.SUBSTRING))

    assert prices == [10.0, 0.0]
    query = client.calls[0]["query"]
    assert ("date_of_sale_text", "ilike.*-03-*") in query
    assert ("select", "price") in query


def test_supabase_unknown_month_skips_the_request() -> None:
    client = _ClientStub(rows=[{"price": 10}])
    repository = SupabaseTransactionsRepository(client=client)

    assert repository.list_prices(_calendar("someday")) == []
    assert client.calls == []


def test_supabase_count_by_category_counts_selected_rows() -> None:
    client = _ClientStub(rows=[{"category": "a"}, {"category": "a"}, {"category": "b"}])
    repository = SupabaseTransactionsRepository(client=client)

    groups = repository.count_by_category(_calendar(None))

    assert groups == [("a", 2), ("b", 1)]
    assert client.calls[0]["query"] == [
        ("select", "category"),
        ("order", "category.asc,id.asc"),
        ("limit", 1000),
        ("offset", 0),
    ]


def test_supabase_list_prices_reads_past_the_row_cap(monkeypatch) -> None:
    monkeypatch.setattr("backend.repositories.transactions_repository._AGGREGATE_PAGE_SIZE", 2)
    client = _PagedClientStub([[{"price": 10}, {"price": 20}], [{"price": 30}]])
    repository = SupabaseTransactionsRepository(client=client)

    prices = repository.list_prices(_calendar("3"))

    assert prices == [10.0, 20.0, 30.0]
    assert len(client.calls) == 2
    first, second = (dict(call["query"]) for call in client.calls)
    assert first["order"] == "id.asc"
    assert (first["limit"], first["offset"]) == (2, 0)
    assert (second["limit"], second["offset"]) == (2, 2)
    assert second["sale_month"] == "eq.3"


def test_supabase_count_by_category_counts_across_pages(monkeypatch) -> None:
    monkeypatch.setattr("backend.repositories.transactions_repository._AGGREGATE_PAGE_SIZE", 2)
    client = _PagedClientStub(
        [
            [{"category": "a"}, {"category": "a"}],
            [{"category": "a"}, {"category": "b"}],
            [],
        ]
    )
    repository = SupabaseTransactionsRepository(client=client)

    groups = repository.count_by_category(_calendar(None))

    assert groups == [("a", 3), ("b", 1)]
    assert [dict(call["query"])["offset"] for call in client.calls] == [0, 2, 4]


def test_supabase_parses_trimmed_fractional_seconds() -> None:
    client = _ClientStub(
        rows=[
            {
                "id": 7,
                "title": "Watch",
                "description": "Steel strap",
                "price": 120.5,
                "category": "jewelery",
                "date_of_sale": "2021-01-01T10:00:54.12+00:00",
                "sale_month": 1,
            }
        ]
    )
    repository = SupabaseTransactionsRepository(client=client)

    rows = repository.search_transactions(TransactionFilters())

    assert rows[0].date_of_sale.microsecond == 120000
    assert rows[0].date_of_sale_text.startswith("2021-01-01T10:00:54.12")


def test_supabase_insert_writes_derived_filter_columns() -> None:
    client = _ClientStub(rows=[])
    repository = SupabaseTransactionsRepository(client=client)

    inserted = repository.insert_transactions_bulk(
        [make_transaction(id=9, price=329.85, date_of_sale="2021-11-27T20:29:54")]
    )

    assert inserted == 1
    payload = client.posted[0][0]
    assert payload["id"] == 9
    assert payload["sale_month"] == 11
    assert payload["date_of_sale_text"] == "2021-11-27T20:29:54Z"
    assert payload["price_text"] == "329.85"


def test_supabase_count_transactions_uses_exact_count() -> None:
    client = _ClientStub(rows=[{"id": 1}], total=60)
    repository = SupabaseTransactionsRepository(client=client)

    assert repository.count_transactions() == 60
    assert client.calls[0]["with_count"] is True
