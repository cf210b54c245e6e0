"""Pydantic contracts shared across backend layers."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ToolErrorCode(str, Enum):
    """Stable error codes for service contracts across layers."""

    BACKEND_ERROR = "BACKEND_ERROR"


class ToolError(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: ToolErrorCode
    message: str
    details: dict[str, object] | None = None


class MonthMatchMode(str, Enum):
    """How a `month` query parameter is compared with the sale date."""

    CALENDAR = "calendar"
    SUBSTRING = "substring"


class SoldItemsPolicy(str, Enum):
    """Which month matches are counted as sold items in statistics."""

    ALL = "all"
    PRICED = "priced"


class _CamelModel(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


def format_price(price: float) -> str:
    """Return the textual form of a price, without a trailing `.0` for whole amounts."""

    value = float(price)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_date_of_sale(value: datetime) -> str:
    """Return the ISO-8601 UTC form of a sale date, `Z` suffixed."""

    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class ProductTransaction(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    id: int | None = None
    title: str
    description: str
    price: float = Field(allow_inf_nan=False)
    category: str
    date_of_sale: datetime

    @field_validator("date_of_sale")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def price_text(self) -> str:
        return format_price(self.price)

    @property
    def date_of_sale_text(self) -> str:
        return format_date_of_sale(self.date_of_sale)


class MonthFilter(BaseModel):
    """Parsed `month` query parameter.

    `pattern` is the raw non-empty input. In calendar mode `month_number`
    holds the parsed month (1-12) and stays `None` when the input names no
    month, in which case nothing matches.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    mode: MonthMatchMode = MonthMatchMode.CALENDAR
    pattern: str | None = None
    month_number: int | None = Field(default=None, ge=1, le=12)

    @property
    def is_empty(self) -> bool:
        return self.pattern is None

    @property
    def matches_nothing(self) -> bool:
        return (
            self.mode == MonthMatchMode.CALENDAR
            and self.pattern is not None
            and self.month_number is None
        )


class TransactionFilters(BaseModel):
    model_config = ConfigDict(extra="forbid")

    month: MonthFilter = Field(default_factory=MonthFilter)
    search: str | None = None
    limit: int = Field(default=10, ge=1)
    offset: int = Field(default=0, ge=0)


class TransactionSearchResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[ProductTransaction]
    page: int
    per_page: int


class StatisticsResult(_CamelModel):
    total_sale_amount: float
    total_sold_items: int
    total_not_sold_items: int


class PriceBandCount(_CamelModel):
    range: str
    count: int


class CategoryCount(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    category: str = Field(alias="_id")
    count: int


class CombinedResult(_CamelModel):
    transactions: list[ProductTransaction]
    statistics: StatisticsResult
    bar_chart: list[PriceBandCount]
    pie_chart: list[CategoryCount]


class SeedResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fetched: int = 0
    inserted: int = 0
    skipped: int = 0
    skipped_existing: bool = False
