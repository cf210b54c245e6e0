"""Price bands for the bar-chart histogram."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from shared.models import PriceBandCount


@dataclass(frozen=True, slots=True)
class PriceBand:
    """Half-open band `(lower, upper]`.

    `lower=None` makes the band unbounded below, `upper=None` unbounded above.
    """

    label: str
    lower: float | None
    upper: float | None

    def contains(self, price: float) -> bool:
        if self.lower is not None and price <= self.lower:
            return False
        if self.upper is not None and price > self.upper:
            return False
        return True


def build_price_bands(*, start: int = 0, width: int = 100, count: int = 9) -> tuple[PriceBand, ...]:
    """Return `count` contiguous bands of `width` from `start`, plus an open top band.

    The first band also takes every price at or below `start`, so the bands
    partition the whole price domain: `0-100`, `101-200`, ..., `901-above`.
    """

    if width <= 0:
        raise ValueError("width must be positive")
    if count <= 0:
        raise ValueError("count must be positive")

    bands: list[PriceBand] = []
    for index in range(count):
        lower = start + index * width
        upper = lower + width
        if index == 0:
            bands.append(PriceBand(label=f"{start}-{upper}", lower=None, upper=upper))
        else:
            bands.append(PriceBand(label=f"{lower + 1}-{upper}", lower=lower, upper=upper))

    top = start + count * width
    bands.append(PriceBand(label=f"{top + 1}-above", lower=top, upper=None))
    return tuple(bands)


DEFAULT_PRICE_BANDS = build_price_bands()


def band_for_price(bands: tuple[PriceBand, ...], price: float) -> PriceBand:
    for band in bands:
        if band.contains(price):
            return band
    raise ValueError(f"price {price!r} is outside the configured bands")


def count_prices_by_band(
    prices: Iterable[float], bands: tuple[PriceBand, ...] = DEFAULT_PRICE_BANDS
) -> list[PriceBandCount]:
    counts = {band.label: 0 for band in bands}
    for price in prices:
        counts[band_for_price(bands, price).label] += 1
    return [PriceBandCount(range=band.label, count=counts[band.label]) for band in bands]
