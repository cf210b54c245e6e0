"""One-shot seeding of the transactions store from the remote dataset."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pydantic import ValidationError

from backend.repositories.transactions_repository import TransactionsRepository
from shared.models import ProductTransaction, SeedResult


logger = logging.getLogger(__name__)


class SeedError(RuntimeError):
    """Raised when the seed dataset cannot be fetched or stored."""


def fetch_seed_payload(url: str, *, timeout: float = 30.0) -> list[Any]:
    """Download the seed dataset and return its JSON array."""

    request = Request(url=url, headers={"Accept": "application/json"}, method="GET")
    try:
        with urlopen(request, timeout=timeout) as response:  # noqa: S310 - URL comes from trusted env config
            payload = json.loads(response.read().decode("utf-8"))
    except HTTPError as exc:
        raise SeedError(f"Seed request failed with status {exc.code}") from exc
    except (URLError, TimeoutError) as exc:
        raise SeedError(f"Seed request failed: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SeedError("Seed payload is not valid JSON") from exc

    if not isinstance(payload, list):
        raise SeedError(f"Seed payload must be a JSON array, got {type(payload).__name__}")
    return payload


def parse_seed_records(payload: list[Any]) -> tuple[list[ProductTransaction], int]:
    """Validate raw seed items and return (records, skipped_count)."""

    records: list[ProductTransaction] = []
    skipped = 0
    for index, item in enumerate(payload):
        try:
            records.append(ProductTransaction.model_validate(item))
        except ValidationError as exc:
            skipped += 1
            logger.warning(
                "seed_record_skipped index=%s errors=%s",
                index,
                exc.error_count(),
            )
    return records, skipped


def seed_transactions(
    repository: TransactionsRepository,
    url: str,
    *,
    timeout: float = 30.0,
) -> SeedResult:
    """Fetch the dataset at `url` and bulk-insert it unless the store already has data."""

    existing = repository.count_transactions()
    if existing > 0:
        logger.info("seed_skipped_existing_records count=%s", existing)
        return SeedResult(skipped_existing=True)

    payload = fetch_seed_payload(url, timeout=timeout)
    records, skipped = parse_seed_records(payload)
    try:
        inserted = repository.insert_transactions_bulk(records)
    except Exception as exc:
        raise SeedError(f"Seed insert failed: {exc}") from exc

    logger.info(
        "seed_completed fetched=%s inserted=%s skipped=%s",
        len(payload),
        inserted,
        skipped,
    )
    return SeedResult(fetched=len(payload), inserted=inserted, skipped=skipped)
