"""Fetch adapter that reads partition records from a JSON reporting endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

import httpx
from pydantic import ValidationError

from labor_insights.domain.exceptions import FetchError
from labor_insights.domain.interfaces import IPartitionFetcher
from labor_insights.domain.models import PartitionKey, Record


@dataclass(frozen=True)
class FetcherConfig:
    """Connection settings for a records endpoint."""

    base_url: str
    path: str = "/partitions"
    timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")


class HttpPartitionFetcher(IPartitionFetcher):
    """GETs ``{base_url}{path}?scope=..&date=..&shift=..`` and parses a JSON list.

    Rows that omit ``date`` or ``shift_tag`` inherit them from the partition key.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        config: FetcherConfig,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = http_client
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def fetch_partition(self, key: PartitionKey) -> Sequence[Record]:
        url = f"{self.config.base_url.rstrip('/')}{self.config.path}"
        params = {
            "scope": key.entity_scope,
            "date": key.date,
            "shift": key.shift_tag.value,
        }
        self.logger.debug("partition_fetch", extra={"key": key.encode(), "url": url})
        try:
            response = self._client.get(
                url, params=params, timeout=self.config.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                "Records endpoint returned an error status",
                context={"key": key.encode(), "status": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                "Records endpoint is unreachable",
                context={"key": key.encode(), "error": str(exc)},
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(
                "Records endpoint returned invalid JSON", context={"key": key.encode()}
            ) from exc
        return self._parse_records(key, payload)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _parse_records(key: PartitionKey, payload: Any) -> List[Record]:
        rows = payload.get("records") if isinstance(payload, Mapping) else payload
        if not isinstance(rows, list):
            raise FetchError(
                "Records payload must be a list", context={"key": key.encode()}
            )
        records: List[Record] = []
        for row in rows:
            if not isinstance(row, Mapping):
                raise FetchError(
                    "Record rows must be objects", context={"key": key.encode()}
                )
            data = {"date": key.date, "shift_tag": key.shift_tag, **row}
            try:
                records.append(Record.model_validate(data))
            except ValidationError as exc:
                raise FetchError(
                    "Records payload failed validation",
                    context={"key": key.encode(), "errors": exc.error_count()},
                ) from exc
        return records
