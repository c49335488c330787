"""Request-scoped grouping of records by entity, category and day."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Iterable, Iterator, List, Optional

from labor_insights.analytics.metrics import aggregate_rate
from labor_insights.domain.models import Record


@dataclass
class Totals:
    """Running sums; rates are always derived from these, never averaged."""

    hours: float = 0.0
    units: float = 0.0

    def add(self, hours: float, units: float) -> None:
        self.hours += hours
        self.units += units

    @property
    def rate(self) -> float:
        return aggregate_rate(self.units, self.hours)


@dataclass
class EntityActivity:
    """Everything one entity did inside a cohort snapshot.

    Records are merged per ``(entity_id, category_id)`` and per day by summing
    hours and units, so no record is lost to another with the same entity.
    """

    entity_id: str
    entity_name: Optional[str] = None
    by_category: Dict[str, Totals] = field(default_factory=dict)
    by_day: Dict[str, Totals] = field(default_factory=dict)
    category_names: Dict[str, str] = field(default_factory=dict)

    def add(self, record: Record) -> None:
        if record.entity_name and not self.entity_name:
            self.entity_name = record.entity_name
        self.by_category.setdefault(record.category_id, Totals()).add(
            record.hours, record.units_completed
        )
        self.by_day.setdefault(record.date, Totals()).add(
            record.hours, record.units_completed
        )
        if record.category_name:
            self.category_names.setdefault(record.category_id, record.category_name)

    @property
    def totals(self) -> Totals:
        combined = Totals()
        for totals in self.by_category.values():
            combined.add(totals.hours, totals.units)
        return combined

    @property
    def categories(self) -> List[str]:
        return sorted(self.by_category)

    def totals_for(self, categories: AbstractSet[str]) -> Totals:
        combined = Totals()
        for category_id in categories:
            totals = self.by_category.get(category_id)
            if totals is not None:
                combined.add(totals.hours, totals.units)
        return combined

    def daily_rates(self) -> List[float]:
        """Per-day rates, chronological, skipping days without hours."""

        return [
            totals.rate
            for _, totals in sorted(self.by_day.items())
            if totals.hours > 0
        ]

    def category_name(self, category_id: str) -> str:
        return self.category_names.get(category_id, category_id)


class CohortSnapshot:
    """Ephemeral per-entity view over a batch of records; never persisted."""

    def __init__(self, entities: Dict[str, EntityActivity]) -> None:
        self._entities = entities

    @classmethod
    def from_records(
        cls,
        records: Iterable[Record],
        categories: Optional[AbstractSet[str]] = None,
    ) -> "CohortSnapshot":
        entities: Dict[str, EntityActivity] = {}
        for record in records:
            if categories is not None and record.category_id not in categories:
                continue
            activity = entities.get(record.entity_id)
            if activity is None:
                activity = entities[record.entity_id] = EntityActivity(record.entity_id)
            activity.add(record)
        return cls(entities)

    def get(self, entity_id: str) -> Optional[EntityActivity]:
        return self._entities.get(entity_id)

    def peers_of(self, entity_id: str) -> Iterator[EntityActivity]:
        for other_id, activity in self._entities.items():
            if other_id != entity_id:
                yield activity

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __iter__(self) -> Iterator[EntityActivity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)
