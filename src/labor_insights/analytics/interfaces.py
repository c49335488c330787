"""Analytics result models and the engine contract."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Literal, Mapping, Optional, Protocol, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from labor_insights.domain.models import Record


class Tier(str, Enum):
    """Four-level rating derived from a percentile rank."""

    NATURAL = "natural"
    ACCOMPLISHED = "accomplished"
    COMPETENT = "competent"
    UNCONVINCING = "unconvincing"


class TrendPoint(BaseModel):
    """One chronological bucket of an entity's output in a category."""

    model_config = ConfigDict(frozen=True)

    label: str
    rate: float
    hours: float
    units: float


class CategoryPosition(BaseModel):
    """Entity's standing among peers restricted to a single category."""

    model_config = ConfigDict(frozen=True)

    category_id: str
    category_name: str
    rate: float
    percentile: int = Field(..., ge=0, le=100)
    tier: Tier
    hours: float
    units: float
    peer_count: int = 0


class CohortBaseline(BaseModel):
    """Average peer values used as the comparison reference."""

    model_config = ConfigDict(frozen=True)

    rate: float = 0.0
    hours: float = 0.0
    units: float = 0.0
    consistency: float = 50.0
    versatility: float = 100.0


class AnalyticsResult(BaseModel):
    """Peer-relative performance summary for a single entity."""

    model_config = ConfigDict(frozen=True)

    entity_id: str
    entity_name: Optional[str] = None
    total_hours: float = 0.0
    total_units: float = 0.0
    rate: float = 0.0
    percentile: int = Field(default=50, ge=0, le=100)
    tier: Tier = Tier.ACCOMPLISHED
    peer_count: int = 0
    consistency: float = 50.0
    versatility: float = 100.0
    category_count: int = 0
    baseline: CohortBaseline = Field(default_factory=CohortBaseline)
    positions: Tuple[CategoryPosition, ...] = Field(default_factory=tuple)
    trends: Dict[str, Tuple[TrendPoint, ...]] = Field(default_factory=dict)
    trend_granularity: Literal["day", "hour"] = "day"


IntradaySnapshots = Mapping[int, Sequence[Record]]


class IPeerAnalyticsEngine(Protocol):
    """Derives peer-relative statistics from record snapshots."""

    def compute(
        self,
        entity_id: str,
        records: Sequence[Record],
        cohort_records: Sequence[Record],
        category_filter: Optional[Sequence[str]] = None,
        *,
        history: Optional[Sequence[Record]] = None,
        snapshots: Optional[IntradaySnapshots] = None,
    ) -> AnalyticsResult:
        """Compare ``entity_id`` against the rest of the cohort."""
