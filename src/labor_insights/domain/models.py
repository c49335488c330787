"""Domain value objects for cached labor-performance data."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Sequence, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from labor_insights.domain.exceptions import InvalidDateError
from labor_insights.utils.dates import DateLike, ensure_aware, normalize_date


class ShiftTag(str, Enum):
    """Coarse time-of-day partition dimension."""

    DAY = "day"
    NIGHT = "night"
    ALL = "all"


class Record(BaseModel):
    """One entity's work on one task category on one day."""

    model_config = ConfigDict(frozen=True)

    # camelCase keys are accepted as written by the reporting portal
    entity_id: str = Field(validation_alias=AliasChoices("entityId", "entity_id"))
    entity_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("entityName", "entity_name")
    )
    category_id: str = Field(
        validation_alias=AliasChoices("categoryId", "category_id")
    )
    category_name: str = Field(
        default="", validation_alias=AliasChoices("categoryName", "category_name")
    )
    date: str
    shift_tag: ShiftTag = Field(
        default=ShiftTag.ALL, validation_alias=AliasChoices("shiftTag", "shift_tag")
    )
    hours: float = Field(default=0.0, ge=0)
    units_completed: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("unitsCompleted", "units_completed"),
    )

    @field_validator("entity_id", "category_id", mode="before")
    @classmethod
    def validate_identifier(cls, value: object) -> str:
        text = "" if value is None else str(value).strip()
        if not text:
            raise ValueError("identifiers must be non-empty")
        return text

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, value: DateLike) -> str:
        return normalize_date(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rate(self) -> float:
        if self.hours <= 0:
            return 0.0
        return self.units_completed / self.hours


class PartitionKey(BaseModel):
    """Canonical address of one cached partition: scope + day + shift."""

    model_config = ConfigDict(frozen=True)

    entity_scope: str
    date: str
    shift_tag: ShiftTag = ShiftTag.ALL

    @field_validator("entity_scope")
    @classmethod
    def validate_scope(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("entity_scope must be a non-empty string")
        return value.strip()

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, value: DateLike) -> str:
        return normalize_date(value)

    @classmethod
    def build(
        cls,
        entity_scope: str,
        day: DateLike,
        shift_tag: ShiftTag | str = ShiftTag.ALL,
    ) -> "PartitionKey":
        """Normalize inputs and construct a key; bad dates raise InvalidDateError."""

        normalized = normalize_date(day)
        return cls(
            entity_scope=entity_scope,
            date=normalized,
            shift_tag=ShiftTag(shift_tag),
        )

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)

    def encode(self) -> str:
        return f"{self.entity_scope}_{self.date}_{self.shift_tag.value}"

    @classmethod
    def decode(cls, text: str) -> "PartitionKey":
        parts = text.rsplit("_", 2)
        if len(parts) != 3:
            raise ValueError(f"Malformed partition key '{text}'")
        scope, day, shift = parts
        try:
            return cls.build(scope, day, shift)
        except InvalidDateError:
            raise
        except ValueError as exc:
            raise ValueError(f"Malformed partition key '{text}'") from exc

    def __str__(self) -> str:
        return self.encode()


class Partition(BaseModel):
    """Immutable batch of records stored under a single key."""

    model_config = ConfigDict(frozen=True)

    key: PartitionKey
    records: Tuple[Record, ...] = Field(default_factory=tuple)
    fetched_at: datetime
    record_count: int = Field(..., ge=0)

    @field_validator("fetched_at")
    @classmethod
    def validate_fetched_at(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def validate_record_count(self) -> "Partition":
        if self.record_count != len(self.records):
            raise ValueError("record_count must equal the number of records")
        return self

    @classmethod
    def create(
        cls, key: PartitionKey, records: Sequence[Record], fetched_at: datetime
    ) -> "Partition":
        batch = tuple(records)
        return cls(key=key, records=batch, fetched_at=fetched_at, record_count=len(batch))


@dataclass(frozen=True)
class ShiftSchedule:
    """Day/night boundary used to attribute undifferentiated data to a shift."""

    day_start_hour: int = 6
    night_start_hour: int = 18

    def __post_init__(self) -> None:
        for hour in (self.day_start_hour, self.night_start_hour):
            if not 0 <= hour <= 23:
                raise ValueError("shift boundary hours must be between 0 and 23")
        if self.day_start_hour >= self.night_start_hour:
            raise ValueError("day_start_hour must be earlier than night_start_hour")

    def shift_at(self, moment: datetime) -> ShiftTag:
        if self.day_start_hour <= moment.hour < self.night_start_hour:
            return ShiftTag.DAY
        return ShiftTag.NIGHT
