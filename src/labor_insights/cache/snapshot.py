"""Versioned backup format for whole-store export and import."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

from labor_insights.domain.exceptions import InvalidBackupFormatError
from labor_insights.domain.models import Partition, PartitionKey, Record

SNAPSHOT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({SNAPSHOT_VERSION})


class SnapshotEntry(BaseModel):
    """Serialized payload of one partition inside a backup."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[Record, ...] = Field(default_factory=tuple)
    fetched_at: datetime = Field(
        validation_alias=AliasChoices("fetched_at", "fetchedAt")
    )
    record_count: int = Field(
        ..., ge=0, validation_alias=AliasChoices("record_count", "recordCount")
    )


_ENTRIES = TypeAdapter(Dict[str, SnapshotEntry])


def encode_snapshot(
    partitions: Sequence[Partition], exported_at: datetime
) -> Dict[str, Any]:
    entries: Dict[str, Any] = {}
    for partition in partitions:
        entries[partition.key.encode()] = {
            "records": [
                record.model_dump(mode="json", exclude={"rate"})
                for record in partition.records
            ],
            "fetched_at": partition.fetched_at.isoformat(),
            "record_count": partition.record_count,
        }
    return {
        "version": SNAPSHOT_VERSION,
        "exported_at": exported_at.isoformat(),
        "partitions": entries,
    }


def decode_snapshot(snapshot: Mapping[str, Any]) -> List[Partition]:
    """Parse and validate a full snapshot; any defect rejects all of it."""

    if not isinstance(snapshot, Mapping):
        raise InvalidBackupFormatError("Snapshot must be a mapping")
    version = snapshot.get("version")
    if (
        not isinstance(version, int)
        or isinstance(version, bool)
        or version not in SUPPORTED_VERSIONS
    ):
        raise InvalidBackupFormatError(
            "Unsupported snapshot version", context={"version": version}
        )
    raw_entries = snapshot.get("partitions")
    if not isinstance(raw_entries, Mapping):
        raise InvalidBackupFormatError("Snapshot is missing its partitions mapping")

    try:
        entries = _ENTRIES.validate_python(dict(raw_entries))
    except ValidationError as exc:
        raise InvalidBackupFormatError(
            "Snapshot contains malformed partitions",
            context={"errors": exc.error_count()},
        ) from exc

    partitions: List[Partition] = []
    for encoded_key, entry in entries.items():
        try:
            key = PartitionKey.decode(encoded_key)
        except ValueError as exc:
            raise InvalidBackupFormatError(
                "Snapshot contains a malformed partition key",
                context={"key": encoded_key},
            ) from exc
        if entry.record_count != len(entry.records):
            raise InvalidBackupFormatError(
                "Snapshot record_count disagrees with its records",
                context={"key": encoded_key},
            )
        partitions.append(
            Partition(
                key=key,
                records=entry.records,
                fetched_at=entry.fetched_at,
                record_count=entry.record_count,
            )
        )
    return partitions
