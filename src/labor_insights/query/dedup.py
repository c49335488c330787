"""Read-time resolution of overlapping shift partitions."""

from __future__ import annotations

from typing import Dict, Iterable, List, Set

from labor_insights.domain.models import Partition, ShiftTag

_SPECIFIC_SHIFTS = frozenset({ShiftTag.DAY, ShiftTag.NIGHT})


def shift_tags_by_date(partitions: Iterable[Partition]) -> Dict[str, Set[ShiftTag]]:
    """Pre-scan: which shift tags are stored for each date."""

    present: Dict[str, Set[ShiftTag]] = {}
    for partition in partitions:
        present.setdefault(partition.key.date, set()).add(partition.key.shift_tag)
    return present


def is_superseded(partition: Partition, present: Dict[str, Set[ShiftTag]]) -> bool:
    """An ``all`` partition yields to any shift-specific partition on its date."""

    if partition.key.shift_tag is not ShiftTag.ALL:
        return False
    return bool(present.get(partition.key.date, set()) & _SPECIFIC_SHIFTS)


def resolve_partitions(partitions: Iterable[Partition]) -> List[Partition]:
    """Drop ``all`` partitions whose date also has day or night partitions."""

    candidates = list(partitions)
    present = shift_tags_by_date(candidates)
    return [
        partition
        for partition in candidates
        if not is_superseded(partition, present)
    ]
