"""
Per-district statistics over a fountain collection.

Pure functions over Records; usable on any snapshot, partial or complete.
"""
from __future__ import annotations

import dataclasses
from collections import defaultdict
from typing import Iterable

from .classification import is_operational, normalize_usage
from .const import USAGE_PEOPLE_AND_PETS
from .models import Record

UNSPECIFIED_DISTRICT = "Sin especificar"


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


@dataclasses.dataclass(frozen=True)
class DistrictStats:
    district: str
    total: int
    people_only: int
    people_and_pets: int
    operational: int

    @property
    def non_operational(self) -> int:
        return self.total - self.operational

    @property
    def people_only_percent(self) -> int:
        return _percent(self.people_only, self.total)

    @property
    def people_and_pets_percent(self) -> int:
        return _percent(self.people_and_pets, self.total)

    @property
    def operational_percent(self) -> int:
        return _percent(self.operational, self.total)


@dataclasses.dataclass(frozen=True)
class DatasetSummary:
    total: int = 0
    districts: int = 0
    operational: int = 0
    people_only: int = 0
    people_and_pets: int = 0

    @property
    def operational_percent(self) -> int:
        return _percent(self.operational, self.total)


def district_statistics(records: Iterable[Record]) -> list[DistrictStats]:
    """Group records by district; largest district first, ties by name."""
    grouped: dict[str, list[Record]] = defaultdict(list)
    for record in records:
        grouped[record.district or UNSPECIFIED_DISTRICT].append(record)

    stats = []
    for district, members in grouped.items():
        mixed = sum(1 for r in members if normalize_usage(r.usage) == USAGE_PEOPLE_AND_PETS)
        stats.append(DistrictStats(
            district=district,
            total=len(members),
            people_only=len(members) - mixed,
            people_and_pets=mixed,
            operational=sum(1 for r in members if is_operational(r.status)),
        ))
    stats.sort(key=lambda s: (-s.total, s.district))
    return stats


def summarize(records: Iterable[Record]) -> DatasetSummary:
    stats = district_statistics(records)
    return DatasetSummary(
        total=sum(s.total for s in stats),
        districts=len(stats),
        operational=sum(s.operational for s in stats),
        people_only=sum(s.people_only for s in stats),
        people_and_pets=sum(s.people_and_pets for s in stats),
    )
