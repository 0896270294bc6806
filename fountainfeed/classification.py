"""
Normalization of the free-form usage and status tags found in the data set.

The remote data spells the same category several ways
("PERSONAS_Y_MASCOTAS", "Personas y mascotas", ...). These helpers collapse
them into a handful of canonical values for filtering and statistics.
"""
from __future__ import annotations

import re

from .const import (
    PEOPLE_AND_PETS_TAGS,
    USAGE_PEOPLE,
    USAGE_PEOPLE_AND_PETS,
    STATUS_WORKING,
    STATUS_OUT_OF_SERVICE,
    STATUS_MAINTENANCE,
    STATUS_UNKNOWN,
)

_SEPARATORS = re.compile(r"[\W_]+")


def _canonical(tag: str | None) -> str:
    """Upper-case tag with every run of separators collapsed to one space."""
    if not tag:
        return ""
    return _SEPARATORS.sub(" ", tag.upper()).strip()


def normalize_usage(raw: str | None) -> str:
    """
    Map a raw usage tag onto USAGE_PEOPLE_AND_PETS or USAGE_PEOPLE.

    Anything that is not recognizably "people and pets" (including empty or
    unknown tags) counts as people only. That default comes from the source
    data's convention and is a policy choice, not something the tag says.
    """
    canonical = _canonical(raw)
    if any(tag in canonical for tag in PEOPLE_AND_PETS_TAGS):
        return USAGE_PEOPLE_AND_PETS
    return USAGE_PEOPLE


def classify_status(raw: str | None) -> str:
    """Map a raw status tag onto one of the STATUS_* categories."""
    canonical = _canonical(raw)
    if not canonical:
        return STATUS_UNKNOWN
    # "NO OPERATIVO" contains "OPERATIVO", so out-of-service is checked first
    if "FUERA" in canonical or "NO OPERATIVO" in canonical:
        return STATUS_OUT_OF_SERVICE
    if "MANTENIMIENTO" in canonical:
        return STATUS_MAINTENANCE
    if "FUNCIONANDO" in canonical or "OPERATIVO" in canonical or "BUENO" in canonical:
        return STATUS_WORKING
    return STATUS_UNKNOWN


def is_operational(raw: str | None) -> bool:
    return classify_status(raw) == STATUS_WORKING
