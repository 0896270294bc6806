"""
Domain models for fountainfeed.

Pure data classes with no network or cache dependencies. The remote API
speaks upper-case Spanish keys; Record.from_dict/to_dict translate between
that shape and the Python attribute names, and the cache reuses the same
shape so one codec serves both.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any

_LOGGER = logging.getLogger(__name__)

# Record attribute → remote JSON key
_FIELD_KEYS: dict[str, str] = {
    "record_id":         "ID",
    "usage":             "USO",
    "status":            "ESTADO",
    "district":          "DISTRITO",
    "district_code":     "COD_DISTRITO",
    "neighborhood":      "BARRIO",
    "neighborhood_code": "COD_BARRIO",
    "street_type":       "TIPO_VIA",
    "street_name":       "NOM_VIA",
    "street_number":     "NUM_VIA",
    "postal_code":       "COD_POSTAL",
    "installed_at":      "FECHA_INSTALACION",
    "model":             "MODELO",
}
_LATITUDE_KEY = "LATITUD"
_LONGITUDE_KEY = "LONGITUD"
_KNOWN_KEYS = frozenset(_FIELD_KEYS.values()) | {_LATITUDE_KEY, _LONGITUDE_KEY}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclasses.dataclass(frozen=True)
class Record:
    """A single drinking fountain. Identity is the coordinate pair."""

    latitude: float
    longitude: float
    usage: str = ""
    status: str = ""
    district: str = ""
    neighborhood: str = ""

    # Auxiliary descriptive fields
    record_id: str = ""
    district_code: str = ""
    neighborhood_code: str = ""
    street_type: str = ""
    street_name: str = ""
    street_number: str = ""
    postal_code: str = ""
    installed_at: str = ""
    model: str = ""

    # Every other raw key, passed through untouched
    extra: dict[str, Any] = dataclasses.field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self) -> str:
        """Identity key used for de-duplication."""
        return f"{self.latitude}-{self.longitude}"

    @property
    def address(self) -> str:
        parts = (self.street_type, self.street_name, self.street_number)
        return " ".join(p for p in parts if p)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Record:
        """
        Build a Record from a remote (or cached) JSON object.

        Raises ValueError when the coordinate pair is missing or not numeric.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Expected a JSON object, got {type(raw).__name__}")
        try:
            latitude = float(raw[_LATITUDE_KEY])
            longitude = float(raw[_LONGITUDE_KEY])
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Record without a usable coordinate pair: {exc}") from exc

        fields = {attr: _text(raw.get(key)) for attr, key in _FIELD_KEYS.items()}
        extra = {k: v for k, v in raw.items() if k not in _KNOWN_KEYS}
        return cls(latitude=latitude, longitude=longitude, extra=extra, **fields)

    def to_dict(self) -> dict[str, Any]:
        """Inverse of from_dict()."""
        data: dict[str, Any] = dict(self.extra)
        data[_LATITUDE_KEY] = self.latitude
        data[_LONGITUDE_KEY] = self.longitude
        for attr, key in _FIELD_KEYS.items():
            data[key] = getattr(self, attr)
        return data


@dataclasses.dataclass(frozen=True)
class Page:
    """One page envelope returned by the remote API."""

    records: tuple[Record, ...] = ()
    page: int | None = None
    page_size: int | None = None
    total_records: int | None = None
    page_records: int | None = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Page:
        """
        Parse a page envelope. Records that cannot be parsed are skipped.

        Raises ValueError when the envelope itself is malformed.
        """
        if not isinstance(raw, dict) or not isinstance(raw.get("records"), list):
            raise ValueError(f"Unexpected page format: {str(raw)[:200]}")

        records = []
        for item in raw["records"]:
            try:
                records.append(Record.from_dict(item))
            except ValueError as exc:
                _LOGGER.debug("Skipping invalid record on page %s: %s", raw.get("page"), exc)

        return cls(
            records=tuple(records),
            page=_int_or_none(raw.get("page")),
            page_size=_int_or_none(raw.get("pageSize")),
            total_records=_int_or_none(raw.get("totalRecords")),
            page_records=_int_or_none(raw.get("pageRecords")),
        )


@dataclasses.dataclass(frozen=True)
class CacheEnvelope:
    """Persisted collection plus capture time (epoch seconds) and schema version."""

    records: tuple[Record, ...]
    captured_at: float
    schema_version: str

    @property
    def total_records(self) -> int:
        return len(self.records)

    def to_json(self) -> dict[str, Any]:
        return {
            "records": [r.to_dict() for r in self.records],
            "captured_at": self.captured_at,
            "schema_version": self.schema_version,
            "total_records": self.total_records,
        }

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> CacheEnvelope:
        """Strict inverse of to_json(); any malformed part raises ValueError."""
        if not isinstance(raw, dict):
            raise ValueError("Cache envelope is not a JSON object")
        try:
            records = tuple(Record.from_dict(r) for r in raw["records"])
            captured_at = float(raw["captured_at"])
            schema_version = str(raw["schema_version"])
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Malformed cache envelope: {exc}") from exc
        return cls(records=records, captured_at=captured_at, schema_version=schema_version)
