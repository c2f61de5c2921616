from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from flagquiz.api.models import Country
from flagquiz.core.geometry import BoundaryFeature, HitTester

logger = logging.getLogger(__name__)

CODE_PROPERTY = "ISO3166-1-Alpha-2"
UNKNOWN_CODE = "-99"


class DatasetError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class CountryCatalog:
    """Read-only country list plus boundary geometry, loaded once.

    `countries` keeps the dataset's own ordering: seeded sequences depend on it.
    """

    countries: tuple[Country, ...]
    hit_tester: HitTester
    _by_code: dict[str, Country]

    @staticmethod
    def from_rows(rows: Iterable[Country], features: Iterable[BoundaryFeature] = ()) -> CountryCatalog:
        by_code: dict[str, Country] = {}
        for c in rows:
            if c.code in by_code:
                raise DatasetError(f"Duplicate country code: {c.code}")
            by_code[c.code] = c
        return CountryCatalog(countries=tuple(by_code.values()), hit_tester=HitTester(features), _by_code=by_code)

    @staticmethod
    def from_mapping(countries: Mapping[str, Mapping[str, Any]], geojson: Mapping[str, Any] | None = None) -> CountryCatalog:
        """Build from `{code: {name, continent, ...}}` plus a GeoJSON FeatureCollection."""

        rows: list[Country] = []
        for code, data in countries.items():
            try:
                rows.append(Country.model_validate({**data, "code": code}))
            except ValidationError as e:
                raise DatasetError(f"Invalid country {code}: {e}") from e
        features = boundaries_from_geojson(geojson) if geojson else []
        return CountryCatalog.from_rows(rows, features)

    def get(self, code: str) -> Country | None:
        return self._by_code.get(code)

    def __contains__(self, item: object) -> bool:
        return isinstance(item, str) and item in self._by_code

    def __len__(self) -> int:
        return len(self.countries)

    def continents(self) -> list[str]:
        return sorted({c.continent for c in self.countries})


def boundaries_from_geojson(geojson: Mapping[str, Any]) -> list[BoundaryFeature]:
    if geojson.get("type") != "FeatureCollection":
        raise DatasetError("Boundary data must be a GeoJSON FeatureCollection")

    out: list[BoundaryFeature] = []
    for feature in geojson.get("features") or []:
        props = feature.get("properties") or {}
        code = props.get(CODE_PROPERTY)
        if not code or code == UNKNOWN_CODE:
            continue
        bf = BoundaryFeature.from_geometry(str(code), feature.get("geometry"))
        if bf.bbox is None:
            logger.warning("feature %s has no usable rings; it will never match a click", code)
        out.append(bf)
    return out


def _read_json(path: Path) -> Any:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise DatasetError(f"Dataset file not found: {path}") from e
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise DatasetError(f"Invalid JSON in {path}: {e}") from e


def _rect(min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> dict[str, Any]:
    ring = [[min_lon, min_lat], [max_lon, min_lat], [max_lon, max_lat], [min_lon, max_lat], [min_lon, min_lat]]
    return {"type": "Polygon", "coordinates": [ring]}


def _fallback_catalog() -> CountryCatalog:
    """Tiny boxed-out dataset for dev/CI when the real files are missing."""

    table = [
        ("FR", "France", "Europe", 1, (48.8566, 2.3522), (-5.0, 42.0, 8.0, 50.5)),
        ("ES", "Spain", "Europe", 1, (40.4168, -3.7038), (-9.0, 36.0, 3.0, 41.9)),
        ("DE", "Germany", "Europe", 1, (52.52, 13.405), (8.1, 47.3, 15.0, 55.0)),
        ("IT", "Italy", "Europe", 2, (41.9028, 12.4964), (8.2, 36.6, 18.5, 47.0)),
        ("BE", "Belgium", "Europe", 3, (50.8503, 4.3517), (2.5, 50.6, 6.4, 51.5)),
        ("JP", "Japan", "Asia", 1, (35.6762, 139.6503), (129.0, 31.0, 146.0, 45.0)),
        ("EG", "Egypt", "Africa", 1, (30.0444, 31.2357), (25.0, 22.0, 35.0, 31.6)),
        ("BR", "Brazil", "South America", 1, (-15.7939, -47.8828), (-74.0, -33.7, -34.8, 5.3)),
        ("CA", "Canada", "North America", 1, (45.4215, -75.6972), (-141.0, 41.7, -52.6, 83.0)),
        ("AU", "Australia", "Oceania", 2, (-35.2809, 149.13), (113.0, -43.6, 153.6, -10.7)),
    ]
    rows = [
        Country(code=code, name=name, continent=continent, difficulty=difficulty, capital_coords=capital)
        for code, name, continent, difficulty, capital, _ in table
    ]
    features = [BoundaryFeature.from_geometry(code, _rect(*box)) for code, *_, box in table]
    return CountryCatalog.from_rows(rows, features)


def load_catalog(*, root: Path) -> CountryCatalog:
    data_dir = root / "data"

    # Default behavior: fall back to a tiny dataset when files are missing.
    # Force strict behavior with FLAGQUIZ_STRICT_DATASET=1.
    strict = os.getenv("FLAGQUIZ_STRICT_DATASET", "").strip().lower() in {"1", "true", "yes"}

    try:
        countries = _read_json(data_dir / "countries.json")
        geojson = _read_json(data_dir / "countries.geojson")
        if not isinstance(countries, dict):
            raise DatasetError(f"Expected an object keyed by country code in {data_dir / 'countries.json'}")
        return CountryCatalog.from_mapping(countries, geojson)
    except DatasetError:
        if strict:
            raise
        logger.warning("dataset not found under %s, using the built-in fallback", data_dir)
        return _fallback_catalog()
