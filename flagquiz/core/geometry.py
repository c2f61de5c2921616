from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6_371_000.0

# GeoJSON order: (lon, lat)
Ring = tuple[tuple[float, float], ...]


@dataclass(frozen=True, slots=True)
class BBox:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def intersects(self, other: BBox) -> bool:
        return not (
            other.min_lon > self.max_lon
            or other.max_lon < self.min_lon
            or other.min_lat > self.max_lat
            or other.max_lat < self.min_lat
        )

    def center(self) -> tuple[float, float]:
        """(lat, lon) of the box centre."""

        return (self.min_lat + self.max_lat) / 2, (self.min_lon + self.max_lon) / 2

    def union(self, other: BBox) -> BBox:
        return BBox(
            min_lon=min(self.min_lon, other.min_lon),
            min_lat=min(self.min_lat, other.min_lat),
            max_lon=max(self.max_lon, other.max_lon),
            max_lat=max(self.max_lat, other.max_lat),
        )

    @staticmethod
    def around(points: Iterable[tuple[float, float]]) -> BBox | None:
        lons: list[float] = []
        lats: list[float] = []
        for lon, lat in points:
            lons.append(lon)
            lats.append(lat)
        if not lons:
            return None
        return BBox(min_lon=min(lons), min_lat=min(lats), max_lon=max(lons), max_lat=max(lats))


def bbox_union(boxes: Iterable[BBox | None]) -> BBox | None:
    out: BBox | None = None
    for b in boxes:
        if b is None:
            continue
        out = b if out is None else out.union(b)
    return out


def point_in_ring(lon: float, lat: float, ring: Ring) -> bool:
    """Ray-casting parity test."""

    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > lat) != (yj > lat) and lon < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def _as_ring(raw: Any) -> Ring:
    pts: list[tuple[float, float]] = []
    for p in raw or ():
        if len(p) < 2:
            continue
        pts.append((float(p[0]), float(p[1])))
    return tuple(pts)


@dataclass(frozen=True, slots=True)
class BoundaryFeature:
    """Outer rings of one country's Polygon/MultiPolygon.

    Holes are dropped: a click inside a hole still belongs to the enclosing country.
    A feature without usable rings has `bbox is None` and never matches.
    """

    code: str
    rings: tuple[Ring, ...]
    bbox: BBox | None

    @staticmethod
    def from_geometry(code: str, geometry: Mapping[str, Any] | None) -> BoundaryFeature:
        rings: list[Ring] = []
        if geometry:
            gtype = geometry.get("type")
            coords = geometry.get("coordinates") or []
            if gtype == "Polygon":
                polygons = [coords]
            elif gtype == "MultiPolygon":
                polygons = list(coords)
            else:
                logger.warning("feature %s: unsupported geometry type %r", code, gtype)
                polygons = []
            for poly in polygons:
                if not poly:
                    continue
                ring = _as_ring(poly[0])
                # A ring needs at least three vertices to enclose anything.
                if len(ring) >= 3:
                    rings.append(ring)

        bbox = BBox.around(p for ring in rings for p in ring)
        return BoundaryFeature(code=code, rings=tuple(rings), bbox=bbox)

    def contains(self, lat: float, lon: float) -> bool:
        if self.bbox is None or not self.bbox.contains(lat, lon):
            return False
        return any(point_in_ring(lon, lat, ring) for ring in self.rings)


class HitTester:
    """Resolves a map click to the country whose boundary contains it."""

    def __init__(self, features: Iterable[BoundaryFeature]) -> None:
        self._features: dict[str, BoundaryFeature] = {}
        for f in features:
            # First feature for a code wins.
            self._features.setdefault(f.code, f)
        self._bounds = bbox_union(f.bbox for f in self._features.values())

    def __contains__(self, code: object) -> bool:
        return code in self._features

    def __len__(self) -> int:
        return len(self._features)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(self._features)

    @property
    def bounds(self) -> BBox | None:
        return self._bounds

    def get(self, code: str) -> BoundaryFeature | None:
        return self._features.get(code)

    def features_at(self, lat: float, lon: float) -> list[str]:
        if self._bounds is None or not self._bounds.contains(lat, lon):
            return []
        return [code for code, f in self._features.items() if f.contains(lat, lon)]

    def resolve(self, lat: float, lon: float) -> str | None:
        """First containing country, or None for an ocean click."""

        if self._bounds is None or not self._bounds.contains(lat, lon):
            return None
        for code, f in self._features.items():
            if f.contains(lat, lon):
                return code
        return None

    def bbox_for(self, codes: Sequence[str]) -> BBox | None:
        return bbox_union(self._features[c].bbox for c in codes if c in self._features)


def haversine_m(a: tuple[float, float], b: tuple[float, float]) -> float:
    """Great-circle distance in metres between two (lat, lon) points."""

    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])
    sin_dlat = math.sin((lat2 - lat1) / 2)
    sin_dlon = math.sin((lon2 - lon1) / 2)
    h = sin_dlat * sin_dlat + math.cos(lat1) * math.cos(lat2) * sin_dlon * sin_dlon
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))
