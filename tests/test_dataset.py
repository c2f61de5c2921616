from __future__ import annotations

import json
from pathlib import Path

import pytest

from flagquiz.api.models import Country
from flagquiz.dataset.registry import CountryCatalog, DatasetError, boundaries_from_geojson, load_catalog


def test_fixture_catalog_loaded(catalog) -> None:
    assert len(catalog) == 18
    assert len(catalog.hit_tester) == 18
    assert catalog.countries[0].code == "FR"
    assert catalog.continents() == ["Africa", "Asia", "Europe", "North America", "Oceania", "South America"]
    assert "JP" in catalog
    assert "ZZ" not in catalog
    assert catalog.get("ZZ") is None


def test_missing_difficulty_defaults_to_hardest(catalog) -> None:
    assert catalog.get("KR").difficulty == 3


def test_localized_names(catalog) -> None:
    be = catalog.get("BE")
    assert be.display_name() == "Belgium"
    assert be.display_name("fr") == "Belgique"
    assert be.display_name("de") == "Belgium"
    assert catalog.get("FR").display_name("fr") == "France"


def test_country_difficulty_bounds() -> None:
    assert Country(code="XX", name="X", continent="Asia", difficulty=None).difficulty == 3
    with pytest.raises(ValueError):
        Country(code="XX", name="X", continent="Asia", difficulty=4)


def test_duplicate_codes_rejected() -> None:
    rows = [Country(code="AA", name="A", continent="Asia"), Country(code="AA", name="A2", continent="Asia")]
    with pytest.raises(DatasetError):
        CountryCatalog.from_rows(rows)


def test_invalid_country_row() -> None:
    with pytest.raises(DatasetError):
        CountryCatalog.from_mapping({"AA": {"name": "A"}})


def test_boundaries_require_feature_collection() -> None:
    with pytest.raises(DatasetError):
        boundaries_from_geojson({"type": "Feature"})


def test_boundaries_skip_missing_codes() -> None:
    geojson = {
        "type": "FeatureCollection",
        "features": [
            {"type": "Feature", "properties": {}, "geometry": None},
            {"type": "Feature", "properties": {"ISO3166-1-Alpha-2": "-99"}, "geometry": None},
            {"type": "Feature", "properties": {"ISO3166-1-Alpha-2": "AA"}, "geometry": None},
        ],
    }
    features = boundaries_from_geojson(geojson)
    assert [f.code for f in features] == ["AA"]
    assert features[0].bbox is None


def test_strict_mode_raises_when_files_missing(tmp_path: Path) -> None:
    with pytest.raises(DatasetError):
        load_catalog(root=tmp_path)


def test_fallback_dataset_when_not_strict(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FLAGQUIZ_STRICT_DATASET", raising=False)
    catalog = load_catalog(root=tmp_path)
    assert len(catalog) == 10
    assert catalog.hit_tester.resolve(48.8566, 2.3522) == "FR"


def test_invalid_json_is_a_dataset_error(tmp_path: Path) -> None:
    data = tmp_path / "data"
    data.mkdir()
    (data / "countries.json").write_text("{oops", encoding="utf-8")
    (data / "countries.geojson").write_text(json.dumps({"type": "FeatureCollection", "features": []}), encoding="utf-8")
    with pytest.raises(DatasetError):
        load_catalog(root=tmp_path)


def test_countries_file_must_be_an_object(tmp_path: Path) -> None:
    data = tmp_path / "data"
    data.mkdir()
    (data / "countries.json").write_text("[]", encoding="utf-8")
    (data / "countries.geojson").write_text(json.dumps({"type": "FeatureCollection", "features": []}), encoding="utf-8")
    with pytest.raises(DatasetError):
        load_catalog(root=tmp_path)


def test_camel_case_capital_coords_are_read() -> None:
    catalog = CountryCatalog.from_mapping(
        {"FR": {"name": "France", "continent": "Europe", "capital": "Paris", "capitalCoords": [48.8566, 2.3522], "center": [46, 2]}}
    )
    fr = catalog.get("FR")
    assert fr.capital == "Paris"
    assert fr.capital_coords == (48.8566, 2.3522)
    assert fr.center == (46.0, 2.0)
    assert Country(code="ES", name="Spain", continent="Europe", capital_coords=(40.4, -3.7)).capital_coords == (40.4, -3.7)
