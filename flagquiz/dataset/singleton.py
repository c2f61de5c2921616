from __future__ import annotations

from pathlib import Path

from flagquiz.dataset.registry import CountryCatalog, load_catalog


_CATALOG: CountryCatalog | None = None


def init_catalog(*, project_root: Path) -> CountryCatalog:
    """Load the country catalog once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _CATALOG
    if _CATALOG is None:
        _CATALOG = load_catalog(root=project_root)
    return _CATALOG


def reset_catalog_for_tests() -> None:
    """Reset the cached catalog so tests can load from fixture directories."""

    global _CATALOG
    _CATALOG = None


def get_catalog() -> CountryCatalog:
    if _CATALOG is None:
        raise RuntimeError("Catalog not initialized. Call init_catalog() at startup.")
    return _CATALOG
