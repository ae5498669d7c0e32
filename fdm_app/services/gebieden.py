# fdm_app/services/gebieden.py
"""
Ligging van een punt in beleidsgebieden (NV-gebied, grondwaterbeschermingsgebied,
Natura2000, derogatievrije zone) op basis van lokale GeoJSON-bestanden.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Dict

from shapely.geometry import shape, Point
from shapely.prepared import prep

logger = logging.getLogger(__name__)

# vlag -> bestandsnaam in GEBIEDEN_DATA_DIR
GEBIEDSLAGEN = {
    "nv_gebied": "nv_gebieden.geojson",
    "grondwaterbeschermingsgebied": "grondwaterbeschermingsgebieden.geojson",
    "natura2000": "natura2000.geojson",
    "derogatievrije_zone": "derogatievrije_zones.geojson",
}

# Cache: pad -> lijst met prepared geometrieën
_GEBIEDEN_CACHE: Dict[str, list] = {}


def laad_gebiedslaag(pad: Path) -> list:
    """Lees een FeatureCollection één keer in en bewaar de polygonen in geheugen."""
    key = str(pad)
    if key not in _GEBIEDEN_CACHE:
        if not pad.exists():
            logger.warning("Gebiedslaag %s niet gevonden; punt telt als buiten het gebied", pad)
            _GEBIEDEN_CACHE[key] = []
        else:
            with pad.open(encoding="utf-8") as f:
                fc = json.load(f)
            _GEBIEDEN_CACHE[key] = [
                prep(shape(feat["geometry"]))
                for feat in (fc.get("features") or [])
                if feat.get("geometry")
            ]
    return _GEBIEDEN_CACHE[key]


def leeg_cache():
    _GEBIEDEN_CACHE.clear()


def ligt_in_gebied(laag: str, lon: float, lat: float, data_dir) -> bool:
    if laag not in GEBIEDSLAGEN:
        raise ValueError(f"Onbekende gebiedslaag: {laag}")
    polygonen = laad_gebiedslaag(Path(data_dir) / GEBIEDSLAGEN[laag])
    punt = Point(lon, lat)
    return any(p.contains(punt) for p in polygonen)


def bepaal_gebiedsvlaggen(lon: float, lat: float, data_dir) -> Dict[str, bool]:
    """Alle vlaggen in één keer, bijv. {"nv_gebied": True, "natura2000": False, ...}."""
    return {laag: ligt_in_gebied(laag, lon, lat, data_dir) for laag in GEBIEDSLAGEN}
