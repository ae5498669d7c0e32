# fdm_app/services/rvo_grondsoorten.py
"""
Regio voor de stikstofgebruiksnorm (klei, veen, loess, zand_nwc, zand_zuid)
op basis van de RVO-grondsoortenkaart en het zuidelijk zand- en lössgebied.
De ArcGIS FeatureServer-endpoints komen uit de omgeving.
"""
from __future__ import annotations
import logging
import os
from functools import lru_cache
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)

# In de grondsoortenlaag: welk attribuut draagt de hoofdgrondsoort?
GRONDSOORT_VELD = os.getenv("RVO_GRONDSOORT_VELD", "HOOFDGRS")

REGIO_KEYS = ("klei", "veen", "loess", "zand_nwc", "zand_zuid")


def _grondsoorten_url():
    return os.getenv("RVO_GRONDSOORTEN_URL")


def _zuidelijk_gebied_url():
    return os.getenv("RVO_ZUIDELIJK_GEBIED_URL")


def _arcgis_query_point(layer_url: str, lat: float, lng: float, out_fields="*") -> Dict:
    params = {
        "f": "json",
        "geometry": f'{{"x":{lng},"y":{lat},"spatialReference":{{"wkid":4326}}}}',
        "geometryType": "esriGeometryPoint",
        "inSR": 4326,
        "spatialRel": "esriSpatialRelIntersects",
        "outFields": out_fields,
        "returnGeometry": "false",
        "where": "1=1"
    }
    r = requests.get(layer_url + "/query", params=params, timeout=15)
    r.raise_for_status()
    return r.json()


@lru_cache(maxsize=2048)
def _point_in_region(layer_url: str, lat: float, lng: float) -> bool:
    data = _arcgis_query_point(layer_url, lat, lng, out_fields="OBJECTID")
    return bool(data.get("features"))


@lru_cache(maxsize=2048)
def _hoofdgrondsoort(layer_url: str, lat: float, lng: float) -> str:
    data = _arcgis_query_point(layer_url, lat, lng, out_fields=GRONDSOORT_VELD)
    feats = data.get("features") or []
    if not feats:
        return ""
    attrs = feats[0].get("attributes") or {}
    return str(attrs.get(GRONDSOORT_VELD, "") or "").strip()


def map_grondsoort_naar_regio(hoofdg: str, in_zuidelijk: bool) -> Optional[str]:
    """Kaartwaarde + ligging in het zuidelijk gebied -> regio-key van de normtabel."""
    h = (hoofdg or "").lower().replace("ö", "o").strip()

    if "loss" in h or "loess" in h or "leem" in h:
        return "loess"
    if "veen" in h:
        return "veen"
    # zavel rekent RVO onder klei
    if "klei" in h or "zavel" in h:
        return "klei"
    if "zand" in h or "podzol" in h:
        return "zand_zuid" if in_zuidelijk else "zand_nwc"
    if not h:
        return None
    return "zand_zuid" if in_zuidelijk else "zand_nwc"


def rvo_regio_at_point(lat: float, lng: float) -> Optional[str]:
    """
    Bepaalt de regio voor een punt. Geeft None als de kaartlagen niet
    geconfigureerd zijn of niets opleveren; fouten van de dienst worden gelogd.
    """
    grondsoorten_url = _grondsoorten_url()
    if not grondsoorten_url:
        return None

    try:
        hoofdg = _hoofdgrondsoort(grondsoorten_url, lat, lng)
        zuid_url = _zuidelijk_gebied_url()
        in_zuid = _point_in_region(zuid_url, lat, lng) if zuid_url else False
    except requests.RequestException as e:
        logger.warning("RVO grondsoortenkaart niet bereikbaar: %s", e)
        return None

    return map_grondsoort_naar_regio(hoofdg, in_zuid)
