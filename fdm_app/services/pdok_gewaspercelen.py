# fdm_app/services/pdok_gewaspercelen.py
from __future__ import annotations
from typing import Dict, Any, List

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fdm_app.percelen.geometrie import bereken_centroid, bereken_oppervlakte_ha

# PDOK OGC API (BRP Gewaspercelen)
PDOK_BASE = "https://api.pdok.nl/rvo/gewaspercelen/ogc/v1"
COLLECTION = "brpgewas"


def _session() -> requests.Session:
    s = requests.Session()
    retries = Retry(total=3, backoff_factor=0.5, status_forcelist=(429, 500, 502, 503, 504))
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def fetch_brp_items(bbox: str, limit: int = 250) -> Dict[str, Any]:
    """
    Haal BRP gewaspercelen op binnen een bbox.
    - bbox: 'minx,miny,maxx,maxy' (lon,lat,lon,lat) in CRS84/WGS84.
    - limit: max 1000 per verzoek (API-limiet).
    Returned: GeoJSON FeatureCollection (dict).
    """
    delen = [p for p in (bbox or "").split(",") if p.strip()]
    if len(delen) != 4:
        raise ValueError("bbox moet vier getallen bevatten: minx,miny,maxx,maxy")

    url = f"{PDOK_BASE}/collections/{COLLECTION}/items"
    params = {"bbox": bbox, "limit": min(int(limit), 1000)}
    headers = {"Accept": "application/geo+json"}
    r = _session().get(url, params=params, headers=headers, timeout=30)
    r.raise_for_status()
    return r.json()


def parse_brp_features(fc: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Minimaliseer naar wat nodig is om een perceel aan te maken:
    - b_id_source     (PDOK id)
    - b_lu_catalogue  (BRP gewascode als 'nl_<code>')
    - b_lu_name, category, geometry, b_centroid, b_area
    MultiPolygons worden overgeslagen.
    """
    out: List[Dict[str, Any]] = []
    for f in (fc.get("features") or []):
        props = f.get("properties") or {}
        geom = f.get("geometry") or {}
        if geom.get("type") != "Polygon":
            continue

        gewascode = props.get("gewascode")
        out.append({
            "b_id_source": f.get("id") or props.get("id"),
            "b_lu_catalogue": f"nl_{gewascode}" if gewascode not in (None, "") else None,
            "b_lu_name": props.get("gewas"),
            "category": props.get("category"),
            "geometry": geom,
            "b_centroid": bereken_centroid(geom),
            "b_area": bereken_oppervlakte_ha(geom),
        })
    return out
