# fdm_app/services/nmi_advies.py
"""
Koppeling met de NMI API: bemestingsadvies per gewas en geschatte
bodemparameters op een locatie.
"""
from __future__ import annotations
from typing import Dict, Any, List
import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fdm_app.percelen.geometrie import bereken_centroid

NMI_BASE = "https://api.nmi-agro.nl"

logger = logging.getLogger(__name__)


def _session() -> requests.Session:
    s = requests.Session()
    retries = Retry(total=3, backoff_factor=0.5, status_forcelist=(429, 500, 502, 503, 504),
                    allowed_methods=None)
    s.mount("https://", HTTPAdapter(max_retries=retries))
    return s


def _headers(api_key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}


def brp_code(b_lu_catalogue: str) -> str:
    """'nl_265' -> '265'"""
    code = (b_lu_catalogue or "").split("_")[-1]
    if not code:
        raise ValueError("Invalid b_lu_catalogue provided")
    return code


def advies_verzoek(b_lu_catalogue: str, b_centroid, huidige_bodemdata: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Body voor /bemestingsplan/nutrients. Nmin gaat per bemonsterde laag mee."""
    a_nmin_cc_d30 = None
    a_nmin_cc_d60 = None
    bodem: Dict[str, Any] = {}
    for item in huidige_bodemdata:
        if item["parameter"] == "a_nmin_cc":
            onder = item.get("a_depth_lower")
            if onder is not None and onder <= 30:
                a_nmin_cc_d30 = item["value"]
            elif onder is not None and onder <= 60:
                a_nmin_cc_d60 = item["value"]
            continue
        bodem[item["parameter"]] = item["value"]

    return {
        "a_lon": b_centroid[0],
        "a_lat": b_centroid[1],
        "b_lu_brp": [brp_code(b_lu_catalogue)],
        "a_nmin_cc_d30": a_nmin_cc_d30,
        "a_nmin_cc_d60": a_nmin_cc_d60,
        **bodem,
    }


def vraag_bemestingsadvies(b_lu_catalogue: str, b_centroid, huidige_bodemdata, api_key: str | None) -> Dict[str, Any]:
    """
    Jaaradvies (kg/ha per nutriënt) voor een gewas op een perceel.
    Gooit ValueError zonder API-key en RuntimeError als de API faalt.
    """
    if not api_key:
        raise ValueError("NMI API key not provided")

    body = advies_verzoek(b_lu_catalogue, b_centroid, huidige_bodemdata)
    try:
        r = _session().post(f"{NMI_BASE}/bemestingsplan/nutrients", json=body,
                            headers=_headers(api_key), timeout=30)
    except requests.RequestException as e:
        logger.warning(f"NMI bemestingsadvies niet bereikbaar: {e}")
        raise RuntimeError("Request to NMI API failed") from e

    if not r.ok:
        logger.warning(f"NMI bemestingsadvies gaf status {r.status_code}")
        raise RuntimeError(f"Request to NMI API failed with status {r.status_code}: {r.reason}")
    return r.json()["data"]["year"]


def haal_bodemschatting(geometry: Dict[str, Any], api_key: str | None) -> Dict[str, Any]:
    """Geschatte bodemparameters op de centroid van een perceel."""
    if not api_key:
        raise ValueError("NMI API key not provided")

    a_lon, a_lat = bereken_centroid(geometry)
    try:
        r = _session().get(
            f"{NMI_BASE}/estimates",
            params={"a_lat": a_lat, "a_lon": a_lon},
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=30,
        )
    except requests.RequestException as e:
        logger.warning(f"NMI schattingen niet bereikbaar: {e}")
        raise RuntimeError("Request to NMI API failed") from e

    if not r.ok:
        logger.warning(f"NMI schattingen gaven status {r.status_code}")
        raise RuntimeError("Request to NMI API failed")

    data = dict(r.json().get("data") or {})
    data.update({"a_source": "nl-other-nmi", "a_depth_upper": 0})
    return data
