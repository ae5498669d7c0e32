# fdm_app/percelen/perceeldata.py
"""Perceel-queries die door meerdere blueprints gebruikt worden."""
import json

VERWERVINGSWIJZEN = {
    "nl_01": "Eigendom",
    "nl_02": "Pacht",
    "nl_07": "Overige exploitatievormen",
    "nl_09": "Erfpacht",
    "nl_12": "Reguliere pacht",
    "nl_13": "In gebruik van een terreinbeherende organisatie",
    "nl_61": "Tijdelijke pacht",
    "nl_63": "Teeltpacht",
    "unknown": "Onbekend",
}

PERCEEL_SELECT = """
    SELECT p.id AS b_id, p.perceelnaam AS b_name, p.bedrijf_id AS b_id_farm,
           p.geometry_geojson, p.oppervlakte AS b_area,
           p.longitude, p.latitude,
           p.begin AS b_start, p.eind AS b_end,
           p.verwervingswijze AS b_acquiring_method, p.bron_id AS b_id_source,
           p.bufferstrook, p.regio AS b_region,
           p.nv_gebied, p.grondwaterbeschermingsgebied, p.natura2000,
           p.derogatievrije_zone, p.n_depositie AS b_n_deposition
    FROM percelen p
"""


def perceel_naar_dict(row) -> dict:
    """Databaserij -> perceel zoals de API en de berekeningen hem gebruiken."""
    if row is None:
        return None
    d = dict(row)
    raw_geom = d.pop("geometry_geojson", None)
    d["b_geometry"] = json.loads(raw_geom) if raw_geom else None
    lon, lat = d.pop("longitude", None), d.pop("latitude", None)
    d["b_centroid"] = [lon, lat] if lon is not None and lat is not None else None
    d["b_bufferstrip"] = int(d.pop("bufferstrook") or 0) == 1
    d["b_in_nv"] = int(d.pop("nv_gebied") or 0) == 1
    d["b_in_gwbg"] = int(d.pop("grondwaterbeschermingsgebied") or 0) == 1
    d["b_in_natura2000"] = int(d.pop("natura2000") or 0) == 1
    d["b_in_derogatievrije_zone"] = int(d.pop("derogatievrije_zone") or 0) == 1
    d["b_acquiring_method_label"] = VERWERVINGSWIJZEN.get(d.get("b_acquiring_method") or "unknown")
    return d


def is_perceel_productief(perceel: dict) -> bool:
    return not perceel.get("b_bufferstrip")


def lijst_percelen(c, bedrijf_id, start=None, end=None):
    """
    Percelen van een bedrijf die (een deel van) het tijdvak in gebruik zijn:
    begin <= end en (eind leeg of eind >= start).
    """
    q = PERCEEL_SELECT + " WHERE p.bedrijf_id = %s"
    params = [bedrijf_id]
    if end is not None:
        q += " AND p.begin <= %s"
        params.append(end)
    if start is not None:
        q += " AND (p.eind IS NULL OR p.eind >= %s)"
        params.append(start)
    q += " ORDER BY p.perceelnaam"
    c.execute(q, params)
    return [perceel_naar_dict(r) for r in c.fetchall()]


def get_perceel(c, perceel_id):
    c.execute(PERCEEL_SELECT + " WHERE p.id = %s", (perceel_id,))
    return perceel_naar_dict(c.fetchone())
