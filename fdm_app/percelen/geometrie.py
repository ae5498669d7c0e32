# fdm_app/percelen/geometrie.py
"""Geometrie van percelen: validatie, oppervlakte (ha) en centroid."""
import json

import shapely.geometry as sh_geom
from shapely.ops import transform as sh_transform
import pyproj


def lees_geometrie(raw) -> dict:
    """GeoJSON (dict of string) naar dict; alleen Polygon wordt geaccepteerd."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raise ValueError("Geometrie is geen geldige JSON")

    # Feature of losse geometrie
    if isinstance(raw, dict) and raw.get("type") == "Feature":
        raw = raw.get("geometry")

    if not isinstance(raw, dict) or raw.get("type") != "Polygon":
        raise ValueError("Geometrie moet een GeoJSON Polygon zijn")

    poly = sh_geom.shape(raw)
    if poly.is_empty or not poly.is_valid:
        raise ValueError("Geometrie is geen geldig polygoon")
    return raw


def bereken_oppervlakte_ha(geom: dict) -> float:
    """Oppervlakte (ha) van een GeoJSON polygoon in WGS84, via een Albers equal-area projectie."""
    poly = sh_geom.shape(geom)
    centroid = poly.centroid
    proj = pyproj.Proj(
        proj='aea',
        lat_1=centroid.y - 2,
        lat_2=centroid.y + 2,
        lat_0=centroid.y,
        lon_0=centroid.x
    )
    wgs84 = pyproj.Proj('epsg:4326')
    project = pyproj.Transformer.from_proj(wgs84, proj, always_xy=True).transform
    area_m2 = sh_transform(project, poly).area
    return round(area_m2 / 10000.0, 4)


def bereken_centroid(geom: dict):
    """[lon, lat] van het zwaartepunt."""
    c = sh_geom.shape(geom).centroid
    return [round(c.x, 7), round(c.y, 7)]


def ligt_in_nederland(lon: float, lat: float) -> bool:
    return 50.0 <= lat <= 54.0 and 3.0 <= lon <= 8.0
