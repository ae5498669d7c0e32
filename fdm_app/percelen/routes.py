# fdm_app/percelen/routes.py
from __future__ import annotations
from flask import Blueprint, request, jsonify, current_app
import uuid
import json
import logging
from datetime import date

import requests

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import (
    formulier_data, safe_float, safe_int, parse_bool, parse_datum, naar_json
)
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, bedrijf_van_gebruiker, perceel_van_gebruiker, geen_toegang
)
from fdm_app.percelen.geometrie import (
    lees_geometrie, bereken_oppervlakte_ha, bereken_centroid, ligt_in_nederland
)
from fdm_app.percelen.perceeldata import (
    VERWERVINGSWIJZEN, lijst_percelen, get_perceel, is_perceel_productief
)
from fdm_app.services.gebieden import bepaal_gebiedsvlaggen
from fdm_app.services.rvo_grondsoorten import rvo_regio_at_point, REGIO_KEYS
from fdm_app.services.pdok_gewaspercelen import fetch_brp_items, parse_brp_features
from fdm_app.teelten import teeltplan

percelen_bp = Blueprint(
    'percelen',
    __name__,
    url_prefix='/percelen'
)

logger = logging.getLogger(__name__)

# vlag in de API -> kolom in de database
GEBIEDSVLAGGEN = {
    "b_in_nv": "nv_gebied",
    "b_in_gwbg": "grondwaterbeschermingsgebied",
    "b_in_natura2000": "natura2000",
    "b_in_derogatievrije_zone": "derogatievrije_zone",
}


def _gebiedsvlaggen(data, lon, lat):
    """
    Handmatig opgegeven vlaggen gaan voor; de rest volgt uit de gebiedskaarten.
    """
    auto = bepaal_gebiedsvlaggen(lon, lat, current_app.config["GEBIEDEN_DATA_DIR"])
    vlaggen = {}
    for api_key, kolom in GEBIEDSVLAGGEN.items():
        if data.get(api_key) not in (None, ""):
            vlaggen[kolom] = 1 if parse_bool(data.get(api_key)) else 0
        else:
            vlaggen[kolom] = 1 if auto.get(kolom) else 0
    return vlaggen


def _regio(data, lon, lat):
    regio = (data.get('b_region') or '').strip() or None
    if regio:
        if regio not in REGIO_KEYS:
            raise ValueError(f"Onbekende regio: {regio}")
        return regio
    return rvo_regio_at_point(lat, lon)


def perceel_kolommen(data, geom):
    """Formulier/JSON -> kolommen voor de percelen-tabel (zonder id/bedrijf_id)."""
    naam = (data.get('b_name') or data.get('perceelnaam') or '').strip()
    if not naam:
        raise ValueError("Perceelnaam is verplicht.")

    begin = parse_datum(data.get('b_start'))
    eind = parse_datum(data.get('b_end'))
    if begin is None:
        raise ValueError("Startdatum (b_start) is verplicht.")
    if eind is not None and eind <= begin:
        raise ValueError("Startdatum moet voor de einddatum liggen.")

    methode = data.get('b_acquiring_method') or 'unknown'
    if methode not in VERWERVINGSWIJZEN:
        raise ValueError(f"Onbekende verwervingswijze: {methode}")

    lon, lat = bereken_centroid(geom)
    if not ligt_in_nederland(lon, lat):
        logger.warning("Perceel '%s' ligt buiten Nederland (%s, %s)", naam, lon, lat)

    kolommen = {
        "perceelnaam": naam,
        "geometry_geojson": json.dumps(geom, separators=(',', ':')),
        "oppervlakte": bereken_oppervlakte_ha(geom),
        "longitude": lon,
        "latitude": lat,
        "begin": begin,
        "eind": eind,
        "verwervingswijze": methode,
        "bron_id": data.get('b_id_source') or None,
        "bufferstrook": 1 if parse_bool(data.get('b_bufferstrip')) else 0,
        "regio": _regio(data, lon, lat),
        "n_depositie": safe_float(data.get('b_n_deposition')),
    }
    kolommen.update(_gebiedsvlaggen(data, lon, lat))
    return kolommen


def voeg_perceel_toe(c, bedrijf_id, kolommen) -> str:
    perceel_id = str(uuid.uuid4())
    cols = ["id", "bedrijf_id"] + list(kolommen.keys())
    c.execute(
        f"INSERT INTO percelen ({', '.join(cols)}) VALUES ({', '.join(['%s'] * len(cols))})",
        [perceel_id, bedrijf_id] + list(kolommen.values())
    )
    return perceel_id


# ------------- Routes -------------
@percelen_bp.route('/', methods=['GET', 'POST'])
@login_required
def percelen():
    eff_uid = effective_user_id()

    if request.method == 'POST':
        data = formulier_data()
        bedrijf_id = data.get('b_id_farm') or data.get('bedrijf_id')

        try:
            geom = lees_geometrie(data.get('b_geometry'))
            kolommen = perceel_kolommen(data, geom)
        except ValueError as e:
            return jsonify({"success": False, "message": str(e)}), 400

        conn, c = db.get_dict_cursor()
        try:
            if not bedrijf_van_gebruiker(c, bedrijf_id, eff_uid):
                return geen_toegang("dit bedrijf")

            c.execute(
                "SELECT 1 FROM percelen WHERE perceelnaam=%s AND bedrijf_id=%s",
                (kolommen["perceelnaam"], bedrijf_id)
            )
            if c.fetchone():
                return jsonify({"success": False, "message": "Deze perceelnaam bestaat al."}), 409

            perceel_id = voeg_perceel_toe(c, bedrijf_id, kolommen)
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        return jsonify({"success": True, "message": "Perceel toegevoegd.", "b_id": perceel_id,
                        "b_area": kolommen["oppervlakte"], "b_region": kolommen["regio"]}), 201

    # GET: percelen van een bedrijf binnen het tijdvak
    bedrijf_id = request.args.get('b_id_farm')
    start = parse_datum(request.args.get('start'))
    end = parse_datum(request.args.get('end'))
    jaar = safe_int(request.args.get('jaar'))
    if jaar:
        start, end = date(jaar, 1, 1), date(jaar, 12, 31)

    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, eff_uid):
            return geen_toegang("dit bedrijf")
        rows = lijst_percelen(c, bedrijf_id, start, end)
    finally:
        conn.close()

    for r in rows:
        r["b_productive"] = is_perceel_productief(r)
    return jsonify(naar_json(rows))


@percelen_bp.route('/verwervingswijzen', methods=['GET'])
def verwervingswijzen():
    return jsonify([{"value": k, "label": v} for k, v in VERWERVINGSWIJZEN.items()])


@percelen_bp.route('/<perceel_id>', methods=['GET'])
@login_required
def perceel_detail(perceel_id):
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        perceel = get_perceel(c, perceel_id)
    finally:
        conn.close()

    perceel["b_productive"] = is_perceel_productief(perceel)
    return jsonify(naar_json(perceel))


@percelen_bp.route('/<perceel_id>/edit', methods=['POST'])
@login_required
def perceel_edit(perceel_id):
    data = formulier_data()
    conn, c = db.get_dict_cursor()
    try:
        bedrijf_id = perceel_van_gebruiker(c, perceel_id, effective_user_id())
        if not bedrijf_id:
            return geen_toegang("dit perceel")

        bestaand = get_perceel(c, perceel_id)
        # Ontbrekende velden aanvullen met de huidige waarden
        samengevoegd = {
            "b_name": bestaand["b_name"],
            "b_start": bestaand["b_start"],
            "b_end": bestaand["b_end"],
            "b_acquiring_method": bestaand["b_acquiring_method"],
            "b_id_source": bestaand["b_id_source"],
            "b_bufferstrip": bestaand["b_bufferstrip"],
            "b_region": bestaand["b_region"],
            "b_n_deposition": bestaand["b_n_deposition"],
        }
        if not data.get('b_geometry'):
            # Zelfde ligging: opgeslagen (handmatige) gebiedsvlaggen blijven staan
            for api_key in GEBIEDSVLAGGEN:
                samengevoegd[api_key] = bestaand[api_key]
        samengevoegd.update({k: v for k, v in data.items() if k != 'b_geometry'})

        try:
            geom = lees_geometrie(data['b_geometry']) if data.get('b_geometry') else bestaand["b_geometry"]
            kolommen = perceel_kolommen(samengevoegd, geom)
        except ValueError as e:
            return jsonify({"success": False, "message": str(e)}), 400

        c.execute(
            "SELECT 1 FROM percelen WHERE perceelnaam=%s AND bedrijf_id=%s AND id<>%s",
            (kolommen["perceelnaam"], bedrijf_id, perceel_id)
        )
        if c.fetchone():
            return jsonify({"success": False, "message": "Deze perceelnaam bestaat al."}), 409

        set_clause = ", ".join(f"{col} = %s" for col in kolommen)
        c.execute(
            f"UPDATE percelen SET {set_clause} WHERE id = %s",
            list(kolommen.values()) + [perceel_id]
        )
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    return jsonify({"success": True, "message": "Perceel bijgewerkt."})


@percelen_bp.route('/<perceel_id>/delete', methods=['POST'])
@login_required
def perceel_delete(perceel_id):
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        # Teelten, oogsten, bemestingen en grondmonsters via ON DELETE CASCADE
        c.execute("DELETE FROM percelen WHERE id = %s", (perceel_id,))
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Perceel verwijderd."})


# ------------- PDOK -------------
@percelen_bp.route('/pdok', methods=['GET'])
@login_required
def pdok_percelen():
    bbox = request.args.get('bbox', '')
    try:
        fc = fetch_brp_items(bbox, limit=safe_int(request.args.get('limit'), 250))
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    except requests.RequestException as e:
        logger.warning("PDOK gewaspercelen ophalen mislukt: %s", e)
        return jsonify({"success": False, "message": "PDOK is niet bereikbaar."}), 502

    return jsonify(parse_brp_features(fc))


@percelen_bp.route('/pdok_import', methods=['POST'])
@login_required
def pdok_import():
    """
    Importeer geselecteerde BRP-percelen als percelen met hun gewas als eerste teelt.
    Body: {"b_id_farm": ..., "jaar": 2025, "features": [{geometry, b_id_source, b_lu_catalogue, b_name}]}
    """
    data = request.get_json(silent=True) or {}
    bedrijf_id = data.get('b_id_farm')
    jaar = safe_int(data.get('jaar'), date.today().year)
    features = data.get('features') or []
    if not features:
        return jsonify({"success": False, "message": "Geen percelen geselecteerd."}), 400

    conn, c = db.get_dict_cursor()
    toegevoegd = []
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")

        for i, feat in enumerate(features, start=1):
            invoer = {
                "b_name": feat.get('b_name') or f"Perceel {i}",
                "b_start": date(jaar, 1, 1),
                "b_id_source": feat.get('b_id_source'),
                "b_acquiring_method": feat.get('b_acquiring_method') or 'unknown',
            }
            try:
                geom = lees_geometrie(feat.get('geometry'))
                perceel_id = voeg_perceel_toe(c, bedrijf_id, perceel_kolommen(invoer, geom))

                catalogue = feat.get('b_lu_catalogue')
                if catalogue and teeltplan.catalogus_bestaat(c, catalogue):
                    start, eind = teeltplan.standaard_datums(c, catalogue, jaar)
                    teeltplan.voeg_teelt_toe(c, perceel_id, catalogue, start, eind)
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": f"Perceel {i}: {e}"}), 400
            toegevoegd.append(perceel_id)

        conn.commit()
    finally:
        conn.close()

    return jsonify({"success": True, "message": f"{len(toegevoegd)} percelen geïmporteerd.",
                    "b_ids": toegevoegd}), 201
