from flask import Blueprint, request, jsonify
from datetime import date
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import parse_tijdvak, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, bedrijf_van_gebruiker, perceel_van_gebruiker, geen_toegang
)
from fdm_app.balans.invoer import balansinvoer_bedrijf, balansinvoer_perceel
from fdm_app.balans.organische_stof import bereken_os_balans
from fdm_app.balans.stikstof import bereken_stikstofbalans

balans_bp = Blueprint(
    'balans',
    __name__,
    url_prefix='/balans'
)

logger = logging.getLogger(__name__)

BALANSEN = {
    "stikstof": bereken_stikstofbalans,
    "organische-stof": bereken_os_balans,
}


def _tijdvak():
    """Start en eind zijn allebei nodig; een open kant wordt het hele jaar."""
    start, end = parse_tijdvak(request.args)
    if start is None:
        start = date(end.year, 1, 1)
    if end is None:
        end = date(start.year, 12, 31)
    return start, end


@balans_bp.route('/<soort>/bedrijf/<bedrijf_id>', methods=['GET'])
@login_required
def balans_bedrijf(soort, bedrijf_id):
    bereken = BALANSEN.get(soort)
    if bereken is None:
        return jsonify({"success": False, "message": f"Onbekende balans: {soort}"}), 404
    try:
        start, end = _tijdvak()
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        invoer = balansinvoer_bedrijf(c, bedrijf_id, start, end)
    finally:
        conn.close()

    resultaat = bereken(invoer)
    logger.info(f"Balans {soort} bedrijf {bedrijf_id} {start} t/m {end}: {len(resultaat['fields'])} percelen")
    return jsonify(naar_json({"b_id_farm": bedrijf_id, "start": start, "end": end, **resultaat}))


@balans_bp.route('/<soort>/perceel/<perceel_id>', methods=['GET'])
@login_required
def balans_perceel(soort, perceel_id):
    bereken = BALANSEN.get(soort)
    if bereken is None:
        return jsonify({"success": False, "message": f"Onbekende balans: {soort}"}), 404
    try:
        start, end = _tijdvak()
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        invoer = balansinvoer_perceel(c, perceel_id, start, end)
    finally:
        conn.close()

    if invoer is None:
        return jsonify({"success": False, "message": "Perceel niet gevonden"}), 404
    veld = bereken(invoer)["fields"][0]
    if "errorMessage" in veld:
        return jsonify({"success": False, "message": veld["errorMessage"]}), 400
    return jsonify(naar_json({"start": start, "end": end, **veld}))
