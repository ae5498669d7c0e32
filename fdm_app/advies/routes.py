from flask import Blueprint, request, jsonify, current_app
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import parse_tijdvak, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, perceel_van_gebruiker, geen_toegang
)
from fdm_app.balans.doseringen import bereken_dosering
from fdm_app.bemestingen.bemestingdata import lijst_bemestingen
from fdm_app.grondmonsters.bodemdata import get_huidige_bodemdata
from fdm_app.percelen.perceeldata import get_perceel
from fdm_app.services.nmi_advies import vraag_bemestingsadvies
from fdm_app.teelten.teeltplan import get_teelt, lijst_teelten

advies_bp = Blueprint(
    'advies',
    __name__,
    url_prefix='/advies'
)

logger = logging.getLogger(__name__)


def _advies(teelt, perceel, bodemdata):
    if not perceel.get("b_centroid"):
        raise ValueError("Perceel heeft geen locatie")
    return vraag_bemestingsadvies(
        teelt["b_lu_catalogue"], perceel["b_centroid"], bodemdata, current_app.config.get("NMI_API_KEY")
    )


@advies_bp.route('/teelt/<b_lu>', methods=['GET'])
@login_required
def advies_teelt(b_lu):
    """Bemestingsadvies (kg/ha per nutriënt) voor één teelt."""
    conn, c = db.get_dict_cursor()
    try:
        teelt = get_teelt(c, b_lu)
        if not teelt or not perceel_van_gebruiker(c, teelt["b_id"], effective_user_id()):
            return geen_toegang("deze teelt")
        perceel = get_perceel(c, teelt["b_id"])
        bodemdata = get_huidige_bodemdata(c, teelt["b_id"])
    finally:
        conn.close()

    try:
        advies = _advies(teelt, perceel, bodemdata)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    except RuntimeError as e:
        logger.error(f"Bemestingsadvies teelt {b_lu} mislukt: {e}")
        return jsonify({"success": False, "message": str(e)}), 502
    return jsonify({"b_lu": b_lu, "b_lu_catalogue": teelt["b_lu_catalogue"], "advice": advies})


@advies_bp.route('/perceel/<perceel_id>', methods=['GET'])
@login_required
def advies_perceel(perceel_id):
    """Advies per teelt in het tijdvak naast de gegeven dosering."""
    try:
        start, end = parse_tijdvak(request.args)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        perceel = get_perceel(c, perceel_id)
        teelten = lijst_teelten(c, perceel_id, start, end)
        bemestingen = lijst_bemestingen(c, perceel_id, start, end)
        bodemdata = get_huidige_bodemdata(c, perceel_id, end)
    finally:
        conn.close()

    try:
        dosering = bereken_dosering(bemestingen)
        adviezen = [
            {"b_lu": t["b_lu"], "b_lu_catalogue": t["b_lu_catalogue"], "b_lu_name": t.get("b_lu_name"),
             "advice": _advies(t, perceel, bodemdata)}
            for t in teelten
        ]
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    except RuntimeError as e:
        logger.error(f"Bemestingsadvies perceel {perceel_id} mislukt: {e}")
        return jsonify({"success": False, "message": str(e)}), 502

    return jsonify(naar_json({
        "b_id": perceel_id,
        "start": start,
        "end": end,
        "cultivations": adviezen,
        "dose": dosering["dose"],
    }))
