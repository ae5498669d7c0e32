from flask import Blueprint, request, jsonify
from datetime import date
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import safe_int, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, bedrijf_van_gebruiker, perceel_van_gebruiker, geen_toegang
)
from fdm_app.gebruiksnormen.bedrijfsniveau import bereken_bedrijf, bereken_perceel
from fdm_app.gebruiksnormen.invoer import invoer_voor_bedrijf, invoer_voor_perceel

gebruiksnormen_bp = Blueprint(
    'gebruiksnormen',
    __name__,
    url_prefix='/gebruiksnormen'
)

logger = logging.getLogger(__name__)


def _jaar():
    return safe_int(request.args.get('jaar'), date.today().year)


@gebruiksnormen_bp.route('/perceel/<perceel_id>', methods=['GET'])
@login_required
def normen_perceel(perceel_id):
    """Gebruiksnormen en opvulling (kg/ha) van één perceel."""
    jaar = _jaar()
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        invoer = invoer_voor_perceel(c, perceel_id, jaar)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()

    if invoer is None:
        return jsonify({"success": False, "message": "Perceel niet gevonden"}), 404
    try:
        resultaat = bereken_perceel(invoer)
    except ValueError as e:
        logger.warning(f"Gebruiksnormen perceel {perceel_id} ({jaar}) niet te berekenen: {e}")
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify(naar_json({"jaar": jaar, **resultaat}))


@gebruiksnormen_bp.route('/bedrijf/<bedrijf_id>', methods=['GET'])
@login_required
def normen_bedrijf(bedrijf_id):
    """Normen per perceel plus het bedrijfstotaal (kg) en de resterende ruimte."""
    jaar = _jaar()
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        invoeren = invoer_voor_bedrijf(c, bedrijf_id, jaar)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()

    resultaat = bereken_bedrijf(invoeren)
    for fout in resultaat["errors"]:
        logger.warning(f"Gebruiksnormen perceel {fout['b_id']} ({jaar}): {fout['message']}")
    return jsonify(naar_json({"jaar": jaar, "b_id_farm": bedrijf_id, **resultaat}))
