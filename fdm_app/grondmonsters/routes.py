# fdm_app/grondmonsters/routes.py
from flask import Blueprint, request, jsonify, current_app
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import formulier_data, safe_float, parse_datum, parse_tijdvak, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, perceel_van_gebruiker, geen_toegang
)
from fdm_app.grondmonsters import bodemdata
from fdm_app.percelen.perceeldata import get_perceel
from fdm_app.services.nmi_advies import haal_bodemschatting

grondmonsters_bp = Blueprint(
    'grondmonsters',
    __name__,
    url_prefix='/grondmonsters'
)

logger = logging.getLogger(__name__)


def monster_uit_formulier(data: dict, alleen_aanwezig=False) -> dict:
    """Formulier/JSON -> kolommen. Met alleen_aanwezig=True alleen meegegeven velden."""
    out = {}
    for key in db.BODEM_PARAMETERS_NUMERIEK + ("a_depth_upper", "a_depth_lower"):
        if key in data or not alleen_aanwezig:
            out[key] = safe_float(data.get(key))
    for key in ("a_source",) + db.BODEM_PARAMETERS_TEKST:
        if key in data or not alleen_aanwezig:
            out[key] = (data.get(key) or "").strip() or None
    for key in ("a_date", "b_sampling_date"):
        if key in data or not alleen_aanwezig:
            out[key] = parse_datum(data.get(key))
    return out


def _monster_van_gebruiker(c, a_id):
    monster = bodemdata.get_grondmonster(c, a_id)
    if not monster or not perceel_van_gebruiker(c, monster["b_id"], effective_user_id()):
        return None
    return monster


@grondmonsters_bp.route('/opties', methods=['GET'])
@login_required
def opties():
    return jsonify({
        "a_source": list(bodemdata.BRONNEN),
        "b_soiltype_agr": list(bodemdata.GRONDSOORTEN),
        "b_gwl_class": list(bodemdata.GWL_KLASSEN),
        "parameters": list(db.BODEM_PARAMETERS),
    })


# ============== PER PERCEEL ==============

@grondmonsters_bp.route('/perceel/<perceel_id>', methods=['GET', 'POST'])
@login_required
def grondmonsters_perceel(perceel_id):
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")

        if request.method == 'POST':
            try:
                a_id = bodemdata.voeg_grondmonster_toe(c, perceel_id, monster_uit_formulier(formulier_data()))
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "message": "Grondmonster toegevoegd.", "a_id": a_id}), 201

        # Zonder tijdvak: alle monsters
        start = end = None
        if request.args:
            try:
                start, end = parse_tijdvak(request.args)
            except ValueError as e:
                return jsonify({"success": False, "message": str(e)}), 400
        monsters = bodemdata.lijst_grondmonsters(c, perceel_id, start, end)
    finally:
        conn.close()

    return jsonify(naar_json(monsters))


@grondmonsters_bp.route('/perceel/<perceel_id>/huidig', methods=['GET'])
@login_required
def huidige_bodemdata(perceel_id):
    try:
        end = parse_datum(request.args.get('end'))
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        huidig = bodemdata.get_huidige_bodemdata(c, perceel_id, end)
    finally:
        conn.close()
    return jsonify(naar_json(huidig))


@grondmonsters_bp.route('/perceel/<perceel_id>/nmi_schatting', methods=['POST'])
@login_required
def nmi_schatting(perceel_id):
    """Haal geschatte bodemwaarden op bij NMI en sla ze op als grondmonster."""
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        perceel = get_perceel(c, perceel_id)

        try:
            schatting = haal_bodemschatting(perceel["b_geometry"], current_app.config.get("NMI_API_KEY"))
        except ValueError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except RuntimeError as e:
            logger.error(f"NMI schatting voor perceel {perceel_id} mislukt: {e}")
            return jsonify({"success": False, "message": str(e)}), 502

        try:
            a_id = bodemdata.voeg_grondmonster_toe(c, perceel_id, bodemdata.schatting_naar_grondmonster(schatting))
            conn.commit()
        except ValueError as e:
            conn.rollback()
            return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()

    return jsonify({"success": True, "message": "Bodemschatting opgeslagen.", "a_id": a_id}), 201


# ============== ENKEL GRONDMONSTER ==============

@grondmonsters_bp.route('/<a_id>', methods=['GET'])
@login_required
def grondmonster_detail(a_id):
    conn, c = db.get_dict_cursor()
    try:
        monster = _monster_van_gebruiker(c, a_id)
    finally:
        conn.close()
    if not monster:
        return geen_toegang("dit grondmonster")
    return jsonify(naar_json(monster))


@grondmonsters_bp.route('/<a_id>/edit', methods=['POST'])
@login_required
def grondmonster_edit(a_id):
    try:
        updates = monster_uit_formulier(formulier_data(), alleen_aanwezig=True)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not _monster_van_gebruiker(c, a_id):
            return geen_toegang("dit grondmonster")
        try:
            bodemdata.werk_grondmonster_bij(c, a_id, updates)
            conn.commit()
        except ValueError as e:
            conn.rollback()
            return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Grondmonster bijgewerkt."})


@grondmonsters_bp.route('/<a_id>/delete', methods=['POST'])
@login_required
def grondmonster_delete(a_id):
    conn, c = db.get_dict_cursor()
    try:
        if not _monster_van_gebruiker(c, a_id):
            return geen_toegang("dit grondmonster")
        c.execute("DELETE FROM grondmonsters WHERE id=%s", (a_id,))
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Grondmonster verwijderd."})
