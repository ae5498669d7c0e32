# fdm_app/bemestingen/routes.py
from flask import Blueprint, request, jsonify
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import formulier_data, safe_float, parse_datum, parse_tijdvak, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, perceel_van_gebruiker, geen_toegang
)
from fdm_app.bemestingen import bemestingdata
from fdm_app.balans.doseringen import bereken_dosering

bemestingen_bp = Blueprint(
    'bemestingen',
    __name__,
    url_prefix='/bemestingen'
)

# Setup logging
logger = logging.getLogger(__name__)


def _bemesting_invoer(data):
    return (
        safe_float(data.get('p_app_amount')),
        (data.get('p_app_method') or '').strip() or None,
        parse_datum(data.get('p_app_date')),
    )


def _bemesting_van_gebruiker(c, p_app_id):
    bemesting = bemestingdata.get_bemesting(c, p_app_id)
    if not bemesting or not perceel_van_gebruiker(c, bemesting["b_id"], effective_user_id()):
        return None
    return bemesting


# ============== PER PERCEEL ==============

@bemestingen_bp.route('/perceel/<perceel_id>', methods=['GET', 'POST'])
@login_required
def bemestingen_perceel(perceel_id):
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")

        if request.method == 'POST':
            data = formulier_data()
            try:
                amount, methode, datum = _bemesting_invoer(data)
                p_app_id = bemestingdata.voeg_bemesting_toe(
                    c, perceel_id, data.get('p_id'), amount, methode, datum
                )
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "message": "Bemesting toegevoegd.", "p_app_id": p_app_id}), 201

        try:
            start, end = parse_tijdvak(request.args)
        except ValueError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        bemestingen = bemestingdata.lijst_bemestingen(c, perceel_id, start, end)
    finally:
        conn.close()

    return jsonify(naar_json(bemestingen))


@bemestingen_bp.route('/perceel/<perceel_id>/dosering', methods=['GET'])
@login_required
def dosering_perceel(perceel_id):
    """Totale en per-bemesting doseringen (kg/ha) in het tijdvak."""
    try:
        start, end = parse_tijdvak(request.args)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")
        bemestingen = bemestingdata.lijst_bemestingen(c, perceel_id, start, end)
    finally:
        conn.close()

    try:
        dosering = bereken_dosering(bemestingen)
    except ValueError as e:
        logger.error(f"Fout bij berekenen dosering perceel {perceel_id}: {e}")
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify(dosering)


# ============== ENKELE BEMESTING ==============

@bemestingen_bp.route('/<p_app_id>', methods=['GET'])
@login_required
def bemesting_detail(p_app_id):
    conn, c = db.get_dict_cursor()
    try:
        bemesting = _bemesting_van_gebruiker(c, p_app_id)
    finally:
        conn.close()
    if not bemesting:
        return geen_toegang("deze bemesting")
    return jsonify(naar_json(bemesting))


@bemestingen_bp.route('/<p_app_id>/edit', methods=['POST'])
@login_required
def bemesting_edit(p_app_id):
    data = formulier_data()
    conn, c = db.get_dict_cursor()
    try:
        if not _bemesting_van_gebruiker(c, p_app_id):
            return geen_toegang("deze bemesting")
        try:
            amount, methode, datum = _bemesting_invoer(data)
            bemestingdata.werk_bemesting_bij(c, p_app_id, data.get('p_id'), amount, methode, datum)
            conn.commit()
        except ValueError as e:
            conn.rollback()
            return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Bemesting bijgewerkt."})


@bemestingen_bp.route('/<p_app_id>/delete', methods=['POST'])
@login_required
def bemesting_delete(p_app_id):
    conn, c = db.get_dict_cursor()
    try:
        if not _bemesting_van_gebruiker(c, p_app_id):
            return geen_toegang("deze bemesting")
        c.execute("DELETE FROM bemestingen WHERE id=%s", (p_app_id,))
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Bemesting verwijderd."})
