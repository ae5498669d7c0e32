from flask import Blueprint, request, jsonify
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import (
    formulier_data, safe_int, parse_bool, parse_datum, parse_tijdvak, naar_json
)
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, bedrijf_van_gebruiker,
    perceel_van_gebruiker, teelt_van_gebruiker, geen_toegang
)
from fdm_app.teelten import teeltplan

teelten_bp = Blueprint(
    'teelten',
    __name__,
    url_prefix='/teelten'
)

logger = logging.getLogger(__name__)


# ============== CATALOGUS ==============

@teelten_bp.route('/catalogus', methods=['GET'])
@login_required
def catalogus():
    conn, c = db.get_dict_cursor()
    try:
        return jsonify(teeltplan.lijst_catalogus(c))
    finally:
        conn.close()


@teelten_bp.route('/catalogus/<b_lu_catalogue>/standaard_datums', methods=['GET'])
@login_required
def standaard_datums(b_lu_catalogue):
    jaar = safe_int(request.args.get('jaar'))
    conn, c = db.get_dict_cursor()
    try:
        start, eind = teeltplan.standaard_datums(c, b_lu_catalogue, jaar)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()
    return jsonify(naar_json({"b_lu_start": start, "b_lu_end": eind}))


# ============== TEELTEN PER PERCEEL ==============

@teelten_bp.route('/perceel/<perceel_id>', methods=['GET', 'POST'])
@login_required
def teelten_perceel(perceel_id):
    conn, c = db.get_dict_cursor()
    try:
        if not perceel_van_gebruiker(c, perceel_id, effective_user_id()):
            return geen_toegang("dit perceel")

        if request.method == 'POST':
            data = formulier_data()
            try:
                m_cropresidue = data.get('m_cropresidue')
                b_lu = teeltplan.voeg_teelt_toe(
                    c,
                    perceel_id,
                    data.get('b_lu_catalogue'),
                    parse_datum(data.get('b_lu_start')),
                    parse_datum(data.get('b_lu_end')),
                    None if m_cropresidue in (None, '') else parse_bool(m_cropresidue),
                    (data.get('b_lu_variety') or '').strip() or None,
                )
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "message": "Teelt toegevoegd.", "b_lu": b_lu}), 201

        try:
            start, end = parse_tijdvak(request.args)
        except ValueError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        teelten = teeltplan.lijst_teelten(c, perceel_id, start, end)
    finally:
        conn.close()

    return jsonify(naar_json(teelten))


@teelten_bp.route('/<b_lu>', methods=['GET'])
@login_required
def teelt_detail(b_lu):
    conn, c = db.get_dict_cursor()
    try:
        if not teelt_van_gebruiker(c, b_lu, effective_user_id()):
            return geen_toegang("deze teelt")
        teelt = teeltplan.get_teelt(c, b_lu)
        teelt["harvests"] = teeltplan.lijst_oogsten(c, b_lu)
    finally:
        conn.close()
    return jsonify(naar_json(teelt))


@teelten_bp.route('/<b_lu>/edit', methods=['POST'])
@login_required
def teelt_edit(b_lu):
    data = formulier_data()
    updates = {}
    try:
        for key in ('b_lu_start', 'b_lu_end'):
            if key in data:
                updates[key] = parse_datum(data.get(key))
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    if 'b_lu_catalogue' in data:
        updates['b_lu_catalogue'] = data['b_lu_catalogue']
    if 'm_cropresidue' in data:
        updates['m_cropresidue'] = parse_bool(data['m_cropresidue'])
    if 'b_lu_variety' in data:
        updates['b_lu_variety'] = (data['b_lu_variety'] or '').strip() or None

    if not updates:
        return jsonify({"success": False, "message": "Niets om bij te werken."}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not teelt_van_gebruiker(c, b_lu, effective_user_id()):
            return geen_toegang("deze teelt")
        try:
            teeltplan.werk_teelt_bij(c, b_lu, updates)
            conn.commit()
        except ValueError as e:
            conn.rollback()
            return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Teelt bijgewerkt."})


@teelten_bp.route('/<b_lu>/delete', methods=['POST'])
@login_required
def teelt_delete(b_lu):
    conn, c = db.get_dict_cursor()
    try:
        if not teelt_van_gebruiker(c, b_lu, effective_user_id()):
            return geen_toegang("deze teelt")
        # Oogsten gaan mee via ON DELETE CASCADE
        c.execute("DELETE FROM teelten WHERE id=%s", (b_lu,))
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Teelt verwijderd."})


# ============== TEELTPLAN ==============

@teelten_bp.route('/teeltplan/<bedrijf_id>', methods=['GET'])
@login_required
def teeltplan_bedrijf(bedrijf_id):
    try:
        start, end = parse_tijdvak(request.args)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        plan = teeltplan.teeltplan_bedrijf(c, bedrijf_id, start, end)
    finally:
        conn.close()
    return jsonify(naar_json(plan))
