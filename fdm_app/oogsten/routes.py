from flask import Blueprint, request, jsonify

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import formulier_data, safe_float, parse_datum, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, teelt_van_gebruiker, geen_toegang
)
from fdm_app.teelten import teeltplan

oogsten_bp = Blueprint(
    'oogsten',
    __name__,
    url_prefix='/oogsten'
)


def _oogst_invoer(data):
    return (
        parse_datum(data.get('b_lu_harvest_date')),
        safe_float(data.get('b_lu_yield')),
        safe_float(data.get('b_lu_n_harvestable')),
    )


@oogsten_bp.route('/teelt/<b_lu>', methods=['GET', 'POST'])
@login_required
def oogsten_teelt(b_lu):
    conn, c = db.get_dict_cursor()
    try:
        if not teelt_van_gebruiker(c, b_lu, effective_user_id()):
            return geen_toegang("deze teelt")

        if request.method == 'POST':
            try:
                datum, opbrengst, n_gehalte = _oogst_invoer(formulier_data())
                oogst_id = teeltplan.voeg_oogst_toe(c, b_lu, datum, opbrengst, n_gehalte)
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "message": "Oogst toegevoegd.",
                            "b_id_harvesting": oogst_id}), 201

        return jsonify(naar_json(teeltplan.lijst_oogsten(c, b_lu)))
    finally:
        conn.close()


def _oogst_teelt(c, oogst_id):
    oogst = teeltplan.get_oogst(c, oogst_id)
    if not oogst or not teelt_van_gebruiker(c, oogst["b_lu"], effective_user_id()):
        return None
    return oogst


@oogsten_bp.route('/<oogst_id>', methods=['GET'])
@login_required
def oogst_detail(oogst_id):
    conn, c = db.get_dict_cursor()
    try:
        oogst = _oogst_teelt(c, oogst_id)
    finally:
        conn.close()
    if not oogst:
        return geen_toegang("deze oogst")
    return jsonify(naar_json(oogst))


@oogsten_bp.route('/<oogst_id>/edit', methods=['POST'])
@login_required
def oogst_edit(oogst_id):
    conn, c = db.get_dict_cursor()
    try:
        if not _oogst_teelt(c, oogst_id):
            return geen_toegang("deze oogst")
        try:
            datum, opbrengst, n_gehalte = _oogst_invoer(formulier_data())
            teeltplan.werk_oogst_bij(c, oogst_id, datum, opbrengst, n_gehalte)
            conn.commit()
        except ValueError as e:
            conn.rollback()
            return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Oogst bijgewerkt."})


@oogsten_bp.route('/<oogst_id>/delete', methods=['POST'])
@login_required
def oogst_delete(oogst_id):
    conn, c = db.get_dict_cursor()
    try:
        oogst = _oogst_teelt(c, oogst_id)
        if not oogst:
            return geen_toegang("deze oogst")
        teeltplan.verwijder_oogst(c, oogst_id, oogst["b_lu"])
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Oogst verwijderd."})
