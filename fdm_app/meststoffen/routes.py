from flask import Blueprint, request, jsonify
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import formulier_data, safe_float, parse_datum, naar_json
from fdm_app.gebruikers.auth_utils import (
    login_required, admin_required, effective_user_id, bedrijf_van_gebruiker, geen_toegang
)
from fdm_app.meststoffen import meststofdata

meststoffen_bp = Blueprint(
    'meststoffen',
    __name__,
    url_prefix='/meststoffen'
)

logger = logging.getLogger(__name__)


def catalogus_uit_formulier(data: dict) -> dict:
    item = {
        "p_id_catalogue": (data.get("p_id_catalogue") or "").strip(),
        "p_source": (data.get("p_source") or "custom").strip(),
        "p_name_nl": (data.get("p_name_nl") or "").strip(),
        "p_type": (data.get("p_type") or "").strip() or None,
        "p_type_rvo": (str(data.get("p_type_rvo") or "")).strip() or None,
    }
    for key in db.MESTSTOF_GEHALTES:
        item[key] = safe_float(data.get(key))

    opties = data.get("p_app_method_options")
    if isinstance(opties, str):
        opties = [o.strip() for o in opties.split(",") if o.strip()]
    item["p_app_method_options"] = opties or None
    return item


# ============== CATALOGUS ==============

@meststoffen_bp.route('/catalogus', methods=['GET'])
@login_required
def catalogus():
    conn, c = db.get_dict_cursor()
    try:
        return jsonify(meststofdata.lijst_catalogus(c))
    finally:
        conn.close()


@meststoffen_bp.route('/catalogus', methods=['POST'])
@admin_required
def catalogus_toevoegen():
    item = catalogus_uit_formulier(formulier_data())
    conn, c = db.get_dict_cursor()
    try:
        meststofdata.upsert_catalogus_item(c, item)
        conn.commit()
    except ValueError as e:
        conn.rollback()
        return jsonify({"success": False, "message": str(e)}), 400
    finally:
        conn.close()
    logger.info("Meststof %s opgeslagen in catalogus", item["p_id_catalogue"])
    return jsonify({"success": True, "message": "Meststof opgeslagen.",
                    "p_id_catalogue": item["p_id_catalogue"]}), 201


@meststoffen_bp.route('/catalogus/<p_id_catalogue>', methods=['GET'])
@login_required
def catalogus_item(p_id_catalogue):
    conn, c = db.get_dict_cursor()
    try:
        item = meststofdata.get_catalogus_item(c, p_id_catalogue)
    finally:
        conn.close()
    if not item:
        return jsonify({"success": False, "message": "Meststof niet gevonden"}), 404
    return jsonify(item)


# ============== MESTSTOFFEN VAN EEN BEDRIJF ==============

@meststoffen_bp.route('/bedrijf/<bedrijf_id>', methods=['GET', 'POST'])
@login_required
def meststoffen_bedrijf(bedrijf_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")

        if request.method == 'POST':
            data = formulier_data()
            try:
                p_id = meststofdata.voeg_meststof_toe(
                    c,
                    bedrijf_id,
                    data.get('p_id_catalogue'),
                    safe_float(data.get('p_acquiring_amount')),
                    parse_datum(data.get('p_acquiring_date')),
                )
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "message": "Meststof toegevoegd.", "p_id": p_id}), 201

        return jsonify(naar_json(meststofdata.lijst_meststoffen(c, bedrijf_id)))
    finally:
        conn.close()


@meststoffen_bp.route('/<p_id>/delete', methods=['POST'])
@login_required
def meststof_delete(p_id):
    conn, c = db.get_dict_cursor()
    try:
        meststof = meststofdata.get_meststof(c, p_id)
        if not meststof or not bedrijf_van_gebruiker(c, meststof["b_id_farm"], effective_user_id()):
            return geen_toegang("deze meststof")
        # Bemestingen met deze meststof verdwijnen mee (ON DELETE CASCADE)
        c.execute("DELETE FROM bedrijf_meststoffen WHERE id=%s", (p_id,))
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Meststof verwijderd."})
