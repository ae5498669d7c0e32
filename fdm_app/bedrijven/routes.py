from flask import Blueprint, request, jsonify
import uuid
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import (
    formulier_data, safe_int, parse_bool, parse_datum, naar_json
)
from fdm_app.gebruikers.auth_utils import (
    login_required, effective_user_id, bedrijf_van_gebruiker, geen_toegang
)
from fdm_app.bedrijven import bedrijfsstatus

bedrijven_bp = Blueprint(
    'bedrijven',
    __name__,
    url_prefix='/bedrijven'
)

logger = logging.getLogger(__name__)


def _bedrijf_velden(data):
    return {
        "naam": (data.get('b_name_farm') or data.get('naam') or '').strip(),
        "kvk_nummer": (data.get('b_businessid_farm') or '').strip() or None,
        "adres": (data.get('b_address_farm') or '').strip() or None,
        "postcode": (data.get('b_postalcode_farm') or '').strip() or None,
        "plaats": (data.get('plaats') or '').strip() or None,
    }


_BEDRIJF_SELECT = """
    SELECT b.id AS b_id_farm, b.naam AS b_name_farm, b.kvk_nummer AS b_businessid_farm,
           b.adres AS b_address_farm, b.postcode AS b_postalcode_farm, b.plaats,
           (SELECT COUNT(*) FROM percelen p WHERE p.bedrijf_id = b.id) AS aantal_percelen
    FROM bedrijven b
"""


@bedrijven_bp.route('/', methods=['GET', 'POST'])
@login_required
def bedrijven():
    eff_uid = effective_user_id()

    if request.method == 'POST':
        velden = _bedrijf_velden(formulier_data())
        if not velden["naam"]:
            return jsonify({"success": False, "message": "Naam is verplicht."}), 400

        conn, c = db.get_dict_cursor()
        try:
            # Dubbelcheck of bedrijf al bestaat voor deze user
            c.execute(
                "SELECT 1 FROM bedrijven WHERE naam = %s AND user_id = %s",
                (velden["naam"], eff_uid)
            )
            if c.fetchone():
                return jsonify({"success": False, "message": f"Bedrijf '{velden['naam']}' bestaat al."}), 409

            bedrijf_id = str(uuid.uuid4())
            c.execute(
                """
                INSERT INTO bedrijven (id, naam, kvk_nummer, adres, postcode, plaats, user_id)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (bedrijf_id, velden["naam"], velden["kvk_nummer"], velden["adres"],
                 velden["postcode"], velden["plaats"], eff_uid)
            )
            conn.commit()
        finally:
            conn.close()

        return jsonify({"success": True, "message": f"Bedrijf '{velden['naam']}' toegevoegd.",
                        "b_id_farm": bedrijf_id}), 201

    conn, c = db.get_dict_cursor()
    try:
        c.execute(_BEDRIJF_SELECT + " WHERE b.user_id = %s ORDER BY b.naam", (eff_uid,))
        rows = c.fetchall()
    finally:
        conn.close()

    return jsonify(naar_json(rows))


@bedrijven_bp.route('/<bedrijf_id>', methods=['GET'])
@login_required
def bedrijf_detail(bedrijf_id):
    conn, c = db.get_dict_cursor()
    try:
        c.execute(_BEDRIJF_SELECT + " WHERE b.id = %s AND b.user_id = %s",
                  (bedrijf_id, effective_user_id()))
        bedrijf = c.fetchone()
    finally:
        conn.close()

    if bedrijf is None:
        return jsonify({"success": False, "message": "Niet gevonden of geen toegang."}), 404
    return jsonify(naar_json(bedrijf))


@bedrijven_bp.route('/bedrijven_edit/<bedrijf_id>', methods=['POST'])
@login_required
def bedrijven_edit(bedrijf_id):
    eff_uid = effective_user_id()
    velden = _bedrijf_velden(formulier_data())
    if not velden["naam"]:
        return jsonify({"success": False, "message": "Naam is verplicht."}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, eff_uid):
            return geen_toegang("dit bedrijf")

        # Naam moet uniek blijven per user
        c.execute(
            "SELECT 1 FROM bedrijven WHERE naam = %s AND user_id = %s AND id <> %s",
            (velden["naam"], eff_uid, bedrijf_id)
        )
        if c.fetchone():
            return jsonify({"success": False, "message": f"Bedrijf '{velden['naam']}' bestaat al."}), 409

        c.execute(
            """
            UPDATE bedrijven
            SET naam = %s, kvk_nummer = %s, adres = %s, postcode = %s, plaats = %s
            WHERE id = %s AND user_id = %s
            """,
            (velden["naam"], velden["kvk_nummer"], velden["adres"], velden["postcode"],
             velden["plaats"], bedrijf_id, eff_uid)
        )
        conn.commit()
    finally:
        conn.close()

    return jsonify({"success": True, "message": "Bedrijf bijgewerkt."})


@bedrijven_bp.route('/bedrijven_delete/<bedrijf_id>', methods=['POST'])
@login_required
def bedrijven_delete(bedrijf_id):
    eff_uid = effective_user_id()
    conn, c = db.get_dict_cursor()
    try:
        c.execute(
            "SELECT naam FROM bedrijven WHERE id = %s AND user_id = %s",
            (bedrijf_id, eff_uid)
        )
        bedrijf = c.fetchone()
        if not bedrijf:
            return jsonify({"success": False, "message": "Niet gevonden of geen toegang."}), 404

        # Percelen, meststoffen en status gaan mee via ON DELETE CASCADE
        c.execute("DELETE FROM bedrijven WHERE id = %s AND user_id = %s", (bedrijf_id, eff_uid))
        conn.commit()
    finally:
        conn.close()

    logger.info("Bedrijf %s verwijderd door %s", bedrijf_id, eff_uid)
    return jsonify({"success": True, "message": f"Bedrijf '{bedrijf['naam']}' verwijderd."})


# ---------------- Derogatie ----------------

@bedrijven_bp.route('/<bedrijf_id>/derogaties', methods=['GET', 'POST'])
@login_required
def derogaties(bedrijf_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")

        if request.method == 'POST':
            jaar = safe_int(formulier_data().get('jaar'))
            if jaar is None:
                return jsonify({"success": False, "message": "Jaar is verplicht."}), 400
            try:
                derogatie_id = bedrijfsstatus.voeg_derogatie_toe(c, bedrijf_id, jaar)
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "b_id_derogation": derogatie_id}), 201

        return jsonify(bedrijfsstatus.lijst_derogaties(c, bedrijf_id))
    finally:
        conn.close()


@bedrijven_bp.route('/<bedrijf_id>/derogaties/<derogatie_id>/delete', methods=['POST'])
@login_required
def derogatie_delete(bedrijf_id, derogatie_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        c.execute("DELETE FROM derogaties WHERE id=%s AND bedrijf_id=%s", (derogatie_id, bedrijf_id))
        conn.commit()
        if c.rowcount == 0:
            return jsonify({"success": False, "message": "Derogatie niet gevonden."}), 404
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Derogatie verwijderd."})


@bedrijven_bp.route('/<bedrijf_id>/derogaties/<int:jaar>', methods=['GET'])
@login_required
def derogatie_status(bedrijf_id, jaar):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        return jsonify({"jaar": jaar, "derogatie": bedrijfsstatus.heeft_derogatie(c, bedrijf_id, jaar)})
    finally:
        conn.close()


# ---------------- Beweidingsintentie ----------------

@bedrijven_bp.route('/<bedrijf_id>/beweiding', methods=['GET'])
@login_required
def beweidingsintenties(bedrijf_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        return jsonify(bedrijfsstatus.lijst_beweidingsintenties(c, bedrijf_id))
    finally:
        conn.close()


@bedrijven_bp.route('/<bedrijf_id>/beweiding/<int:jaar>', methods=['GET', 'POST', 'DELETE'])
@login_required
def beweidingsintentie(bedrijf_id, jaar):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")

        if request.method == 'POST':
            beweiden = parse_bool(formulier_data().get('beweiden'))
            bedrijfsstatus.zet_beweidingsintentie(c, bedrijf_id, jaar, beweiden)
            conn.commit()
        elif request.method == 'DELETE':
            bedrijfsstatus.verwijder_beweidingsintentie(c, bedrijf_id, jaar)
            conn.commit()

        return jsonify({"jaar": jaar, "beweiden": bedrijfsstatus.heeft_beweidingsintentie(c, bedrijf_id, jaar)})
    finally:
        conn.close()


# ---------------- Biologische certificering ----------------

@bedrijven_bp.route('/<bedrijf_id>/bio', methods=['GET', 'POST'])
@login_required
def bio_certificeringen(bedrijf_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")

        if request.method == 'POST':
            data = formulier_data()
            try:
                cert_id = bedrijfsstatus.voeg_bio_certificering_toe(
                    c,
                    bedrijf_id,
                    (data.get('b_organic_traces') or '').strip() or None,
                    (data.get('b_organic_skal') or '').strip() or None,
                    parse_datum(data.get('b_organic_issued')),
                    parse_datum(data.get('b_organic_expires')),
                )
                conn.commit()
            except ValueError as e:
                conn.rollback()
                return jsonify({"success": False, "message": str(e)}), 400
            return jsonify({"success": True, "b_id_organic": cert_id}), 201

        return jsonify(naar_json(bedrijfsstatus.lijst_bio_certificeringen(c, bedrijf_id)))
    finally:
        conn.close()


@bedrijven_bp.route('/<bedrijf_id>/bio/geldig', methods=['GET'])
@login_required
def bio_geldig(bedrijf_id):
    try:
        peildatum = parse_datum(request.args.get('datum'))
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    if peildatum is None:
        return jsonify({"success": False, "message": "Datum is verplicht."}), 400

    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        geldig = bedrijfsstatus.is_bio_gecertificeerd(c, bedrijf_id, peildatum)
    finally:
        conn.close()
    return jsonify({"datum": peildatum.isoformat(), "gecertificeerd": geldig})


@bedrijven_bp.route('/<bedrijf_id>/bio/<cert_id>', methods=['GET'])
@login_required
def bio_certificering(bedrijf_id, cert_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        cert = bedrijfsstatus.get_bio_certificering(c, bedrijf_id, cert_id)
    finally:
        conn.close()

    if not cert:
        return jsonify({"success": False, "message": "Certificering niet gevonden."}), 404
    return jsonify(naar_json(cert))


@bedrijven_bp.route('/<bedrijf_id>/bio/<cert_id>/delete', methods=['POST'])
@login_required
def bio_certificering_delete(bedrijf_id, cert_id):
    conn, c = db.get_dict_cursor()
    try:
        if not bedrijf_van_gebruiker(c, bedrijf_id, effective_user_id()):
            return geen_toegang("dit bedrijf")
        c.execute("DELETE FROM bio_certificeringen WHERE id=%s AND bedrijf_id=%s", (cert_id, bedrijf_id))
        conn.commit()
    finally:
        conn.close()
    return jsonify({"success": True, "message": "Certificering verwijderd."})
