from flask import Blueprint, request, session, url_for, jsonify
import logging

import fdm_app.models.database_beheer as db
from fdm_app.models.formulier import formulier_data
from fdm_app.gebruikers.auth_utils import (
    login_required,
    admin_required,
    login_user,
    logout_user,
    register_user,
    get_user_by_email,
    get_user_by_username,
    create_reset_token,
    verify_reset_token,
    consume_reset_token,
    update_user_password,
    current_user_display_name,
    effective_user_id,
    is_admin,
    is_impersonating,
)

gebruikers_bp = Blueprint(
    'gebruikers',
    __name__,
    url_prefix='/gebruikers'
)

logger = logging.getLogger(__name__)


@gebruikers_bp.route('/login', methods=['POST'])
def login():
    data = formulier_data()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({"success": False, "message": "Vul gebruikersnaam en wachtwoord in."}), 400

    if not login_user(username, password):
        return jsonify({"success": False, "message": "Verkeerde gebruikersnaam of wachtwoord!"}), 401

    return jsonify({"success": True, "message": "Succesvol ingelogd!", "naam": session.get('naam')})


@gebruikers_bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({"success": True, "message": "Uitgelogd!"})


@gebruikers_bp.route('/register', methods=['POST'])
def register():
    data = formulier_data()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify({"success": False, "message": "Gebruikersnaam en wachtwoord zijn verplicht."}), 400

    if not register_user(username, password, data.get('email'), data.get('naam')):
        return jsonify({"success": False, "message": "Gebruikersnaam bestaat al!"}), 409

    return jsonify({"success": True, "message": "Account aangemaakt! Je kunt nu inloggen."}), 201


@gebruikers_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({
        "user_id": effective_user_id(),
        "naam": current_user_display_name(),
        "is_admin": is_admin(),
        "view_as": is_impersonating(),
    })


@gebruikers_bp.route('/view_as', methods=['POST'])
@admin_required
def view_as():
    target_id = formulier_data().get('user_id')
    if not target_id:
        return jsonify({"success": False, "message": "Geen gebruiker gekozen."}), 400

    conn, c = db.get_dict_cursor()
    try:
        c.execute(
            "SELECT id, COALESCE(naam, username) AS display FROM users WHERE id=%s",
            (target_id,)
        )
        row = c.fetchone()
    finally:
        conn.close()

    if not row:
        return jsonify({"success": False, "message": "Gebruiker niet gevonden."}), 404

    session['view_as_user_id'] = row['id']
    session['view_as_user_name'] = row['display']
    return jsonify({"success": True, "message": f"Je bekijkt nu als: {row['display']}"})


@gebruikers_bp.route('/view_as_clear', methods=['POST'])
@admin_required
def view_as_clear():
    session.pop('view_as_user_id', None)
    session.pop('view_as_user_name', None)
    return jsonify({"success": True, "message": "Bekijk-als uitgeschakeld."})


@gebruikers_bp.route('/forgot', methods=['POST'])
def forgot():
    # E-mail of gebruikersnaam in één veld
    data = formulier_data()
    identifier = (data.get('email') or data.get('username') or '').strip()

    user_row = None
    if identifier:
        user_row = get_user_by_email(identifier) or get_user_by_username(identifier)

    if user_row:
        token = create_reset_token(user_row['id'], ttl_minutes=60)
        reset_url = url_for('gebruikers.reset', token=token, _external=True)
        # TODO: reset_url per mail versturen zodra er een SMTP-configuratie is
        logger.info("Wachtwoord-herstellink voor %s: %s", user_row['username'], reset_url)

    # Altijd dezelfde melding (geen user-enumeration)
    return jsonify({
        "success": True,
        "message": "Als dit e-mailadres/gebruikersnaam bij ons bekend is, hebben we een herstel-link verstuurd."
    })


@gebruikers_bp.route('/reset/<token>', methods=['POST'])
def reset(token):
    user_id = verify_reset_token(token)
    if not user_id:
        return jsonify({"success": False, "message": "De herstel-link is ongeldig of verlopen."}), 400

    data = formulier_data()
    pw1 = data.get('password') or ''
    pw2 = data.get('password_confirm') or ''
    if len(pw1) < 8:
        return jsonify({"success": False, "message": "Kies een wachtwoord van minimaal 8 tekens."}), 400
    if pw1 != pw2:
        return jsonify({"success": False, "message": "Wachtwoorden komen niet overeen."}), 400

    update_user_password(user_id, pw1)
    consume_reset_token(token)
    return jsonify({"success": True, "message": "Je wachtwoord is bijgewerkt. Je kunt nu inloggen."})
