# fdm_app/gebruikers/auth_utils.py
from functools import wraps
from flask import session, jsonify
import hashlib
import uuid
from datetime import datetime, timedelta, timezone

import fdm_app.models.database_beheer as db


# ---------------------------
# Helpers voor (impersonated) user
# ---------------------------
def effective_user_id():
    return session.get('view_as_user_id') or session.get('user_id')


def is_impersonating():
    return 'view_as_user_id' in session


def is_admin():
    return int(session.get('is_admin', 0)) == 1


def current_user_display_name():
    return (
        session.get('view_as_user_name')
        or session.get('naam')
        or session.get('username')
        or "Gebruiker"
    )


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


# ---------------------------
# Decorators (JSON-antwoorden i.p.v. redirects)
# ---------------------------
def login_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({"success": False, "message": "Log eerst in om verder te gaan."}), 401
        return f(*args, **kwargs)
    return wrapper


def admin_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({"success": False, "message": "Log eerst in om verder te gaan."}), 401
        if not is_admin():
            return jsonify({"success": False, "message": "Alleen voor admins!"}), 403
        return f(*args, **kwargs)
    return wrapper


# ---------------------------
# Eigendomschecks (b_id_farm / b_id van de ingelogde gebruiker)
# ---------------------------
def bedrijf_van_gebruiker(c, bedrijf_id, user_id) -> bool:
    c.execute(
        "SELECT 1 FROM bedrijven WHERE id=%s AND user_id=%s",
        (bedrijf_id, user_id)
    )
    return c.fetchone() is not None


def perceel_van_gebruiker(c, perceel_id, user_id):
    """Geeft de bedrijf_id van het perceel terug, of None zonder toegang."""
    c.execute(
        """
        SELECT p.bedrijf_id
        FROM percelen p
        JOIN bedrijven b ON b.id = p.bedrijf_id
        WHERE p.id=%s AND b.user_id=%s
        """,
        (perceel_id, user_id)
    )
    row = c.fetchone()
    if not row:
        return None
    return row["bedrijf_id"] if isinstance(row, dict) else row[0]


def teelt_van_gebruiker(c, b_lu, user_id) -> bool:
    c.execute(
        """
        SELECT 1
        FROM teelten t
        JOIN percelen p ON p.id = t.perceel_id
        JOIN bedrijven b ON b.id = p.bedrijf_id
        WHERE t.id=%s AND b.user_id=%s
        """,
        (b_lu, user_id)
    )
    return c.fetchone() is not None


def geen_toegang(wat="dit bedrijf/perceel"):
    return jsonify({"success": False, "message": f"Geen toegang tot {wat}"}), 403


# ---------------------------
# DB helpers
# ---------------------------
def get_user_by_username(username: str):
    conn, c = db.get_dict_cursor()
    try:
        c.execute(
            """
            SELECT id, username, password_hash, email, naam,
                   COALESCE(is_admin, 0) AS is_admin
            FROM users
            WHERE username = %s
            """,
            (username,)
        )
        row = c.fetchone()
    finally:
        conn.close()
    return row


def get_user_by_email(email: str):
    conn, c = db.get_dict_cursor()
    try:
        c.execute(
            """
            SELECT id, username, password_hash, email, naam,
                   COALESCE(is_admin, 0) AS is_admin
            FROM users
            WHERE lower(email) = lower(%s)
            """,
            (email,)
        )
        row = c.fetchone()
    finally:
        conn.close()
    return row


def update_user_password(user_id: str, new_password: str) -> None:
    conn = db.get_connection()
    c = conn.cursor()
    try:
        c.execute(
            "UPDATE users SET password_hash=%s WHERE id=%s",
            (hash_password(new_password), user_id)
        )
        conn.commit()
    finally:
        conn.close()


# ---------------------------
# Auth acties
# ---------------------------
def login_user(username: str, password: str) -> bool:
    row = get_user_by_username(username)
    if not row or row["password_hash"] != hash_password(password):
        return False

    session.clear()
    session['user_id'] = row['id']
    session['username'] = row['username']
    session['naam'] = row['naam'] or row['username']
    session['is_admin'] = int(row['is_admin'] or 0)
    return True


def logout_user():
    for key in ('user_id', 'username', 'naam', 'is_admin', 'view_as_user_id', 'view_as_user_name'):
        session.pop(key, None)


def register_user(username: str, password: str, email: str, naam: str, is_admin: int = 0) -> bool:
    conn = db.get_connection()
    c = conn.cursor()
    try:
        c.execute(
            """
            INSERT INTO users (id, username, password_hash, email, naam, is_admin)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (username) DO NOTHING
            """,
            (
                str(uuid.uuid4()),
                username.strip(),
                hash_password(password),
                (email or "").strip(),
                (naam or "").strip(),
                int(is_admin or 0),
            )
        )
        conn.commit()
        # rowcount 0 -> gebruikersnaam bestond al
        return c.rowcount == 1
    finally:
        conn.close()


# ---------------------------
# Reset tokens
# ---------------------------
def _iso(delta_minutes: int = 0) -> str:
    moment = datetime.now(timezone.utc) + timedelta(minutes=delta_minutes)
    return moment.replace(microsecond=0).isoformat()


def create_reset_token(user_id: str, ttl_minutes: int = 60) -> str:
    """Maak een eenmalige reset-token aan voor de gebruiker."""
    token = uuid.uuid4().hex
    conn = db.get_connection()
    c = conn.cursor()
    try:
        c.execute(
            """
            INSERT INTO password_reset_tokens (token, user_id, created_at, expires_at, used)
            VALUES (%s, %s, %s, %s, 0)
            """,
            (token, user_id, _iso(), _iso(ttl_minutes))
        )
        conn.commit()
        return token
    finally:
        conn.close()


def token_is_geldig(row, nu=None) -> bool:
    """Bestaat, niet gebruikt, niet verlopen."""
    if not row or int(row.get("used") or 0) == 1:
        return False

    exp = row.get("expires_at")
    if isinstance(exp, str):
        try:
            exp = datetime.fromisoformat(exp)
        except ValueError:
            return False
    if not isinstance(exp, datetime):
        return False

    return (nu or datetime.now(timezone.utc)) <= exp


def verify_reset_token(token: str):
    """Return user_id als token geldig is, anders None."""
    conn, c = db.get_dict_cursor()
    try:
        c.execute(
            "SELECT token, user_id, used, expires_at FROM password_reset_tokens WHERE token = %s",
            (token,)
        )
        row = c.fetchone()
    finally:
        conn.close()
    return row["user_id"] if token_is_geldig(row) else None


def consume_reset_token(token: str) -> None:
    conn = db.get_connection()
    c = conn.cursor()
    try:
        c.execute("UPDATE password_reset_tokens SET used=1 WHERE token=%s", (token,))
        conn.commit()
    finally:
        conn.close()
