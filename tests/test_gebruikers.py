from datetime import datetime, timedelta, timezone

import fdm_app.gebruikers.auth_utils as auth_utils
from fdm_app.gebruikers.auth_utils import hash_password, token_is_geldig


def test_token_is_geldig():
    nu = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)
    geldig = {"used": 0, "expires_at": (nu + timedelta(minutes=30)).isoformat()}
    assert token_is_geldig(geldig, nu)
    assert not token_is_geldig({**geldig, "used": 1}, nu)
    assert not token_is_geldig({"used": 0, "expires_at": (nu - timedelta(minutes=1)).isoformat()}, nu)
    assert not token_is_geldig({"used": 0, "expires_at": "gisteren"}, nu)
    assert not token_is_geldig(None, nu)


def test_login_en_me(client, monkeypatch):
    monkeypatch.setattr(auth_utils, "get_user_by_username", lambda username: {
        "id": "user-1", "username": username, "password_hash": hash_password("geheim123"),
        "naam": "Jan", "is_admin": 0,
    })
    response = client.post("/gebruikers/login", json={"username": "jan", "password": "geheim123"})
    assert response.status_code == 200
    assert response.get_json()["naam"] == "Jan"

    me = client.get("/gebruikers/me").get_json()
    assert me == {"user_id": "user-1", "naam": "Jan", "is_admin": False, "view_as": False}


def test_login_verkeerd_wachtwoord(client, monkeypatch):
    monkeypatch.setattr(auth_utils, "get_user_by_username", lambda username: {
        "id": "user-1", "username": username, "password_hash": hash_password("geheim123"),
        "naam": "Jan", "is_admin": 0,
    })
    response = client.post("/gebruikers/login", json={"username": "jan", "password": "fout"})
    assert response.status_code == 401


def test_login_zonder_invoer(client):
    assert client.post("/gebruikers/login", json={}).status_code == 400


def test_view_as_alleen_admin(ingelogd):
    response = ingelogd.post("/gebruikers/view_as", json={"user_id": "user-2"})
    assert response.status_code == 403


def test_view_as(admin, fake_db):
    fake_db.cursor_obj.rows = [{"id": "user-2", "display": "Piet"}]
    response = admin.post("/gebruikers/view_as", json={"user_id": "user-2"})
    assert response.status_code == 200
    assert admin.get("/gebruikers/me").get_json()["user_id"] == "user-2"


def test_reset_ongeldige_token(client):
    # Geen rij in de database: token onbekend
    response = client.post("/gebruikers/reset/abc", json={"password": "nieuwwachtwoord"})
    assert response.status_code == 400
