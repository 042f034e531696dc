from werkzeug.security import generate_password_hash

from extensions import db
from models import StaffRole, User, UserStatus

def _login(client, email, password="pass"):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})

def test_login_and_me(client, school):
    r = _login(client, "Diretor@Example.com ")
    assert r.status_code == 200
    user = r.get_json()["user"]
    assert user["email"] == "diretor@example.com"
    assert user["role"] == "DIRECTOR" and user["is_manager"] is True

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.get_json()["user"]["id"] == school["director"]

def test_teacher_is_not_manager(client, school):
    user = _login(client, "ana@example.com").get_json()["user"]
    assert user["role"] == "TEACHER" and user["is_manager"] is False

def test_missing_and_wrong_credentials(client, school):
    assert _login(client, "", "").status_code == 400
    r = _login(client, "ana@example.com", "wrong")
    assert r.status_code == 401
    assert r.get_json() == {"error": "invalid_credentials"}
    assert _login(client, "nobody@example.com").status_code == 401

def test_pending_user_cannot_login(client, app):
    db.session.add(User(email="new@example.com", name="New", role=StaffRole.TEACHER,
                        status=UserStatus.PENDING, password_hash=generate_password_hash("pass")))
    db.session.commit()
    r = _login(client, "new@example.com")
    assert r.status_code == 403
    assert r.get_json() == {"error": "inactive", "status": "PENDING"}

def test_login_rate_limit(client, app, school):
    app.config["AUTH_RL_MAX"] = 3
    for _ in range(3):
        assert _login(client, "ana@example.com", "wrong").status_code == 401
    r = _login(client, "ana@example.com")
    assert r.status_code == 429
    assert r.get_json() == {"error": "too_many_attempts"}
    # другой адрес считается отдельно
    assert _login(client, "bruno@example.com").status_code == 200

def test_me_requires_login(client, app):
    r = client.get("/api/v1/auth/me")
    assert r.status_code == 401
    assert r.get_json() == {"error": "unauthorized"}

def test_logout(client, school, login):
    token = login("ana@example.com")
    assert client.post("/api/v1/auth/logout").status_code == 400  # без CSRF-токена
    r = client.post("/api/v1/auth/logout", headers={"X-CSRF-Token": token})
    assert r.status_code == 200
    assert client.get("/api/v1/auth/me").status_code == 401
