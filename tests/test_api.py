import re
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from models import OtpRecord
from routers.auth import get_auth_service
from utils.brevo_email import DELIVERED


def _register(client, email="a@b.com", name="X", password="p"):
    code = client.post("/auth/send-otp", json={"email": email}).json()["otp"]
    resp = client.post(
        "/auth/verify-otp",
        json={"name": name, "email": email, "password": password, "code": code},
    )
    assert resp.status_code == 200
    return resp.json()


def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "Backend running", "service": "bgmi-auth"}


def test_send_otp_requires_email(client):
    resp = client.post("/auth/send-otp", json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email required"}


def test_send_otp_stores_record(client, db_session):
    before = datetime.utcnow()
    resp = client.post("/auth/send-otp", json={"email": "  A@B.com "})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert re.fullmatch(r"\d{6}", body["otp"])

    (record,) = db_session.query(OtpRecord).all()
    assert record.email == "a@b.com"
    assert record.code == body["otp"]
    assert before + timedelta(minutes=4) < record.expires_at <= datetime.utcnow() + timedelta(minutes=5)


def test_send_otp_delivered_hides_code(client, dispatcher):
    dispatcher.outcome = DELIVERED

    body = client.post("/auth/send-otp", json={"email": "a@b.com"}).json()

    assert body == {"success": True, "message": "Check your email for OTP!"}
    assert dispatcher.sent[0][0] == "a@b.com"


def test_verify_wrong_code(client):
    code = client.post("/auth/send-otp", json={"email": "a@b.com"}).json()["otp"]
    wrong = "000000" if code != "000000" else "111111"

    resp = client.post(
        "/auth/verify-otp",
        json={"name": "X", "email": "a@b.com", "password": "p", "code": wrong},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid or expired OTP"}


def test_verify_missing_fields(client):
    resp = client.post("/auth/verify-otp", json={"email": "a@b.com", "code": "123456"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing fields"}


def test_verify_accepts_numeric_code(client):
    code = client.post("/auth/send-otp", json={"email": "a@b.com"}).json()["otp"]

    resp = client.post(
        "/auth/verify-otp",
        json={"name": "X", "email": "a@b.com", "password": "p", "code": int(code)},
    )
    assert resp.status_code == 200


def test_register_flow(client, db_session):
    body = _register(client)

    assert body["success"] is True
    assert body["token"]
    user = body["user"]
    assert re.fullmatch(r"BGMI-[A-Z0-9]{5}", user["profile_id"])
    assert user["name"] == "X"
    assert user["email"] == "a@b.com"
    assert "credential_secret" not in user and "password" not in user
    assert db_session.query(OtpRecord).count() == 0


def test_register_twice(client):
    _register(client)
    code = client.post("/auth/send-otp", json={"email": "a@b.com"}).json()["otp"]

    resp = client.post(
        "/auth/verify-otp",
        json={"name": "Y", "email": "a@b.com", "password": "q", "code": code},
    )
    assert resp.status_code == 400
    assert resp.json() == {"error": "User already exists"}


def test_login(client):
    registered = _register(client, password="p")

    resp = client.post("/auth/login", json={"email": "a@b.com", "password": "p"})
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == registered["user"]["id"]
    assert resp.json()["token"]

    resp = client.post("/auth/login", json={"email": "a@b.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}


def test_me(client):
    token = _register(client)["token"]

    resp = client.get("/me", headers={"Authorization": f"Bearer {token}"})

    assert resp.status_code == 200
    assert set(resp.json()) == {"profile_id", "name", "email", "created_at"}
    assert resp.json()["email"] == "a@b.com"


def test_me_with_login_token(client):
    _register(client)
    token = client.post("/auth/login", json={"email": "a@b.com", "password": "p"}).json()["token"]

    assert client.get("/me", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_me_requires_token(client):
    resp = client.get("/me")
    assert resp.status_code == 401
    assert resp.json() == {"error": "No token"}

    resp = client.get("/me", headers={"Authorization": "Bearer nonsense"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid token"}


def test_me_for_deleted_account(client):
    body = _register(client)

    assert client.delete(f"/admin/users/{body['user']['id']}").json() == {"success": True}

    resp = client.get("/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "User not found"}


def test_admin_users(client):
    first = _register(client, email="one@b.com")["user"]
    second = _register(client, email="two@b.com")["user"]

    listed = client.get("/admin/users").json()

    assert [u["id"] for u in listed] == [first["id"], second["id"]]
    assert client.delete("/admin/users/unknown").json() == {"success": True}


def test_unexpected_error_is_generic_500(app):
    class Broken:
        def request_otp(self, email):
            raise RuntimeError("database is on fire")

    app.dependency_overrides[get_auth_service] = lambda: Broken()
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.post("/auth/send-otp", json={"email": "a@b.com"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}


def test_send_otp_without_body(client):
    resp = client.post("/auth/send-otp")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email required"}


def test_send_otp_with_non_string_email(client):
    resp = client.post("/auth/send-otp", json={"email": [123]})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Email required"}


def test_verify_otp_without_body(client):
    resp = client.post("/auth/verify-otp")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing fields"}


def test_login_without_body(client):
    resp = client.post("/auth/login")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}


def test_login_with_malformed_json(client):
    resp = client.post(
        "/auth/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid credentials"}
