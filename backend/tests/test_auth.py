from uuid import uuid4

from fastapi.testclient import TestClient
from sqlmodel import Session, select

import trackdash.db as db
from trackdash.models import User
from trackdash.seed import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, ensure_default_admin

from conftest import _auth_headers, create_and_login


FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


def _login(client: TestClient, email: str, password: str):
    return client.post("/auth/token", data={"username": email, "password": password}, headers=FORM_HEADERS)


def _signup(client: TestClient, **extra):
    payload = {
        "email": f"user-{uuid4().hex[:8]}@test.com",
        "full_name": "User One",
        "password": "pass1234",
    }
    payload.update(extra)
    return payload, client.post("/auth/signup", json=payload)


def test_signup_and_login_flow(client: TestClient):
    payload, r = _signup(client)
    assert r.status_code == 200, r.text
    assert r.json()["access_token"]
    assert r.json()["must_change_password"] is False

    r2 = _login(client, payload["email"], "pass1234")
    assert r2.status_code == 200
    assert r2.json()["access_token"]

    assert _login(client, payload["email"], "incorrecta").status_code == 400


def test_signup_creates_director_without_program_rights(client: TestClient):
    _, r = _signup(client)
    headers = _auth_headers(r.json()["access_token"])

    me = client.get("/auth/me", headers=headers).json()
    assert me["role"] == "director"
    assert me["student_id"] is None
    assert client.get("/programs/mine", headers=headers).json() == []


def test_signup_cannot_choose_a_privileged_role(client: TestClient, dashboard):
    for role in ("admin", "student"):
        payload, r = _signup(client, role=role)
        assert r.status_code == 403
        assert _login(client, payload["email"], "pass1234").status_code == 400

    # Sin rol de administrador no se pueden otorgar permisos sobre programas
    _, r = _signup(client, role="director")
    headers = _auth_headers(r.json()["access_token"])
    grant = client.post(
        f"/programs/{dashboard.other_program_id}/directors",
        json={"email": "x@test.com"},
        headers=headers,
    )
    assert grant.status_code == 403


def test_signup_cannot_link_another_students_id(client: TestClient, dashboard):
    victim = dashboard.ruts[1]
    payload, r = _signup(client, student_id=victim)
    assert r.status_code == 403

    _, r = _signup(client)
    res = client.post("/students/search", json={}, headers=_auth_headers(r.json()["access_token"]))
    assert res.status_code == 404


def test_signup_rejects_duplicates_and_unknown_roles(client: TestClient):
    payload, r = _signup(client)
    assert r.status_code == 200
    assert client.post("/auth/signup", json=payload).status_code == 400

    _, unknown_role = _signup(client, role="coordinator")
    assert unknown_role.status_code == 422


def test_admin_creates_student_accounts_with_unique_ids(client: TestClient, admin_headers):
    student_id = f"{uuid4().hex[:8]}-9"
    body = {"email": f"s-{uuid4().hex[:8]}@test.com", "full_name": "Alumno", "password": "pass1234", "role": "student"}

    missing = client.post("/auth/users", json=body, headers=admin_headers)
    assert missing.status_code == 400

    created = client.post("/auth/users", json=dict(body, student_id=student_id), headers=admin_headers)
    assert created.status_code == 201, created.text
    assert created.json() == {"email": body["email"], "full_name": "Alumno", "role": "student", "student_id": student_id}

    again = dict(body, email=f"s-{uuid4().hex[:8]}@test.com", student_id=student_id)
    assert client.post("/auth/users", json=again, headers=admin_headers).status_code == 400

    director = dict(body, email=f"d-{uuid4().hex[:8]}@test.com", role="director", student_id="x")
    assert client.post("/auth/users", json=director, headers=admin_headers).status_code == 400


def test_me_reports_role_and_student_id(client: TestClient):
    student_id = f"{uuid4().hex[:8]}-9"
    token = create_and_login(client, "student", student_id=student_id)

    res = client.get("/auth/me", headers=_auth_headers(token))
    assert res.status_code == 200
    assert res.json()["role"] == "student"
    assert res.json()["student_id"] == student_id


def test_change_password_endpoint_enforces_current_secret(client: TestClient):
    password = "Original123"
    payload, _ = _signup(client, password=password)
    email = payload["email"]
    headers = _auth_headers(_login(client, email, password).json()["access_token"])

    bad = client.post(
        "/auth/change-password",
        json={"current_password": "badpass", "new_password": "NewPassword123"},
        headers=headers,
    )
    assert bad.status_code == 400

    same = client.post(
        "/auth/change-password",
        json={"current_password": password, "new_password": password},
        headers=headers,
    )
    assert same.status_code == 400

    ok = client.post(
        "/auth/change-password",
        json={"current_password": password, "new_password": "NewPassword123"},
        headers=headers,
    )
    assert ok.status_code == 200
    assert ok.json()["must_change_password"] is False
    assert _login(client, email, "NewPassword123").status_code == 200


def test_default_admin_is_flagged_for_password_reset(client: TestClient):
    ensure_default_admin(force_password_reset=True)
    with Session(db.engine) as session:
        admin = session.exec(select(User).where(User.email == DEFAULT_ADMIN_EMAIL)).first()
        assert admin is not None
        assert admin.role == "admin"
        assert admin.must_change_password is True

    login = _login(client, DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)
    assert login.status_code == 200
    assert login.json()["must_change_password"] is True

    ok = client.post(
        "/auth/change-password",
        json={"current_password": DEFAULT_ADMIN_PASSWORD, "new_password": "Nuev4Secure!"},
        headers=_auth_headers(login.json()["access_token"]),
    )
    assert ok.status_code == 200
    assert ok.json()["must_change_password"] is False
