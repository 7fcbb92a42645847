from __future__ import annotations

from conftest import PASSWORD, PHONE

from cabinet.core.settings import settings

PREFIX = settings.api_prefix

REGISTRATION = {
    "phone": PHONE,
    "password": PASSWORD,
    "fullName": "Ivanov Ivan",
    "subjects": ["Математика"],
    "city": "Москва",
}


def _headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _register_and_login(client, payload: dict | None = None) -> str:
    payload = payload or REGISTRATION
    assert client.post(f"{PREFIX}/register", json=payload).status_code == 200
    login = client.post(f"{PREFIX}/login", json={"phone": payload["phone"], "password": payload["password"]})
    assert login.status_code == 200, login.text
    return login.json()["token"]


def test_onboarding_happy_path(client):
    # Scenario 1: register.
    register = client.post(f"{PREFIX}/register", json=REGISTRATION)
    assert register.status_code == 200, register.text
    identity = register.json()["identity"]
    assert identity

    # Scenario 2: login.
    login = client.post(f"{PREFIX}/login", json={"phone": PHONE, "password": PASSWORD})
    assert login.status_code == 200
    body = login.json()
    token = body["token"]
    assert token
    assert body["profile"]["id"] == identity
    assert body["profile"]["onboardingStep"] == 0
    assert body["profile"]["students"] == []
    assert "hashedPassword" not in body["profile"]

    # Scenario 3: add a student.
    student = client.post(
        f"{PREFIX}/students",
        json={"name": "Anna", "age": "15", "level": "Средняя школа (5-9 класс)", "subject": "Математика"},
        headers=_headers(token),
    )
    assert student.status_code == 200, student.text
    created = student.json()["student"]
    assert created["id"]
    assert created["name"] == "Anna"
    assert created["createdAt"]

    profile = client.get(f"{PREFIX}/profile", headers=_headers(token))
    assert profile.status_code == 200
    assert len(profile.json()["profile"]["students"]) == 1
    assert profile.json()["profile"]["students"][0]["id"] == created["id"]

    # Scenario 4: onboarding step.
    step = client.post(f"{PREFIX}/onboarding/step", json={"step": 1}, headers=_headers(token))
    assert step.status_code == 200
    assert step.json()["success"] is True
    profile = client.get(f"{PREFIX}/profile", headers=_headers(token))
    assert profile.json()["profile"]["onboardingStep"] == 1

    # Scenario 5: logout invalidates the token.
    assert client.post(f"{PREFIX}/logout", headers=_headers(token)).status_code == 200
    after = client.get(f"{PREFIX}/profile", headers=_headers(token))
    assert after.status_code == 401
    assert after.json()["success"] is False
    assert isinstance(after.json()["error"], str)


def test_register_defaults_optional_fields(client):
    token = _register_and_login(client)

    profile = client.get(f"{PREFIX}/profile", headers=_headers(token)).json()["profile"]
    assert profile["experience"] == ""
    assert profile["levels"] == []
    assert profile["format"] == ""
    assert profile["rate"] == ""
    assert profile["lessons"] == [] and profile["materials"] == []


def test_register_duplicate_phone_returns_400(client):
    assert client.post(f"{PREFIX}/register", json=REGISTRATION).status_code == 200

    duplicate = client.post(f"{PREFIX}/register", json={**REGISTRATION, "fullName": "Other Person"})
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "phone_taken"

    token = client.post(f"{PREFIX}/login", json={"phone": PHONE, "password": PASSWORD}).json()["token"]
    profile = client.get(f"{PREFIX}/profile", headers=_headers(token)).json()["profile"]
    assert profile["fullName"] == "Ivanov Ivan"


def test_login_failures_return_401(client):
    client.post(f"{PREFIX}/register", json=REGISTRATION)

    wrong = client.post(f"{PREFIX}/login", json={"phone": PHONE, "password": "WrongPass123!"})
    unknown = client.post(f"{PREFIX}/login", json={"phone": "+70000000000", "password": PASSWORD})

    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["error"] == unknown.json()["error"]
    # The reason is only distinguishable server-side.
    assert wrong.json()["code"] == unknown.json()["code"] == "invalid_credentials"


def test_protected_routes_require_bearer_token(client):
    assert client.get(f"{PREFIX}/profile").status_code == 401
    assert client.get(f"{PREFIX}/profile", headers={"Authorization": "Basic abc"}).status_code == 401
    assert client.get(f"{PREFIX}/profile", headers=_headers("forged")).status_code == 401
    assert client.post(f"{PREFIX}/students", json={"name": "A", "age": "1", "level": "x", "subject": "y"}).status_code == 401
    assert client.post(f"{PREFIX}/onboarding/step", json={"step": 1}).status_code == 401


def test_logout_is_idempotent_over_http(client):
    token = _register_and_login(client)

    assert client.post(f"{PREFIX}/logout", headers=_headers(token)).status_code == 200
    assert client.post(f"{PREFIX}/logout", headers=_headers(token)).status_code == 200
    assert client.post(f"{PREFIX}/logout", headers=_headers("never-issued")).status_code == 200
    assert client.post(f"{PREFIX}/logout").status_code == 200


def test_lessons_and_materials_are_appended(client):
    token = _register_and_login(client)

    lesson = client.post(
        f"{PREFIX}/lessons",
        json={"studentId": "unknown", "subject": "Математика", "date": "2026-02-01", "time": "15:00", "duration": 60},
        headers=_headers(token),
    )
    assert lesson.status_code == 200, lesson.text
    assert lesson.json()["lesson"]["studentId"] == "unknown"
    assert lesson.json()["lesson"]["duration"] == "60"

    material = client.post(
        f"{PREFIX}/materials",
        json={"title": "Дроби", "subject": "Математика", "description": "Конспект", "type": "конспект"},
        headers=_headers(token),
    )
    assert material.status_code == 200, material.text
    assert material.json()["material"]["type"] == "конспект"

    profile = client.get(f"{PREFIX}/profile", headers=_headers(token)).json()["profile"]
    assert len(profile["lessons"]) == 1
    assert len(profile["materials"]) == 1


def test_onboarding_step_out_of_range_is_400(client):
    token = _register_and_login(client)

    response = client.post(f"{PREFIX}/onboarding/step", json={"step": 9}, headers=_headers(token))
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_step"


def test_profile_missing_behind_valid_session_is_404(client):
    token = _register_and_login(client)
    profile = client.get(f"{PREFIX}/profile", headers=_headers(token)).json()["profile"]
    kv = client.app.state.services.kv

    client.portal.call(kv.delete, f"tutor:{profile['id']}")

    assert client.get(f"{PREFIX}/profile", headers=_headers(token)).status_code == 404
    added = client.post(
        f"{PREFIX}/students",
        json={"name": "Anna", "age": "15", "level": "x", "subject": "y"},
        headers=_headers(token),
    )
    assert added.status_code == 404


def test_health_and_metrics_endpoints(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert health.json()["store"] == "ok"

    client.post(f"{PREFIX}/login", json={"phone": PHONE, "password": PASSWORD})
    metrics = client.get("/metrics/app")
    assert metrics.status_code == 200
    body = metrics.json()
    assert body["request_count"] >= 1
    assert "store" in body
    assert isinstance(body["alerts"], list)


def test_onboarding_step_must_be_a_json_integer(client):
    token = _register_and_login(client)

    for bad in (True, "1", 1.5):
        response = client.post(f"{PREFIX}/onboarding/step", json={"step": bad}, headers=_headers(token))
        assert response.status_code == 400, bad
        assert response.json()["code"] == "validation_error"

    profile = client.get(f"{PREFIX}/profile", headers=_headers(token)).json()["profile"]
    assert profile["onboardingStep"] == 0


def test_malformed_login_body_is_400(client):
    for body in ({}, {"phone": PHONE}, {"password": PASSWORD}):
        response = client.post(f"{PREFIX}/login", json=body)
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "validation_error"
        assert isinstance(body["error"], str)
