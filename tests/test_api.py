"""HTTP tests for the FastAPI app."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from training_signup import crud
from training_signup.export import BOM
from training_signup.models import TrainingRegistration
from tests.conftest import HR_EMAIL, HR_PASSWORD, VALID_FORM, add_registration


def _count(db_session):
    return db_session.execute(select(func.count()).select_from(TrainingRegistration)).scalar_one()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


def test_health(client):
    assert client.get("/api/health").json() == {"ok": True}
    assert client.get("/api/health/db").json() == {"db": "ok", "result": 1}


def test_event_info(client):
    body = client.get("/api/event").json()
    assert body["room"] == "Sala de Treinamento 25"
    assert body["departments"] == ["RH", "TI", "Vendas", "Operações"]
    assert body["training_days"] == ["11/12", "12/12", "13/12"]


class TestSubmitRegistration:
    def test_valid_submission(self, client, db_session):
        resp = client.post("/api/registrations", json=VALID_FORM)

        assert resp.status_code == 201
        body = resp.json()
        assert body["title"] == "Inscrição realizada!"
        assert body["registration"]["id"]
        assert body["registration"]["full_name"] == "Ana Souza"
        assert body["registration"]["created_at"]
        assert _count(db_session) == 1

    def test_short_name_is_blocked(self, client, db_session):
        resp = client.post("/api/registrations", json={**VALID_FORM, "full_name": "Jo"})

        assert resp.status_code == 422
        assert resp.json()["errors"] == {"full_name": "Nome deve ter pelo menos 3 caracteres"}
        assert _count(db_session) == 0

    def test_hidden_accessibility_details_not_persisted(self, client, db_session):
        resp = client.post(
            "/api/registrations",
            json={**VALID_FORM, "needs_accessibility": False, "accessibility_details": "Rampa"},
        )
        assert resp.status_code == 201
        row = db_session.execute(select(TrainingRegistration)).scalar_one()
        assert row.accessibility_details is None

    def test_store_failure_is_generic(self, client, monkeypatch):
        def boom(db, payload):
            raise OperationalError("INSERT", {}, Exception("password authentication failed"))

        monkeypatch.setattr(crud, "insert_registration", boom)
        resp = client.post("/api/registrations", json=VALID_FORM)

        assert resp.status_code == 503
        assert resp.json()["detail"] == "Erro ao realizar inscrição. Por favor, tente novamente."
        assert "password" not in resp.text


# ---------------------------------------------------------------------------
# HR area
# ---------------------------------------------------------------------------


@pytest.fixture()
def seeded(db_session):
    add_registration(db_session, 1, full_name="Rita Alves", corporate_email="rita@corp.com", department="RH")
    add_registration(db_session, 2, full_name="Tiago Melo", corporate_email="tiago@corp.com", department="TI")
    add_registration(db_session, 3, full_name="Tânia Reis", corporate_email="tania@corp.com", department="TI", training_day="13/12")


class TestGate:
    @pytest.mark.parametrize("path", ["/api/registrations", "/api/registrations/export", "/api/auth/session"])
    def test_requires_session(self, client, path):
        resp = client.get(path)
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_rejects_unknown_token(self, client):
        resp = client.get("/api/registrations", headers={"Authorization": "Bearer forged"})
        assert resp.status_code == 401


class TestListing:
    def test_lists_newest_first(self, client, auth_headers, seeded):
        body = client.get("/api/registrations", headers=auth_headers).json()
        assert body["total"] == 3
        assert [r["full_name"] for r in body["items"]] == ["Tânia Reis", "Tiago Melo", "Rita Alves"]

    def test_department_filter(self, client, auth_headers, seeded):
        body = client.get("/api/registrations", params={"department": "TI"}, headers=auth_headers).json()
        assert body["total"] == 3
        assert body["count"] == 2
        assert {r["department"] for r in body["items"]} == {"TI"}

    def test_combined_filters(self, client, auth_headers, seeded):
        params = {"search": "TIAGO", "department": "TI", "training_day": "11/12"}
        body = client.get("/api/registrations", params=params, headers=auth_headers).json()
        assert [r["full_name"] for r in body["items"]] == ["Tiago Melo"]

    def test_unknown_filter_value(self, client, auth_headers):
        resp = client.get("/api/registrations", params={"department": "Financeiro"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_listener_released_after_request(self, client, auth_service, auth_headers, seeded):
        client.get("/api/registrations", headers=auth_headers)
        assert auth_service.listener_count == 0


class TestExport:
    def test_export_only_filtered_rows(self, client, auth_headers, seeded):
        resp = client.get("/api/registrations/export", params={"department": "TI"}, headers=auth_headers)

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert resp.headers["x-export-count"] == "2"
        disposition = resp.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="inscricoes-treinamento-')
        assert disposition.endswith('.csv"')

        text = resp.content.decode("utf-8")
        assert text.startswith(BOM)
        lines = text[1:].split("\n")
        assert len(lines) == 3
        assert lines[0].startswith("Nome,")
        assert all('"TI"' in line for line in lines[1:])
        assert "Rita" not in text


# ---------------------------------------------------------------------------
# Auth endpoints
# ---------------------------------------------------------------------------


class TestAuthEndpoints:
    def test_sign_up_then_session(self, client):
        resp = client.post("/api/auth/sign-up", json={"email": HR_EMAIL, "password": HR_PASSWORD})
        assert resp.status_code == 200
        body = resp.json()
        assert body["confirmation_required"] is False
        token = body["session"]["access_token"]

        me = client.get("/api/auth/session", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["email"] == HR_EMAIL

    def test_sign_up_validation(self, client):
        resp = client.post("/api/auth/sign-up", json={"email": "rh", "password": "123"})
        assert resp.status_code == 422
        assert set(resp.json()["errors"]) == {"email", "password"}

    def test_duplicate_sign_up(self, client, hr_session):
        resp = client.post("/api/auth/sign-up", json={"email": HR_EMAIL, "password": HR_PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Este e-mail já está cadastrado. Faça login."

    def test_concurrent_duplicate_sign_up(self, client, hr_session, monkeypatch):
        monkeypatch.setattr(crud, "get_user_by_email", lambda db, email: None)
        resp = client.post("/api/auth/sign-up", json={"email": HR_EMAIL, "password": HR_PASSWORD})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Este e-mail já está cadastrado. Faça login."

    def test_sign_in(self, client, hr_session):
        resp = client.post("/api/auth/sign-in", json={"email": HR_EMAIL, "password": HR_PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    def test_wrong_password(self, client, hr_session):
        resp = client.post("/api/auth/sign-in", json={"email": HR_EMAIL, "password": "errada123"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "E-mail ou senha incorretos."

    def test_sign_out_revokes_token(self, client, auth_headers):
        assert client.post("/api/auth/sign-out", headers=auth_headers).json() == {"ok": True}
        assert client.get("/api/registrations", headers=auth_headers).status_code == 401

    def test_bad_confirmation_token(self, client):
        resp = client.get("/api/auth/confirm", params={"token": "nope"})
        assert resp.status_code == 400
