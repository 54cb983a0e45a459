"""
tests/test_api.py — End-to-end tests of the action-dispatch endpoints.

The FastAPI app runs against the in-memory SQLite session from conftest.py;
the identity gate is replaced with a fake that maps tokens to identities.
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from api.main import app
from app.db.models import CompanyQualification, Profile, QualificationTemplate
from app.db.session import get_db
from app.errors import CredentialInvalid, CredentialMissing
from app.services.identity import Identity, get_identity_gate

TEMPLATES_URL = "/admin/qualificacao-templates"
COMPANY_URL = "/qualificadores"

EXAMPLE = {
    "action": "create",
    "name": "B2B Outbound",
    "segment_type": "produtos",
    "questions": [
        {
            "pergunta": "Monthly revenue?",
            "peso": 2,
            "resposta_fria": "<10k",
            "resposta_morna": "10k-50k",
            "resposta_quente": ">50k",
        }
    ],
}


class FakeGate:
    identities = {
        "admin-token": Identity(subject_id="admin_1", is_admin=True),
        "tenant-token": Identity(subject_id="tenant_1", is_admin=False),
        "rival-token": Identity(subject_id="rival_1", is_admin=False),
        "orphan-token": Identity(subject_id="orphan_1", is_admin=False),
    }

    def authorize(self, token):
        if not token:
            raise CredentialMissing("Missing token. Please sign in again.")
        if token not in self.identities:
            raise CredentialInvalid("Invalid or expired token. Please sign in again.")
        return self.identities[token]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def client(db):
    db.add_all([
        Profile(id="tenant_1", company_id="acme"),
        Profile(id="rival_1", company_id="globex"),
    ])
    db.commit()

    def override_get_db():
        try:
            yield db
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_gate] = FakeGate
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def create_template(client, payload=EXAMPLE):
    response = client.post(TEMPLATES_URL, json=payload, headers=auth("admin-token"))
    assert response.status_code == 200, response.text
    return response.json()["template"]


# ── Authentication ────────────────────────────────────────────────────────────

class TestAuthentication:
    def test_missing_token_is_401(self, client):
        response = client.post(TEMPLATES_URL, json={"action": "list"})
        assert response.status_code == 401
        assert "error" in response.json()

    def test_invalid_token_is_401(self, client):
        response = client.post(TEMPLATES_URL, json={"action": "list"}, headers=auth("forged"))
        assert response.status_code == 401

    def test_token_accepted_in_body(self, client):
        response = client.post(TEMPLATES_URL, json={"action": "list", "token": "admin-token"})
        assert response.status_code == 200

    def test_body_token_takes_precedence(self, client):
        response = client.post(
            TEMPLATES_URL,
            json={"action": "list", "token": "forged"},
            headers=auth("admin-token"),
        )
        assert response.status_code == 401

    def test_non_admin_cannot_write_templates(self, client, db):
        for payload in (EXAMPLE, {"action": "update", "id": "x", "nome": "Y"}, {"action": "delete", "id": "x"}):
            response = client.post(TEMPLATES_URL, json=payload, headers=auth("tenant-token"))
            assert response.status_code == 403
            assert response.json() == {"error": "Access denied. Administrators only."}
        assert db.query(QualificationTemplate).count() == 0


# ── Templates ─────────────────────────────────────────────────────────────────

class TestTemplateActions:
    def test_empty_body_lists(self, client):
        response = client.post(TEMPLATES_URL, headers=auth("admin-token"))
        assert response.status_code == 200
        assert response.json() == {"templates": []}

    def test_create_then_list_example(self, client):
        template = create_template(client)
        assert template["nome"] == "B2B Outbound"
        assert template["segment_type"] == "produtos"
        assert template["pontuacao_maxima"] == 20

        listed = client.post(TEMPLATES_URL, json={"action": "list"}, headers=auth("admin-token")).json()
        [entry] = listed["templates"]
        [question] = entry["perguntas"]
        assert question["peso"] == 2
        assert question["ordem"] == 1
        assert question["resposta_fria"] == "<10k"
        assert question["resposta_morna"] == "10k-50k"
        assert question["resposta_quente"] == ">50k"
        assert question["pontuacoes"] == {"fria": 2, "morna": 10, "quente": 20}

    def test_sparse_tiers_list_as_empty_strings(self, client):
        create_template(client, {
            "action": "create",
            "nome": "Sparse",
            "perguntas": [{"pergunta": "Only hot?", "peso": 1, "resposta_quente": "yes"}],
        })
        listed = client.post(TEMPLATES_URL, headers=auth("admin-token")).json()
        question = listed["templates"][0]["perguntas"][0]
        assert question["resposta_fria"] == ""
        assert question["pontuacoes"] == {"quente": 10}

    def test_update_replaces_questions(self, client):
        template = create_template(client)
        response = client.post(
            TEMPLATES_URL,
            json={
                "action": "update",
                "id": template["id"],
                "perguntas": [
                    {"pergunta": "Team size?", "peso": 3, "resposta_quente": "50+"},
                    {"pergunta": "Monthly revenue?", "peso": 2, "resposta_fria": "<10k"},
                ],
            },
            headers=auth("admin-token"),
        )
        assert response.status_code == 200
        assert response.json()["success"] is True

        listed = client.post(TEMPLATES_URL, headers=auth("admin-token")).json()
        perguntas = listed["templates"][0]["perguntas"]
        assert [(p["pergunta"], p["ordem"]) for p in perguntas] == [("Team size?", 1), ("Monthly revenue?", 2)]
        assert listed["templates"][0]["nome"] == "B2B Outbound"

    def test_delete(self, client):
        template = create_template(client)
        response = client.post(
            TEMPLATES_URL, json={"action": "delete", "id": template["id"]}, headers=auth("admin-token")
        )
        assert response.json() == {"success": True}
        listed = client.post(TEMPLATES_URL, headers=auth("admin-token")).json()
        assert listed == {"templates": []}

    def test_unknown_id_is_404(self, client):
        response = client.post(
            TEMPLATES_URL, json={"action": "delete", "id": "missing"}, headers=auth("admin-token")
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("payload", [
        {"action": "create", "nome": "   "},
        {"action": "create", "nome": "T", "segment_type": "varejo"},
        {"action": "create", "nome": "T", "perguntas": [{"pergunta": "A?", "peso": "heavy"}]},
        {"action": "update", "nome": "No id"},
        {"action": "archive", "id": "x"},
    ])
    def test_bad_payloads_are_400(self, client, payload):
        response = client.post(TEMPLATES_URL, json=payload, headers=auth("admin-token"))
        assert response.status_code == 400
        assert response.json()["error"]

    def test_unknown_action_message(self, client):
        response = client.post(TEMPLATES_URL, json={"action": "archive"}, headers=auth("admin-token"))
        assert response.json() == {"error": "Invalid action 'archive'."}

    def test_malformed_json_is_400(self, client):
        response = client.post(
            TEMPLATES_URL,
            content=b"{not json",
            headers={**auth("admin-token"), "Content-Type": "application/json"},
        )
        assert response.status_code == 400


# ── Company rubrics ───────────────────────────────────────────────────────────

class TestCompanyActions:
    def test_user_without_company_is_403(self, client):
        response = client.post(COMPANY_URL, headers=auth("orphan-token"))
        assert response.status_code == 403

    def test_create_and_list_scoped_to_company(self, client):
        payload = {**EXAMPLE, "ideal_customer_id": "persona_1"}
        created = client.post(COMPANY_URL, json=payload, headers=auth("tenant-token"))
        assert created.status_code == 200
        assert created.json()["qualificador"]["ideal_customer_id"] == "persona_1"

        mine = client.post(COMPANY_URL, headers=auth("tenant-token")).json()
        theirs = client.post(COMPANY_URL, headers=auth("rival-token")).json()
        assert len(mine["qualificadores"]) == 1
        assert mine["qualificadores"][0]["perguntas"][0]["pontuacoes"]["quente"] == 20
        assert theirs == {"qualificadores": []}

    def test_cannot_delete_other_company_rubric(self, client, db):
        created = client.post(COMPANY_URL, json=EXAMPLE, headers=auth("tenant-token")).json()
        response = client.post(
            COMPANY_URL,
            json={"action": "delete", "id": created["qualificador"]["id"]},
            headers=auth("rival-token"),
        )
        assert response.status_code == 404
        assert db.query(CompanyQualification).count() == 1

    def test_list_templates_catalogue(self, client):
        create_template(client)
        response = client.post(COMPANY_URL, json={"action": "list_templates"}, headers=auth("tenant-token"))
        assert [t["nome"] for t in response.json()["templates"]] == ["B2B Outbound"]

    def test_materialize_is_independent_of_template(self, client):
        template = create_template(client)
        response = client.post(
            COMPANY_URL,
            json={"action": "materialize", "template_id": template["id"]},
            headers=auth("tenant-token"),
        )
        assert response.status_code == 200
        copy_id = response.json()["qualificador"]["id"]
        assert copy_id != template["id"]

        client.post(
            TEMPLATES_URL,
            json={"action": "update", "id": template["id"], "nome": "Renamed", "perguntas": []},
            headers=auth("admin-token"),
        )

        [copy] = client.post(COMPANY_URL, headers=auth("tenant-token")).json()["qualificadores"]
        assert copy["id"] == copy_id
        assert copy["nome"] == "B2B Outbound"
        assert [p["pergunta"] for p in copy["perguntas"]] == ["Monthly revenue?"]
        assert copy["perguntas"][0]["pontuacoes"] == {"fria": 2, "morna": 10, "quente": 20}

    def test_materialize_unknown_template_is_404(self, client):
        response = client.post(
            COMPANY_URL,
            json={"action": "materialize", "template_id": "missing"},
            headers=auth("tenant-token"),
        )
        assert response.status_code == 404

    def test_company_route_does_not_accept_template_only_payloads(self, client):
        response = client.post(COMPANY_URL, json={"action": "materialize"}, headers=auth("tenant-token"))
        assert response.status_code == 400

    def test_store_error_in_profile_lookup_renders_error_body(self, client):
        failure = OperationalError("SELECT company_id FROM profiles", {}, Exception("connection lost"))
        with patch("api.endpoints.company_routes.get_profile_company_id", side_effect=failure):
            response = client.post(COMPANY_URL, headers=auth("tenant-token"))
        assert response.status_code == 500
        assert response.json() == {"error": "Database error. Try again later."}

    def test_materialized_copy_keeps_score_bands(self, client):
        template = create_template(client)
        client.post(
            COMPANY_URL,
            json={"action": "materialize", "template_id": template["id"]},
            headers=auth("tenant-token"),
        )
        [copy] = client.post(COMPANY_URL, headers=auth("tenant-token")).json()["qualificadores"]
        assert (copy["pontuacao_maxima"], copy["limite_frio_max"], copy["limite_morno_max"]) == (20, 6, 13)


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok", "service": "lead-qualification-rubrics"}
