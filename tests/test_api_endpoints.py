"""Tests for v1 API endpoints with the core services mocked."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from idynic.core.errors import GenerationError, InputValidationError, NotFoundError, RetrievalError
from idynic.core.schemas_clusters import ClusterProjection
from idynic.core.schemas_identity import GraphEdge, GraphNode, IdentityGraph, MatchedClaim
from idynic.core.schemas_matching import OpportunityMatch, Requirement, RequirementMatch
from idynic.core.schemas_tailoring import FieldEdit, ProfileResult, TailoredProfile, TextSelection
from idynic.main import app

USER_ID = "6f1c2b0e-3d4a-4c8e-9b7a-1e2f3a4b5c6d"
OTHER_USER_ID = "0a9b8c7d-6e5f-4a3b-8c2d-1e0f9a8b7c6d"
OPPORTUNITY_ID = "b3e1d2c4-5a6f-4b7c-8d9e-0f1a2b3c4d5e"

HEADERS = {"X-User-Id": USER_ID}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _profile(**overrides) -> TailoredProfile:
    fields = {
        "id": "profile-1",
        "user_id": USER_ID,
        "opportunity_id": OPPORTUNITY_ID,
        "narrative": "Hello",
        "resume_data": {"summary": "S"},
    }
    fields.update(overrides)
    return TailoredProfile(**fields)


def _strength(i: int) -> RequirementMatch:
    claim = MatchedClaim(id=f"c{i}", type="skill", label=f"Skill {i}", confidence=0.8, similarity=0.9 - i * 0.01)
    return RequirementMatch(
        requirement=Requirement(text=f"Req {i}", category="must_have"),
        matches=[claim],
        best_match=claim,
    )


def test_missing_user_header_is_rejected(client):
    response = client.get("/v1/identity/graph")
    assert response.status_code == 401


def test_non_uuid_user_header_is_400(client):
    with patch("idynic.api.identity.load_identity_graph") as mock_load:
        response = client.get("/v1/identity/graph", headers={"X-User-Id": "user-1"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid user ID format"
    mock_load.assert_not_called()


def test_user_header_is_canonicalized(client):
    with patch("idynic.api.identity.load_identity_graph", return_value=IdentityGraph()) as mock_load:
        response = client.get("/v1/identity/graph", headers={"X-User-Id": USER_ID.upper()})

    assert response.status_code == 200
    mock_load.assert_called_once_with(USER_ID)


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/v1/opportunities/opp-1/match"),
        ("post", "/v1/opportunities/opp-1/tailor"),
        ("post", "/v1/tailored-profiles/opp-1/revert"),
    ],
)
def test_non_uuid_opportunity_id_is_422(client, method, path):
    with patch("idynic.api.opportunities.get_or_generate") as mock_get, patch(
        "idynic.api.tailored_profiles.revert_profile_field"
    ) as mock_revert:
        response = client.request(method, path, headers=HEADERS, json={"field": "summary"})

    assert response.status_code == 422
    mock_get.assert_not_called()
    mock_revert.assert_not_called()


def test_identity_graph(client):
    graph = IdentityGraph(
        nodes=[GraphNode(id="a", type="skill", label="A", confidence=0.5), GraphNode(id="b", type="skill", label="B", confidence=0.5)],
        edges=[GraphEdge(source="a", target="b", shared_evidence=["ev-1"])],
    )

    with patch("idynic.api.identity.load_identity_graph", return_value=graph) as mock_load:
        response = client.get("/v1/identity/graph", headers=HEADERS)

    assert response.status_code == 200
    mock_load.assert_called_once_with(USER_ID)
    data = response.json()
    assert data["edges"] == [{"source": "a", "target": "b", "sharedEvidence": ["ev-1"]}]
    assert data["evidence"] == []


def test_identity_graph_store_failure_is_503(client):
    with patch("idynic.api.identity.load_identity_graph", side_effect=RetrievalError("Failed to fetch graph data")):
        response = client.get("/v1/identity/graph", headers=HEADERS)

    assert response.status_code == 503
    assert response.json() == {
        "error": {"kind": "retrieval_failure", "message": "Failed to fetch graph data", "retryable": True}
    }


def test_skill_clusters(client):
    projection = ClusterProjection(nodes=[], has_embeddings=False, message="none yet", embedding_count=0, total_count=0)

    with patch("idynic.api.identity.load_skill_clusters", return_value=projection):
        response = client.get("/v1/identity/clusters", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["has_embeddings"] is False
    assert "regions" not in data


def test_opportunity_match_truncates_strengths(client):
    match = OpportunityMatch(
        overall_score=84,
        must_have_score=80,
        nice_to_have_score=93,
        strengths=[_strength(i) for i in range(7)],
        gaps=[Requirement(text="Go", category="nice_to_have")],
    )

    with patch(
        "idynic.api.opportunities.match_opportunity_for_user", new=AsyncMock(return_value=match)
    ):
        response = client.get(f"/v1/opportunities/{OPPORTUNITY_ID}/match", headers=HEADERS)

    assert response.status_code == 200
    data = response.json()
    assert data["scores"] == {"overall": 84, "must_have": 80, "nice_to_have": 93}
    assert data["label"] == "Strong Alignment"
    assert len(data["strengths"]) == 5
    assert data["strengths"][0]["best_match"]["id"] == "c0"
    assert data["gaps"] == [{"text": "Go", "category": "nice_to_have", "type": "skill"}]


def test_opportunity_match_not_found(client):
    with patch(
        "idynic.api.opportunities.match_opportunity_for_user",
        new=AsyncMock(side_effect=NotFoundError("Opportunity", OPPORTUNITY_ID)),
    ):
        response = client.get(f"/v1/opportunities/{OPPORTUNITY_ID}/match", headers=HEADERS)

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "not_found"


def test_tailor_defaults_to_cached(client):
    result = ProfileResult(profile=_profile(), cached=True, outcome="hit")

    with patch("idynic.api.opportunities.get_or_generate", return_value=result) as mock_get:
        response = client.post(f"/v1/opportunities/{OPPORTUNITY_ID}/tailor", headers=HEADERS)

    assert response.status_code == 200
    mock_get.assert_called_once_with(USER_ID, OPPORTUNITY_ID, False)
    assert response.json()["outcome"] == "hit"


def test_tailor_regenerate(client):
    result = ProfileResult(profile=_profile(id="profile-2"), cached=False, outcome="generated")

    with patch("idynic.api.opportunities.get_or_generate", return_value=result) as mock_get:
        response = client.post(f"/v1/opportunities/{OPPORTUNITY_ID}/tailor", headers=HEADERS, json={"regenerate": True})

    assert response.status_code == 200
    mock_get.assert_called_once_with(USER_ID, OPPORTUNITY_ID, True)
    assert response.json()["profile"]["id"] == "profile-2"


def test_tailor_generation_failure_is_502(client):
    with patch(
        "idynic.api.opportunities.get_or_generate",
        side_effect=GenerationError("Narrative generation failed", step="narrative"),
    ):
        response = client.post(f"/v1/opportunities/{OPPORTUNITY_ID}/tailor", headers=HEADERS)

    assert response.status_code == 502
    assert response.json()["error"]["retryable"] is True


def test_edit_profile_field(client):
    edit = FieldEdit(
        field="narrative",
        value="Mine",
        profile=_profile(narrative="Mine", edited_fields=["narrative"]),
    )

    with patch("idynic.api.tailored_profiles.edit_profile_field", return_value=edit) as mock_edit:
        response = client.patch(
            f"/v1/tailored-profiles/{OPPORTUNITY_ID}", headers=HEADERS, json={"field": "narrative", "value": "Mine"}
        )

    assert response.status_code == 200
    mock_edit.assert_called_once_with(USER_ID, OPPORTUNITY_ID, "narrative", "Mine", None, None)
    data = response.json()
    assert data["value"] == "Mine"
    assert data["was_ai_generated"] is False
    assert data["profile"]["edited_fields"] == ["narrative"]


def test_edit_profile_field_with_instruction(client):
    edit = FieldEdit(
        field="summary",
        value="Platform engineer.",
        was_ai_generated=True,
        profile=_profile(resume_data={"summary": "Platform engineer."}, edited_fields=["summary"]),
    )

    with patch("idynic.api.tailored_profiles.edit_profile_field", return_value=edit) as mock_edit:
        response = client.patch(
            f"/v1/tailored-profiles/{OPPORTUNITY_ID}",
            headers=HEADERS,
            json={"field": "summary", "instruction": "Shorter", "selection": {"start": 0, "end": 7}},
        )

    assert response.status_code == 200
    mock_edit.assert_called_once_with(
        USER_ID, OPPORTUNITY_ID, "summary", None, "Shorter", TextSelection(start=0, end=7)
    )
    assert response.json()["was_ai_generated"] is True


def test_edit_rewrite_failure_is_502(client):
    with patch(
        "idynic.api.tailored_profiles.edit_profile_field",
        side_effect=GenerationError("Content rewrite failed: timeout", step="rewrite"),
    ):
        response = client.patch(
            f"/v1/tailored-profiles/{OPPORTUNITY_ID}", headers=HEADERS, json={"field": "summary", "instruction": "x"}
        )

    assert response.status_code == 502
    assert response.json()["error"]["kind"] == "generation_failure"


def test_edit_bad_path_is_400(client):
    with patch(
        "idynic.api.tailored_profiles.edit_profile_field",
        side_effect=InputValidationError("Cannot set nested value"),
    ):
        response = client.patch(
            f"/v1/tailored-profiles/{OPPORTUNITY_ID}", headers=HEADERS, json={"field": "experience.9", "value": "x"}
        )

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "validation"


def test_revert_profile_field(client):
    with patch("idynic.api.tailored_profiles.revert_profile_field", return_value=_profile()) as mock_revert:
        response = client.post(f"/v1/tailored-profiles/{OPPORTUNITY_ID}/revert", headers=HEADERS, json={"field": "summary"})

    assert response.status_code == 200
    mock_revert.assert_called_once_with(USER_ID, OPPORTUNITY_ID, "summary")


def test_rate_limit_returns_429(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "2")
    graph = IdentityGraph()

    with TestClient(app) as test_client, patch("idynic.api.identity.load_identity_graph", return_value=graph):
        statuses = [test_client.get("/v1/identity/graph", headers=HEADERS).status_code for _ in range(3)]
        other_user = test_client.get("/v1/identity/graph", headers={"X-User-Id": OTHER_USER_ID})
        limited = test_client.get("/v1/identity/graph", headers=HEADERS)

    assert statuses == [200, 200, 429]
    assert other_user.status_code == 200
    assert "Retry-After" in limited.headers
