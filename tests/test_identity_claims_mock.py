"""Tests for identity claim queries with mocked Supabase."""

from unittest.mock import MagicMock, patch

import pytest

from idynic.db.identity_claims import (
    list_claims_for_talking_points,
    list_claims_with_embeddings,
    list_claims_with_evidence,
    match_identity_claims,
)

USER_ID = "5b0c4c1e-0000-4000-8000-000000000001"


def _rpc_client(rows):
    mock_response = MagicMock()
    mock_response.data = rows

    mock_supabase = MagicMock()
    mock_supabase.rpc.return_value.execute.return_value = mock_response
    return mock_supabase


def _table_client(rows):
    mock_response = MagicMock()
    mock_response.data = rows

    mock_supabase = MagicMock()
    mock_supabase.table.return_value.select.return_value.eq.return_value.order.return_value.execute.return_value = (
        mock_response
    )
    return mock_supabase


def test_match_identity_claims_calls_rpc_scoped_to_user():
    mock_supabase = _rpc_client([{"id": "c1", "type": "skill", "label": "Python", "confidence": 0.9, "similarity": 0.82}])

    with patch("idynic.db.identity_claims.get_supabase", return_value=mock_supabase):
        claims = match_identity_claims(USER_ID, [0.1, 0.2], 0.5, 10)

    mock_supabase.rpc.assert_called_once_with(
        "match_identity_claims",
        {
            "query_embedding": [0.1, 0.2],
            "match_user_id": USER_ID,
            "match_threshold": 0.5,
            "match_count": 10,
        },
    )
    assert claims[0].id == "c1"
    assert claims[0].similarity == 0.82


def test_match_identity_claims_filters_and_clamps():
    rows = [
        {"id": "c1", "type": "skill", "label": "A", "similarity": 1.0000002},
        {"id": "c2", "type": "skill", "label": "B", "similarity": 0.3},
        {"id": "c3", "type": "skill", "label": "C", "similarity": 0.6, "confidence": None},
    ]

    with patch("idynic.db.identity_claims.get_supabase", return_value=_rpc_client(rows)):
        claims = match_identity_claims(USER_ID, [0.1], 0.5, 10)

    assert [c.id for c in claims] == ["c1", "c3"]
    assert claims[0].similarity == 1.0
    assert claims[1].confidence == 0.5


@pytest.mark.parametrize("embedding", [[], ["a", "b"]])
def test_match_identity_claims_rejects_bad_embedding(embedding):
    mock_supabase = MagicMock()

    with patch("idynic.db.identity_claims.get_supabase", return_value=mock_supabase):
        with pytest.raises(ValueError):
            match_identity_claims(USER_ID, embedding, 0.5, 10)

    mock_supabase.rpc.assert_not_called()


def _claim_row(claim_id, links, claim_type="skill"):
    return {
        "id": claim_id,
        "type": claim_type,
        "label": claim_id.upper(),
        "description": None,
        "confidence": 0.7,
        "claim_evidence": links,
    }


def _link_row(evidence_id, text="Did the thing", strength="strong"):
    return {
        "evidence_id": evidence_id,
        "strength": strength,
        "evidence": {
            "id": evidence_id,
            "text": text,
            "evidence_type": "accomplishment",
            "source_type": "resume",
            "evidence_date": "2023-01-01",
            "document_id": "doc-1",
        },
    }


def test_list_claims_with_evidence_flattens_and_dedupes():
    rows = [
        _claim_row("c1", [_link_row("ev-1"), _link_row("ev-2")]),
        _claim_row("c2", [_link_row("ev-1")]),
    ]
    mock_supabase = _table_client(rows)

    with patch("idynic.db.identity_claims.get_supabase", return_value=mock_supabase):
        snapshot = list_claims_with_evidence(USER_ID)

    mock_supabase.table.assert_called_with("identity_claims")
    mock_supabase.table.return_value.select.return_value.eq.assert_called_with("user_id", USER_ID)
    assert [c.id for c in snapshot.claims] == ["c1", "c2"]
    assert [(link.claim_id, link.evidence_id) for link in snapshot.links] == [
        ("c1", "ev-1"),
        ("c1", "ev-2"),
        ("c2", "ev-1"),
    ]
    assert [ev.id for ev in snapshot.evidence] == ["ev-1", "ev-2"]
    assert snapshot.evidence[0].document_id == "doc-1"


def test_list_claims_with_evidence_skips_malformed_rows():
    rows = [
        {"id": "bad", "type": "not-a-type", "label": "X"},
        {"id": "missing-label", "type": "skill"},
        _claim_row("c1", [{"evidence_id": None}]),
    ]

    with patch("idynic.db.identity_claims.get_supabase", return_value=_table_client(rows)):
        snapshot = list_claims_with_evidence(USER_ID)

    assert [c.id for c in snapshot.claims] == ["c1"]
    assert snapshot.links == []


def test_list_claims_with_embeddings_parses_pgvector_text():
    rows = [
        {"id": "c1", "type": "skill", "label": "Python", "confidence": 0.8, "embedding": "[0.1,0.2]"},
        {"id": "c2", "type": "skill", "label": "Go", "confidence": 0.8, "embedding": [0.3, 0.4]},
        {"id": "c3", "type": "skill", "label": "Rust", "confidence": 0.8, "embedding": "garbage"},
    ]

    with patch("idynic.db.identity_claims.get_supabase", return_value=_table_client(rows)):
        claims = list_claims_with_embeddings(USER_ID)

    assert [c.embedding for c in claims] == [[0.1, 0.2], [0.3, 0.4], None]


def test_list_claims_for_talking_points_shape():
    rows = [_claim_row("c1", [_link_row("ev-1", text="Led migration")])]

    with patch("idynic.db.identity_claims.get_supabase", return_value=_table_client(rows)):
        claims = list_claims_for_talking_points(USER_ID)

    assert claims == [
        {
            "id": "c1",
            "label": "C1",
            "type": "skill",
            "description": None,
            "evidence": [{"text": "Led migration", "type": "accomplishment"}],
        }
    ]
