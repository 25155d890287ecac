"""Tests for the shared-evidence claim graph."""

from unittest.mock import patch

import pytest

from idynic.core.errors import RetrievalError
from idynic.core.identity_graph import build_identity_graph, load_identity_graph
from idynic.core.schemas_identity import Claim, ClaimEvidenceLink, Evidence
from idynic.db.identity_claims import IdentitySnapshot


def _claim(claim_id: str, claim_type: str = "skill") -> Claim:
    return Claim(id=claim_id, type=claim_type, label=claim_id.title(), confidence=0.7)


def _evidence(evidence_id: str) -> Evidence:
    return Evidence(id=evidence_id, text=f"Text for {evidence_id}", evidence_type="resume", source_type="resume")


def _link(claim_id: str, evidence_id: str, strength: str = "medium") -> ClaimEvidenceLink:
    return ClaimEvidenceLink(claim_id=claim_id, evidence_id=evidence_id, strength=strength)


def test_empty_graph():
    graph = build_identity_graph([], [], [])

    assert graph.nodes == []
    assert graph.edges == []
    assert graph.evidence == []


def test_claims_sharing_evidence_get_one_edge():
    claims = [_claim("python"), _claim("django"), _claim("leadership", "attribute")]
    links = [
        _link("python", "ev-1"),
        _link("django", "ev-1"),
        _link("leadership", "ev-2"),
    ]
    evidence = [_evidence("ev-1"), _evidence("ev-2")]

    graph = build_identity_graph(claims, links, evidence)

    assert len(graph.nodes) == 3
    assert len(graph.edges) == 1
    edge = graph.edges[0]
    assert (edge.source, edge.target) == ("python", "django")
    assert edge.shared_evidence == ["ev-1"]


def test_shared_evidence_follows_first_claims_link_order():
    claims = [_claim("a"), _claim("b")]
    links = [
        _link("a", "ev-3"),
        _link("a", "ev-1"),
        _link("b", "ev-1"),
        _link("b", "ev-3"),
    ]
    evidence = [_evidence("ev-1"), _evidence("ev-3")]

    graph = build_identity_graph(claims, links, evidence)

    assert graph.edges[0].shared_evidence == ["ev-3", "ev-1"]


def test_evidence_is_deduplicated_in_first_encounter_order():
    claims = [_claim("a"), _claim("b")]
    links = [_link("a", "ev-2"), _link("b", "ev-2"), _link("b", "ev-1")]
    evidence = [_evidence("ev-1"), _evidence("ev-2")]

    graph = build_identity_graph(claims, links, evidence)

    assert [ev.id for ev in graph.evidence] == ["ev-2", "ev-1"]


def test_links_to_missing_evidence_are_skipped():
    claims = [_claim("a")]
    links = [_link("a", "ev-gone"), _link("a", "ev-1")]

    graph = build_identity_graph(claims, links, [_evidence("ev-1")])

    assert [ev.id for ev in graph.evidence] == ["ev-1"]


def test_node_carries_link_strength():
    graph = build_identity_graph([_claim("a")], [_link("a", "ev-1", "strong")], [_evidence("ev-1")])

    node = graph.nodes[0]
    assert node.claim_evidence[0].evidence_id == "ev-1"
    assert node.claim_evidence[0].strength == "strong"


def test_serialized_graph_uses_camel_case_edge_fields():
    claims = [_claim("a"), _claim("b")]
    links = [_link("a", "ev-1"), _link("b", "ev-1")]

    data = build_identity_graph(claims, links, [_evidence("ev-1")]).model_dump(by_alias=True)

    assert data["edges"][0]["sharedEvidence"] == ["ev-1"]
    assert data["evidence"][0]["sourceType"] == "resume"


def test_load_identity_graph_wraps_store_errors():
    with patch(
        "idynic.core.identity_graph.list_claims_with_evidence",
        side_effect=RuntimeError("connection reset"),
    ):
        with pytest.raises(RetrievalError):
            load_identity_graph("user-1")


def test_load_identity_graph_builds_from_snapshot():
    snapshot = IdentitySnapshot(
        claims=[_claim("a"), _claim("b")],
        links=[_link("a", "ev-1"), _link("b", "ev-1")],
        evidence=[_evidence("ev-1")],
    )

    with patch("idynic.core.identity_graph.list_claims_with_evidence", return_value=snapshot):
        graph = load_identity_graph("user-1")

    assert len(graph.edges) == 1
