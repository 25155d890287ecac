"""Tests for tailored profile and opportunity persistence with mocked Supabase."""

from unittest.mock import MagicMock, patch

import pytest
from postgrest.exceptions import APIError

from idynic.core.errors import ConflictError, NotFoundError
from idynic.core.schemas_tailoring import ResumeData, TalkingPoints
from idynic.db.opportunities import get_opportunity, normalize_requirements
from idynic.db.tailored_profiles import get_tailored_profile, insert_tailored_profile

USER_ID = "user-1"
OPPORTUNITY_ID = "opp-1"


def _profile_row(**overrides):
    row = {
        "id": "profile-1",
        "user_id": USER_ID,
        "opportunity_id": OPPORTUNITY_ID,
        "talking_points": {"strengths": [], "gaps": [], "inferences": []},
        "narrative": "Hello",
        "narrative_original": "Hello",
        "resume_data": {"summary": "S"},
        "resume_data_original": {"summary": "S"},
        "edited_fields": None,
        "created_at": "2024-05-01T10:00:00Z",
    }
    row.update(overrides)
    return row


def test_insert_tailored_profile_snapshots_originals():
    mock_response = MagicMock()
    mock_response.data = [_profile_row()]

    mock_supabase = MagicMock()
    mock_supabase.table.return_value.insert.return_value.execute.return_value = mock_response

    with patch("idynic.db.tailored_profiles.get_supabase", return_value=mock_supabase):
        profile = insert_tailored_profile(
            USER_ID, OPPORTUNITY_ID, TalkingPoints(), "Hello", ResumeData(summary="S")
        )

    mock_supabase.table.assert_called_with("tailored_profiles")
    payload = mock_supabase.table.return_value.insert.call_args[0][0]
    assert payload["narrative_original"] == payload["narrative"] == "Hello"
    assert payload["resume_data_original"] == payload["resume_data"]
    assert payload["edited_fields"] == []
    assert profile.id == "profile-1"
    assert profile.edited_fields == []


def test_insert_unique_violation_raises_conflict():
    mock_supabase = MagicMock()
    mock_supabase.table.return_value.insert.return_value.execute.side_effect = APIError(
        {"code": "23505", "message": "duplicate key value violates unique constraint", "details": None, "hint": None}
    )

    with patch("idynic.db.tailored_profiles.get_supabase", return_value=mock_supabase):
        with pytest.raises(ConflictError):
            insert_tailored_profile(USER_ID, OPPORTUNITY_ID, TalkingPoints(), "Hello", ResumeData(summary="S"))


def test_insert_other_api_error_propagates():
    mock_supabase = MagicMock()
    mock_supabase.table.return_value.insert.return_value.execute.side_effect = APIError(
        {"code": "42501", "message": "permission denied", "details": None, "hint": None}
    )

    with patch("idynic.db.tailored_profiles.get_supabase", return_value=mock_supabase):
        with pytest.raises(APIError):
            insert_tailored_profile(USER_ID, OPPORTUNITY_ID, TalkingPoints(), "Hello", ResumeData(summary="S"))


def test_get_tailored_profile_missing_returns_none():
    mock_response = MagicMock()
    mock_response.data = []

    mock_supabase = MagicMock()
    (
        mock_supabase.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value.execute.return_value
    ) = mock_response

    with patch("idynic.db.tailored_profiles.get_supabase", return_value=mock_supabase):
        assert get_tailored_profile(USER_ID, OPPORTUNITY_ID) is None


def test_normalize_requirements_mixed_formats():
    raw = {
        "mustHave": ["Python", {"text": "BSc Computer Science", "type": "education"}, "  "],
        "niceToHave": [{"text": "AWS", "type": "certification"}, {"text": "Rust", "type": "wizardry"}],
    }

    requirements = normalize_requirements(raw)

    assert [(r.text, r.category, r.type) for r in requirements] == [
        ("Python", "must_have", "skill"),
        ("BSc Computer Science", "must_have", "education"),
        ("AWS", "nice_to_have", "certification"),
        ("Rust", "nice_to_have", "skill"),
    ]


def test_normalize_requirements_skips_non_text_items():
    raw = {
        "mustHave": [{"text": 42, "type": "skill"}, {"text": None}, {"type": "skill"}, "Go"],
        "niceToHave": [{"text": ["SQL"]}, 7],
    }

    requirements = normalize_requirements(raw)

    assert [(r.text, r.category) for r in requirements] == [("Go", "must_have")]


def test_normalize_requirements_empty():
    assert normalize_requirements(None) == []
    assert normalize_requirements({}) == []


def test_get_opportunity_not_found():
    mock_response = MagicMock()
    mock_response.data = []

    mock_supabase = MagicMock()
    (
        mock_supabase.table.return_value.select.return_value.eq.return_value.eq.return_value.limit.return_value.execute.return_value
    ) = mock_response

    with patch("idynic.db.opportunities.get_supabase", return_value=mock_supabase):
        with pytest.raises(NotFoundError):
            get_opportunity(USER_ID, "opp-missing")
