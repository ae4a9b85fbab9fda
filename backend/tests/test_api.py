"""HTTP tests for the analogy, history and profile routes."""

from unittest.mock import AsyncMock

from analogyai.errors import GenerationFormatError, GenerationProviderError
from analogyai.schemas import UpdateProfileIn

GENERATE_BODY = {
    "topic": "quantum entanglement",
    "personalization": {"interests": ["basketball"], "knowledgeLevel": "beginner"},
}


def _generate(client, headers, body=GENERATE_BODY):
    response = client.post("/api/analogy", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_requests_without_identity_are_rejected(client):
    response = client.post("/api/analogy", json=GENERATE_BODY)

    assert response.status_code == 401
    assert response.json()["message"] == "Not authenticated"


def test_generate_end_to_end(client, storage, as_user):
    data = _generate(client, as_user("u1", "u1@example.com"))

    assert data["id"] is not None
    assert data["topic"] == "quantum entanglement"
    assert "###" in data["analogy"] and "**" in data["analogy"]
    assert "###" in data["example"] and "**" in data["example"]
    assert "createdAt" in data
    assert storage.get_user("u1").email == "u1@example.com"


def test_generate_without_saving_history(client, storage, as_user, make_user):
    make_user("u1", save_history=False)

    data = _generate(client, as_user("u1"))

    assert data["id"] is None
    assert storage.get_user_analogies("u1") == []


def test_generate_validation_error_names_field(client, as_user):
    body = {"topic": "", "personalization": {"knowledgeLevel": "expert"}}

    response = client.post("/api/analogy", json=body, headers=as_user("u1"))

    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "Invalid request data"
    fields = {d["field"] for d in data["details"]}
    assert "topic" in fields
    assert "personalization.knowledgeLevel" in fields


def test_generate_accepts_whitespace_topic(client, as_user):
    data = _generate(client, as_user("u1"), dict(GENERATE_BODY, topic="   "))

    assert data["topic"] == "   "


def test_generate_format_error_is_service_error(client, storage, fake_llm, as_user):
    fake_llm.agenerate_analogy = AsyncMock(side_effect=GenerationFormatError(details="missing 'example'"))

    response = client.post("/api/analogy", json=GENERATE_BODY, headers=as_user("u1"))

    assert response.status_code == 502
    assert response.json()["details"] == "missing 'example'"
    assert storage.get_user_analogies("u1") == []


def test_generate_provider_error_reports_cause(client, fake_llm, as_user):
    fake_llm.agenerate_analogy = AsyncMock(side_effect=GenerationProviderError(details="Incorrect API key provided"))

    response = client.post("/api/analogy", json=GENERATE_BODY, headers=as_user("u1"))

    assert response.status_code == 503
    data = response.json()
    assert data["message"].startswith("AI service error")
    assert data["details"] == "Incorrect API key provided"


def test_regenerate(client, as_user):
    original = _generate(client, as_user("u1"))

    response = client.post(
        "/api/analogy/regenerate",
        json={"previousAnalogyId": original["id"], "feedback": "too_simple"},
        headers=as_user("u1"),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"] and data["id"] != original["id"]
    assert data["topic"] == original["topic"]


def test_foreign_analogy_is_reported_as_not_found(client, as_user):
    original = _generate(client, as_user("owner"))
    intruder = as_user("intruder")

    responses = [
        client.put(f"/api/analogy/{original['id']}/favorite", json={"isFavorite": True}, headers=intruder),
        client.post(f"/api/analogy/{original['id']}/feedback", json={"helpful": True}, headers=intruder),
        client.post(
            "/api/analogy/regenerate",
            json={"previousAnalogyId": original["id"], "feedback": "too_simple"},
            headers=intruder,
        ),
        client.get(f"/api/analogy/{original['id']}", headers=intruder),
        client.delete(f"/api/analogy/{original['id']}", headers=intruder),
    ]

    for response in responses:
        assert response.status_code == 404
        assert response.json() == {"message": "Analogy not found"}


def test_get_analogy(client, as_user):
    original = _generate(client, as_user("u1"))

    response = client.get(f"/api/analogy/{original['id']}", headers=as_user("u1"))

    assert response.status_code == 200
    data = response.json()
    assert data["generatedAnalogy"] == original["analogy"]
    assert data["personalizationInterests"] == ["basketball"]
    assert data["knowledgeLevel"] == "beginner"


def test_toggle_favorite_twice(client, as_user):
    original = _generate(client, as_user("u1"))
    url = f"/api/analogy/{original['id']}/favorite"

    first = client.put(url, json={"isFavorite": True}, headers=as_user("u1"))
    second = client.put(url, json={"isFavorite": True}, headers=as_user("u1"))

    assert first.json() == {"success": True, "isFavorite": True}
    assert second.json() == {"success": True, "isFavorite": True}


def test_feedback(client, as_user):
    original = _generate(client, as_user("u1"))

    response = client.post(f"/api/analogy/{original['id']}/feedback", json={"helpful": False}, headers=as_user("u1"))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["message"]


def test_history_pagination(client, as_user):
    ids = [_generate(client, as_user("u1"), dict(GENERATE_BODY, topic=f"topic {i}"))["id"] for i in range(5)]

    first = client.get("/api/history", params={"limit": 2}, headers=as_user("u1")).json()
    last = client.get("/api/history", params={"limit": 2, "offset": 4}, headers=as_user("u1")).json()

    assert len(first["analogies"]) == 2
    assert first["hasMore"] is True
    assert set(first["analogies"][0]) == {"id", "topic", "analogy", "example", "createdAt", "isFavorite"}
    assert len(last["analogies"]) == 1
    assert last["hasMore"] is False
    returned = {a["id"] for a in first["analogies"]} | {a["id"] for a in last["analogies"]}
    assert returned <= set(ids)


def test_history_rejects_bad_limit(client, as_user):
    response = client.get("/api/history", params={"limit": 0}, headers=as_user("u1"))
    assert response.status_code == 400


def test_delete_analogy(client, storage, as_user):
    original = _generate(client, as_user("u1"))

    response = client.delete(f"/api/analogy/{original['id']}", headers=as_user("u1"))
    again = client.delete(f"/api/analogy/{original['id']}", headers=as_user("u1"))

    assert response.json() == {"message": "Analogy deleted successfully"}
    assert again.status_code == 404
    assert storage.get_analogy(original["id"]) is None


def test_profile_roundtrip(client, as_user):
    response = client.get("/api/profile", headers=as_user("u1", "u1@example.com"))
    assert response.status_code == 200
    assert response.json()["saveHistory"] is True

    response = client.put(
        "/api/profile",
        json={"personalizationInterests": ["jazz"], "analogyStyle": "creative"},
        headers=as_user("u1"),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["personalizationInterests"] == ["jazz"]
    assert data["analogyStyle"] == "creative"
    assert data["defaultKnowledgeLevel"] == "intermediate"
    assert data["email"] == "u1@example.com"


def test_profile_update_rejects_unknown_fields(client, storage, as_user, make_user):
    make_user("u1", email="u1@example.com")

    response = client.put("/api/profile", json={"email": "new@example.com"}, headers=as_user("u1", "u1@example.com"))

    assert response.status_code == 400
    assert storage.get_user("u1").email == "u1@example.com"


def test_profile_edits_do_not_change_saved_analogies(client, storage, as_user):
    _generate(client, as_user("u1"))
    storage.update_user("u1", UpdateProfileIn(personalization_interests=["opera"]))

    history = client.get("/api/history", headers=as_user("u1")).json()
    saved = storage.get_analogy(history["analogies"][0]["id"])
    assert saved.personalization_interests == ["basketball"]


def test_current_user_and_logout(client, as_user):
    user = client.get("/api/auth/user", headers=as_user("u1", "u1@example.com")).json()
    assert user["id"] == "u1"

    assert client.post("/api/logout").json() == {"message": "Logged out successfully"}


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
