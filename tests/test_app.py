from __future__ import annotations

from canucklingo import app as app_module
from canucklingo.fetchers.api_status import APIStatusTracker
from canucklingo.fetchers.gemini_gateway import ExplainError

from conftest import make_entry


def test_search_page_renders(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"CanuckLingo" in resp.data


def test_search_then_toggle(client, store):
    resp = client.post("/api/search", json={"term": "toque", "context": "winter"})
    data = resp.get_json()

    assert data["success"] is True
    assert data["flowState"] == "ready"
    assert data["entry"]["term"] == "toque"
    assert data["isSaved"] is False

    data = client.post("/api/notebook/toggle", json={"term": "toque"}).get_json()
    assert data == {"success": True, "term": "toque", "isSaved": True, "count": 1}

    page = client.get("/")
    assert "toque" in page.get_data(as_text=True)

    data = client.post("/api/notebook/toggle", json={"term": "toque"}).get_json()
    assert data["isSaved"] is False
    assert store.count() == 0


def test_failed_search_reports_generic_error(client, fake_gateway):
    fake_gateway.explain_error = ExplainError("No response from AI")

    data = client.post("/api/search", json={"term": "toque"}).get_json()

    assert data["success"] is False
    assert data["error"] == "Something went wrong. Please try again."
    assert data["flowState"] == "failed"


def test_search_requires_term(client):
    data = client.post("/api/search", json={"term": "  "}).get_json()
    assert data["success"] is False


def test_toggle_unknown_term(client):
    data = client.post("/api/notebook/toggle", json={"term": "poutine"}).get_json()
    assert data["success"] is False


def test_notebook_listing_and_page(client, store):
    store.toggle(make_entry("toque"))

    data = client.get("/api/notebook").get_json()
    assert data["count"] == 1
    assert data["entries"][0]["term"] == "toque"

    page = client.get("/notebook")
    assert page.status_code == 200
    assert "toque" in page.get_data(as_text=True)


def test_flashcard_routes(client, store):
    store.toggle(make_entry("toque"))
    store.toggle(make_entry("eh"))

    data = client.post("/api/flashcards/next").get_json()
    assert data["entry"]["term"] == "eh"
    assert data["current"] == 1
    assert data["total"] == 2

    data = client.post("/api/flashcards/flip").get_json()
    assert data["flipped"] is True

    data = client.post("/api/flashcards/prev").get_json()
    assert data["entry"]["term"] == "toque"
    assert data["flipped"] is False

    assert client.get("/flashcards").status_code == 200


def test_flashcards_empty_notebook(client):
    data = client.post("/api/flashcards/next").get_json()
    assert data["success"] is False
    assert "unlock flashcards" in client.get("/flashcards").get_data(as_text=True)


def test_story_routes(client, store):
    data = client.post("/api/story").get_json()
    assert data["success"] is False

    store.toggle(make_entry("toque"))
    store.toggle(make_entry("double-double"))

    data = client.post("/api/story").get_json()
    assert data["success"] is True

    page = client.get("/story").get_data(as_text=True)
    assert "<strong>toque</strong>" in page


def test_story_page_escapes_markup(client, controller):
    controller.session.story = "<script>x</script> **eh**"

    page = client.get("/story").get_data(as_text=True)

    assert "<script>x</script>" not in page
    assert "<strong>eh</strong>" in page


def test_chat_route(client, fake_gateway):
    data = client.post("/api/chat", json={"message": "Is it formal?"}).get_json()
    assert data["success"] is False

    client.post("/api/search", json={"term": "toque"})
    data = client.post("/api/chat", json={"message": "Is it formal?"}).get_json()

    assert data["success"] is True
    assert data["reply"] == fake_gateway.reply
    assert [m["role"] for m in data["history"]] == ["user", "assistant"]


def test_speak_route_never_fails(client, fake_gateway):
    data = client.post("/api/speak", json={"text": ""}).get_json()
    assert data == {"success": True, "played": False}

    data = client.post("/api/speak", json={"text": "toque"}).get_json()
    assert data["played"] is True


def test_view_and_session_routes(client):
    data = client.post("/api/view", json={"view": "notebook"}).get_json()
    assert data == {"success": True, "view": "NOTEBOOK"}

    data = client.post("/api/view", json={"view": "settings"}).get_json()
    assert data["success"] is False

    session = client.get("/api/session").get_json()
    assert session["view"] == "NOTEBOOK"
    assert session["flowState"] == "idle"


def test_status_route_without_key(client, monkeypatch):
    tracker = APIStatusTracker(api_key="")
    monkeypatch.setattr(app_module, "get_api_tracker", lambda: tracker)

    data = client.get("/api/status").get_json()

    assert data["gemini"]["status"] == "not_configured"
    assert "text" in data["models"]


def test_malformed_bodies_get_error_envelope(client, fake_gateway):
    cases = [
        ("/api/search", ["toque"]),
        ("/api/search", {"term": 5}),
        ("/api/search", {"term": "toque", "context": ["winter"]}),
        ("/api/notebook/toggle", {"term": 5}),
        ("/api/chat", {"message": {"text": "hi"}}),
        ("/api/speak", {"text": 5}),
        ("/api/speak", "toque"),
        ("/api/view", {"view": 3}),
    ]

    for url, body in cases:
        resp = client.post(url, json=body)
        data = resp.get_json()
        assert resp.status_code == 400, url
        assert data["success"] is False, url
        assert data["error"], url

    assert fake_gateway.calls == []


def test_overlapping_chat_is_refused(client, controller):
    client.post("/api/search", json={"term": "toque"})
    controller.session.chat_pending = True

    data = client.post("/api/chat", json={"message": "Is it formal?"}).get_json()

    assert data == {"success": False, "error": "Still waiting for the previous reply"}


def test_read_routes_use_success_envelope(client, monkeypatch):
    monkeypatch.setattr(app_module, "get_api_tracker", lambda: APIStatusTracker(api_key=""))

    for url in ("/api/notebook", "/api/session", "/api/status"):
        assert client.get(url).get_json()["success"] is True, url


def test_app_uses_no_cookie_session():
    assert app_module.app.secret_key is None
