from datetime import datetime

import httpx
import openai

from conftest import AUTHENTICITY_JSON, NARRATIVE, PRICE_JSON, prompt_text, run, sample_analysis

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


def png_upload(data, name="front.png"):
    return ("images", (name, data, "image/png"))


def uploaded_files(config):
    return sorted(p.name for p in config.upload_dir.iterdir())


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None


def test_analyze_success(client, fake_client, session_store, config, png_bytes):
    fake_client.responses.push(NARRATIVE, AUTHENTICITY_JSON, PRICE_JSON)

    response = client.post(
        "/api/analyze",
        files=[png_upload(png_bytes), png_upload(png_bytes, "tag.png")],
        data={"location": "Mumbai"},
    )

    assert response.status_code == 200
    body = response.json()
    analysis = body["analysis"]
    assert analysis["authenticity"]["verdict"] == "LIKELY AUTHENTIC"
    assert analysis["brand"]["name"] == "Levi's"
    assert analysis["priceEstimate"]["currentMarketPrice"]["usd"]["low"] == 12
    assert analysis["rarity"] == "rare"
    assert len(analysis["thumbnails"]) == 2
    assert all(thumb.startswith("/uploads/thumb_") for thumb in analysis["thumbnails"])
    assert "Mumbai" in prompt_text(fake_client.responses.calls[2])

    session = run(session_store.get(body["sessionId"]))
    assert len(session.image_refs) == 2
    assert session.conversation == []
    assert len(uploaded_files(config)) == 4

    thumbnail = client.get(analysis["thumbnails"][0])
    assert thumbnail.status_code == 200
    assert thumbnail.headers["content-type"] == "image/jpeg"


def test_analyze_without_images(client, fake_client):
    response = client.post("/api/analyze", data={"location": "India"})
    assert response.status_code == 400
    assert response.json() == {"error": "No images uploaded"}
    assert fake_client.responses.calls == []


def test_analyze_rejects_wrong_type(client):
    response = client.post("/api/analyze", files=[("images", ("notes.txt", b"hello", "text/plain"))])
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid file type. Only JPG, JPEG, and PNG are allowed."


def test_analyze_rejects_too_many_images(client, png_bytes):
    files = [png_upload(png_bytes, f"{n}.png") for n in range(4)]
    response = client.post("/api/analyze", files=files)
    assert response.status_code == 400


def test_analyze_without_model_configured(unconfigured_client, png_bytes):
    response = unconfigured_client.post("/api/analyze", files=[png_upload(png_bytes)])
    assert response.status_code == 503
    assert "OPENAI_API_KEY" in response.json()["error"]


def test_analyze_upstream_failure_creates_nothing(client, fake_client, session_store, config, png_bytes):
    fake_client.responses.push(NARRATIVE, openai.APITimeoutError(request=REQUEST))

    response = client.post("/api/analyze", files=[png_upload(png_bytes)])

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Analysis failed"
    assert "timed out" in body["details"]
    assert len(session_store) == 0
    assert uploaded_files(config) == []


def test_analyze_unparseable_json_returns_500(client, fake_client, session_store, png_bytes):
    fake_client.responses.push(NARRATIVE, "I'd rather not give a score.")

    response = client.post("/api/analyze", files=[png_upload(png_bytes)])

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Analysis failed"
    assert "authenticity" in body["details"]
    assert "rather not" not in body["details"]
    assert len(session_store) == 0


def test_chat_round_trip(client, fake_client, session_store):
    session_id = run(session_store.create(["/uploads/a.png"], sample_analysis()))
    fake_client.responses.push("The red tab looks genuine.", "List it around ₹2000.")

    first = client.post("/api/chat", json={"sessionId": session_id, "message": "Is the tab real?"})
    second = client.post("/api/chat", json={"sessionId": session_id, "message": "What price?"})

    assert first.status_code == 200
    assert first.json() == {"response": "The red tab looks genuine."}
    assert second.json() == {"response": "List it around ₹2000."}

    second_prompt = prompt_text(fake_client.responses.calls[1])
    assert "Brand: Levi's" in second_prompt
    assert "user: Is the tab real?" in second_prompt
    assert "assistant: The red tab looks genuine." in second_prompt
    assert second_prompt.endswith("User's new question: What price?")

    session = run(session_store.get(session_id))
    assert [turn.role for turn in session.conversation] == ["user", "assistant", "user", "assistant"]


def test_chat_requires_session_and_message(client):
    for payload in ({"message": "hi"}, {"sessionId": "abc"}, {"sessionId": "abc", "message": "   "}):
        response = client.post("/api/chat", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Session ID and message required"}


def test_chat_unknown_session(client, fake_client):
    response = client.post("/api/chat", json={"sessionId": "missing", "message": "hello"})
    assert response.status_code == 404
    assert response.json()["error"] == "Session not found or expired. Please re-submit your images."
    assert fake_client.responses.calls == []


def test_chat_expired_session(client, session_store, clock):
    session_id = run(session_store.create([], sample_analysis()))
    clock.advance(session_store.ttl_seconds + 1)

    response = client.post("/api/chat", json={"sessionId": session_id, "message": "still there?"})
    assert response.status_code == 404


def test_chat_with_unknown_or_expired_ids_leaves_no_locks(client, session_store, clock):
    for n in range(20):
        response = client.post("/api/chat", json={"sessionId": f"unknown-{n}", "message": "hello"})
        assert response.status_code == 404

    session_id = run(session_store.create([], sample_analysis()))
    clock.advance(session_store.ttl_seconds + 1)
    assert client.post("/api/chat", json={"sessionId": session_id, "message": "hi"}).status_code == 404

    assert session_store._locks == {}


def test_chat_upstream_failure_keeps_history(client, fake_client, session_store):
    session_id = run(session_store.create([], sample_analysis()))
    error = openai.InternalServerError("overloaded", response=httpx.Response(500, request=REQUEST), body=None)
    fake_client.responses.push(error)

    response = client.post("/api/chat", json={"sessionId": session_id, "message": "hello"})

    assert response.status_code == 500
    assert response.json()["error"] == "Chat failed"
    assert run(session_store.get(session_id)).conversation == []


def test_chat_without_model_configured(unconfigured_client):
    response = unconfigured_client.post("/api/chat", json={"sessionId": "abc", "message": "hello"})
    assert response.status_code == 503


def test_malformed_chat_body_is_a_bad_request(client):
    response = client.post("/api/chat", content=b"not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
