from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from policy_decoder.config import Settings, get_settings
from policy_decoder.main import REUPLOAD_MESSAGE, app
from policy_decoder.providers import LLMProvider, LLMProviderError, MockLLMProvider, get_llm_provider
from policy_decoder.sessions import SessionStore, get_session_store

TIMEOUT = 60.0


class _FailingProvider(LLMProvider):
    def complete(self, prompt: str, max_tokens: int = 500) -> str:
        raise LLMProviderError("backend unavailable")


@pytest.fixture()
def spool_dir(tmp_path: Path) -> Path:
    return tmp_path / "spool"


@pytest.fixture()
def store(scheduler, clock) -> SessionStore:
    return SessionStore(TIMEOUT, scheduler=scheduler, clock=clock)


@pytest.fixture()
def client(store: SessionStore, spool_dir: Path) -> Iterator[TestClient]:
    settings = Settings(max_upload_bytes=1024, max_units=3, upload_tmp_dir=spool_dir)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_llm_provider] = MockLLMProvider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _upload(client: TestClient, content: bytes, name: str = "policy.txt", media_type: str = "text/plain"):
    return client.post("/analyze", files={"file": (name, content, media_type)})


def test_root_and_health_endpoints(client: TestClient) -> None:
    assert client.get("/").text == "ok"
    assert client.get("/healthz").text == "ok"


def test_analyze_then_chat(client: TestClient, store: SessionStore, spool_dir: Path) -> None:
    response = _upload(client, b"Travel insurance covering lost luggage up to 500 EUR.")

    assert response.status_code == 200
    body = response.json()
    assert body["session_id"].startswith("policy-")
    assert body["filename"] == "policy.txt"
    assert body["category"] == "other"
    assert body["attributes"]["summary"] == "MOCK_SUMMARY"
    assert body["units"] == 1
    assert body["truncated"] is False
    assert len(store) == 1
    assert list(spool_dir.iterdir()) == []

    chat = client.post("/chat", json={"session_id": body["session_id"], "question": "Is luggage covered?"})

    assert chat.status_code == 200
    assert chat.json()["session_id"] == body["session_id"]
    assert chat.json()["answer"].startswith("MOCK_ANSWER:")


def test_oversized_upload_is_rejected(client: TestClient, store: SessionStore, spool_dir: Path) -> None:
    response = _upload(client, b"x" * 2048)

    assert response.status_code == 413
    detail = response.json()["detail"]
    assert detail["kind"] == "too_large"
    assert detail["message"] == "Please check your file and try again"
    assert len(store) == 0
    assert list(spool_dir.iterdir()) == []


def test_too_many_pages_is_rejected(client: TestClient, spool_dir: Path) -> None:
    response = _upload(client, b"1\f2\f3\f4")

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "too_complex"
    assert list(spool_dir.iterdir()) == []


def test_unsupported_upload_is_rejected(client: TestClient) -> None:
    response = _upload(client, b"\x89PNG\r\n\x1a\n", name="photo.png", media_type="image/png")

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "invalid_input"


def test_empty_upload_is_rejected(client: TestClient) -> None:
    response = _upload(client, b"")

    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "invalid_input"


def test_corrupt_pdf_is_rejected(client: TestClient) -> None:
    response = _upload(client, b"%PDF-1.7\nbroken", name="policy.pdf", media_type="application/pdf")

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "malformed"


def test_document_without_text_is_rejected(client: TestClient, store: SessionStore) -> None:
    response = _upload(client, b"\x00\x01\x02\x07\n\t")

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "no_text"
    assert len(store) == 0


def test_pdf_upload_is_accepted(client: TestClient, pdf_factory) -> None:
    response = _upload(
        client, pdf_factory(["Home insurance"]), name="home.pdf", media_type="application/pdf"
    )

    assert response.status_code == 200
    assert response.json()["units"] == 1


def test_chat_after_expiry_asks_for_reupload(client: TestClient, scheduler) -> None:
    session_id = _upload(client, b"Life insurance").json()["session_id"]

    scheduler.advance(TIMEOUT)
    response = client.post("/chat", json={"session_id": session_id, "question": "Still there?"})

    assert response.status_code == 404
    assert response.json()["detail"] == REUPLOAD_MESSAGE


def test_chat_keeps_session_alive(client: TestClient, scheduler) -> None:
    session_id = _upload(client, b"Business insurance").json()["session_id"]

    for _ in range(3):
        scheduler.advance(TIMEOUT - 1)
        response = client.post("/chat", json={"session_id": session_id, "question": "Covered?"})
        assert response.status_code == 200


def test_chat_with_unknown_session(client: TestClient) -> None:
    response = client.post("/chat", json={"session_id": "policy-unknown", "question": "Hello?"})

    assert response.status_code == 404


def test_chat_validates_request_body(client: TestClient) -> None:
    response = client.post("/chat", json={"session_id": "policy-1", "question": ""})

    assert response.status_code == 422


def test_chat_reports_provider_failure(client: TestClient) -> None:
    session_id = _upload(client, b"Car insurance").json()["session_id"]
    app.dependency_overrides[get_llm_provider] = _FailingProvider

    response = client.post("/chat", json={"session_id": session_id, "question": "Covered?"})

    assert response.status_code == 502


def test_analysis_failure_stores_nothing(client: TestClient, store: SessionStore, spool_dir: Path) -> None:
    app.dependency_overrides[get_llm_provider] = _FailingProvider

    response = _upload(client, b"Health insurance")

    assert response.status_code == 502
    assert len(store) == 0
    assert list(spool_dir.iterdir()) == []


def test_delete_session(client: TestClient, store: SessionStore) -> None:
    session_id = _upload(client, b"Home insurance").json()["session_id"]

    first = client.delete(f"/sessions/{session_id}")
    second = client.delete(f"/sessions/{session_id}")

    assert first.status_code == 200
    assert second.status_code == 404
    assert len(store) == 0


def test_session_stats(client: TestClient, scheduler) -> None:
    session_id = _upload(client, b"Home insurance").json()["session_id"]
    scheduler.advance(12)

    response = client.get("/sessions/stats")

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["sessions"][0]["id"] == session_id
    assert body["sessions"][0]["idle_seconds"] == pytest.approx(12.0)
    assert "text" not in body["sessions"][0]
