"""
API and page integration tests

These tests drive the routes through FastAPI's TestClient with a stubbed edit client.
"""
import asyncio
import base64
import json
import threading

import pytest
from fastapi.testclient import TestClient
from itsdangerous import TimestampSigner

from conftest import KNOWN_PNG_B64, StubEditClient
from services.ai import EditResult, ServiceError


def _upload(png_bytes, name="red-square.png", content_type="image/png"):
    return {"image": (name, png_bytes, content_type)}


@pytest.mark.integration
class TestEditEndpoint:
    """Tests for POST /api/edits"""

    def test_red_square_make_it_blue(self, client, stub_client, red_square_png):
        response = client.post(
            "/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"}
        )

        assert response.status_code == 200
        state = response.json()
        assert state["edited_image"] == f"data:image/png;base64,{KNOWN_PNG_B64}"
        assert state["error_message"] is None
        assert state["is_loading"] is False
        image, prompt = stub_client.calls[0]
        assert prompt == "make it blue"
        assert base64.b64decode(image.data) == red_square_png

    def test_missing_image_makes_no_call(self, client, stub_client):
        response = client.post("/api/edits", data={"prompt": "make it blue"})

        assert response.status_code == 400
        assert "please upload an image" in response.json()["error"].lower()
        assert stub_client.calls == []

    def test_empty_prompt_makes_no_call(self, client, stub_client, red_square_png):
        response = client.post("/api/edits", files=_upload(red_square_png), data={"prompt": ""})

        assert response.status_code == 400
        assert "please enter an edit request" in response.json()["error"].lower()
        assert stub_client.calls == []

    def test_transport_error_is_reported(self, client, stub_client, red_square_png):
        stub_client.error = ServiceError("Gemini API error: timeout")

        response = client.post(
            "/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"}
        )

        assert response.status_code == 502
        body = response.json()
        assert "timeout" in body["error"]
        assert body["state"]["is_loading"] is False

    def test_declined_edit_reports_service_text(self, client, stub_client, red_square_png):
        stub_client.result = EditResult(text="I can't make that change.")

        response = client.post(
            "/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"}
        )

        assert response.status_code == 502
        assert response.json()["error"] == "I can't make that change."

    def test_non_image_upload_is_rejected(self, client, stub_client):
        response = client.post(
            "/api/edits",
            files=_upload(b"plain text", name="notes.txt", content_type="text/plain"),
            data={"prompt": "make it blue"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Please select a valid image file."
        assert stub_client.calls == []

    def test_prompt_is_remembered_between_requests(self, client, stub_client, red_square_png):
        client.post("/api/image", files=_upload(red_square_png))
        client.post("/api/edits", data={"prompt": "make it blue"})

        response = client.post("/api/edits")

        assert response.status_code == 200
        assert [prompt for _, prompt in stub_client.calls] == ["make it blue", "make it blue"]


    def test_json_prompt_is_accepted(self, client, stub_client, red_square_png):
        client.post("/api/image", files=_upload(red_square_png))

        response = client.post("/api/edits", json={"prompt": "make it blue"})

        assert response.status_code == 200
        assert response.json()["edited_image"] == f"data:image/png;base64,{KNOWN_PNG_B64}"
        assert [prompt for _, prompt in stub_client.calls] == ["make it blue"]

    def test_malformed_json_is_rejected(self, client, stub_client, red_square_png):
        client.post("/api/image", files=_upload(red_square_png))

        response = client.post(
            "/api/edits", content=b"[1, 2", headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Request body must be a JSON object."
        assert stub_client.calls == []

    def test_rejected_upload_keeps_previous_result(self, client, red_square_png):
        client.post("/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"})

        response = client.post(
            "/api/image", files=_upload(b"plain text", name="notes.txt", content_type="text/plain")
        )

        assert response.status_code == 400
        state = response.json()["state"]
        assert state["edited_image"] == f"data:image/png;base64,{KNOWN_PNG_B64}"
        assert state["error_message"] == "Please select a valid image file."
        assert client.get("/api/result").status_code == 200

    def test_blank_prompt_keeps_previous_result(self, client, stub_client, red_square_png):
        client.post("/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"})

        response = client.post("/api/edits", data={"prompt": "   "})

        assert response.status_code == 400
        state = response.json()["state"]
        assert state["edited_image"] == f"data:image/png;base64,{KNOWN_PNG_B64}"
        assert state["error_message"] == "Please enter an edit request."
        assert len(stub_client.calls) == 1


@pytest.mark.integration
class TestStateEndpoints:
    """Tests for image selection, state and result download"""

    def test_initial_state_is_idle(self, client):
        state = client.get("/api/state").json()

        assert state["phase"] == "idle"
        assert state["has_image"] is False
        assert state["edited_image"] is None

    def test_select_image_sets_preview(self, client, red_square_png):
        response = client.post("/api/image", files=_upload(red_square_png))

        assert response.status_code == 200
        state = response.json()
        assert state["has_image"] is True
        assert state["preview"].startswith("data:image/png;base64,")

    def test_new_image_clears_previous_result(self, client, red_square_png):
        client.post("/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"})

        state = client.post("/api/image", files=_upload(red_square_png)).json()

        assert state["edited_image"] is None

    def test_result_download(self, client, red_square_png):
        assert client.get("/api/result").status_code == 404

        client.post("/api/edits", files=_upload(red_square_png), data={"prompt": "make it blue"})
        response = client.get("/api/result")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert 'filename="edited-image.png"' in response.headers["content-disposition"]
        assert response.content == base64.b64decode(KNOWN_PNG_B64)

    def test_state_is_per_session(self, app, client, red_square_png):
        from fastapi.testclient import TestClient

        client.post("/api/image", files=_upload(red_square_png))

        other = TestClient(app)
        assert other.get("/api/state").json()["has_image"] is False

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}


@pytest.mark.integration
class TestWebPage:
    """Tests for the server-rendered page"""

    def test_index_renders(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "AI Image Editor" in response.text

    def test_form_submit_renders_edited_image(self, client, red_square_png):
        response = client.post("/", files=_upload(red_square_png), data={"prompt": "make it blue"})

        assert response.status_code == 200
        assert f"data:image/png;base64,{KNOWN_PNG_B64}" in response.text

    def test_form_submit_without_image_shows_advisory(self, client, stub_client):
        response = client.post("/", data={"prompt": "make it blue"})

        assert "Please upload an image." in response.text
        assert stub_client.calls == []

    def test_reset_clears_session(self, client, red_square_png):
        client.post("/api/image", files=_upload(red_square_png))

        response = client.post("/reset", follow_redirects=False)

        assert response.status_code == 303
        assert client.get("/api/state").json()["has_image"] is False


class BlockingEditClient(StubEditClient):
    """Keeps an edit in flight until the test releases it"""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    async def edit(self, image, prompt):
        self.calls.append((image, prompt))
        self.entered.set()
        await asyncio.to_thread(self.release.wait, 5)
        return self.result


def _session_id(client, secret_key):
    payload = TimestampSigner(secret_key).unsign(client.cookies["session"])
    return json.loads(base64.b64decode(payload))["session_id"]


@pytest.mark.integration
class TestInFlightRequests:
    """A session with an edit in flight turns away further submissions"""

    @pytest.fixture
    def blocking_client(self):
        return BlockingEditClient()

    @pytest.fixture
    def busy(self, blocking_client, red_square_png):
        from app_factory import create_app
        from config import TestingConfig

        app = create_app(TestingConfig, edit_client=blocking_client)
        client = TestClient(app)
        client.post("/api/image", files=_upload(red_square_png))
        editor = app.state.services.sessions.get(_session_id(client, TestingConfig.SECRET_KEY))
        editor.set_prompt("make it blue")

        worker = threading.Thread(target=lambda: asyncio.run(editor.submit()))
        worker.start()
        assert blocking_client.entered.wait(5)
        assert editor.is_loading
        try:
            yield client, editor
        finally:
            blocking_client.release.set()
            worker.join(5)

    def test_edit_returns_409(self, busy, blocking_client):
        client, editor = busy

        response = client.post("/api/edits", data={"prompt": "make it red"})

        assert response.status_code == 409
        assert response.json()["error"] == "An edit is already in progress."
        assert response.json()["state"]["is_loading"] is True
        assert len(blocking_client.calls) == 1
        assert editor.prompt == "make it blue"

    def test_image_returns_409(self, busy, blocking_client):
        client, editor = busy
        original = editor.original_image

        response = client.post("/api/image", files=_upload(b"other", name="other.png"))

        assert response.status_code == 409
        assert editor.original_image == original
        assert len(blocking_client.calls) == 1

    def test_page_submit_is_ignored(self, busy, blocking_client):
        client, editor = busy

        response = client.post("/", data={"prompt": "make it red"})

        assert response.status_code == 200
        assert "Processing..." in response.text
        assert len(blocking_client.calls) == 1
        assert editor.prompt == "make it blue"

    def test_session_settles_after_release(self, busy, blocking_client):
        client, editor = busy

        blocking_client.release.set()
        for _ in range(50):
            if not editor.is_loading:
                break
            threading.Event().wait(0.1)

        state = client.get("/api/state").json()
        assert state["is_loading"] is False
        assert state["edited_image"] == f"data:image/png;base64,{KNOWN_PNG_B64}"
