"""
Tests for the HTTP interface — routes, DTOs and error envelopes.

The LLM-backed use case is swapped for one wired to a fake gateway via
``dependency_overrides``; the lifespan (which needs an API key) never runs.
"""

from __future__ import annotations

import io
import json
import zipfile

import pytest
from conftest import MANIFEST, POPUP_HTML, POPUP_JS, FakeLlmGateway
from fastapi.testclient import TestClient

from extension_builder.interface.app import create_app
from extension_builder.interface.dependencies import get_use_case
from extension_builder.services.generate_extension import GenerateExtensionUseCase

FILES = [
    {"name": "manifest.json", "content": MANIFEST},
    {"name": "popup.html", "content": POPUP_HTML},
    {"name": "popup.js", "content": POPUP_JS},
]


@pytest.fixture
def llm(basic_response: str) -> FakeLlmGateway:
    return FakeLlmGateway(basic_response)


@pytest.fixture
def client(llm, prompt_builder) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_use_case] = lambda: GenerateExtensionUseCase(llm, prompt_builder)
    return TestClient(app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestGenerate:
    def test_generate(self, client):
        resp = client.post("/generate", json={"prompt": "a click counter"})
        assert resp.status_code == 200
        body = resp.json()
        assert [f["name"] for f in body["files"]] == ["manifest.json", "popup.html", "popup.js"]
        assert [f["language"] for f in body["files"]] == ["json", "html", "javascript"]
        assert body["files"][0]["path"] == "manifest.json"
        assert body["validation"]["is_valid"] is True
        assert body["is_update"] is False
        assert body["new_files"] == ["manifest.json", "popup.html", "popup.js"]

    def test_update_with_existing_files(self, client, llm):
        llm.response = "EXPLANATION: new js\n=== popup.js ===\nconsole.log('updated!');\n"
        resp = client.post(
            "/generate",
            json={
                "prompt": "change the script",
                "existing_files": FILES,
                "history": [{"prompt": "a click counter", "explanation": "done"}],
            },
        )
        body = resp.json()
        assert body["is_update"] is True
        assert body["explanation"] == "new js"
        contents = {f["name"]: f["content"] for f in body["files"]}
        assert contents["popup.js"] == "console.log('updated!');"
        assert contents["popup.html"] == POPUP_HTML
        assert "User: a click counter" in llm.calls[0][1]

    def test_mode_override(self, client):
        resp = client.post(
            "/generate",
            json={"prompt": "a timer", "existing_files": FILES, "mode": "update"},
        )
        assert resp.json()["is_update"] is True

    def test_no_files_is_422(self, client, llm):
        llm.response = "Sorry, no code."
        resp = client.post("/generate", json={"prompt": "anything"})
        assert resp.status_code == 422
        assert resp.json() == {
            "status": "error",
            "message": "No files were generated. Please try a more specific prompt.",
        }

    def test_llm_error_is_502(self, client, llm):
        from extension_builder.domain.exceptions import LlmError

        llm.error = LlmError("Failed to generate code: upstream down")
        resp = client.post("/generate", json={"prompt": "a todo list"})
        assert resp.status_code == 502
        assert "upstream down" in resp.json()["message"]

    def test_empty_prompt_rejected(self, client):
        resp = client.post("/generate", json={"prompt": "   "})
        assert resp.status_code == 422
        assert resp.json()["status"] == "error"
        assert "prompt must not be empty" in resp.json()["message"]

    def test_unsafe_file_name_rejected(self, client):
        resp = client.post(
            "/generate",
            json={"prompt": "fix", "existing_files": [{"name": "../x.js", "content": "x"}]},
        )
        assert resp.status_code == 422
        assert "Invalid file name" in resp.json()["message"]


class TestGenerateStream:
    def test_ndjson_events(self, client):
        with client.stream("POST", "/generate/stream", json={"prompt": "a click counter"}) as resp:
            assert resp.status_code == 200
            assert resp.headers["content-type"].startswith("application/x-ndjson")
            events = [json.loads(line) for line in resp.iter_lines() if line]
        types = [e["type"] for e in events]
        assert types[-1] == "result"
        assert [e["file"]["name"] for e in events if e["type"] == "file"] == [
            "manifest.json", "popup.html", "popup.js",
        ]
        assert events[-1]["result"]["validation"]["is_valid"] is True

    def test_error_reported_in_band(self, client, llm):
        llm.response = "nothing useful"
        with client.stream("POST", "/generate/stream", json={"prompt": "x"}) as resp:
            events = [json.loads(line) for line in resp.iter_lines() if line]
        assert events[-1] == {
            "type": "error",
            "message": "No files were generated. Please try a more specific prompt.",
        }


class TestFileEndpoints:
    def test_validate(self, client):
        shuffled = list(reversed(FILES))
        body = client.post("/validate", json={"files": shuffled}).json()
        assert body["validation"]["is_valid"] is True
        assert body["metadata"]["name"] == "Click Counter"
        assert [f["name"] for f in body["files"]] == ["manifest.json", "popup.html", "popup.js"]

    def test_validate_missing_manifest(self, client):
        body = client.post("/validate", json={"files": FILES[1:]}).json()
        assert body["validation"]["is_valid"] is False
        assert body["validation"]["missing_required"] == ["manifest.json"]

    def test_preview(self, client):
        resp = client.post("/preview", json={"files": FILES, "platform": "firefox"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "firefox_ext_storage" in resp.text
        assert f"<script>{POPUP_JS}</script>" in resp.text

    def test_preview_without_html(self, client):
        resp = client.post("/preview", json={"files": [FILES[0]]})
        assert resp.status_code == 422
        assert resp.json()["message"] == "No HTML file found to preview."

    def test_download(self, client):
        resp = client.post("/download", json={"files": FILES})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        assert 'filename="click-counter.zip"' in resp.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(resp.content)) as archive:
            assert set(archive.namelist()) == {
                "manifest.json", "popup.html", "popup.js", "README.md",
            }

    def test_download_empty(self, client):
        resp = client.post("/download", json={"files": []})
        assert resp.status_code == 422
        assert resp.json()["status"] == "error"

    def test_validate_deeply_nested_manifest(self, client):
        files = [{"name": "manifest.json", "content": "[" * 100_000 + "]" * 100_000}] + FILES[1:]
        resp = client.post("/validate", json={"files": files})
        assert resp.status_code == 200
        assert "Manifest JSON is invalid" in resp.json()["validation"]["warnings"]


class TestDuplicateFileNames:
    DUPLICATED = FILES + [{"name": "popup.js", "content": "console.log('second copy');"}]

    def test_generate_rejects_duplicates(self, client, llm):
        resp = client.post(
            "/generate",
            json={"prompt": "fix the popup", "existing_files": self.DUPLICATED},
        )
        assert resp.status_code == 422
        assert "Duplicate file name: 'popup.js'" in resp.json()["message"]
        assert llm.calls == []

    def test_download_rejects_duplicates(self, client):
        resp = client.post("/download", json={"files": self.DUPLICATED})
        assert resp.status_code == 422
        assert resp.json()["status"] == "error"
        assert "Duplicate file name" in resp.json()["message"]

    def test_names_compared_after_trimming(self, client):
        files = FILES + [{"name": " popup.js ", "content": "console.log('x');"}]
        resp = client.post("/validate", json={"files": files})
        assert resp.status_code == 422
