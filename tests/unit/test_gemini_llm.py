"""Tests for Gemini model setup and the retrying LLM call."""

from __future__ import annotations

import time

import pytest
from google.api_core.exceptions import InvalidArgument, ServiceUnavailable

from bipexplorer.llm import gemini, retry
from bipexplorer.observability.telemetry import get_counter


@pytest.fixture(autouse=True)
def fresh_model(monkeypatch):
    for var in ("GOOGLE_API_KEY", "GOOGLE_CLOUD_PROJECT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(gemini, "GOOGLE_API_KEY", None)
    monkeypatch.setattr(gemini, "GOOGLE_CLOUD_PROJECT", None)
    gemini.clear_model_cache()
    yield
    gemini.clear_model_cache()


class TestGetGeminiModel:
    def test_no_credentials(self):
        with pytest.raises(gemini.GeminiInitializationError):
            gemini.get_gemini_model()
        assert gemini.active_backend() is None

    def test_api_key_uses_generativeai(self, monkeypatch):
        sentinel = object()
        monkeypatch.setenv("GOOGLE_API_KEY", "key")
        monkeypatch.setattr(gemini, "_init_genai", lambda api_key: sentinel)

        assert gemini.get_gemini_model() is sentinel
        assert gemini.active_backend() == "genai"

    def test_project_prefers_vertex(self, monkeypatch):
        sentinel = object()
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "proj")
        monkeypatch.setattr(gemini, "_init_vertexai", lambda project, location: sentinel)

        assert gemini.get_gemini_model() is sentinel
        assert gemini.active_backend() == "vertexai"

    def test_vertex_failure_falls_back_when_key_present(self, monkeypatch):
        sentinel = object()

        def broken(project, location):
            raise RuntimeError("no service account")

        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "proj")
        monkeypatch.setenv("GOOGLE_API_KEY", "key")
        monkeypatch.setattr(gemini, "_init_vertexai", broken)
        monkeypatch.setattr(gemini, "_init_genai", lambda api_key: sentinel)

        assert gemini.get_gemini_model() is sentinel
        assert gemini.active_backend() == "genai"

    def test_vertex_failure_without_key_raises(self, monkeypatch):
        def broken(project, location):
            raise RuntimeError("no service account")

        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "proj")
        monkeypatch.setattr(gemini, "_init_vertexai", broken)

        with pytest.raises(gemini.GeminiInitializationError):
            gemini.get_gemini_model()


class FlakyModel:
    def __init__(self, errors):
        self.errors = list(errors)
        self.calls = 0

    def generate_content(self, prompt, generation_config=None):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return type("Response", (), {"text": f"answer to {prompt}"})()


class TestCallLlm:
    def test_retries_transient_errors(self, monkeypatch):
        model = FlakyModel([ServiceUnavailable("busy")])
        monkeypatch.setattr(retry, "get_gemini_model", lambda: model)
        monkeypatch.setattr(time, "sleep", lambda seconds: None)

        assert retry.call_llm("q", counter_prefix="explain") == "answer to q"
        assert model.calls == 2
        assert get_counter("explain.service_unavailable") == 1

    def test_non_transient_error_is_not_retried(self, monkeypatch):
        model = FlakyModel([InvalidArgument("bad prompt")])
        monkeypatch.setattr(retry, "get_gemini_model", lambda: model)

        with pytest.raises(InvalidArgument):
            retry.call_llm("q")
        assert model.calls == 1
