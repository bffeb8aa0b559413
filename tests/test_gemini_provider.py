from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from caseforge.core.errors import GenerationError
from caseforge.providers.gemini import GeminiProvider, GeminiProviderConfig
from caseforge.providers.noop import NoOpProvider


class _FakeModels:
    def __init__(self, *, response=None, error: Exception | None = None) -> None:
        self._response = response
        self._error = error
        self.calls: list[dict[str, str]] = []

    def generate_content(self, *, model: str, contents: str):
        self.calls.append({"model": model, "contents": contents})
        if self._error is not None:
            raise self._error
        return self._response


def _provider(models: _FakeModels) -> GeminiProvider:
    return GeminiProvider(
        config=GeminiProviderConfig(api_key="key", model="gemini-test"),
        client=SimpleNamespace(models=models),
    )


def test_gemini_provider_returns_response_text() -> None:
    models = _FakeModels(response=SimpleNamespace(text="One.\nTwo.", candidates=[]))

    assert _provider(models).generate(prompt="hello") == "One.\nTwo."
    assert models.calls == [{"model": "gemini-test", "contents": "hello"}]


def test_gemini_provider_raises_generation_error_on_empty_text() -> None:
    candidate = SimpleNamespace(finish_reason="SAFETY")
    models = _FakeModels(response=SimpleNamespace(text=None, candidates=[candidate]))

    with pytest.raises(GenerationError, match="SAFETY"):
        _provider(models).generate(prompt="hello")


def test_gemini_provider_wraps_transport_errors() -> None:
    models = _FakeModels(error=httpx.ConnectError("connection refused"))

    with pytest.raises(GenerationError):
        _provider(models).generate(prompt="hello")


def test_noop_provider_always_fails_with_its_message() -> None:
    with pytest.raises(GenerationError, match="not configured"):
        NoOpProvider(message="Gemini is not configured.").generate(prompt="hello")


def test_gemini_provider_wraps_api_errors() -> None:
    quota = {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
    models = _FakeModels(error=genai_errors.ClientError(429, quota))

    with pytest.raises(GenerationError, match="Gemini request failed") as exc_info:
        _provider(models).generate(prompt="hello")
    assert isinstance(exc_info.value.__cause__, genai_errors.APIError)
