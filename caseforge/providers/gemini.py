"""Gemini provider backed by the ``google-genai`` SDK."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors

from caseforge.core.errors import GenerationError
from caseforge.providers.base import GenerationProvider


@dataclass(frozen=True)
class GeminiProviderConfig:
    """Configuration for GeminiProvider."""

    api_key: str
    model: str = "gemini-1.5-flash-latest"


class GeminiProvider(GenerationProvider):
    """Provider that calls a hosted Gemini model, one request per prompt."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, config: GeminiProviderConfig, client: Any | None = None) -> None:
        self._config = config
        self._client = client or genai.Client(api_key=self._config.api_key)

    @property
    def model(self) -> str:
        return self._config.model

    def generate(self, *, prompt: str) -> str:
        start_time = time.monotonic()
        try:
            response = self._client.models.generate_content(
                model=self._config.model,
                contents=prompt,
            )
        except (genai_errors.APIError, httpx.HTTPError) as exc:
            raise GenerationError(f"Gemini request failed: {exc}") from exc

        text = self._response_text(response)
        if not text or not text.strip():
            raise GenerationError(
                f"Gemini returned no text: finish_reason={self._finish_reason(response)}"
            )
        self._logger.info(
            "Gemini generation finished: model=%s prompt_chars=%d response_chars=%d elapsed=%.1fs",
            self._config.model,
            len(prompt),
            len(text),
            time.monotonic() - start_time,
        )
        return text

    @staticmethod
    def _response_text(response: Any) -> str | None:
        # ``text`` raises ValueError on some SDK versions when the reply is blocked.
        try:
            text = response.text
        except ValueError:
            return None
        return text if isinstance(text, str) else None

    @staticmethod
    def _finish_reason(response: Any) -> str | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        reason = getattr(candidates[0], "finish_reason", None)
        return str(reason) if reason is not None else None
