"""No-op provider used when Gemini is not configured."""

from __future__ import annotations

from caseforge.core.errors import GenerationError
from caseforge.providers.base import GenerationProvider


class NoOpProvider(GenerationProvider):
    """Provider that never generates and always fails."""

    def __init__(self, *, message: str) -> None:
        self._message = message

    def generate(self, *, prompt: str) -> str:
        raise GenerationError(self._message)
