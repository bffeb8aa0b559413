"""Provider interface for text generation models."""

from __future__ import annotations


class GenerationProvider:
    """Abstract generation provider.

    Implementations send a single prompt to a hosted model and return its raw
    text reply.
    """

    def generate(self, *, prompt: str) -> str:
        """Generates text for ``prompt``.

        Args:
            prompt: Complete prompt text.

        Returns:
            The model's raw text response.

        Raises:
            GenerationError: On any upstream failure or an empty response.
        """

        raise NotImplementedError
