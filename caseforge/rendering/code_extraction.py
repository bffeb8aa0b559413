"""Post-processing of raw model responses."""

from __future__ import annotations

import re

_LANGUAGE_HINTS = frozenset(
    {
        "javascript",
        "js",
        "jsx",
        "typescript",
        "ts",
        "tsx",
        "python",
        "py",
        "java",
        "csharp",
        "cs",
        "go",
    }
)

# One match per opening/closing fence pair; group 1 is the info string.
_FENCE_PAIR_RE = re.compile(r"```([\w#+-]*)[ \t]*\n(.*?)```", re.DOTALL)


def extract_code(model_text: str) -> str:
    """Returns the body of the first usable fenced code block, or the whole text.

    Blocks tagged with a language outside the known hints are skipped whole.
    Only the first usable block is returned; anything after it is discarded.
    A response without such a block, or whose block is empty, is returned
    unchanged.
    """

    for match in _FENCE_PAIR_RE.finditer(model_text):
        hint = match.group(1).lower()
        if hint and hint not in _LANGUAGE_HINTS:
            continue
        body = match.group(2)
        return body if body else model_text
    return model_text


def split_summaries(model_text: str) -> list[str]:
    """Splits a summary response into one summary per non-blank line."""

    lines = [line.strip() for line in model_text.splitlines()]
    return [line for line in lines if line]
