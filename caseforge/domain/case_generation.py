"""Test case summary and code generation.

Every call re-reads the selected files from GitHub; nothing is cached between
the summary step and the code step. The framework label is an explicit
argument of both steps.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Sequence
from typing import Protocol

from caseforge.core.errors import ValidationError
from caseforge.providers.base import GenerationProvider
from caseforge.rendering.code_extraction import extract_code, split_summaries
from caseforge.rendering.prompts import PromptRenderer, SourceFile

DEFAULT_TEST_FILE_PATH = "tests/generated.test.js"


class FileReader(Protocol):
    """The part of the GitHub client the generator needs."""

    def get_file_content(self, *, owner: str, repo: str, path: str) -> bytes: ...


class CaseGenerationService:
    """Builds prompts from repository files and asks the model for tests."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        github_client: FileReader,
        provider: GenerationProvider,
        prompt_renderer: PromptRenderer | None = None,
    ) -> None:
        self._github_client = github_client
        self._provider = provider
        self._prompt_renderer = prompt_renderer or PromptRenderer()

    def generate_summaries(
        self, *, owner: str, repo: str, paths: Sequence[str], framework: str
    ) -> list[str]:
        """Returns test case summaries for the selected files, in model order."""

        files = self._read_files(owner=owner, repo=repo, paths=paths)
        prompt = self._prompt_renderer.build_summary_prompt(framework=framework, files=files)
        summaries = split_summaries(self._provider.generate(prompt=prompt))
        self._logger.info(
            "Summaries generated: repo=%s/%s files=%d summaries=%d",
            owner,
            repo,
            len(files),
            len(summaries),
        )
        return summaries

    def generate_code(
        self,
        *,
        owner: str,
        repo: str,
        paths: Sequence[str],
        framework: str,
        summary: str,
    ) -> str:
        """Returns the body of one test file implementing ``summary``."""

        if not summary.strip():
            raise ValidationError("summary must not be empty.")
        files = self._read_files(owner=owner, repo=repo, paths=paths)
        prompt = self._prompt_renderer.build_code_prompt(
            framework=framework, files=files, summary=summary
        )
        code = extract_code(self._provider.generate(prompt=prompt))
        self._logger.info(
            "Test code generated: repo=%s/%s files=%d code_chars=%d",
            owner,
            repo,
            len(files),
            len(code),
        )
        return code

    def _read_files(self, *, owner: str, repo: str, paths: Sequence[str]) -> list[SourceFile]:
        unique_paths = list(dict.fromkeys(path for path in paths if path))
        if not unique_paths:
            raise ValidationError("At least one file must be selected.")
        files: list[SourceFile] = []
        for path in unique_paths:
            raw = self._github_client.get_file_content(owner=owner, repo=repo, path=path)
            files.append(SourceFile(path=path, text=raw.decode("utf-8", errors="replace")))
        return files


def suggest_test_file_path(paths: Sequence[str]) -> str:
    """Suggests where a generated test for ``paths`` should live.

    ``src/app.js`` becomes ``tests/src/app.test.js``.
    """

    if not paths or not paths[0]:
        return DEFAULT_TEST_FILE_PATH
    stem, ext = posixpath.splitext(paths[0].strip("/"))
    if not ext:
        return f"tests/{stem}"
    return f"tests/{stem}.test{ext}"
