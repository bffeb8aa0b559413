"""Prompt rendering for test case generation.

File content is substituted into the templates as-is. Jinja2 never re-parses
substituted values, so template-like text inside a file reaches the model
unmodified.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

SUMMARY_TEMPLATE_NAME = "summary_prompt.md"
CODE_TEMPLATE_NAME = "code_prompt.md"


class Framework(StrEnum):
    """Well-known framework labels offered to users.

    Any other label is accepted as well; it is only threaded into prompts.
    """

    REACT_JEST = "React (Jest)"
    PYTHON_PYTEST = "Python (Pytest)"
    JAVA_JUNIT = "Java (JUnit)"
    CSHARP_NUNIT = "C# (NUnit)"
    GO_TESTING = "Go (testing package)"


@dataclass(frozen=True)
class SourceFile:
    """A repository file whose content is given to the model."""

    path: str
    text: str


def render_file_sections(files: Sequence[SourceFile]) -> str:
    """Renders files as ``--- FILE: <path> ---`` sections, in input order."""

    return "\n\n".join(f"--- FILE: {file.path} ---\n\n{file.text}" for file in files)


class PromptRenderer:
    """Renders summary and code prompts from Jinja2 templates."""

    def __init__(self, *, template_dir: str | None = None) -> None:
        self._env = Environment(
            loader=FileSystemLoader(template_dir or get_default_template_dir()),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def build_summary_prompt(self, *, framework: str, files: Sequence[SourceFile]) -> str:
        """Builds the prompt asking for test case summaries."""

        template = self._env.get_template(SUMMARY_TEMPLATE_NAME)
        return template.render(framework=framework, code_context=render_file_sections(files))

    def build_code_prompt(
        self, *, framework: str, files: Sequence[SourceFile], summary: str
    ) -> str:
        """Builds the prompt asking for one complete test file."""

        template = self._env.get_template(CODE_TEMPLATE_NAME)
        return template.render(
            framework=framework,
            code_context=render_file_sections(files),
            summary=summary.strip(),
        )


def get_default_template_dir() -> str:
    """Returns the default template directory path."""

    return str(Path(__file__).parent / "templates")
