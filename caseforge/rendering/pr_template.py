"""PR body rendering."""

from __future__ import annotations

from dataclasses import dataclass

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from caseforge.rendering.prompts import get_default_template_dir


@dataclass(frozen=True)
class PullRequestBodyInput:
    """Input to render a PR body."""

    file_path: str
    branch: str
    base_branch: str


class PullRequestBodyRenderer:
    """Renders the default PR body from a Jinja2 template."""

    def __init__(
        self, *, template_dir: str | None = None, template_name: str = "pr_body.md"
    ) -> None:
        env = Environment(
            loader=FileSystemLoader(template_dir or get_default_template_dir()),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._template = env.get_template(template_name)

    def render(self, *, data: PullRequestBodyInput) -> str:
        """Renders PR body and enforces a mention of the added file."""

        body = self._template.render(
            file_path=data.file_path,
            branch=data.branch,
            base_branch=data.base_branch,
        ).strip()
        if data.file_path not in body:
            body = body + "\n\nAdds `" + data.file_path + "`."
        return body + "\n"
