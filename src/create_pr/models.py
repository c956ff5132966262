"""Pydantic models shared across create-pr."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ProviderTag(str, Enum):
    """Known AI vendors."""

    CLAUDE = "claude"
    OPENAI = "openai"
    GEMINI = "gemini"
    COPILOT = "copilot"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, value: str) -> ProviderTag:
        """Look up a tag by value, case-insensitively.

        Raises:
            ValueError: If the value names no known provider
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            known = ", ".join(tag.value for tag in cls)
            raise ValueError(f"Unknown AI provider: {value}. Use one of: {known}") from None


_DISPLAY_NAMES = {
    ProviderTag.CLAUDE: "Claude (Anthropic)",
    ProviderTag.OPENAI: "OpenAI (ChatGPT)",
    ProviderTag.GEMINI: "Gemini (Google)",
    ProviderTag.COPILOT: "GitHub Copilot",
}


class GenerationResult(BaseModel):
    """Text produced by one provider. ``content`` is never empty."""

    content: str = Field(min_length=1)
    provider: ProviderTag


class ParsedContent(BaseModel):
    """Structured pull request text. All three fields are non-empty."""

    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    summary: str = Field(min_length=1)


class ConfluencePage(BaseModel):
    """Documentation page linked from a ticket."""

    title: str
    content: str = ""
    url: str = ""


class ParentTicket(BaseModel):
    """Parent (epic or story) of a ticket."""

    key: str
    summary: str = ""
    url: str = ""


class JiraTicket(BaseModel):
    """Ticket data gathered by the caller."""

    key: str
    summary: str = ""
    issue_type: str = "Task"
    status: str = "Unknown"
    assignee: str | None = None
    reporter: str = "Unknown"
    description: str | None = None
    url: str = ""
    parent_ticket: ParentTicket | None = None
    confluence_pages: list[ConfluencePage] = Field(default_factory=list)


class LineNumbers(BaseModel):
    """Line numbers touched in the new (added) and old (removed) file."""

    added: list[int] = Field(default_factory=list)
    removed: list[int] = Field(default_factory=list)


class FileChange(BaseModel):
    """Change statistics for one file."""

    file: str
    status: str = "modified"
    changes: int = 0
    insertions: int = 0
    deletions: int = 0
    line_numbers: LineNumbers | None = None


class GitChanges(BaseModel):
    """Aggregate change statistics for a branch."""

    files: list[FileChange] = Field(default_factory=list)
    total_files: int = 0
    total_insertions: int = 0
    total_deletions: int = 0
    commits: list[str] = Field(default_factory=list)


class PullRequestTemplate(BaseModel):
    """Repository pull request template."""

    name: str = "default"
    content: str


class RepoInfo(BaseModel):
    """Repository coordinates used to build file links."""

    owner: str
    repo: str
    current_branch: str


class GenerateDescriptionOptions(BaseModel):
    """Everything needed to generate a pull request description."""

    jira_ticket: JiraTicket
    git_changes: GitChanges
    template: PullRequestTemplate | None = None
    diff_content: str | None = None
    pr_title: str | None = None
    repo_info: RepoInfo | None = None
    provider: ProviderTag | None = None
