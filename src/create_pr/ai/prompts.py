"""Prompt construction for pull request descriptions."""

import logging
import re

from create_pr.models import (
    FileChange,
    GenerateDescriptionOptions,
    GitChanges,
    JiraTicket,
    LineNumbers,
    PullRequestTemplate,
    RepoInfo,
)

logger = logging.getLogger(__name__)

MAX_DIFF_CONTENT_LENGTH = 3000
MAX_TEMPLATE_PREVIEW_LENGTH = 800
MAX_CONFLUENCE_EXCERPT_LENGTH = 200
MAX_LINE_LINKS = 5

_DIFF_HEADER = re.compile(r"^diff --git a/(.+?) b/(.+)$")
_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,\d+)? \+(\d+)(?:,\d+)? @@")


def parse_diff_stats(diff_text: str) -> GitChanges:
    """Derive per-file change statistics from a unified diff."""
    files: list[FileChange] = []
    current: FileChange | None = None
    old_line = new_line = 0
    in_hunk = False

    for line in diff_text.splitlines():
        header = _DIFF_HEADER.match(line)
        if header:
            current = FileChange(file=header.group(2), line_numbers=LineNumbers())
            files.append(current)
            in_hunk = False
            continue
        if current is None:
            continue

        hunk = _HUNK_HEADER.match(line)
        if hunk:
            old_line, new_line = int(hunk.group(1)), int(hunk.group(2))
            in_hunk = True
        elif line.startswith("new file mode"):
            current.status = "added"
        elif line.startswith("deleted file mode"):
            current.status = "deleted"
        elif line.startswith("rename from"):
            current.status = "renamed"
        elif line.startswith("\\"):
            continue
        elif not in_hunk:
            # file headers: index, ---, +++ and mode lines
            continue
        elif line.startswith("+"):
            current.insertions += 1
            current.line_numbers.added.append(new_line)  # type: ignore[union-attr]
            new_line += 1
        elif line.startswith("-"):
            current.deletions += 1
            current.line_numbers.removed.append(old_line)  # type: ignore[union-attr]
            old_line += 1
        else:
            old_line += 1
            new_line += 1

    for change in files:
        change.changes = change.insertions + change.deletions

    return GitChanges(
        files=files,
        total_files=len(files),
        total_insertions=sum(f.insertions for f in files),
        total_deletions=sum(f.deletions for f in files),
    )


class PromptBuilder:
    """Renders ticket, change and template context into a single prompt."""

    def build_prompt(self, options: GenerateDescriptionOptions) -> str:
        sections = [
            self._header(),
            self._ticket_section(options.jira_ticket),
            self._confluence_section(options.jira_ticket),
            self._changes_section(options.git_changes),
            self._files_section(options.git_changes, options.repo_info),
            self._diff_section(options.diff_content),
            self._template_section(options.template),
            self._instructions(options),
        ]
        prompt = "".join(section for section in sections if section)
        logger.debug(f"Built prompt of {len(prompt)} chars")
        return prompt

    def _header(self) -> str:
        return (
            "You are an expert software engineer helping to create a comprehensive "
            "pull request description. Please analyze the following information and "
            "generate a well-structured pull request description.\n\n"
        )

    def _ticket_section(self, ticket: JiraTicket) -> str:
        lines = [
            "## Jira Ticket Information:",
            f"- **Jira Ticket**: [{ticket.key}]({ticket.url}) - {ticket.summary}",
            f"- **Type**: {ticket.issue_type}",
            f"- **Status**: {ticket.status}",
            f"- **Assignee**: {ticket.assignee or 'Unassigned'}",
            f"- **Reporter**: {ticket.reporter}",
        ]
        if ticket.description:
            lines.append(f"- **Description**: {ticket.description}")
        if ticket.parent_ticket:
            parent = ticket.parent_ticket
            lines.append(f"- **Parent Ticket**: [{parent.key}]({parent.url}) - {parent.summary}")
        return "\n".join(lines) + "\n"

    def _confluence_section(self, ticket: JiraTicket) -> str:
        if not ticket.confluence_pages:
            return ""
        lines = ["", "## Related Documentation:"]
        for page in ticket.confluence_pages:
            lines.append(f"- **{page.title}**: {page.content[:MAX_CONFLUENCE_EXCERPT_LENGTH]}...")
            lines.append(f"  Source: {page.url}")
        return "\n".join(lines) + "\n"

    def _changes_section(self, changes: GitChanges) -> str:
        lines = [
            "",
            "## Code Changes:",
            f"- **Total Files Changed**: {changes.total_files}",
            f"- **Total Insertions**: {changes.total_insertions}",
            f"- **Total Deletions**: {changes.total_deletions}",
        ]
        if changes.commits:
            lines.append(f"- **Commits**: {', '.join(changes.commits)}")
        return "\n".join(lines) + "\n"

    def _files_section(self, changes: GitChanges, repo_info: RepoInfo | None) -> str:
        if not changes.files:
            return ""
        lines = ["", "## Files Modified:"]
        for change in changes.files:
            lines.append(f"- **{change.file}** ({change.status})")
            lines.append(
                f"  - Changes: {change.changes} lines "
                f"(+{change.insertions}/-{change.deletions})"
            )
            if repo_info:
                lines.append(f"  - File: {self._file_url(repo_info, change.file)}")
                if change.line_numbers and change.line_numbers.added:
                    links = ", ".join(
                        f"{self._file_url(repo_info, change.file)}#L{number}"
                        for number in change.line_numbers.added[:MAX_LINE_LINKS]
                    )
                    lines.append(f"  - Added lines: {links}")
        return "\n".join(lines) + "\n"

    def _file_url(self, repo_info: RepoInfo, path: str) -> str:
        return (
            f"https://github.com/{repo_info.owner}/{repo_info.repo}"
            f"/blob/{repo_info.current_branch}/{path}"
        )

    def _diff_section(self, diff_content: str | None) -> str:
        if not diff_content:
            return ""
        excerpt = diff_content[:MAX_DIFF_CONTENT_LENGTH]
        if len(diff_content) > MAX_DIFF_CONTENT_LENGTH:
            excerpt += "\n... (diff truncated)"
        return f"\n## Code Diff:\n```diff\n{excerpt}\n```\n"

    def _template_section(self, template: PullRequestTemplate | None) -> str:
        if not template:
            return ""
        return (
            "\n## Pull Request Template:\n"
            "Follow the structure of this template:\n"
            f"```markdown\n{template.content[:MAX_TEMPLATE_PREVIEW_LENGTH]}\n```\n"
        )

    def _instructions(self, options: GenerateDescriptionOptions) -> str:
        ticket = options.jira_ticket
        title_hint = options.pr_title or f"{ticket.key}: {ticket.summary}".strip(": ")
        lines = [
            "",
            "## Instructions:",
            "Respond with a JSON object containing exactly these fields:",
            '- "title": a concise pull request title '
            f'(suggested: "{title_hint}", keep the ticket key)',
            '- "body": the full pull request description in Markdown',
            '- "summary": one sentence summarizing the change',
            "Explain what changed and why, reference the Jira ticket, and call out "
            "testing notes and risks.",
        ]
        if options.template:
            lines.append("Fill in every section of the template in the body.")
        return "\n".join(lines) + "\n"
