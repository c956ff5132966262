"""Command-line interface for create-pr."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from create_pr.ai.prompts import parse_diff_stats
from create_pr.ai.providers import PROVIDER_SPECS
from create_pr.config import Config
from create_pr.container import AppContext, ServiceKeys, build_context
from create_pr.errors import CreatePRError, ProviderError
from create_pr.models import (
    GenerateDescriptionOptions,
    GitChanges,
    JiraTicket,
    ParsedContent,
    ProviderTag,
    PullRequestTemplate,
    RepoInfo,
)
from create_pr.progress import ProgressEvent, ProgressEventType

app = typer.Typer(
    name="create-pr",
    help="Generate pull request descriptions from Jira tickets and git diffs with AI",
    no_args_is_help=True,
)

console = Console()

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _parse_provider(value: str | None) -> ProviderTag | None:
    if value is None:
        return None
    try:
        return ProviderTag.parse(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _print_progress(event: ProgressEvent) -> None:
    """Show retries and fallbacks while a description is generated."""
    if event.event_type is ProgressEventType.RETRY:
        console.print(f"[yellow]↻ {event.message}[/yellow]")
    elif event.event_type is ProgressEventType.FALLBACK:
        console.print(f"[yellow]⚠ {event.message}[/yellow]")
    elif event.event_type is ProgressEventType.INFO:
        console.print(f"[blue]{event.message}[/blue]")
    elif event.event_type is ProgressEventType.ERROR:
        console.print(f"[red]{event.message}[/red]")


@app.command()
def version() -> None:
    """Show the version and exit."""
    from create_pr import __version__

    print(f"create-pr {__version__}")


@app.command()
def providers() -> None:
    """List AI providers and whether credentials are available."""
    context = build_context()
    orchestrator = context.resolve(ServiceKeys.PROVIDER_ORCHESTRATOR)
    available = orchestrator.available_providers()

    table = Table(title="AI Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Name")
    table.add_column("Default Model", style="magenta")
    table.add_column("Status", style="green")

    for tag in ProviderTag:
        status = "✓ Available" if tag in available else "✗ Not configured"
        table.add_row(tag.value, tag.display_name, PROVIDER_SPECS[tag].default_model, status)

    print(table)

    if not available:
        print()
        print(
            "[yellow]No AI providers configured. Run [bold]create-pr ai-auth <provider>[/bold] "
            "or set an API key environment variable.[/yellow]"
        )


@app.command()
def describe(
    ticket: str = typer.Option(..., "--ticket", "-t", help="Jira ticket key (e.g. PROJ-123)"),
    summary: str = typer.Option("", "--summary", "-s", help="Jira ticket summary"),
    description: str | None = typer.Option(
        None, "--description", help="Jira ticket description"
    ),
    diff: Path | None = typer.Option(
        None,
        "--diff",
        "-d",
        help="Unified diff file (e.g. output of git diff main...HEAD)",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    template: Path | None = typer.Option(
        None,
        "--template",
        help="Pull request template to follow",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    title: str | None = typer.Option(None, "--title", help="Suggested pull request title"),
    repo: str | None = typer.Option(
        None, "--repo", "-r", help="GitHub repository (owner/name) used for file links"
    ),
    branch: str | None = typer.Option(
        None, "--branch", "-b", help="Branch used for file links (defaults to main)"
    ),
    provider: str | None = typer.Option(
        None,
        "--provider",
        "-p",
        help="AI provider (claude, openai, gemini, copilot). Disables fallback",
    ),
    stream: bool = typer.Option(False, "--stream", help="Stream the reply as it arrives"),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file (.md or .json format). If not specified, prints to stdout",
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore cached replies"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Generate a pull request description with AI.

    Examples:
        create-pr describe --ticket PROJ-123 --summary "Add login" --diff changes.diff
        create-pr describe -t PROJ-123 -d changes.diff --provider claude --stream
        create-pr describe -t PROJ-123 -d changes.diff --repo acme/app -o pr.md
    """
    _configure_logging(verbose)
    provider_tag = _parse_provider(provider)

    repo_info = None
    if repo:
        owner, _, name = repo.partition("/")
        if not owner or not name:
            raise typer.BadParameter("--repo must look like owner/name")
        repo_info = RepoInfo(owner=owner, repo=name, current_branch=branch or "main")

    diff_content = diff.read_text(encoding="utf-8") if diff else None
    options = GenerateDescriptionOptions(
        jira_ticket=JiraTicket(key=ticket, summary=summary, description=description),
        git_changes=parse_diff_stats(diff_content) if diff_content else GitChanges(),
        template=(
            PullRequestTemplate(name=template.stem, content=template.read_text(encoding="utf-8"))
            if template
            else None
        ),
        diff_content=diff_content,
        pr_title=title,
        repo_info=repo_info,
        provider=provider_tag,
    )

    context = build_context(progress_callback=_print_progress)

    try:
        content = asyncio.run(_generate_description(context, options, stream, not no_cache))
    except KeyboardInterrupt:
        print("\n[red]Operation cancelled by user[/red]")
        raise typer.Exit(130)
    except ProviderError as e:
        print(f"[red]Error: {escape(e.describe())}[/red]")
        raise typer.Exit(1)
    except CreatePRError as e:
        print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if output:
        _save_description_to_file(content, output)
        print(f"[green]✓[/green] Description saved to {output}")
    else:
        _display_description(content)


async def _generate_description(
    context: AppContext,
    options: GenerateDescriptionOptions,
    stream: bool,
    use_cache: bool,
) -> ParsedContent:
    """Run the description pipeline and release HTTP clients afterwards."""
    generator = context.resolve(ServiceKeys.DESCRIPTION_GENERATOR)

    def on_chunk(chunk: str) -> None:
        console.print(chunk, end="", markup=False, highlight=False)

    try:
        return await generator.generate_pr_description(
            options, on_chunk=on_chunk if stream else None, use_cache=use_cache
        )
    finally:
        if stream:
            console.print()
        await context.aclose()


def _display_description(content: ParsedContent) -> None:
    console.print(
        Panel.fit(
            f"[bold]{content.title}[/bold]\n\n[dim]{content.summary}[/dim]",
            title="Pull Request",
        )
    )
    console.print(Markdown(content.body))


def _save_description_to_file(content: ParsedContent, output_path: str) -> None:
    """Save the description as JSON or Markdown depending on the suffix."""
    output_file = Path(output_path)

    if output_file.suffix.lower() == ".json":
        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(content.model_dump(), f, indent=2)
    else:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(f"# {content.title}\n\n{content.body}\n")


@app.command("ai-auth")
def ai_auth(
    provider: str = typer.Argument(..., help="AI provider (claude, openai, gemini, copilot)"),
) -> None:
    """Manage AI API keys for different providers."""
    config = Config()

    try:
        tag = ProviderTag.parse(provider)
    except ValueError as e:
        print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    print(f"[bold cyan]AI API Key Setup - {tag.display_name}[/bold cyan]")
    print()

    if config.get_ai_api_key(tag.value):
        print(f"[green]✓[/green] You already have a {tag.value} API key stored")

        if not Confirm.ask("Would you like to replace it with a new key?"):
            return

    print(f"You can get a key from: [link]{PROVIDER_SPECS[tag].key_url}[/link]")
    print()

    api_key = Prompt.ask(f"[cyan]Enter your {tag.display_name} API key", password=True)

    if not api_key:
        print("[red]No API key provided[/red]")
        return

    config.set_ai_api_key(tag.value, api_key)
    print(f"[green]✓[/green] {tag.display_name} API key setup complete!")


@app.command("ai-auth-status")
def ai_auth_status() -> None:
    """Show current AI API key status."""
    config = Config()
    info = config.get_config_info()
    ai_keys = info["ai_api_keys"]

    table = Table(title="AI API Key Status")
    table.add_column("Provider", style="cyan")
    table.add_column("Status", style="green")

    for provider, has_key in ai_keys.items():
        status = "✓ Configured" if has_key else "✗ Not configured"
        table.add_row(ProviderTag(provider).display_name, status)

    print(table)
    print(f"[dim]Config file: {info['config_file']}[/dim]")

    if not any(ai_keys.values()):
        print()
        print(
            "[yellow]No AI API keys configured. Run [bold]create-pr ai-auth <provider>[/bold] to set up API keys.[/yellow]"
        )


@app.command("ai-auth-remove")
def ai_auth_remove(
    provider: str = typer.Argument(..., help="AI provider (claude, openai, gemini, copilot)"),
) -> None:
    """Remove stored AI API key for a provider."""
    config = Config()

    try:
        tag = ProviderTag.parse(provider)
    except ValueError as e:
        print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not config.get_ai_api_key(tag.value):
        print(f"[yellow]No {tag.value} API key is currently stored[/yellow]")
        return

    if Confirm.ask(f"[red]Are you sure you want to remove the {tag.value} API key?[/red]"):
        config.remove_ai_api_key(tag.value)
    else:
        print("API key removal cancelled")


if __name__ == "__main__":
    app()
