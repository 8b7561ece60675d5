"""Click CLI interface for the service orchestrator."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.table import Table

from orchestrator import __version__
from orchestrator.config import ConfigError, ConfigManager, load_run_context
from orchestrator.integrations.ai import TextGenerator
from orchestrator.integrations.github import GitHubClient
from orchestrator.models import Config, RepositoryRef, RunContext
from orchestrator.parser import parse_issue_body
from orchestrator.utils.logger import enable_verbose_logging, get_logger
from orchestrator.workflows.auto_develop import AutoDevelopError, run_auto_develop
from orchestrator.workflows.create_service import run_create_service
from orchestrator.workflows.gitflow import setup_gitflow
from orchestrator.workflows.qa_review import QAReviewError, run_qa_review

logger = get_logger(__name__)
console = Console()


def _load_config(manager: ConfigManager) -> Config:
    try:
        return manager.get_config()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _load_run_context() -> RunContext:
    try:
        return load_run_context()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _resolve_repository(repo_option: Optional[str], context: RunContext) -> RepositoryRef:
    """Repository from ``--repo`` or GITHUB_REPOSITORY."""
    value = repo_option or context.repository
    if not value:
        console.print("[red]Error:[/red] No repository given. Use --repo or set GITHUB_REPOSITORY")
        sys.exit(1)
    try:
        return RepositoryRef.parse(value)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def _read_body(body_file: Optional[str], context: RunContext) -> str:
    if body_file:
        return Path(body_file).read_text(encoding="utf-8")
    return context.issue_body or ""


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, version: bool, verbose: bool) -> None:
    """Service orchestrator.

    Creates service repositories from request issues, implements issues as
    pull requests and reviews pull requests with a text-generation model.
    """
    if version:
        click.echo(f"orchestrator version {__version__}")
        sys.exit(0)

    if verbose:
        enable_verbose_logging()

    if ctx.obj is None:
        ctx.obj = ConfigManager()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option("--project", "-p", is_flag=True, help="Create the project configuration instead of the user one")
@click.pass_obj
def init(manager: ConfigManager, project: bool) -> None:
    """Write a default configuration file."""
    try:
        path = manager.create_default_config(user_level=not project)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    config_type = "Project" if project else "User"
    console.print(f"[green]✓[/green] {config_type} configuration: {path}")
    console.print("\n[bold]Next steps:[/bold]")
    console.print("1. Export [cyan]GH_TOKEN[/cyan] (or run [cyan]gh auth login[/cyan])")
    console.print("2. Export [cyan]ANTHROPIC_API_KEY[/cyan]")
    console.print("3. Run [cyan]orchestrator --help[/cyan] to see available commands")


@cli.group()
def config() -> None:
    """Configuration management."""
    pass


@config.command("show")
@click.option("--format", "-f", "output_format", type=click.Choice(["table", "yaml", "json"]), default="table", help="Output format (default: table)")
@click.option("--section", "-s", help="Show only one section (github, ai or workflows)")
@click.pass_obj
def config_show(manager: ConfigManager, output_format: str, section: Optional[str]) -> None:
    """Show the effective configuration (credentials masked)."""
    config_dict = _load_config(manager).model_dump(mode="json")
    for group, key in (("github", "token"), ("ai", "api_key")):
        if config_dict[group].get(key):
            config_dict[group][key] = "***"

    if section:
        if section not in config_dict:
            console.print(f"[red]Error:[/red] Section '{section}' not found in configuration")
            console.print(f"[dim]Available sections: {', '.join(config_dict.keys())}[/dim]")
            sys.exit(1)
        config_dict = {section: config_dict[section]}

    if output_format == "yaml":
        click.echo(yaml.safe_dump(config_dict, default_flow_style=False, sort_keys=False, allow_unicode=True))
        return
    if output_format == "json":
        click.echo(json.dumps(config_dict, indent=2, ensure_ascii=False))
        return

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan", min_width=20)
    table.add_column("Value", min_width=30)
    for group, values in config_dict.items():
        if not isinstance(values, dict):
            table.add_row(group, str(values))
            continue
        for key, value in values.items():
            table.add_row(f"{group}.{key}", "[dim]None[/dim]" if value is None else str(value))
    console.print(table)


@config.command("list")
@click.pass_obj
def config_list(manager: ConfigManager) -> None:
    """List configuration files in effect."""
    for config_type, path in manager.list_config_files().items():
        if path:
            console.print(f"  [green]✓[/green] {config_type}: {path}")
        else:
            console.print(f"  [dim]✗ {config_type}: Not found[/dim]")


@cli.command("parse-issue")
@click.option("--body-file", type=click.Path(exists=True, dir_okay=False), help="File holding the issue body (default: ISSUE_BODY)")
@click.option("--title", help="Issue title (default: ISSUE_TITLE)")
def parse_issue(body_file: Optional[str], title: Optional[str]) -> None:
    """Print the service request parsed from an issue body, without side effects."""
    context = _load_run_context()
    request = parse_issue_body(_read_body(body_file, context), title or context.issue_title or "")
    click.echo(request.model_dump_json(indent=2))


@cli.command("create-service")
@click.option("--body-file", type=click.Path(exists=True, dir_okay=False), help="File holding the issue body (default: ISSUE_BODY)")
@click.option("--title", help="Issue title (default: ISSUE_TITLE)")
@click.option("--org", help="Organization for the new repository (default: github.org)")
@click.option("--result-file", help="Result JSON path (default: workflows.result_file)")
@click.option("--gitflow", is_flag=True, help="Also create the integration branch and protect both branches")
@click.pass_obj
def create_service(
    manager: ConfigManager,
    body_file: Optional[str],
    title: Optional[str],
    org: Optional[str],
    result_file: Optional[str],
    gitflow: bool,
) -> None:
    """Create a service repository from a service request issue."""
    settings = _load_config(manager)
    if org:
        settings = settings.model_copy(update={"github": settings.github.model_copy(update={"org": org})})
    context = _load_run_context()

    github = GitHubClient(settings.github)
    result = asyncio.run(run_create_service(
        settings,
        github,
        TextGenerator(settings.ai),
        _read_body(body_file, context),
        title or context.issue_title or "",
        result_file or settings.workflows.result_file,
        origin=context.repository_ref,
        origin_issue=context.issue_number,
        gitflow=gitflow,
    ))

    if not result.success:
        console.print(f"[red]Error:[/red] {result.message}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Repository created: {result.repo_url}")
    console.print(f"[green]✓[/green] Issues created: {result.issues_created}")


@cli.command("setup-gitflow")
@click.argument("repository")
@click.pass_obj
def setup_gitflow_command(manager: ConfigManager, repository: str) -> None:
    """Create the integration branch and protect both branches.

    REPOSITORY: owner/name
    """
    settings = _load_config(manager)
    repo = _resolve_repository(repository, RunContext())

    if not setup_gitflow(GitHubClient(settings.github), repo, settings.github):
        console.print(f"[red]Error:[/red] Git flow setup failed for {repo.full_name}")
        sys.exit(1)
    console.print(f"[green]✓[/green] Git flow configured for {repo.full_name}")


@cli.command("auto-develop")
@click.argument("issue_number", type=int, required=False)
@click.option("--repo", help="Repository owner/name (default: GITHUB_REPOSITORY)")
@click.pass_obj
def auto_develop(manager: ConfigManager, issue_number: Optional[int], repo: Optional[str]) -> None:
    """Implement an issue and open a pull request.

    ISSUE_NUMBER: Issue to implement (default: ISSUE_NUMBER)
    """
    settings = _load_config(manager)
    context = _load_run_context()
    repository = _resolve_repository(repo, context)

    number = issue_number or context.issue_number
    if not number:
        console.print("[red]Error:[/red] No issue number given. Pass it or set ISSUE_NUMBER")
        sys.exit(1)

    try:
        pr = asyncio.run(run_auto_develop(
            settings, GitHubClient(settings.github), TextGenerator(settings.ai), repository, number
        ))
    except AutoDevelopError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Pull request #{pr.number} opened: {pr.html_url}")


@cli.command("qa-review")
@click.argument("pr_number", type=int, required=False)
@click.option("--repo", help="Repository owner/name (default: GITHUB_REPOSITORY)")
@click.pass_obj
def qa_review(manager: ConfigManager, pr_number: Optional[int], repo: Optional[str]) -> None:
    """Review a pull request. Exits 1 when changes are requested.

    PR_NUMBER: Pull request to review (default: from the triggering event)
    """
    settings = _load_config(manager)
    context = _load_run_context()

    number = pr_number or context.pr_number
    if not number:
        logger.info("No pull request number available (not a pull request event); nothing to review")
        return

    repository = _resolve_repository(repo, context)
    try:
        verdict = asyncio.run(run_qa_review(
            settings, GitHubClient(settings.github), TextGenerator(settings.ai), repository, number
        ))
    except QAReviewError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if not verdict.approved:
        console.print(f"[yellow]Changes requested on PR #{number}[/yellow] ({len(verdict.issues)} finding(s))")
        sys.exit(1)
    console.print(f"[green]✓[/green] PR #{number} approved")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
