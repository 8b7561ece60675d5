"""
Auto Development Workflow

Turns an issue into a feature branch carrying generated file edits and an
open pull request against the integration branch.
"""

from typing import List

from ..integrations.ai import GenerationError, TextGenerator
from ..integrations.github import GitHubAPIError, GitHubClient
from ..integrations.prompts import Persona, build_development_prompt
from ..models import Config, DevelopmentPlan, FileAction, FileEdit, Issue, PullRequest, RepositoryRef
from ..utils.logger import get_logger
from .comments import post_comment_safely

logger = get_logger(__name__)


class AutoDevelopError(Exception):
    """Exception raised when an issue cannot be turned into a pull request."""
    pass


def feature_branch_name(plan: DevelopmentPlan, issue_number: int) -> str:
    """Branch proposed by the plan, or ``feature/issue-<n>``."""
    if plan.branch_name and plan.branch_name.strip():
        return plan.branch_name.strip()
    return f"feature/issue-{issue_number}"


def apply_file_edit(github: GitHubClient, repo: RepositoryRef, edit: FileEdit, branch: str) -> None:
    """
    Apply one file edit on a branch.

    Create and update resolve the current revision token first, so an edit
    targeting an existing file overwrites it. Delete requires the file to exist.

    Raises:
        GitHubAPIError: If the contents API rejects the edit
    """
    sha = github.get_file_sha(repo, edit.path, branch)

    if edit.action is FileAction.DELETE:
        if sha is None:
            raise AutoDevelopError(f"Cannot delete {edit.path}: file does not exist on {branch}")
        github.delete_file(repo, edit.path, f"Delete {edit.path}", sha, branch)
        return

    verb = "Update" if sha else "Create"
    github.put_file(repo, edit.path, edit.content or "", f"{verb} {edit.path}", branch=branch, sha=sha)


def apply_development_plan(
    github: GitHubClient, repo: RepositoryRef, plan: DevelopmentPlan, branch: str
) -> List[FileEdit]:
    """
    Apply every edit in order; an edit that fails is logged and skipped.

    Returns:
        Edits that were applied

    Raises:
        AutoDevelopError: If no edit could be applied
    """
    applied = []
    for edit in plan.files:
        try:
            apply_file_edit(github, repo, edit, branch)
        except (GitHubAPIError, AutoDevelopError) as e:
            logger.error(f"Failed to {edit.action.value} {edit.path}: {e}")
            continue
        applied.append(edit)
        logger.info(f"{edit.action.value.capitalize()}d {edit.path}")

    if not applied:
        raise AutoDevelopError(f"None of the {len(plan.files)} file edit(s) could be applied")
    return applied


def render_pull_request_body(issue: Issue, edits: List[FileEdit]) -> str:
    changes = "".join(f"- `{edit.path}` ({edit.action.value})\n" for edit in edits)
    return (
        f"## Summary\n"
        f"Automatically generated changes for #{issue.number}.\n\n"
        f"Closes #{issue.number}\n\n"
        f"## Changes\n{changes}\n"
        f"## Checklist\n"
        f"- [ ] Code review\n"
        f"- [ ] Tests pass\n"
        f"- [ ] Documentation updated\n"
    )


async def auto_develop_workflow(
    config: Config,
    github: GitHubClient,
    generator: TextGenerator,
    repo: RepositoryRef,
    issue_number: int,
) -> PullRequest:
    """
    Generate and submit the implementation of an issue.

    Args:
        config: Orchestrator configuration
        github: GitHub client
        generator: Text generator for the developer persona
        repo: Repository holding the issue
        issue_number: Issue to implement

    Returns:
        The opened pull request

    Raises:
        AutoDevelopError: If any critical step fails
    """
    try:
        issue = github.get_issue(repo, issue_number)
    except GitHubAPIError as e:
        raise AutoDevelopError(f"Failed to fetch issue #{issue_number}: {e}") from e
    logger.info(f"Implementing issue #{issue.number}: {issue.title}")

    try:
        plan = await generator.generate_structured(
            build_development_prompt(issue, config.ai.extra_instructions),
            Persona.DEVELOPER,
            DevelopmentPlan,
        )
    except GenerationError as e:
        raise AutoDevelopError(f"Code generation failed: {e}") from e
    logger.info(f"Generated plan with {len(plan.files)} file edit(s)")

    branch = feature_branch_name(plan, issue.number)
    try:
        base = github.get_repository(repo).default_branch
        github.create_branch(repo, branch, base)
    except GitHubAPIError as e:
        raise AutoDevelopError(f"Failed to create branch {branch}: {e}") from e

    applied = apply_development_plan(github, repo, plan, branch)

    title = plan.commit_message or f"Fix #{issue.number}: {issue.title}"
    try:
        pr = github.create_pull_request(
            repo,
            title,
            head=branch,
            base=config.github.integration_branch,
            body=render_pull_request_body(issue, applied),
        )
    except GitHubAPIError as e:
        raise AutoDevelopError(f"Failed to open pull request: {e}") from e
    logger.info(f"Opened PR #{pr.number}: {pr.html_url}")

    post_comment_safely(
        github,
        repo,
        issue.number,
        f"🤖 Automatic implementation opened as PR #{pr.number}: {pr.html_url or ''}".rstrip(),
    )
    return pr


async def run_auto_develop(
    config: Config,
    github: GitHubClient,
    generator: TextGenerator,
    repo: RepositoryRef,
    issue_number: int,
) -> PullRequest:
    """Run auto development, reporting a failure on the issue before re-raising."""
    try:
        return await auto_develop_workflow(config, github, generator, repo, issue_number)
    except AutoDevelopError as e:
        logger.error(f"Auto development failed: {e}")
        post_comment_safely(
            github,
            repo,
            issue_number,
            f"❌ **Auto development failed**\n\nError: {e}\n\nManual implementation is required.",
        )
        raise
