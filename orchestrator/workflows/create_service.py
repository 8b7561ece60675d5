"""
Service Creation Workflow

Parses a service request issue, creates the service repository, files the
work breakdown as issues, commits the CI/CD workflow and records the outcome
in a JSON result file.
"""

from pathlib import Path
from typing import List, Optional, Union

from ..cicd import render_workflow
from ..integrations.ai import TextGenerator
from ..integrations.github import GitHubAPIError, GitHubClient
from ..models import Config, Issue, RepositoryRef, RunResult, ServiceRequest, WorkItem
from ..parser import parse_issue_body
from ..planning import plan_work_items, render_work_item_body
from ..utils.logger import get_logger
from .comments import post_comment_safely
from .gitflow import setup_gitflow

logger = get_logger(__name__)

SUCCESS_STATUS = "Service repository created and initial setup completed"


class ServiceCreationError(Exception):
    """Exception raised for critical service creation failures."""
    pass


def create_work_item_issues(
    github: GitHubClient, repo: RepositoryRef, items: List[WorkItem]
) -> List[Issue]:
    """File one issue per work item; an item that fails is logged and skipped."""
    logger.info(f"Creating {len(items)} issue(s) in {repo.full_name}")
    created = []

    for item in items:
        try:
            issue = github.create_issue(
                repo, item.title, render_work_item_body(item), labels=list(item.labels)
            )
        except GitHubAPIError as e:
            logger.error(f"Failed to create issue '{item.title}': {e}")
            continue
        created.append(issue)
        logger.info(f"Created issue #{issue.number}: {item.title}")

    return created


def setup_ci(github: GitHubClient, repo: RepositoryRef, request: ServiceRequest, config: Config) -> bool:
    """Commit the generated CI/CD workflow to the default branch; failures are logged."""
    content = render_workflow(
        request,
        config.workflows,
        primary_branch=config.github.primary_branch,
        integration_branch=config.github.integration_branch,
    )
    try:
        github.put_file(repo, config.workflows.workflow_path, content, "Add CI/CD pipeline")
    except GitHubAPIError as e:
        logger.error(f"Failed to set up CI/CD pipeline: {e}")
        return False

    logger.info(f"CI/CD pipeline committed to {config.workflows.workflow_path}")
    return True


async def create_service_workflow(
    config: Config,
    github: GitHubClient,
    generator: TextGenerator,
    body: str,
    title: str,
    gitflow: bool = False,
) -> RunResult:
    """
    Run the service creation pipeline.

    Args:
        config: Orchestrator configuration
        github: GitHub client
        generator: Text generator for the architect persona
        body: Request issue body
        title: Request issue title
        gitflow: Also set up the integration branch and branch protection

    Returns:
        Successful RunResult

    Raises:
        ServiceCreationError: If the request has no name or the repository cannot be created
    """
    request = parse_issue_body(body, title)
    logger.info(f"Parsed service request: {request.model_dump()}")

    if not request.name:
        raise ServiceCreationError("Service name could not be determined from the request")

    try:
        repo = github.create_repository(config.github.org, request.name, request.description.strip())
    except GitHubAPIError as e:
        raise ServiceCreationError(f"Failed to create repository {request.name}: {e}") from e
    logger.info(f"Repository created: {repo.html_url}")

    items = await plan_work_items(generator, request, config.ai.extra_instructions)
    created = create_work_item_issues(github, repo.ref, items)

    setup_ci(github, repo.ref, request, config)

    if gitflow:
        if not setup_gitflow(github, repo.ref, config.github):
            logger.warning("Git flow setup incomplete; continuing")

    return RunResult(
        success=True,
        repo_name=repo.name,
        repo_url=repo.html_url,
        status=SUCCESS_STATUS,
        issues_created=len(created),
    )


def write_run_result(result: RunResult, path: Union[str, Path]) -> Path:
    """Persist the run result artifact as JSON."""
    path = Path(path)
    path.write_text(result.to_json() + "\n", encoding="utf-8")
    logger.debug(f"Run result written to {path}")
    return path


def _origin_comment(result: RunResult) -> str:
    if result.success:
        return (
            f"✅ **Service created**\n\n"
            f"Repository: {result.repo_url or result.repo_name}\n"
            f"Issues created: {result.issues_created}"
        )
    return f"❌ **Service creation failed**\n\nError: {result.message}\n\nManual handling is required."


async def run_create_service(
    config: Config,
    github: GitHubClient,
    generator: TextGenerator,
    body: str,
    title: str,
    result_path: Union[str, Path],
    origin: Optional[RepositoryRef] = None,
    origin_issue: Optional[int] = None,
    gitflow: bool = False,
) -> RunResult:
    """
    Run service creation end to end: always writes the result artifact and,
    when the originating request issue is known, reports back on it.

    Returns:
        The RunResult written (``success`` False on a critical failure)
    """
    try:
        result = await create_service_workflow(config, github, generator, body, title, gitflow)
        logger.info(f"Service creation completed: {result.repo_url}")
    except ServiceCreationError as e:
        logger.error(f"Service creation failed: {e}")
        result = RunResult(success=False, message=str(e))

    write_run_result(result, result_path)

    if origin is not None and origin_issue is not None:
        post_comment_safely(github, origin, origin_issue, _origin_comment(result))

    return result
