"""
QA Review Workflow

Reviews a pull request with the QA persona, submits the verdict as a review
and files a follow-up issue when serious findings block approval.
"""

import asyncio
from typing import List, Optional

from ..integrations.ai import GenerationError, TextGenerator
from ..integrations.github import GitHubAPIError, GitHubClient
from ..integrations.prompts import Persona, build_review_prompt
from ..models import (
    Config,
    DiffFile,
    Issue,
    PullRequest,
    PullRequestFile,
    RepositoryRef,
    ReviewVerdict,
)
from ..rendering import render_followup_issue, render_review_report, review_event, serious_findings
from ..utils.logger import get_logger
from .comments import post_comment_safely

logger = get_logger(__name__)

TRUNCATION_MARKER = "\n... (truncated)"


class QAReviewError(Exception):
    """Exception raised when a pull request review cannot be completed."""
    pass


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_MARKER


async def _collect_one(
    github: GitHubClient,
    repo: RepositoryRef,
    pr: PullRequest,
    item: PullRequestFile,
    semaphore: asyncio.Semaphore,
    max_chars: int,
) -> Optional[DiffFile]:
    patch = item.patch
    if not patch and item.status != "removed" and pr.head_sha:
        async with semaphore:
            try:
                patch = await github.get_file_text_async(repo, item.filename, pr.head_sha)
            except GitHubAPIError as e:
                logger.warning(f"Could not fetch {item.filename}: {e}")
                patch = None

    if not patch:
        logger.debug(f"No diff data for {item.filename}; skipping")
        return None

    return DiffFile(
        filename=item.filename,
        status=item.status,
        additions=item.additions,
        deletions=item.deletions,
        patch=_truncate(patch, max_chars),
    )


async def collect_diff_files(
    github: GitHubClient,
    repo: RepositoryRef,
    pr: PullRequest,
    files: List[PullRequestFile],
    limit: int = 4,
    max_chars: int = 20000,
) -> List[DiffFile]:
    """
    Gather per-file diff data for the review prompt.

    Files without a patch (binary or oversized diffs) fall back to their
    content at the head commit, fetched with at most ``limit`` requests in
    flight. Files with no usable data are dropped. Output keeps the order
    of ``files``.
    """
    semaphore = asyncio.Semaphore(limit)
    results = await asyncio.gather(
        *(_collect_one(github, repo, pr, item, semaphore, max_chars) for item in files)
    )
    return [diff for diff in results if diff is not None]


def submit_review(github: GitHubClient, repo: RepositoryRef, pr: PullRequest, verdict: ReviewVerdict) -> str:
    """
    Submit the rendered verdict as a review, falling back to a plain comment.

    Returns:
        "review" or "comment", whichever was posted

    Raises:
        QAReviewError: If neither the review nor the fallback comment could be posted
    """
    report = render_review_report(verdict)
    event = review_event(verdict)

    try:
        github.create_review(repo, pr.number, report, event)
        logger.info(f"Submitted {event} review on PR #{pr.number}")
        return "review"
    except GitHubAPIError as e:
        logger.warning(f"Review submission failed, posting as comment instead: {e}")

    try:
        github.create_comment(repo, pr.number, report)
    except GitHubAPIError as e:
        raise QAReviewError(f"Failed to post review feedback on PR #{pr.number}: {e}") from e
    logger.info(f"Posted review as comment on PR #{pr.number}")
    return "comment"


def create_followup_issue(
    github: GitHubClient, repo: RepositoryRef, pr: PullRequest, verdict: ReviewVerdict, labels: List[str]
) -> Optional[Issue]:
    """File an issue for critical and major findings; failures are logged, not raised."""
    findings = serious_findings(verdict)
    if verdict.approved or not findings:
        return None

    title, body = render_followup_issue(pr, findings)
    assignees = [pr.author] if pr.author else None
    try:
        issue = github.create_issue(repo, title, body, labels=list(labels), assignees=assignees)
    except GitHubAPIError as e:
        logger.error(f"Failed to create follow-up issue: {e}")
        return None

    logger.info(f"Created follow-up issue #{issue.number}")
    post_comment_safely(
        github,
        repo,
        pr.number,
        f"📋 Follow-up issue for the problems found: #{issue.number}",
    )
    return issue


async def qa_review_workflow(
    config: Config,
    github: GitHubClient,
    generator: TextGenerator,
    repo: RepositoryRef,
    pr_number: int,
) -> ReviewVerdict:
    """
    Review a pull request.

    Args:
        config: Orchestrator configuration
        github: GitHub client
        generator: Text generator for the QA persona
        repo: Repository holding the pull request
        pr_number: Pull request to review

    Returns:
        The submitted verdict

    Raises:
        QAReviewError: If fetching, generation or posting the feedback fails
    """
    try:
        pr = github.get_pull_request(repo, pr_number)
        files = github.list_pull_request_files(repo, pr_number)
    except GitHubAPIError as e:
        raise QAReviewError(f"Failed to fetch PR #{pr_number}: {e}") from e
    logger.info(f"Reviewing PR #{pr.number}: {pr.title} ({len(files)} file(s))")

    diff_files = await collect_diff_files(
        github,
        repo,
        pr,
        files,
        limit=config.workflows.max_concurrent_fetches,
        max_chars=config.workflows.max_file_context_chars,
    )

    try:
        verdict = await generator.generate_structured(
            build_review_prompt(pr, diff_files, config.ai.extra_instructions),
            Persona.QA,
            ReviewVerdict,
        )
    except GenerationError as e:
        raise QAReviewError(f"Review generation failed: {e}") from e
    logger.info(f"Verdict: approved={verdict.approved}, {len(verdict.issues)} finding(s)")

    submit_review(github, repo, pr, verdict)
    create_followup_issue(github, repo, pr, verdict, config.workflows.followup_labels)
    return verdict


async def run_qa_review(
    config: Config,
    github: GitHubClient,
    generator: TextGenerator,
    repo: RepositoryRef,
    pr_number: int,
) -> ReviewVerdict:
    """Run the review, reporting a failure on the pull request before re-raising."""
    try:
        return await qa_review_workflow(config, github, generator, repo, pr_number)
    except QAReviewError as e:
        logger.error(f"QA review failed: {e}")
        post_comment_safely(
            github,
            repo,
            pr_number,
            f"❌ **QA review failed**\n\nError: {e}\n\nManual review is required.",
        )
        raise
