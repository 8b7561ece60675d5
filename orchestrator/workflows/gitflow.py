"""
Git-flow Setup Workflow

Ensures the integration branch exists and applies the same protection policy
to the primary and integration branches.
"""

from typing import Any, Dict

from ..integrations.github import GitHubAPIError, GitHubClient
from ..models import GitHubConfig, RepositoryRef
from ..utils.logger import get_logger

logger = get_logger(__name__)


def build_protection_settings(config: GitHubConfig) -> Dict[str, Any]:
    """Branch protection payload: strict status check, one approving review, no force push or deletion."""
    return {
        "required_status_checks": {
            "strict": True,
            "contexts": [config.required_status_check],
        },
        "enforce_admins": False,
        "required_pull_request_reviews": {
            "dismiss_stale_reviews": True,
            "require_code_owner_reviews": False,
            "required_approving_review_count": config.required_approvals,
        },
        "restrictions": None,
        "allow_force_pushes": False,
        "allow_deletions": False,
        "required_linear_history": False,
    }


def setup_gitflow(github: GitHubClient, repo: RepositoryRef, config: GitHubConfig) -> bool:
    """
    Set up git-flow branches and protection for a repository.

    Protection for each branch and the merge strategy settings are applied
    independently; their failures are logged and do not stop the others.

    Args:
        github: GitHub client
        repo: Target repository
        config: GitHub configuration (branch names, status check, approvals)

    Returns:
        False only when the integration branch could not be ensured
    """
    logger.info(f"Setting up git flow for {repo.full_name}")
    success = True

    try:
        result = github.create_branch(repo, config.integration_branch, config.primary_branch)
        if result.created:
            logger.info(f"Created {config.integration_branch} branch")
        else:
            logger.info(f"{config.integration_branch} branch already exists")
    except GitHubAPIError as e:
        logger.error(f"Failed to create {config.integration_branch} branch: {e}")
        success = False

    settings = build_protection_settings(config)
    for branch in (config.primary_branch, config.integration_branch):
        try:
            github.update_branch_protection(repo, branch, settings)
            logger.info(f"Protection rules applied to {branch}")
        except GitHubAPIError as e:
            logger.error(f"Failed to protect {branch}: {e}")

    try:
        github.update_merge_strategies(repo, squash=True, merge=True, rebase=True)
        logger.info("Enabled squash, merge and rebase strategies")
    except GitHubAPIError as e:
        logger.error(f"Failed to update merge strategies: {e}")

    return success
