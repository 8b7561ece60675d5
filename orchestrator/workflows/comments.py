"""Best-effort status comments on issues and pull requests."""

from ..integrations.github import GitHubAPIError, GitHubClient
from ..models import RepositoryRef
from ..utils.logger import get_logger

logger = get_logger(__name__)


def post_comment_safely(github: GitHubClient, repo: RepositoryRef, number: int, body: str) -> bool:
    """Post a comment; failures are logged, never raised.

    Returns:
        True if the comment was posted
    """
    try:
        github.create_comment(repo, number, body)
        return True
    except GitHubAPIError as e:
        logger.error(f"Failed to comment on {repo.full_name}#{number}: {e}")
        return False
