"""GitHub integration via the gh CLI REST passthrough (``gh api``)."""

import base64
import json
import os
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from orchestrator.models import (
    BranchResult,
    GitHubConfig,
    Issue,
    PullRequest,
    PullRequestFile,
    Repository,
    RepositoryRef,
)
from orchestrator.utils.logger import get_logger
from orchestrator.utils.shell import ShellError, check_command_exists, run_command, run_command_async

logger = get_logger(__name__)


class GitHubAPIError(Exception):
    """GitHub API call failure of unknown kind."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class GitHubNotFoundError(GitHubAPIError):
    """Resource not found (404)."""
    pass


class GitHubConflictError(GitHubAPIError):
    """Resource already exists or conflicts with current state (409/422)."""
    pass


class GitHubPermissionError(GitHubAPIError):
    """Authentication or permission failure (401/403)."""
    pass


class GitHubRateLimitError(GitHubAPIError):
    """Rate limit exceeded (429, or 403 with a rate limit message)."""
    pass


def _extract_status(stderr: str) -> Optional[int]:
    match = re.search(r"HTTP (\d{3})", stderr)
    return int(match.group(1)) if match else None


def classify_error(message: str, stderr: str) -> GitHubAPIError:
    """Map gh api stderr output onto the typed error hierarchy."""
    status = _extract_status(stderr)
    detail = f"{message}: {stderr.strip() or 'no error output'}"

    if status == 429 or (status == 403 and "rate limit" in stderr.lower()):
        return GitHubRateLimitError(detail, status)
    if status == 404:
        return GitHubNotFoundError(detail, status)
    if status in (409, 422):
        return GitHubConflictError(detail, status)
    if status in (401, 403):
        return GitHubPermissionError(detail, status)
    return GitHubAPIError(detail, status)


def _content_path(path: str) -> str:
    return quote(path.lstrip("/"), safe="/")


class GitHubClient:
    """Blocking GitHub REST operations executed through ``gh api``."""

    def __init__(self, config: GitHubConfig):
        """Initialize GitHub client.

        Args:
            config: GitHub configuration; ``token`` is exported to gh as GH_TOKEN
        """
        self.config = config
        self._env: Optional[Dict[str, str]] = None
        if config.token:
            self._env = {**os.environ, "GH_TOKEN": config.token}

    def validate_auth(self) -> bool:
        """Check that gh is installed and has usable credentials."""
        if not check_command_exists("gh"):
            logger.warning("GitHub CLI (gh) not found. Please install it first.")
            return False
        if self.config.token:
            return True
        try:
            return run_command("gh auth status", env=self._env).success
        except ShellError:
            logger.debug("Failed to check GitHub CLI authentication")
            return False

    def _api_args(self, method: str, endpoint: str, has_body: bool, paginate: bool) -> List[str]:
        args = ["gh", "api", endpoint, "--method", method]
        args += ["-H", "Accept: application/vnd.github+json"]
        if paginate:
            args += ["--paginate", "--slurp"]
        if has_body:
            args += ["--input", "-"]
        return args

    def _api(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
        paginate: bool = False,
    ) -> Any:
        """Run one gh api call and decode its JSON response.

        Raises:
            GitHubAPIError: Typed subclass matching the HTTP failure
        """
        args = self._api_args(method, endpoint, payload is not None, paginate)
        logger.debug(f"gh api {method} {endpoint}")

        try:
            result = run_command(
                args,
                env=self._env,
                input_data=json.dumps(payload) if payload is not None else None,
                timeout=self.config.api_timeout,
            )
        except ShellError as e:
            raise GitHubAPIError(f"{method} {endpoint} failed: {e.stderr or e}") from e

        if not result.success:
            raise classify_error(f"{method} {endpoint} failed", result.stderr)

        if not result.stdout.strip():
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise GitHubAPIError(f"Failed to parse response of {method} {endpoint}: {e}") from e

        if paginate:
            # --slurp wraps each page in an outer array
            return [item for page in data for item in page]
        return data

    # Repositories

    def get_repository(self, repo: RepositoryRef) -> Repository:
        data = self._api("GET", f"repos/{repo.full_name}")
        return Repository.model_validate(data)

    def create_repository(self, org: str, name: str, description: str = "") -> Repository:
        """Create an auto-initialised repository in an organization."""
        logger.info(f"Creating repository {org}/{name}")
        data = self._api(
            "POST",
            f"orgs/{org}/repos",
            {
                "name": name,
                "description": description,
                "private": self.config.private_repositories,
                "auto_init": True,
            },
        )
        return Repository.model_validate(data)

    def update_merge_strategies(
        self, repo: RepositoryRef, squash: bool = True, merge: bool = True, rebase: bool = True
    ) -> None:
        self._api(
            "PATCH",
            f"repos/{repo.full_name}",
            {
                "allow_squash_merge": squash,
                "allow_merge_commit": merge,
                "allow_rebase_merge": rebase,
            },
        )

    # Branches

    def get_branch_sha(self, repo: RepositoryRef, branch: str) -> str:
        """Return the commit SHA a branch currently points to."""
        data = self._api("GET", f"repos/{repo.full_name}/git/ref/heads/{branch}")
        return data["object"]["sha"]

    def create_branch(self, repo: RepositoryRef, name: str, base_branch: str) -> BranchResult:
        """Create a branch from the current head of ``base_branch``.

        Creating a branch that already exists is reported as success with
        ``created=False``.
        """
        sha = self.get_branch_sha(repo, base_branch)
        try:
            self._api(
                "POST",
                f"repos/{repo.full_name}/git/refs",
                {"ref": f"refs/heads/{name}", "sha": sha},
            )
        except GitHubConflictError:
            logger.info(f"Branch already exists: {name}")
            return BranchResult(name=name, created=False)

        logger.info(f"Created branch {name} from {base_branch}")
        return BranchResult(name=name, created=True, sha=sha)

    def update_branch_protection(self, repo: RepositoryRef, branch: str, settings: Dict[str, Any]) -> None:
        self._api("PUT", f"repos/{repo.full_name}/branches/{branch}/protection", settings)

    # Contents

    def get_file_sha(self, repo: RepositoryRef, path: str, ref: str) -> Optional[str]:
        """Return the blob SHA (revision token) of a file, or None if it does not exist."""
        try:
            data = self._api("GET", f"repos/{repo.full_name}/contents/{_content_path(path)}?ref={quote(ref)}")
        except GitHubNotFoundError:
            return None
        if isinstance(data, list):
            raise GitHubConflictError(f"{path} is a directory on {ref}")
        return data["sha"]

    def put_file(
        self,
        repo: RepositoryRef,
        path: str,
        content: str,
        message: str,
        branch: Optional[str] = None,
        sha: Optional[str] = None,
    ) -> None:
        """Create or update a file; ``sha`` must be the current revision token when updating."""
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if branch:
            payload["branch"] = branch
        if sha:
            payload["sha"] = sha
        self._api("PUT", f"repos/{repo.full_name}/contents/{_content_path(path)}", payload)

    def delete_file(self, repo: RepositoryRef, path: str, message: str, sha: str, branch: str) -> None:
        self._api(
            "DELETE",
            f"repos/{repo.full_name}/contents/{_content_path(path)}",
            {"message": message, "sha": sha, "branch": branch},
        )

    async def get_file_text_async(self, repo: RepositoryRef, path: str, ref: str) -> Optional[str]:
        """Fetch a file's decoded text at ``ref``; None when missing or not text."""
        endpoint = f"repos/{repo.full_name}/contents/{_content_path(path)}?ref={quote(ref)}"
        result = await run_command_async(
            ["gh", "api", endpoint, "-H", "Accept: application/vnd.github+json"],
            env=self._env,
            timeout=self.config.api_timeout,
        )
        if not result.success:
            error = classify_error(f"GET {endpoint} failed", result.stderr)
            if isinstance(error, GitHubNotFoundError):
                return None
            raise error

        try:
            data = json.loads(result.stdout)
            raw = base64.b64decode(data.get("content") or "")
            return raw.decode("utf-8")
        except (json.JSONDecodeError, AttributeError, ValueError):
            return None

    # Issues

    def create_issue(
        self,
        repo: RepositoryRef,
        title: str,
        body: str,
        labels: Optional[List[str]] = None,
        assignees: Optional[List[str]] = None,
    ) -> Issue:
        payload: Dict[str, Any] = {"title": title, "body": body, "labels": labels or []}
        if assignees:
            payload["assignees"] = assignees
        data = self._api("POST", f"repos/{repo.full_name}/issues", payload)
        return _parse_issue(data)

    def get_issue(self, repo: RepositoryRef, number: int) -> Issue:
        data = self._api("GET", f"repos/{repo.full_name}/issues/{number}")
        return _parse_issue(data)

    def create_comment(self, repo: RepositoryRef, number: int, body: str) -> None:
        """Comment on an issue or pull request."""
        self._api("POST", f"repos/{repo.full_name}/issues/{number}/comments", {"body": body})

    # Pull requests

    def create_pull_request(
        self, repo: RepositoryRef, title: str, head: str, base: str, body: str
    ) -> PullRequest:
        logger.info(f"Creating PR {head} -> {base}: {title}")
        data = self._api(
            "POST",
            f"repos/{repo.full_name}/pulls",
            {"title": title, "head": head, "base": base, "body": body},
        )
        return _parse_pull_request(data)

    def get_pull_request(self, repo: RepositoryRef, number: int) -> PullRequest:
        data = self._api("GET", f"repos/{repo.full_name}/pulls/{number}")
        return _parse_pull_request(data)

    def list_pull_request_files(self, repo: RepositoryRef, number: int) -> List[PullRequestFile]:
        data = self._api(
            "GET", f"repos/{repo.full_name}/pulls/{number}/files?per_page=100", paginate=True
        )
        return [PullRequestFile.model_validate(item) for item in data or []]

    def create_review(self, repo: RepositoryRef, number: int, body: str, event: str) -> None:
        """Submit a pull request review (APPROVE, REQUEST_CHANGES or COMMENT)."""
        self._api(
            "POST",
            f"repos/{repo.full_name}/pulls/{number}/reviews",
            {"body": body, "event": event},
        )


def _parse_issue(data: Dict[str, Any]) -> Issue:
    return Issue(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        labels=[label["name"] for label in data.get("labels", []) if isinstance(label, dict)],
        html_url=data.get("html_url"),
    )


def _parse_pull_request(data: Dict[str, Any]) -> PullRequest:
    head = data.get("head") or {}
    base = data.get("base") or {}
    user = data.get("user") or {}
    return PullRequest(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        html_url=data.get("html_url"),
        author=user.get("login"),
        head_branch=head.get("ref"),
        head_sha=head.get("sha"),
        base_branch=base.get("ref"),
    )
