"""Shared test configuration and fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from click.testing import CliRunner

from orchestrator.config import ConfigManager
from orchestrator.models import (
    BranchResult,
    Config,
    Issue,
    PullRequest,
    Repository,
    RepositoryRef,
)


SAMPLE_ISSUE_BODY = """\
### 서비스 이름

todo-api

### 서비스 설명

할 일 관리를 위한
REST API 서비스

### 프로그래밍 언어

Python

### 프레임워크

FastAPI

### 데이터베이스

PostgreSQL

### 주요 기능

- 할 일 생성
- 할 일 완료 처리

### API 엔드포인트

- GET /todos
- POST /todos

### 배포 방식

Docker
"""


@pytest.fixture
def anyio_backend():
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture
def temp_home(tmp_path):
    """Create a temporary home directory for tests."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def isolated_config_manager(temp_home, monkeypatch):
    """Create an isolated ConfigManager that doesn't touch real config files or the real environment."""
    monkeypatch.setattr(Path, "home", lambda: temp_home)
    monkeypatch.setattr("orchestrator.config.get_git_root", lambda: None)
    monkeypatch.chdir(temp_home)

    manager = ConfigManager(environ={})
    manager._project_config_path = None
    manager._config = None
    return manager


@pytest.fixture
def test_config():
    """Configuration with defaults and dummy credentials."""
    config = Config()
    config.github.token = "gh-test-token"
    config.ai.api_key = "sk-test-key"
    return config


@pytest.fixture
def repo_ref():
    return RepositoryRef(owner="code-orchestration", name="todo-api")


@pytest.fixture
def sample_issue_body():
    return SAMPLE_ISSUE_BODY


@pytest.fixture
def mock_github(repo_ref):
    """Mock GitHub client with plausible return values for every operation."""
    github = Mock()

    github.create_repository.side_effect = lambda org, name, description="": Repository(
        name=name,
        full_name=f"{org}/{name}",
        html_url=f"https://github.com/{org}/{name}",
    )
    github.get_repository.return_value = Repository(
        name=repo_ref.name,
        full_name=repo_ref.full_name,
        html_url=f"https://github.com/{repo_ref.full_name}",
        default_branch="main",
    )

    issue_numbers = iter(range(1, 1000))
    github.create_issue.side_effect = lambda repo, title, body, labels=None, assignees=None: Issue(
        number=next(issue_numbers),
        title=title,
        body=body,
        labels=labels or [],
        html_url=f"https://github.com/{repo.full_name}/issues/new",
    )
    github.get_issue.return_value = Issue(
        number=7,
        title="Add health endpoint",
        body="Expose GET /health returning 200.",
        labels=["auto-develop"],
    )
    github.create_branch.side_effect = lambda repo, name, base_branch: BranchResult(
        name=name, created=True, sha="base-sha"
    )
    github.get_file_sha.return_value = None
    github.create_pull_request.return_value = PullRequest(
        number=42,
        title="Add health endpoint",
        html_url=f"https://github.com/{repo_ref.full_name}/pull/42",
        author="octocat",
        head_branch="feature/issue-7",
        head_sha="head-sha",
        base_branch="develop",
    )
    github.get_pull_request.return_value = PullRequest(
        number=42,
        title="Add health endpoint",
        body="Closes #7",
        html_url=f"https://github.com/{repo_ref.full_name}/pull/42",
        author="octocat",
        head_branch="feature/issue-7",
        head_sha="head-sha",
        base_branch="develop",
    )
    github.list_pull_request_files.return_value = []
    github.get_file_text_async = AsyncMock(return_value=None)
    return github


@pytest.fixture
def mock_generator():
    """Mock text generator; tests set ``generate_structured`` return values or side effects."""
    generator = Mock()
    generator.complete = AsyncMock()
    generator.generate_structured = AsyncMock()
    return generator


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()
