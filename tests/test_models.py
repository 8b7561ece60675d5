"""Tests for data models."""

import pytest
from pydantic import ValidationError

from orchestrator.models import (
    AIConfig,
    FileEdit,
    GitHubConfig,
    RepositoryRef,
    RunContext,
    RunResult,
    WorkItem,
    WorkflowsConfig,
)


class TestWorkItem:
    """Test WorkItem validation."""

    def test_title_required(self):
        with pytest.raises(ValidationError):
            WorkItem(title="   ")

    def test_labels_deduplicated_in_order(self):
        item = WorkItem(title=" Setup ", labels=["setup", "priority-high", "setup"])

        assert item.title == "Setup"
        assert item.labels == ["setup", "priority-high"]


class TestFileEdit:
    """Test FileEdit validation."""

    def test_leading_slash_removed(self):
        assert FileEdit(path="/src/a.py", content="", action="create").path == "src/a.py"

    def test_delete_needs_no_content(self):
        assert FileEdit(path="a.py", action="delete").content is None

    def test_update_needs_content(self):
        with pytest.raises(ValidationError):
            FileEdit(path="a.py", action="update")

    def test_empty_path(self):
        with pytest.raises(ValidationError):
            FileEdit(path=" / ", content="x", action="create")


class TestRepositoryRef:
    """Test owner/name parsing."""

    def test_parse(self):
        ref = RepositoryRef.parse("acme/shop")
        assert (ref.owner, ref.name, ref.full_name) == ("acme", "shop", "acme/shop")

    @pytest.mark.parametrize("value", ["shop", "acme/", "a/b/c", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            RepositoryRef.parse(value)

    def test_run_context_without_repository(self):
        assert RunContext().repository_ref is None


def test_run_result_json_omits_unset_fields():
    result = RunResult(success=True, repo_name="svc", issues_created=0)

    assert result.to_json() == '{\n  "success": true,\n  "repoName": "svc",\n  "issuesCreated": 0\n}'


class TestConfigModels:
    """Test configuration validation."""

    @pytest.mark.parametrize("approvals", [0, 7])
    def test_required_approvals_range(self, approvals):
        with pytest.raises(ValidationError):
            GitHubConfig(required_approvals=approvals)

    def test_temperature_range(self):
        with pytest.raises(ValidationError):
            AIConfig(review_temperature=1.5)

    def test_blank_model(self):
        with pytest.raises(ValidationError):
            AIConfig(model="  ")

    def test_concurrency_range(self):
        with pytest.raises(ValidationError):
            WorkflowsConfig(max_concurrent_fetches=0)
