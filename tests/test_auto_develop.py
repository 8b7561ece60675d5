"""Tests for the auto development workflow."""

import pytest

from orchestrator.integrations.ai import GenerationError
from orchestrator.integrations.github import GitHubAPIError, GitHubConflictError
from orchestrator.integrations.prompts import Persona
from orchestrator.models import BranchResult, DevelopmentPlan, FileAction, FileEdit
from orchestrator.workflows.auto_develop import (
    AutoDevelopError,
    apply_file_edit,
    auto_develop_workflow,
    feature_branch_name,
    run_auto_develop,
)


def plan(*edits, **kwargs) -> DevelopmentPlan:
    return DevelopmentPlan(files=list(edits), **kwargs)


@pytest.fixture
def mixed_plan():
    return plan(
        FileEdit(path="src/new.py", content="print('new')\n", action=FileAction.CREATE),
        FileEdit(path="src/app.py", content="print('app v2')\n", action=FileAction.UPDATE),
        FileEdit(path="src/old.py", action=FileAction.DELETE),
        commit_message="Add health endpoint",
    )


def existing_files(shas: dict):
    return lambda repo, path, ref: shas.get(path)


class TestFeatureBranchName:
    """Test branch naming."""

    def test_plan_branch(self):
        edit = FileEdit(path="a", content="", action="create")
        assert feature_branch_name(plan(edit, branch_name="feature/health"), 7) == "feature/health"

    def test_default_branch(self):
        edit = FileEdit(path="a", content="", action="create")
        assert feature_branch_name(plan(edit), 7) == "feature/issue-7"
        assert feature_branch_name(plan(edit, branch_name="  "), 7) == "feature/issue-7"


class TestApplyFileEdit:
    """Test single edit application."""

    def test_create_new_file(self, mock_github, repo_ref):
        edit = FileEdit(path="README.md", content="# hi", action=FileAction.CREATE)

        apply_file_edit(mock_github, repo_ref, edit, "feature/x")

        mock_github.put_file.assert_called_once_with(
            repo_ref, "README.md", "# hi", "Create README.md", branch="feature/x", sha=None
        )

    def test_create_over_existing_file_passes_sha(self, mock_github, repo_ref):
        mock_github.get_file_sha.return_value = "blob1"
        edit = FileEdit(path="README.md", content="# hi", action=FileAction.CREATE)

        apply_file_edit(mock_github, repo_ref, edit, "feature/x")

        assert mock_github.put_file.call_args.kwargs["sha"] == "blob1"
        assert mock_github.put_file.call_args.args[3] == "Update README.md"

    def test_delete_missing_file(self, mock_github, repo_ref):
        edit = FileEdit(path="gone.txt", action=FileAction.DELETE)

        with pytest.raises(AutoDevelopError):
            apply_file_edit(mock_github, repo_ref, edit, "feature/x")
        mock_github.delete_file.assert_not_called()


class TestAutoDevelopWorkflow:
    """Test the issue to pull request pipeline."""

    @pytest.mark.anyio
    async def test_create_update_delete(self, test_config, mock_github, mock_generator, repo_ref, mixed_plan):
        mock_generator.generate_structured.return_value = mixed_plan
        mock_github.get_file_sha.side_effect = existing_files({"src/app.py": "sha-app", "src/old.py": "sha-old"})

        pr = await auto_develop_workflow(test_config, mock_github, mock_generator, repo_ref, 7)

        assert pr.number == 42
        assert mock_generator.generate_structured.call_args.args[1] is Persona.DEVELOPER
        mock_github.create_branch.assert_called_once_with(repo_ref, "feature/issue-7", "main")

        assert mock_github.put_file.call_count == 2
        create_call, update_call = mock_github.put_file.call_args_list
        assert create_call.args[1] == "src/new.py"
        assert create_call.kwargs == {"branch": "feature/issue-7", "sha": None}
        assert update_call.args[1] == "src/app.py"
        assert update_call.kwargs == {"branch": "feature/issue-7", "sha": "sha-app"}
        mock_github.delete_file.assert_called_once_with(
            repo_ref, "src/old.py", "Delete src/old.py", "sha-old", "feature/issue-7"
        )

        pr_kwargs = mock_github.create_pull_request.call_args.kwargs
        assert mock_github.create_pull_request.call_args.args[1] == "Add health endpoint"
        assert pr_kwargs["head"] == "feature/issue-7"
        assert pr_kwargs["base"] == "develop"
        assert "Closes #7" in pr_kwargs["body"]

        repo, number, body = mock_github.create_comment.call_args.args
        assert number == 7
        assert "#42" in body

    @pytest.mark.anyio
    async def test_default_title(self, test_config, mock_github, mock_generator, repo_ref):
        mock_generator.generate_structured.return_value = plan(
            FileEdit(path="a.py", content="", action="create")
        )

        await auto_develop_workflow(test_config, mock_github, mock_generator, repo_ref, 7)

        assert mock_github.create_pull_request.call_args.args[1] == "Fix #7: Add health endpoint"

    @pytest.mark.anyio
    async def test_existing_branch_reused(self, test_config, mock_github, mock_generator, repo_ref, mixed_plan):
        mock_generator.generate_structured.return_value = mixed_plan
        mock_github.create_branch.side_effect = None
        mock_github.create_branch.return_value = BranchResult(name="feature/issue-7", created=False)
        mock_github.get_file_sha.side_effect = existing_files({"src/old.py": "sha-old"})

        pr = await auto_develop_workflow(test_config, mock_github, mock_generator, repo_ref, 7)

        assert pr.number == 42

    @pytest.mark.anyio
    async def test_partial_edit_failure_continues(self, test_config, mock_github, mock_generator, repo_ref, mixed_plan):
        mock_generator.generate_structured.return_value = mixed_plan
        mock_github.get_file_sha.side_effect = existing_files({"src/app.py": "sha-app", "src/old.py": "sha-old"})
        mock_github.put_file.side_effect = [GitHubConflictError("sha mismatch", 409), None]

        await auto_develop_workflow(test_config, mock_github, mock_generator, repo_ref, 7)

        body = mock_github.create_pull_request.call_args.kwargs["body"]
        assert "src/new.py" not in body
        assert "src/app.py" in body

    @pytest.mark.anyio
    async def test_all_edits_failing_aborts(self, test_config, mock_github, mock_generator, repo_ref):
        mock_generator.generate_structured.return_value = plan(
            FileEdit(path="a.py", content="x", action="create")
        )
        mock_github.put_file.side_effect = GitHubAPIError("boom")

        with pytest.raises(AutoDevelopError):
            await auto_develop_workflow(test_config, mock_github, mock_generator, repo_ref, 7)
        mock_github.create_pull_request.assert_not_called()

    @pytest.mark.anyio
    async def test_generation_failure_is_fatal(self, test_config, mock_github, mock_generator, repo_ref):
        mock_generator.generate_structured.side_effect = GenerationError("invalid JSON")

        with pytest.raises(AutoDevelopError):
            await auto_develop_workflow(test_config, mock_github, mock_generator, repo_ref, 7)
        mock_github.create_branch.assert_not_called()


class TestRunAutoDevelop:
    """Test failure reporting."""

    @pytest.mark.anyio
    async def test_failure_commented_on_issue(self, test_config, mock_github, mock_generator, repo_ref):
        mock_generator.generate_structured.side_effect = GenerationError("invalid JSON")

        with pytest.raises(AutoDevelopError):
            await run_auto_develop(test_config, mock_github, mock_generator, repo_ref, 7)

        repo, number, body = mock_github.create_comment.call_args.args
        assert number == 7
        assert "Auto development failed" in body
        assert "invalid JSON" in body

    @pytest.mark.anyio
    async def test_pr_failure(self, test_config, mock_github, mock_generator, repo_ref, mixed_plan):
        mock_generator.generate_structured.return_value = mixed_plan
        mock_github.get_file_sha.side_effect = existing_files({"src/old.py": "sha-old"})
        mock_github.create_pull_request.side_effect = GitHubAPIError("no commits between", 422)

        with pytest.raises(AutoDevelopError):
            await run_auto_develop(test_config, mock_github, mock_generator, repo_ref, 7)
        assert mock_github.create_comment.call_count == 1
