"""Tests for git-flow branch setup."""

from orchestrator.integrations.github import GitHubAPIError, GitHubPermissionError
from orchestrator.models import BranchResult, GitHubConfig
from orchestrator.workflows.gitflow import build_protection_settings, setup_gitflow


def test_protection_settings():
    settings = build_protection_settings(GitHubConfig(required_status_check="ci", required_approvals=2))

    assert settings["required_status_checks"] == {"strict": True, "contexts": ["ci"]}
    reviews = settings["required_pull_request_reviews"]
    assert reviews["required_approving_review_count"] == 2
    assert reviews["dismiss_stale_reviews"] is True
    assert settings["allow_force_pushes"] is False
    assert settings["allow_deletions"] is False


class TestSetupGitflow:
    """Test branch creation and protection."""

    def test_creates_branch_and_protects_both(self, mock_github, repo_ref):
        assert setup_gitflow(mock_github, repo_ref, GitHubConfig()) is True

        mock_github.create_branch.assert_called_once_with(repo_ref, "develop", "main")
        protected = [call.args[1] for call in mock_github.update_branch_protection.call_args_list]
        assert protected == ["main", "develop"]
        mock_github.update_merge_strategies.assert_called_once_with(
            repo_ref, squash=True, merge=True, rebase=True
        )

    def test_existing_branch_is_not_an_error(self, mock_github, repo_ref):
        mock_github.create_branch.side_effect = None
        mock_github.create_branch.return_value = BranchResult(name="develop", created=False)

        assert setup_gitflow(mock_github, repo_ref, GitHubConfig()) is True
        assert mock_github.update_branch_protection.call_count == 2

    def test_protection_failure_does_not_stop_other_branch(self, mock_github, repo_ref):
        mock_github.update_branch_protection.side_effect = [GitHubPermissionError("no admin", 403), None]

        assert setup_gitflow(mock_github, repo_ref, GitHubConfig()) is True
        assert mock_github.update_branch_protection.call_count == 2

    def test_branch_failure_reported(self, mock_github, repo_ref):
        mock_github.create_branch.side_effect = GitHubAPIError("boom")

        assert setup_gitflow(mock_github, repo_ref, GitHubConfig()) is False
        assert mock_github.update_branch_protection.call_count == 2
