"""Workflow modules for the service lifecycle stages."""

from orchestrator.workflows.auto_develop import (
    AutoDevelopError,
    apply_development_plan,
    apply_file_edit,
    auto_develop_workflow,
    feature_branch_name,
    run_auto_develop,
)
from orchestrator.workflows.create_service import (
    ServiceCreationError,
    create_service_workflow,
    create_work_item_issues,
    run_create_service,
    setup_ci,
    write_run_result,
)
from orchestrator.workflows.gitflow import build_protection_settings, setup_gitflow
from orchestrator.workflows.qa_review import (
    QAReviewError,
    collect_diff_files,
    create_followup_issue,
    qa_review_workflow,
    run_qa_review,
    submit_review,
)

__all__ = [
    # Service creation workflow
    "create_service_workflow",
    "create_work_item_issues",
    "run_create_service",
    "setup_ci",
    "write_run_result",
    "ServiceCreationError",
    # Git flow setup
    "setup_gitflow",
    "build_protection_settings",
    # Auto development workflow
    "auto_develop_workflow",
    "run_auto_develop",
    "apply_development_plan",
    "apply_file_edit",
    "feature_branch_name",
    "AutoDevelopError",
    # QA review workflow
    "qa_review_workflow",
    "run_qa_review",
    "collect_diff_files",
    "submit_review",
    "create_followup_issue",
    "QAReviewError",
]
