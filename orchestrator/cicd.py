"""CI/CD workflow generation for new service repositories."""

from dataclasses import dataclass, field
from typing import Any, Dict

import yaml

from orchestrator.models import ServiceRequest, WorkflowsConfig


@dataclass(frozen=True)
class Toolchain:
    """Per-language CI setup and commands."""

    setup_action: str
    setup_with: Dict[str, str] = field(default_factory=dict)
    install: str = ""
    lint: str = ""
    test: str = ""


DEFAULT_LANGUAGE = "Node.js (TypeScript)"

WORKFLOW_HEADER = (
    "# Generated by the service orchestrator.\n"
    "# deploy needs lint-and-test, which only runs for pull requests. On a push\n"
    "# lint-and-test is skipped and deploy is skipped with it; drop the needs\n"
    "# entry (or run lint-and-test on push) to deploy from pushes.\n"
)

LANGUAGE_TOOLCHAINS: Dict[str, Toolchain] = {
    "Node.js (TypeScript)": Toolchain(
        setup_action="actions/setup-node@v4",
        setup_with={"node-version": "20"},
        install="npm ci",
        lint="npm run lint",
        test="npm test",
    ),
    "Python": Toolchain(
        setup_action="actions/setup-python@v5",
        setup_with={"python-version": "3.11"},
        install="pip install -r requirements.txt",
        lint="flake8 .",
        test="pytest",
    ),
    "Go": Toolchain(
        setup_action="actions/setup-go@v5",
        setup_with={"go-version": "1.21"},
        install="go mod download",
        lint="golangci-lint run",
        test="go test ./...",
    ),
    "Java": Toolchain(
        setup_action="actions/setup-java@v4",
        setup_with={"java-version": "17", "distribution": "temurin"},
        install="./gradlew dependencies",
        lint="./gradlew checkstyle",
        test="./gradlew test",
    ),
}

TOOLING_PYTHON_VERSION = "3.11"


def get_toolchain(language: str) -> Toolchain:
    """Look up the toolchain for a language; unknown languages get the default entry."""
    return LANGUAGE_TOOLCHAINS.get(language.strip(), LANGUAGE_TOOLCHAINS[DEFAULT_LANGUAGE])


def _tooling_steps(settings: WorkflowsConfig, name: str, command: str, env: Dict[str, str]) -> list:
    return [
        {
            "name": "Setup orchestrator tooling",
            "uses": "actions/setup-python@v5",
            "with": {"python-version": TOOLING_PYTHON_VERSION},
        },
        {
            "name": name,
            "env": {
                "ANTHROPIC_API_KEY": "${{ secrets.ANTHROPIC_API_KEY }}",
                "GITHUB_TOKEN": "${{ secrets.GITHUB_TOKEN }}",
                **env,
            },
            "run": f"{settings.tool_install_command}\n{command}\n",
        },
    ]


def build_workflow(
    request: ServiceRequest,
    settings: WorkflowsConfig,
    primary_branch: str = "main",
    integration_branch: str = "develop",
) -> Dict[str, Any]:
    """Build the CI/CD workflow document for a service.

    Jobs:
        lint-and-test: pull request events; lint, test and QA review
        auto-develop: issue events carrying the auto-develop label
        deploy: pushes to the primary branch, after lint-and-test
    """
    language = request.language.strip() or DEFAULT_LANGUAGE
    toolchain = get_toolchain(language)
    label = settings.auto_develop_label
    deployment = request.deployment_target or "production"

    setup_step: Dict[str, Any] = {"name": f"Setup {language}", "uses": toolchain.setup_action}
    if toolchain.setup_with:
        setup_step["with"] = dict(toolchain.setup_with)

    return {
        "name": "CI/CD Pipeline",
        "on": {
            "pull_request": {"branches": [integration_branch, primary_branch]},
            "push": {"branches": [primary_branch]},
            "issues": {"types": ["opened", "labeled"]},
        },
        "permissions": {
            "contents": "write",
            "issues": "write",
            "pull-requests": "write",
        },
        "jobs": {
            "lint-and-test": {
                "if": "github.event_name == 'pull_request'",
                "runs-on": "ubuntu-latest",
                "steps": [
                    {"uses": "actions/checkout@v4"},
                    setup_step,
                    {"name": "Install dependencies", "run": toolchain.install},
                    {"name": "Run linter", "run": toolchain.lint},
                    {"name": "Run tests", "run": toolchain.test},
                    *_tooling_steps(settings, "QA review", "orchestrator qa-review", {}),
                ],
            },
            "auto-develop": {
                "if": (
                    "github.event_name == 'issues' && "
                    f"contains(github.event.issue.labels.*.name, '{label}')"
                ),
                "runs-on": "ubuntu-latest",
                "steps": [
                    {"uses": "actions/checkout@v4"},
                    *_tooling_steps(
                        settings,
                        "Auto develop",
                        "orchestrator auto-develop",
                        {"ISSUE_NUMBER": "${{ github.event.issue.number }}"},
                    ),
                ],
            },
            "deploy": {
                "if": (
                    "github.event_name == 'push' && "
                    f"github.ref == 'refs/heads/{primary_branch}'"
                ),
                "runs-on": "ubuntu-latest",
                "needs": ["lint-and-test"],
                "steps": [
                    {"uses": "actions/checkout@v4"},
                    {
                        "name": f"Deploy to {deployment}",
                        "run": f'echo "Deploying to {deployment}..."\n',
                    },
                ],
            },
        },
    }


def render_workflow(
    request: ServiceRequest,
    settings: WorkflowsConfig,
    primary_branch: str = "main",
    integration_branch: str = "develop",
) -> str:
    """Render the CI/CD workflow as YAML text."""
    document = build_workflow(request, settings, primary_branch, integration_branch)
    return WORKFLOW_HEADER + yaml.safe_dump(
        document, sort_keys=False, default_flow_style=False, allow_unicode=True, width=1000
    )
