"""Data models for the orchestrator."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FileAction(str, Enum):
    """File edit actions a development plan may request."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Severity(str, Enum):
    """Review finding severities, most serious first."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class ServiceRequest(BaseModel):
    """Service request parsed from a request issue body."""

    name: str = Field(default="", description="Service (repository) name")
    description: str = Field(default="", description="Service description")
    language: str = Field(default="", description="Programming language")
    framework: str = Field(default="", description="Framework")
    database: str = Field(default="", description="Database")
    features: list[str] = Field(default_factory=list, description="Main features")
    api_endpoints: list[str] = Field(default_factory=list, description="API endpoints")
    deployment_target: str = Field(default="", description="Deployment target")


class WorkItem(BaseModel):
    """A single implementation issue of a work breakdown."""

    title: str = Field(description="Issue title")
    description: str = Field(default="", description="Issue description")
    tasks: list[str] = Field(default_factory=list, description="Task checklist")
    labels: list[str] = Field(default_factory=list, description="Issue labels")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not blank."""
        if not v or not v.strip():
            raise ValueError("Work item title cannot be empty")
        return v.strip()

    @field_validator("labels")
    @classmethod
    def dedupe_labels(cls, v: list[str]) -> list[str]:
        """Labels behave as a set; keep first occurrence order."""
        return list(dict.fromkeys(label.strip() for label in v if label.strip()))


class FileEdit(BaseModel):
    """A file change requested by the developer persona."""

    path: str = Field(description="Repository-relative file path")
    content: str | None = Field(default=None, description="Raw file content for create/update")
    action: FileAction = Field(description="Edit action")

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate path is not blank and repository relative."""
        v = v.strip().lstrip("/")
        if not v:
            raise ValueError("File path cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_content(self) -> "FileEdit":
        """Create and update edits must carry content."""
        if self.action != FileAction.DELETE and self.content is None:
            raise ValueError(f"{self.action.value} edit for {self.path} requires content")
        return self


class DevelopmentPlan(BaseModel):
    """Developer persona output: file edits plus commit/branch plan."""

    model_config = ConfigDict(populate_by_name=True)

    files: list[FileEdit] = Field(min_length=1, description="File edits to apply")
    commit_message: str | None = Field(
        default=None, alias="commitMessage", description="Commit message / PR title"
    )
    branch_name: str | None = Field(
        default=None, alias="branchName", description="Feature branch name"
    )


class ReviewFinding(BaseModel):
    """A single review finding."""

    severity: Severity = Field(description="Finding severity")
    file: str = Field(default="", description="Affected file")
    line: int | None = Field(default=None, description="Affected line")
    description: str = Field(description="Finding description")
    suggestion: str | None = Field(default=None, description="Suggested fix")

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, v: Any) -> Any:
        """Accept severities in any letter case."""
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("line", mode="before")
    @classmethod
    def coerce_line(cls, v: Any) -> Any:
        """Models sometimes answer with a non-numeric line; treat it as unknown."""
        if isinstance(v, str):
            return int(v) if v.strip().isdigit() else None
        return v


class ReviewVerdict(BaseModel):
    """QA persona output for a pull request."""

    model_config = ConfigDict(populate_by_name=True)

    approved: bool = Field(description="Whether the PR is approved")
    issues: list[ReviewFinding] = Field(default_factory=list, description="Findings")
    general_comments: str = Field(
        default="", alias="generalComments", description="Overall comments"
    )
    positive_points: list[str] = Field(
        default_factory=list, alias="positivePoints", description="What was done well"
    )
    needs_work: list[str] = Field(
        default_factory=list, alias="needsWork", description="What needs improvement"
    )


class RunResult(BaseModel):
    """Terminal artifact of a service creation run."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    repo_name: str | None = Field(default=None, alias="repoName")
    repo_url: str | None = Field(default=None, alias="repoUrl")
    status: str | None = None
    issues_created: int | None = Field(default=None, alias="issuesCreated")
    message: str | None = None

    def to_json(self) -> str:
        """Serialize with camelCase keys, omitting unset fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class RepositoryRef(BaseModel):
    """Owner/name pair identifying a repository."""

    owner: str = Field(description="Repository owner")
    name: str = Field(description="Repository name")

    @property
    def full_name(self) -> str:
        """Get full repository name (owner/name)."""
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, full_name: str) -> "RepositoryRef":
        """Parse an ``owner/name`` string."""
        parts = full_name.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Invalid repository name: {full_name!r} (expected owner/name)")
        return cls(owner=parts[0], name=parts[1])


class Repository(BaseModel):
    """Repository as returned by the hosting platform."""

    name: str
    full_name: str
    html_url: str | None = None
    default_branch: str = "main"

    @property
    def ref(self) -> RepositoryRef:
        return RepositoryRef.parse(self.full_name)


class Issue(BaseModel):
    """Issue as returned by the hosting platform."""

    number: int
    title: str
    body: str = ""
    labels: list[str] = Field(default_factory=list)
    html_url: str | None = None


class PullRequest(BaseModel):
    """Pull request as returned by the hosting platform."""

    number: int
    title: str
    body: str = ""
    html_url: str | None = None
    author: str | None = None
    head_branch: str | None = None
    head_sha: str | None = None
    base_branch: str | None = None


class PullRequestFile(BaseModel):
    """A changed file entry of a pull request."""

    filename: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    patch: str | None = None


class DiffFile(BaseModel):
    """Per-file diff data handed to the reviewer persona."""

    filename: str
    status: str
    additions: int
    deletions: int
    patch: str


class BranchResult(BaseModel):
    """Outcome of an idempotent branch creation."""

    name: str
    created: bool
    sha: str | None = None


class GitHubConfig(BaseModel):
    """GitHub configuration settings."""

    org: str = Field(default="code-orchestration", description="Organization for new services")
    token: str | None = Field(default=None, description="Token passed to gh as GH_TOKEN")
    primary_branch: str = Field(default="main", description="Primary line branch")
    integration_branch: str = Field(default="develop", description="Integration branch")
    required_status_check: str = Field(
        default="lint-and-test", description="Status check required by branch protection"
    )
    required_approvals: int = Field(default=1, description="Required approving reviews")
    private_repositories: bool = Field(default=False, description="Create private repositories")
    api_timeout: int = Field(default=30, description="Timeout per gh api call (seconds)")

    @field_validator("required_approvals")
    @classmethod
    def validate_required_approvals(cls, v: int) -> int:
        """Validate approval count is within GitHub's accepted range."""
        if v < 1 or v > 6:
            raise ValueError("Required approvals must be between 1 and 6")
        return v

    @field_validator("api_timeout")
    @classmethod
    def validate_api_timeout(cls, v: int) -> int:
        if v < 1:
            raise ValueError("API timeout must be at least 1 second")
        return v


class AIConfig(BaseModel):
    """Text-generation configuration settings."""

    api_key: str | None = Field(default=None, description="Anthropic API key")
    model: str = Field(default="claude-sonnet-4-20250514", description="Model identifier")
    request_timeout: float = Field(default=600.0, description="Request timeout (seconds)")
    planning_max_tokens: int = Field(default=4000, description="Token budget for planning")
    planning_temperature: float = Field(default=0.7, description="Temperature for planning")
    development_max_tokens: int = Field(default=8000, description="Token budget for development")
    development_temperature: float = Field(default=0.3, description="Temperature for development")
    review_max_tokens: int = Field(default=4000, description="Token budget for reviews")
    review_temperature: float = Field(default=0.2, description="Temperature for reviews")
    extra_instructions: str | None = Field(
        default=None, description="Text appended to every persona prompt"
    )

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Validate model identifier is not empty."""
        if not v or not v.strip():
            raise ValueError("Model identifier cannot be empty")
        return v.strip()

    @field_validator("planning_temperature", "development_temperature", "review_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if v < 0.0 or v > 1.0:
            raise ValueError("Temperature must be between 0.0 and 1.0")
        return v

    @field_validator("planning_max_tokens", "development_max_tokens", "review_max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Token budget must be positive")
        return v


class WorkflowsConfig(BaseModel):
    """Workflow configuration settings."""

    result_file: str = Field(
        default="service-creation-result.json", description="Service creation result artifact"
    )
    workflow_path: str = Field(
        default=".github/workflows/ci-cd.yml", description="Path of the generated CI workflow"
    )
    auto_develop_label: str = Field(
        default="auto-develop", description="Issue label that triggers auto-development"
    )
    followup_labels: list[str] = Field(
        default_factory=lambda: ["bug", "qa-review", "auto-develop"],
        description="Labels of follow-up issues filed by the reviewer",
    )
    tool_install_command: str = Field(
        default="pip install service-orchestrator",
        description="Command the generated CI uses to install this tool",
    )
    max_concurrent_fetches: int = Field(
        default=4, description="Concurrent per-file fetches during review"
    )
    max_file_context_chars: int = Field(
        default=20000, description="Cap on fetched file content used in place of a missing patch"
    )

    @field_validator("max_concurrent_fetches")
    @classmethod
    def validate_max_concurrent_fetches(cls, v: int) -> int:
        if v < 1 or v > 32:
            raise ValueError("Concurrent fetches must be between 1 and 32")
        return v


class Config(BaseModel):
    """Main configuration model."""

    version: str = Field(default="1.0", description="Config version")
    github: GitHubConfig = Field(default_factory=GitHubConfig, description="GitHub settings")
    ai: AIConfig = Field(default_factory=AIConfig, description="Text-generation settings")
    workflows: WorkflowsConfig = Field(
        default_factory=WorkflowsConfig, description="Workflow settings"
    )


class RunContext(BaseModel):
    """Per-run values taken from the process environment."""

    issue_body: str | None = None
    issue_title: str | None = None
    issue_number: int | None = None
    repository: str | None = None
    event_name: str | None = None
    pr_number: int | None = None

    @property
    def repository_ref(self) -> RepositoryRef | None:
        return RepositoryRef.parse(self.repository) if self.repository else None
