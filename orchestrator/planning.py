"""Work breakdown planning for new services."""

from typing import Any, List

from pydantic import Field, RootModel, model_validator

from orchestrator.integrations.ai import GenerationError, TextGenerator
from orchestrator.integrations.prompts import Persona, build_planning_prompt
from orchestrator.models import ServiceRequest, WorkItem
from orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

SUCCESS_CRITERIA = (
    "All features work as intended",
    "Test code is written",
    "Code review passed",
)


class WorkBreakdown(RootModel[List[WorkItem]]):
    """Planning payload: a non-empty list of work items.

    Accepts a bare array or an object wrapping it under ``issues``.
    """

    root: List[WorkItem] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def unwrap_issues(cls, data: Any) -> Any:
        if isinstance(data, dict) and "issues" in data:
            return data["issues"]
        return data


def generate_fallback_plan(request: ServiceRequest) -> List[WorkItem]:
    """Fixed six-item work breakdown used when planning generation fails.

    Deterministic and free of external calls. The business logic item takes
    the requested features verbatim, even when there are none.
    """
    return [
        WorkItem(
            title="Project initial setup",
            description=f"Initial {request.framework} project setup and dependency installation",
            tasks=[
                "Create project structure",
                "Install required packages",
                "Configure environment variables",
                "Configure linter and formatter",
            ],
            labels=["setup", "priority-high"],
        ),
        WorkItem(
            title="Database model design",
            description=f"Design and implement the {request.database} database schema",
            tasks=[
                "Define data models",
                "Create migration files",
                "Configure ORM/ODM",
                "Create seed data",
            ],
            labels=["database", "priority-high"],
        ),
        WorkItem(
            title="API endpoint implementation",
            description="Implement the RESTful API endpoints",
            tasks=list(request.api_endpoints) or [
                "Implement CRUD endpoints",
                "Input validation middleware",
                "Error handling",
                "API documentation",
            ],
            labels=["api", "priority-high"],
        ),
        WorkItem(
            title="Business logic implementation",
            description="Implement the core business logic",
            tasks=list(request.features),
            labels=["feature", "priority-medium"],
        ),
        WorkItem(
            title="Test code",
            description="Write unit and integration tests",
            tasks=[
                "Write unit tests",
                "Write integration tests",
                "Write API tests",
                "Reach at least 80% test coverage",
            ],
            labels=["testing", "priority-medium"],
        ),
        WorkItem(
            title="Deployment environment setup",
            description=f"Set up the {request.deployment_target} deployment environment",
            tasks=[
                "Write Dockerfile",
                "Set up CI/CD pipeline",
                "Write per-environment configuration",
                "Set up monitoring",
            ],
            labels=["deployment", "priority-low"],
        ),
    ]


async def plan_work_items(
    generator: TextGenerator, request: ServiceRequest, extra_instructions: str | None = None
) -> List[WorkItem]:
    """Ask the architect persona for a work breakdown, falling back to the fixed plan.

    Returns:
        Non-empty list of work items
    """
    logger.info(f"Planning work breakdown for {request.name}")
    prompt = build_planning_prompt(request, extra_instructions)

    try:
        breakdown = await generator.generate_structured(prompt, Persona.ARCHITECT, WorkBreakdown)
    except GenerationError as e:
        logger.warning(f"Planning generation failed, using fallback plan: {e}")
        return generate_fallback_plan(request)

    logger.info(f"Architect persona proposed {len(breakdown.root)} work item(s)")
    return breakdown.root


def render_work_item_body(item: WorkItem) -> str:
    """Issue body for a work item: description, task checklist, success criteria."""
    tasks = "\n".join(f"- [ ] {task}" for task in item.tasks)
    criteria = "\n".join(f"- {line}" for line in SUCCESS_CRITERIA)
    return (
        f"## Description\n{item.description}\n\n"
        f"## Tasks\n{tasks}\n\n"
        f"## Success criteria\n{criteria}\n"
    )
