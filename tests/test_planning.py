"""Tests for work breakdown planning."""

import pytest

from orchestrator.integrations.ai import GenerationError
from orchestrator.integrations.prompts import Persona
from orchestrator.models import ServiceRequest, WorkItem
from orchestrator.planning import (
    WorkBreakdown,
    generate_fallback_plan,
    plan_work_items,
    render_work_item_body,
)


@pytest.fixture
def request_with_details():
    return ServiceRequest(
        name="todo-api",
        framework="FastAPI",
        database="PostgreSQL",
        features=["create todos", "complete todos"],
        api_endpoints=["GET /todos", "POST /todos"],
        deployment_target="Docker",
    )


class TestFallbackPlan:
    """Test the deterministic fallback plan."""

    def test_six_items_with_titles(self, request_with_details):
        items = generate_fallback_plan(request_with_details)

        assert len(items) == 6
        assert all(item.title.strip() for item in items)
        assert [item.labels[0] for item in items] == [
            "setup", "database", "api", "feature", "testing", "deployment"
        ]

    def test_deterministic(self, request_with_details):
        assert generate_fallback_plan(request_with_details) == generate_fallback_plan(request_with_details)

    def test_endpoints_and_features_used(self, request_with_details):
        items = generate_fallback_plan(request_with_details)

        assert items[2].tasks == ["GET /todos", "POST /todos"]
        assert items[3].tasks == ["create todos", "complete todos"]

    def test_empty_request(self):
        items = generate_fallback_plan(ServiceRequest())

        assert len(items) == 6
        assert len(items[2].tasks) == 4
        assert items[3].tasks == []


class TestWorkBreakdown:
    """Test validation of model planning payloads."""

    def test_bare_array(self):
        breakdown = WorkBreakdown.model_validate([{"title": "Setup", "labels": ["setup"]}])
        assert breakdown.root[0].title == "Setup"

    def test_wrapped_array(self):
        breakdown = WorkBreakdown.model_validate({"issues": [{"title": "Setup"}]})
        assert len(breakdown.root) == 1

    def test_empty_list_rejected(self):
        with pytest.raises(ValueError):
            WorkBreakdown.model_validate([])


class TestPlanWorkItems:
    """Test planning with fallback."""

    @pytest.mark.anyio
    async def test_uses_model_plan(self, mock_generator, request_with_details):
        planned = [WorkItem(title="Only item")]
        mock_generator.generate_structured.return_value = WorkBreakdown(planned)

        items = await plan_work_items(mock_generator, request_with_details)

        assert items == planned
        args = mock_generator.generate_structured.call_args.args
        assert args[1] is Persona.ARCHITECT
        assert args[2] is WorkBreakdown
        assert "todo-api" in args[0]

    @pytest.mark.anyio
    async def test_falls_back_on_generation_error(self, mock_generator, request_with_details):
        mock_generator.generate_structured.side_effect = GenerationError("bad json")

        items = await plan_work_items(mock_generator, request_with_details)

        assert items == generate_fallback_plan(request_with_details)


def test_render_work_item_body():
    body = render_work_item_body(WorkItem(title="T", description="Do it", tasks=["a", "b"]))

    assert body.startswith("## Description\nDo it\n")
    assert "- [ ] a\n- [ ] b" in body
    assert "## Success criteria" in body
