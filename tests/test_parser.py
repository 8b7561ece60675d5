"""Tests for the service request issue parser."""

from orchestrator.models import ServiceRequest
from orchestrator.parser import (
    Section,
    derive_service_name,
    match_header,
    parse_issue_body,
    render_issue_body,
)


class TestDeriveServiceName:
    """Test repository name derivation from titles."""

    def test_prefix_removed_and_hyphenated(self):
        assert derive_service_name("[Service] My Cool App") == "my-cool-app"

    def test_whitespace_runs_collapse(self):
        assert derive_service_name("[Service]   Order \t  Tracker  ") == "order-tracker"

    def test_title_without_prefix(self):
        assert derive_service_name("Billing Gateway") == "billing-gateway"

    def test_empty_title(self):
        assert derive_service_name("") == ""


class TestMatchHeader:
    """Test section header recognition."""

    def test_korean_headers(self):
        assert match_header("### 서비스 이름") == Section.NAME
        assert match_header("### API 엔드포인트") == Section.API_ENDPOINTS

    def test_english_aliases(self):
        assert match_header("### Service Description") == Section.DESCRIPTION
        assert match_header("### Deployment") == Section.DEPLOYMENT

    def test_unknown_header(self):
        assert match_header("### Notes") is None
        assert match_header("plain text") is None


class TestParseIssueBody:
    """Test parsing of sectioned request bodies."""

    def test_full_request(self, sample_issue_body):
        request = parse_issue_body(sample_issue_body, "[Service] ignored title")

        assert request.name == "todo-api"
        assert request.description == "할 일 관리를 위한 REST API 서비스"
        assert request.language == "Python"
        assert request.framework == "FastAPI"
        assert request.database == "PostgreSQL"
        assert request.features == ["할 일 생성", "할 일 완료 처리"]
        assert request.api_endpoints == ["GET /todos", "POST /todos"]
        assert request.deployment_target == "Docker"

    def test_name_derived_from_title(self):
        body = "### 서비스 설명\n\nA shop\n"
        request = parse_issue_body(body, "[Service] My Cool App")

        assert request.name == "my-cool-app"
        assert request.description == "A shop"

    def test_lines_before_first_header_dropped(self):
        body = "Intro text\nmore intro\n### Framework\nDjango\n"
        request = parse_issue_body(body, "x")

        assert request.framework == "Django"
        assert request.description == ""

    def test_unrecognised_header_content_stays_in_previous_section(self):
        body = "### Framework\nFlask\n### Notes\nextra words\n"
        request = parse_issue_body(body, "x")

        assert request.framework == "Flask extra words"

    def test_list_sections_keep_only_bullets(self):
        body = "### Features\n- login\nnot a bullet\n-  logout \n"
        request = parse_issue_body(body, "x")

        assert request.features == ["login", "logout"]

    def test_no_response_placeholder_skipped(self):
        body = "### Database\n\n_No response_\n"
        request = parse_issue_body(body, "[Service] api")

        assert request.database == ""

    def test_empty_body_defaults(self):
        request = parse_issue_body("", "[Service] Empty")

        assert request == ServiceRequest(name="empty")


class TestRenderIssueBody:
    """Test rendering requests back into the body format."""

    def test_parse_of_render_is_identity(self):
        request = ServiceRequest(
            name="inventory",
            description="Tracks stock levels",
            language="Go",
            framework="Gin",
            database="MySQL",
            features=["stock alerts", "CSV import"],
            api_endpoints=["GET /items", "PUT /items/{id}"],
            deployment_target="Kubernetes",
        )

        assert parse_issue_body(render_issue_body(request), "") == request

    def test_canonical_headers_used(self):
        body = render_issue_body(ServiceRequest(name="svc"))

        assert body.startswith("### 서비스 이름\n\nsvc\n")
        assert "### 배포 방식" in body

    def test_text_starting_with_hash_is_not_preserved(self):
        request = ServiceRequest(name="notes", description="#1 tool for notes", language="Go")

        parsed = parse_issue_body(render_issue_body(request), "")

        assert parsed.description == ""
        assert parsed.language == "Go"
