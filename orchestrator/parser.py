"""Service request parsing from sectioned issue bodies.

Request issues are written from an issue form whose fields render as
``### <heading>`` sections. Parsing is a small state machine: a recognised
heading moves the cursor to its section, every other non-blank line is
content for the current section. Lines seen before the first recognised
heading, and ``#`` lines that are not recognised headings, are dropped.
Content under an unrecognised heading therefore lands in whichever section
was active before it.
"""

import re
from enum import Enum

from orchestrator.models import ServiceRequest
from orchestrator.utils.logger import get_logger

logger = get_logger(__name__)

SERVICE_TITLE_PREFIX = "[Service]"
BULLET_MARKER = "-"
# Issue forms render empty optional fields with this placeholder
NO_RESPONSE = "_No response_"


class Section(str, Enum):
    """Recognised request sections, valued by ServiceRequest field name."""

    NAME = "name"
    DESCRIPTION = "description"
    LANGUAGE = "language"
    FRAMEWORK = "framework"
    DATABASE = "database"
    FEATURES = "features"
    API_ENDPOINTS = "api_endpoints"
    DEPLOYMENT = "deployment_target"


LIST_SECTIONS = frozenset({Section.FEATURES, Section.API_ENDPOINTS})

# First entry per section is the canonical heading used when rendering
HEADER_TABLE: tuple[tuple[str, Section], ...] = (
    ("### 서비스 이름", Section.NAME),
    ("### 서비스 설명", Section.DESCRIPTION),
    ("### 프로그래밍 언어", Section.LANGUAGE),
    ("### 프레임워크", Section.FRAMEWORK),
    ("### 데이터베이스", Section.DATABASE),
    ("### 주요 기능", Section.FEATURES),
    ("### API 엔드포인트", Section.API_ENDPOINTS),
    ("### 배포 방식", Section.DEPLOYMENT),
    ("### Service Name", Section.NAME),
    ("### Service Description", Section.DESCRIPTION),
    ("### Programming Language", Section.LANGUAGE),
    ("### Framework", Section.FRAMEWORK),
    ("### Database", Section.DATABASE),
    ("### Features", Section.FEATURES),
    ("### API Endpoints", Section.API_ENDPOINTS),
    ("### Deployment", Section.DEPLOYMENT),
)


def match_header(line: str) -> Section | None:
    """Return the section a heading line opens, or None."""
    for header, section in HEADER_TABLE:
        if header in line:
            return section
    return None


def derive_service_name(title: str) -> str:
    """Derive a repository name from a request issue title.

    ``"[Service] My Cool App"`` becomes ``"my-cool-app"``.
    """
    name = title.replace(SERVICE_TITLE_PREFIX, "", 1).strip().lower()
    return re.sub(r"\s+", "-", name)


def parse_issue_body(body: str, title: str = "") -> ServiceRequest:
    """Parse a sectioned request body into a ServiceRequest.

    Args:
        body: Raw issue body
        title: Issue title, used to derive the name when no name section is given

    Returns:
        Parsed service request; absent sections keep their defaults
    """
    text_values: dict[Section, list[str]] = {}
    list_values: dict[Section, list[str]] = {section: [] for section in LIST_SECTIONS}
    current: Section | None = None
    dropped = 0

    for line in (body or "").splitlines():
        section = match_header(line)
        if section is not None:
            current = section
            continue

        stripped = line.strip()
        if not stripped or line.startswith("#") or stripped == NO_RESPONSE:
            continue

        if current is None:
            dropped += 1
        elif current in LIST_SECTIONS:
            if stripped.startswith(BULLET_MARKER):
                list_values[current].append(stripped[len(BULLET_MARKER):].strip())
        else:
            text_values.setdefault(current, []).append(stripped)

    if dropped:
        logger.debug(f"Dropped {dropped} line(s) preceding the first recognised section")

    fields: dict[str, object] = {
        section.value: " ".join(parts) for section, parts in text_values.items()
    }
    fields.update({section.value: items for section, items in list_values.items()})

    request = ServiceRequest(**fields)
    if not request.name:
        request.name = derive_service_name(title or "")

    return request


def render_issue_body(request: ServiceRequest) -> str:
    """Render a ServiceRequest back into the sectioned body format.

    Text values whose lines start with "#" do not survive a re-parse: the
    parser reads such lines as markdown headings and skips them.
    """
    canonical: dict[Section, str] = {}
    for header, section in HEADER_TABLE:
        canonical.setdefault(section, header)

    blocks = []
    for section in Section:
        value = getattr(request, section.value)
        if section in LIST_SECTIONS:
            content = "\n".join(f"{BULLET_MARKER} {item}" for item in value)
        else:
            content = value
        blocks.append(f"{canonical[section]}\n\n{content}".rstrip())

    return "\n\n".join(blocks) + "\n"
