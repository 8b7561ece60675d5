"""Persona prompt construction for the planning, development and review steps."""

import json
from enum import Enum
from typing import List, Optional

from orchestrator.models import DiffFile, Issue, PullRequest, ServiceRequest


class Persona(str, Enum):
    """Prompting styles the text generator is asked to adopt."""

    ARCHITECT = "architect"
    DEVELOPER = "developer"
    QA = "qa"


PLANNING_FORMAT = """\
Respond with a JSON array (optionally inside a ```json code block) where each element is:
{
  "title": "issue title",
  "description": "detailed description",
  "tasks": ["concrete task", "..."],
  "labels": ["setup", "priority-high"]
}"""

DEVELOPMENT_FORMAT = """\
Respond with JSON (optionally inside a ```json code block) of this shape:
{
  "files": [
    {
      "path": "src/example.js",
      "content": "full file content",
      "action": "create"
    }
  ],
  "commitMessage": "commit message",
  "branchName": "feature/branch-name"
}
"action" must be one of "create", "update" or "delete"; "content" is the complete
new file content and may be omitted for "delete"."""

REVIEW_FORMAT = """\
Respond with JSON (optionally inside a ```json code block) of this shape:
{
  "approved": true,
  "issues": [
    {
      "severity": "critical",
      "file": "path/to/file",
      "line": 42,
      "description": "what is wrong",
      "suggestion": "how to fix it"
    }
  ],
  "generalComments": "overall comments",
  "positivePoints": ["what was done well"],
  "needsWork": ["what needs improvement"]
}
"severity" must be one of "critical", "major" or "minor"."""


def _finish(prompt: str, extra_instructions: Optional[str]) -> str:
    if extra_instructions:
        prompt = f"{prompt}\n\n{extra_instructions.strip()}"
    return prompt


def _bullet_join(items: List[str]) -> str:
    return ", ".join(items) if items else "(none)"


def build_planning_prompt(request: ServiceRequest, extra_instructions: Optional[str] = None) -> str:
    """Architect persona prompt asking for a work breakdown of a service."""
    prompt = f"""You are the architect persona. Write a detailed feature specification and
implementation plan for the following service.

Service:
- Name: {request.name}
- Description: {request.description}
- Language: {request.language}
- Framework: {request.framework}
- Database: {request.database}
- Main features: {_bullet_join(request.features)}
- API endpoints: {_bullet_join(request.api_endpoints)}
- Deployment: {request.deployment_target}

Break the work into implementation issues covering, in order:
1. Project setup
2. Database model design and implementation
3. API endpoint implementation
4. Business logic implementation
5. Test code
6. Deployment environment

For every issue give a title, a detailed description, the concrete tasks to
implement and the success criteria (as tasks).

{PLANNING_FORMAT}"""
    return _finish(prompt, extra_instructions)


def build_development_prompt(issue: Issue, extra_instructions: Optional[str] = None) -> str:
    """Developer persona prompt asking for the file edits that resolve an issue."""
    prompt = f"""You are the developer persona. Write the code that resolves the following issue.

Issue #{issue.number}: {issue.title}
Issue body:
{issue.body or "(empty)"}

Follow these requirements:
1. Clean, maintainable code
2. Proper error handling
3. Unit tests where they make sense
4. Comments where the code is not obvious
5. SOLID principles

{DEVELOPMENT_FORMAT}"""
    return _finish(prompt, extra_instructions)


def build_review_prompt(
    pr: PullRequest, files: List[DiffFile], extra_instructions: Optional[str] = None
) -> str:
    """QA persona prompt asking for a structured review of a pull request."""
    changed = json.dumps([f.model_dump() for f in files], indent=2, ensure_ascii=False)
    prompt = f"""You are the QA persona. Review the following pull request.

PR title: {pr.title}
PR description: {pr.body or "(empty)"}

Changed files:
{changed}

Review from these angles:
1. Code quality (readability, maintainability)
2. Possible bugs
3. Security vulnerabilities
4. Performance issues
5. Test coverage
6. Adherence to best practices

{REVIEW_FORMAT}"""
    return _finish(prompt, extra_instructions)
