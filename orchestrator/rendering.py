"""Markdown rendering of QA review verdicts and follow-up issues."""

from typing import List

from orchestrator.models import PullRequest, ReviewFinding, ReviewVerdict, Severity

APPROVE = "APPROVE"
REQUEST_CHANGES = "REQUEST_CHANGES"

SEVERITY_HEADINGS = {
    Severity.CRITICAL: "🔴 Critical",
    Severity.MAJOR: "🟡 Major",
    Severity.MINOR: "🟢 Minor",
}

SERIOUS_SEVERITIES = frozenset({Severity.CRITICAL, Severity.MAJOR})


def review_event(verdict: ReviewVerdict) -> str:
    """Platform review event matching the verdict."""
    return APPROVE if verdict.approved else REQUEST_CHANGES


def group_findings(findings: List[ReviewFinding]) -> dict:
    """Group findings by severity, critical first, keeping order within a group."""
    return {
        severity: [f for f in findings if f.severity == severity]
        for severity in Severity
    }


def serious_findings(verdict: ReviewVerdict) -> List[ReviewFinding]:
    """Critical and major findings, in reported order."""
    return [f for f in verdict.issues if f.severity in SERIOUS_SEVERITIES]


def _bullets(items: List[str]) -> str:
    return "".join(f"- {item}\n" for item in items)


def render_review_report(verdict: ReviewVerdict) -> str:
    """Render a verdict as the Markdown body of a pull request review."""
    parts = ["## 🤖 QA Review\n"]
    parts.append("### ✅ Approved\n" if verdict.approved else "### ❌ Changes requested\n")

    if verdict.general_comments:
        parts.append(f"**General comments:**\n{verdict.general_comments}\n")

    if verdict.positive_points:
        parts.append(f"### 👍 Done well\n{_bullets(verdict.positive_points)}")

    if verdict.needs_work:
        parts.append(f"### 🔧 Needs work\n{_bullets(verdict.needs_work)}")

    if verdict.issues:
        parts.append(f"### 🐛 Findings ({len(verdict.issues)})\n")
        for severity, findings in group_findings(verdict.issues).items():
            if not findings:
                continue
            lines = [f"#### {SEVERITY_HEADINGS[severity]} ({len(findings)})"]
            for finding in findings:
                location = finding.file or "general"
                if finding.line is not None:
                    location = f"{location}:{finding.line}"
                lines.append(f"- **{location}**: {finding.description}")
                if finding.suggestion:
                    lines.append(f"  - 💡 Suggestion: {finding.suggestion}")
            parts.append("\n".join(lines) + "\n")

    return "\n".join(parts)


def render_followup_issue(pr: PullRequest, findings: List[ReviewFinding]) -> tuple:
    """Title and body of the follow-up issue filed for serious findings."""
    title = f"[QA] PR #{pr.number} needs changes"

    sections = []
    for index, finding in enumerate(findings, start=1):
        sections.append(
            f"#### {index}. {finding.description}\n"
            f"- **File**: {finding.file or 'n/a'}\n"
            f"- **Severity**: {finding.severity.value}\n"
            f"- **Suggestion**: {finding.suggestion or 'none'}\n"
        )

    body = (
        f"## Problems found while reviewing PR #{pr.number}\n\n"
        f"### Related PR\n- #{pr.number}: {pr.title}\n\n"
        f"### Problems\n" + "\n".join(sections) + "\n"
        "### Resolution\n"
        "Fix the problems above and push additional commits to the same PR.\n"
    )
    return title, body
