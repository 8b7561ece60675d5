"""Service Orchestrator.

Bootstraps service repositories from structured request issues and lets an
AI persona implement issues and review pull requests on GitHub.
"""

__version__ = "0.1.0"
__author__ = "code-orchestration"
