"""Utility modules for the orchestrator."""
