"""Integrations with the hosting platform and the text-generation service."""
