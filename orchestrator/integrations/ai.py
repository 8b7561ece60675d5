"""
Text-generation integration.

Sends single-turn prompts to the Anthropic Messages API and turns the free
text answer into validated structured payloads. One request per call: the
SDK's own retry loop is disabled, and any failure (transport, missing or
malformed JSON, schema mismatch) surfaces as GenerationError.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, TypeVar

import anthropic
from pydantic import TypeAdapter, ValidationError

from ..models import AIConfig
from ..utils.logger import get_logger
from .prompts import Persona

logger = get_logger(__name__)

T = TypeVar("T")

JSON_FENCE_PATTERN = re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)
PLAIN_FENCE_PATTERN = re.compile(r"```\s*\n(.*?)\n\s*```", re.DOTALL)


class GenerationError(Exception):
    """Exception raised when a generation step cannot produce a usable payload."""

    def __init__(self, message: str, raw_output: str | None = None):
        super().__init__(message)
        self.raw_output = raw_output


@dataclass(frozen=True)
class GenerationSettings:
    """Per-persona request parameters."""

    model: str
    max_tokens: int
    temperature: float


def settings_for(config: AIConfig, persona: Persona) -> GenerationSettings:
    """Resolve model, token budget and temperature for a persona."""
    if persona is Persona.ARCHITECT:
        return GenerationSettings(config.model, config.planning_max_tokens, config.planning_temperature)
    if persona is Persona.DEVELOPER:
        return GenerationSettings(
            config.model, config.development_max_tokens, config.development_temperature
        )
    return GenerationSettings(config.model, config.review_max_tokens, config.review_temperature)


def extract_json_payload(text: str) -> Any:
    """
    Extract the JSON payload from a model answer.

    A fenced ```json block wins; otherwise the whole answer must be JSON,
    and as a last resort an untagged fenced block is tried.

    Raises:
        GenerationError: If no JSON can be decoded
    """
    match = JSON_FENCE_PATTERN.search(text)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise GenerationError(f"Model fenced block is not valid JSON: {e}", raw_output=text) from e

    try:
        return json.loads(text.strip())
    except json.JSONDecodeError as e:
        error = e

    plain = PLAIN_FENCE_PATTERN.search(text)
    if plain:
        try:
            return json.loads(plain.group(1))
        except json.JSONDecodeError:
            pass

    raise GenerationError(f"Model response is not valid JSON: {error}", raw_output=text) from error


class TextGenerator:
    """
    Anthropic-backed text generator used by the architect, developer and QA personas.
    """

    def __init__(self, config: AIConfig, client: anthropic.AsyncAnthropic | None = None):
        """Initialize the generator.

        Args:
            config: Text-generation configuration
            client: Pre-built client (tests); built from config when omitted
        """
        self.config = config
        self._client = client
        self.logger = get_logger(f"{__name__}.TextGenerator")

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.config.api_key:
                raise GenerationError(
                    "No API key configured for text generation. Please set ANTHROPIC_API_KEY"
                )
            self._client = anthropic.AsyncAnthropic(
                api_key=self.config.api_key,
                max_retries=0,
                timeout=self.config.request_timeout,
            )
        return self._client

    async def complete(self, prompt: str, persona: Persona) -> str:
        """
        Send one user message and return the concatenated text of the answer.

        Raises:
            GenerationError: On any API failure or an empty answer
        """
        settings = settings_for(self.config, persona)
        self.logger.info(f"Requesting {persona.value} completion from {settings.model}")

        try:
            response = await self.client.messages.create(
                model=settings.model,
                max_tokens=settings.max_tokens,
                temperature=settings.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise GenerationError(f"Text generation request failed: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise GenerationError("Text generation returned an empty answer")

        self.logger.debug(
            f"{persona.value} completion finished ({len(text)} chars, stop={response.stop_reason})"
        )
        return text

    async def generate_structured(self, prompt: str, persona: Persona, schema: Any) -> Any:
        """
        Complete a prompt and validate the JSON payload against ``schema``.

        Args:
            prompt: Prompt text
            persona: Persona whose request settings apply
            schema: Pydantic model or type accepted by ``TypeAdapter``

        Returns:
            Validated payload

        Raises:
            GenerationError: If the call, JSON extraction or validation fails
        """
        text = await self.complete(prompt, persona)
        payload = extract_json_payload(text)
        return validate_payload(payload, schema, raw_output=text)


def validate_payload(payload: Any, schema: Any, raw_output: str | None = None) -> Any:
    """Validate a decoded payload, mapping schema mismatches onto GenerationError."""
    try:
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as e:
        raise GenerationError(
            f"Model output does not match the expected schema: {e.error_count()} error(s)\n{e}",
            raw_output=raw_output,
        ) from e


__all__ = [
    "GenerationError",
    "GenerationSettings",
    "TextGenerator",
    "extract_json_payload",
    "settings_for",
    "validate_payload",
]
