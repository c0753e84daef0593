"""Decision oracle port and its OpenAI-compatible adapter.

The oracle turns a ``WorldSnapshot`` into exactly one ``DecisionPayload``.
It makes a single request with an explicit timeout and never retries;
retry policy belongs to the caller of the turn controller
(``lostworld.engine.runner``).

Every failure to obtain a parseable decision surfaces as a subclass of
``OracleTransportError``.

Example:
    >>> oracle = OpenAIDecisionOracle()
    >>> payload = oracle.decide(snapshot)  # doctest: +SKIP
"""

from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from lostworld.core.config import OracleSettings, get_settings
from lostworld.core.exceptions import (
    ConfigurationError,
    OracleConnectionError,
    OracleRateLimitError,
    OracleResponseError,
    OracleTimeoutError,
    OracleTransportError,
)
from lostworld.core.logging import get_logger
from lostworld.engine.snapshot import WorldSnapshot
from lostworld.models.decision import DecisionPayload


logger = get_logger(__name__)


CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)

DECISION_SYSTEM_PROMPT = """You are the turn progression engine of a narrative role-playing game.
Read the world state and decide what happens in the world during this turn.

Respond with a single JSON object and nothing else. It must match this JSON schema:

{schema}

Rules:
- Every change must carry a changeReason.
- turnGoal and turnProgression are required.
- At most {max_generations} entries in entityGeneration.
- Only items and NPCs can be moved.
- To add a new attribute, give type, description and reference (and newValue for
  integer/number). To update an existing attribute, give only newValue."""


def create_openai_client(settings: OracleSettings) -> Any:
    """Build an OpenAI client for the configured provider.

    The client never retries on its own and applies the configured timeout.

    Raises:
        ConfigurationError: If the openai package is not installed.
    """
    try:
        from openai import OpenAI
    except ImportError as exc:
        raise ConfigurationError(
            "openai package not installed",
            config_key="oracle.provider",
        ) from exc

    headers = None
    if settings.provider == "openrouter":
        headers = {"X-Title": "LostWorld"}
    return OpenAI(
        api_key=settings.api_key,
        base_url=settings.resolved_base_url,
        timeout=settings.timeout_seconds,
        max_retries=0,
        default_headers=headers,
    )


def parse_decision_text(text: str) -> DecisionPayload:
    """Parse the oracle's raw answer into a wire payload.

    Tolerates a surrounding markdown code fence.

    Args:
        text: Raw response content.

    Returns:
        The parsed payload.

    Raises:
        OracleResponseError: If the text is not a decision-shaped JSON object.
    """
    if not text or not text.strip():
        raise OracleResponseError("Oracle returned an empty response")

    match = CODE_FENCE.match(text)
    body = match.group(1) if match else text.strip()

    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise OracleResponseError(
            f"Oracle response is not valid JSON: {exc.msg}",
            details={"preview": body[:200]},
        ) from exc

    if not isinstance(data, dict):
        raise OracleResponseError(
            "Oracle response is not a JSON object",
            details={"json_type": type(data).__name__},
        )

    try:
        return DecisionPayload.model_validate(data)
    except ValidationError as exc:
        raise OracleResponseError(
            "Oracle response does not match the decision shape",
            details={"errors": exc.error_count()},
        ) from exc


class DecisionOracle(ABC):
    """Port for the external reasoning service."""

    @abstractmethod
    def decide(self, snapshot: WorldSnapshot) -> DecisionPayload:
        """Obtain one decision for a snapshot.

        Raises:
            OracleTransportError: If no parseable decision was obtained.
        """


class OpenAIDecisionOracle(DecisionOracle):
    """Decision oracle backed by an OpenAI-compatible chat completions API.

    Attributes:
        settings: Connection and sampling settings.
        max_generations: Spawn limit stated in the system prompt.
    """

    def __init__(
        self,
        *,
        settings: OracleSettings | None = None,
        max_generations: int | None = None,
        client: Any = None,
    ) -> None:
        """Initialize the oracle.

        Args:
            settings: Oracle settings; the application settings by default.
            max_generations: Spawn limit; the engine setting by default.
            client: Pre-built OpenAI client (mainly for tests).
        """
        app_settings = get_settings() if settings is None or max_generations is None else None
        self.settings = settings or app_settings.oracle
        self.max_generations = (
            max_generations if max_generations is not None else app_settings.engine.max_entity_generations
        )
        self._client = client

        logger.info(
            "Decision oracle initialized",
            provider=self.settings.provider,
            model=self.settings.model,
            timeout_seconds=self.settings.timeout_seconds,
        )

    def _get_client(self) -> Any:
        """Get or create the OpenAI client."""
        if self._client is None:
            self._client = create_openai_client(self.settings)
        return self._client

    def system_prompt(self) -> str:
        """System prompt carrying the response-shape constraint."""
        return DECISION_SYSTEM_PROMPT.format(
            schema=json.dumps(DecisionPayload.response_schema(), indent=2),
            max_generations=self.max_generations,
        )

    def decide(self, snapshot: WorldSnapshot) -> DecisionPayload:
        """Send one decision request for a snapshot.

        Args:
            snapshot: World snapshot for the turn.

        Returns:
            The parsed decision payload.

        Raises:
            OracleTimeoutError: If the request timed out.
            OracleRateLimitError: If the provider rate-limited the request.
            OracleConnectionError: If the provider could not be reached.
            OracleResponseError: If the answer is not a decision object.
            OracleTransportError: For any other provider error.
        """
        from openai import (
            APIConnectionError,
            APIStatusError,
            APITimeoutError,
            RateLimitError,
        )

        client = self._get_client()
        provider = self.settings.provider
        model = self.settings.model

        logger.debug("Requesting decision", turn=snapshot.turn, model=model)
        try:
            response = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": self.system_prompt()},
                    {"role": "user", "content": snapshot.to_prompt_text()},
                ],
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                response_format={"type": "json_object"},
                timeout=self.settings.timeout_seconds,
            )
        except APITimeoutError as exc:
            raise OracleTimeoutError(
                f"Oracle did not answer within {self.settings.timeout_seconds}s",
                model=model,
                provider=provider,
            ) from exc
        except RateLimitError as exc:
            raise OracleRateLimitError(
                "Oracle provider rate limit exceeded",
                retry_after_seconds=_retry_after(exc),
                model=model,
                provider=provider,
            ) from exc
        except APIConnectionError as exc:
            raise OracleConnectionError(
                f"Failed to connect to oracle provider: {exc}",
                model=model,
                provider=provider,
            ) from exc
        except APIStatusError as exc:
            raise OracleTransportError(
                f"Oracle API error: {exc}",
                model=model,
                provider=provider,
                details={"status_code": exc.status_code},
            ) from exc

        if not response.choices:
            raise OracleResponseError("Oracle returned no choices", model=model, provider=provider)
        content = response.choices[0].message.content or ""
        payload = parse_decision_text(content)

        logger.info(
            "Decision received",
            turn=snapshot.turn,
            model=model,
            generations=len(payload.entity_generation),
            moves=len(payload.entity_moves),
            attribute_changes=len(payload.attribute_changes),
        )
        return payload


def _retry_after(exc: Any) -> float | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None) or {}
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


__all__ = [
    "CODE_FENCE",
    "DECISION_SYSTEM_PROMPT",
    "create_openai_client",
    "parse_decision_text",
    "DecisionOracle",
    "OpenAIDecisionOracle",
]
