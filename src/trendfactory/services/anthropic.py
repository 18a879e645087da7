"""Anthropic Claude API client wrapper."""

import logging
import time
from typing import Optional

from anthropic import Anthropic, APIError, APIConnectionError, RateLimitError

from ..config import config
from ..errors import ExternalServiceError

logger = logging.getLogger(__name__)


class AnthropicClient:
    """Client wrapper for Anthropic Claude API with retry logic."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        """Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to config.default_model.
            max_retries: Maximum number of attempts for transient failures.
            retry_delay: Base delay between retries in seconds (exponential backoff).
        """
        self._api_key = api_key or config.anthropic_api_key
        if not self._api_key:
            raise ValueError(
                "Anthropic API key not provided. Set ANTHROPIC_API_KEY env var."
            )

        self._client = Anthropic(api_key=self._api_key)
        self._model = model or config.default_model
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    def create_message(
        self,
        prompt: str,
        max_tokens: int = 4096,
        system: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        """Create a message using Claude.

        Rate-limit and connection errors are retried with exponential backoff;
        any other API error fails immediately.

        Returns:
            The text content of Claude's response.

        Raises:
            ExternalServiceError: If the request fails or the response is empty.
        """
        messages = [{"role": "user", "content": prompt}]
        kwargs = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": messages,
            "temperature": min(1.0, max(0.0, temperature)),
        }
        if system:
            kwargs["system"] = system

        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries):
            try:
                logger.debug(
                    f"Sending request to Claude (attempt {attempt + 1}/{self._max_retries})"
                )
                response = self._client.messages.create(**kwargs)

                text = "".join(
                    block.text for block in response.content if hasattr(block, "text")
                )
                if not text.strip():
                    raise ExternalServiceError("Empty response from Claude")
                return text

            except (RateLimitError, APIConnectionError) as e:
                last_error = e
                if attempt == self._max_retries - 1:
                    break
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"{type(e).__name__}: {e}. Retrying in {delay:.1f}s...")
                time.sleep(delay)

            except APIError as e:
                logger.error(f"API error: {e}")
                raise ExternalServiceError(f"Claude API error: {e}") from e

        raise ExternalServiceError(
            f"Claude request failed after {self._max_retries} attempts: {last_error}"
        ) from last_error


def extract_json(response: str) -> str:
    """Extract a JSON document from a response that may contain markdown or prose."""
    # Fenced code blocks first
    if "```" in response:
        start = response.find("```") + 3
        if response[start:start + 4].lower() == "json":
            start += 4
        end = response.find("```", start)
        if end > start:
            return response[start:end].strip()

    # Otherwise the first balanced object or array
    for start_char, end_char in [("{", "}"), ("[", "]")]:
        start = response.find(start_char)
        if start == -1:
            continue
        depth = 0
        in_string = False
        escaped = False
        for i, char in enumerate(response[start:], start):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == start_char:
                depth += 1
            elif char == end_char:
                depth -= 1
                if depth == 0:
                    return response[start:i + 1]

    # Let json.loads fail with a meaningful error
    return response.strip()
