"""Base agent abstraction."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..config import config
from ..errors import AgentOutputError
from ..services.anthropic import AnthropicClient, extract_json

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
ModelT = TypeVar("ModelT", bound=BaseModel)


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for production agents.

    An agent takes plain input data and returns a delta model. It never reads
    or writes the project state.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the agent's name."""
        ...

    @abstractmethod
    async def run(self, input_data: InputT) -> OutputT:
        """Execute the agent's main task.

        Args:
            input_data: Input data for the agent.

        Returns:
            Structured output from the agent.
        """
        ...


class ClaudeAgent(BaseAgent[InputT, OutputT]):
    """Base class for agents that use Claude for generation.

    Subclasses define `system_prompt` and build their own user prompts.
    """

    def __init__(
        self,
        client: Optional[AnthropicClient] = None,
        model: Optional[str] = None,
    ) -> None:
        """Initialize the agent.

        Args:
            client: AnthropicClient instance. Created if not provided.
            model: Model to use. Defaults to config.default_model.
        """
        super().__init__()
        self._model = model or config.default_model
        self._client = client or AnthropicClient(model=self._model)

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """Return the system prompt for this agent."""
        ...

    @property
    def model(self) -> str:
        """Return the model being used."""
        return self._model

    async def _create_message(
        self,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> str:
        """Create a message using the agent's client and system prompt.

        The blocking SDK call runs in a worker thread.

        Args:
            prompt: The user prompt to send.
            max_tokens: Maximum tokens in the response.
            temperature: Sampling temperature.

        Returns:
            The text content of Claude's response.
        """
        self._logger.debug(f"Creating message with prompt length: {len(prompt)}")

        try:
            response = await asyncio.to_thread(
                self._client.create_message,
                prompt=prompt,
                max_tokens=max_tokens,
                system=self.system_prompt,
                temperature=temperature,
            )
        except Exception as e:
            self._logger.error(f"Error creating message: {e}")
            raise

        self._logger.debug(f"Received response of length: {len(response)}")
        return response

    async def _generate_json(
        self,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> Any:
        """Send a prompt and parse the JSON document in the reply.

        Raises:
            AgentOutputError: If the reply contains no parseable JSON.
        """
        response = await self._create_message(prompt, max_tokens, temperature)
        try:
            return json.loads(extract_json(response))
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse JSON response: {e}")
            raise AgentOutputError(
                f"{self.name} returned invalid JSON: {e}", payload=response
            ) from e

    def _validate(self, model: Type[ModelT], data: Any) -> ModelT:
        """Validate raw model output into ``model``.

        Raises:
            AgentOutputError: With field paths and the raw payload.
        """
        try:
            return model.model_validate(data)
        except ValidationError as e:
            error = AgentOutputError.from_validation_error(
                f"{self.name} output validation failed", e, payload=data
            )
            self._logger.error(f"{error}\nRaw output:\n{error.payload_json()}")
            raise error from e
