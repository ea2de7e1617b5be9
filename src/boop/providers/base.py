"""Core provider abstractions.

- TokenUsage: token counts for one invocation
- InvocationResult: output plus usage and timing
- AgentProvider: abstract base class for provider implementations

No pydantic-ai dependency here, so review agents can be tested with a plain
fake provider.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

OutputT = TypeVar("OutputT")


class TokenUsage(BaseModel):
    """Token usage for one invocation. Counts default to 0."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    requests: int = 1

    model_config = ConfigDict(frozen=True)


class InvocationResult(BaseModel, Generic[OutputT]):
    """Result from a provider invocation, generic over the output type."""

    output: OutputT
    usage: TokenUsage
    model: str
    provider: str
    duration_ms: int


class AgentProvider(ABC, Generic[OutputT]):
    """Abstract base class for all agent providers."""

    @abstractmethod
    async def invoke(self, prompt: str, **kwargs: object) -> InvocationResult[OutputT]:
        """Invoke the agent with a user prompt.

        Args:
            prompt: User prompt to send to the agent
            **kwargs: Provider-specific arguments

        Returns:
            InvocationResult with typed output, usage and metadata
        """
        ...
