"""Pydantic AI provider implementation.

Wraps a Pydantic AI Agent and normalizes usage and timing into
InvocationResult.
"""

import time
from typing import Any, TypeVar

from pydantic_ai import Agent
from pydantic_ai.models import KnownModelName, Model

from boop.providers.base import AgentProvider, InvocationResult, TokenUsage

OutputT = TypeVar("OutputT")


class PydanticAIProvider(AgentProvider[OutputT]):
    """Pydantic AI implementation of AgentProvider.

    Example:
        provider = PydanticAIProvider(
            model="anthropic:claude-opus-4-6",
            output_type=str,
            system_prompt="You are an adversarial security reviewer.",
        )
    """

    def __init__(
        self,
        model: Model | KnownModelName | str,
        output_type: type[OutputT],
        system_prompt: str = "",
    ) -> None:
        """Initialize provider with model and output type.

        Args:
            model: Pydantic AI model object or shorthand string ("provider:model")
            output_type: Type of the agent output (str, BaseModel subclass, ...)
            system_prompt: System prompt for every invocation
        """
        self._agent: Agent[None, OutputT] = Agent(
            model=model, output_type=output_type, system_prompt=system_prompt
        )
        self._model_name, self._provider_name = self._parse_model_name(model)

    @staticmethod
    def _parse_model_name(model: Model | KnownModelName | str) -> tuple[str, str]:
        """Split a model identifier into (model_name, provider_name)."""
        if isinstance(model, str):
            if ":" in model:
                provider, model_name = model.split(":", 1)
                return (model_name, provider)
            return (model, "unknown")

        return (model.model_name, model.system)

    async def invoke(self, prompt: str, **kwargs: Any) -> InvocationResult[OutputT]:
        """Run the agent once and return output with usage and timing."""
        start = time.monotonic()
        result = await self._agent.run(prompt, **kwargs)
        duration_ms = int((time.monotonic() - start) * 1000)

        run_usage = result.usage()
        usage = TokenUsage(
            input_tokens=run_usage.input_tokens or 0,
            output_tokens=run_usage.output_tokens or 0,
            total_tokens=run_usage.total_tokens or 0,
            requests=run_usage.requests or 1,
        )

        return InvocationResult(
            output=result.output,
            usage=usage,
            model=self._model_name,
            provider=self._provider_name,
            duration_ms=duration_ms,
        )
