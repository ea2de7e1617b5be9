"""Boop providers — LLM invocation layer used by the review agents."""

from boop.providers.base import AgentProvider, InvocationResult, TokenUsage
from boop.providers.pydantic_ai import PydanticAIProvider

__all__ = [
    "AgentProvider",
    "InvocationResult",
    "PydanticAIProvider",
    "TokenUsage",
]
