"""Public interface for the chat model adapter."""

from __future__ import annotations

from .client import ChatClient, LlmAPIError
from .generator import LlmCandidateGenerator
from .oracle import LlmConsistencyOracle
from .schema import CandidateList, ChatCompletionResponse, ChatMessage, ConsistencyVerdict

__all__ = [
    "CandidateList",
    "ChatClient",
    "ChatCompletionResponse",
    "ChatMessage",
    "ConsistencyVerdict",
    "LlmAPIError",
    "LlmCandidateGenerator",
    "LlmConsistencyOracle",
]
