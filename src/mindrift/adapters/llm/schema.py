"""Pydantic models describing OpenAI-compatible chat completion payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant"]


class LlmBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ChatMessage(LlmBaseModel):
    role: Role
    content: str


class ResponseFormat(LlmBaseModel):
    type: Literal["json_object", "text"] = "json_object"


class ChatCompletionRequest(LlmBaseModel):
    model: str
    messages: list[ChatMessage]
    temperature: float | None = None
    response_format: ResponseFormat | None = None


class ChoiceMessage(LlmBaseModel):
    role: str | None = None
    content: str | None = None


class Choice(LlmBaseModel):
    index: int = 0
    message: ChoiceMessage
    finish_reason: str | None = None


class ChatCompletionResponse(LlmBaseModel):
    id: str | None = None
    model: str | None = None
    choices: list[Choice] = Field(default_factory=list)

    @property
    def content(self) -> str | None:
        for choice in self.choices:
            if choice.message.content and choice.message.content.strip():
                return choice.message.content
        return None


class ErrorDetail(LlmBaseModel):
    message: str
    type: str | None = None
    code: str | int | None = None


class ErrorResponse(LlmBaseModel):
    error: ErrorDetail


class CandidateList(LlmBaseModel):
    """Structured answer expected from the candidate generation prompt."""

    candidates: list[str]

    @field_validator("candidates", mode="after")
    @classmethod
    def _drop_blank_and_duplicates(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        cleaned: list[str] = []
        for candidate in value:
            if not candidate.strip() or candidate in seen:
                continue
            seen.add(candidate)
            cleaned.append(candidate)
        return cleaned


class ConsistencyVerdict(LlmBaseModel):
    """Structured answer expected from the consistency judgment prompt."""

    consistent: bool
    reason: str | None = None
