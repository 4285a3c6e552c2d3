"""HTTP client for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import re
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from mindrift.adapters.http_resilience import ResilienceConfig, ResilientClient

from .schema import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ErrorResponse,
    ResponseFormat,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    import httpx

    from mindrift.config.llm import LlmConfig

    from .schema import ChatMessage

log = getLogger(__name__)

CHAT_COMPLETIONS_PATH = "chat/completions"
_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class LlmAPIError(RuntimeError):
    """Raised when the endpoint fails or answers with an unusable payload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def strip_code_fence(content: str) -> str:
    """Remove a surrounding Markdown code fence some models add around JSON."""

    match = _FENCE_PATTERN.match(content)
    return match.group(1) if match else content.strip()


class ChatClient:
    """Shared connection used by the generator and oracle of one session.

    Use as an async context manager so concurrent oracle calls share one
    connection pool and one rate limiter.
    """

    def __init__(
        self,
        config: LlmConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> ChatClient:
        if self._client is None:
            self._client = self._client_factory(self.config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float | None = None,
        json_mode: bool = True,
    ) -> str:
        """Return the text of the first non-empty choice."""

        if self._client is None:
            raise LlmAPIError("ChatClient used outside of 'async with'")

        request = ChatCompletionRequest(
            model=self.config.model,
            messages=list(messages),
            temperature=self.config.temperature if temperature is None else temperature,
            response_format=ResponseFormat() if json_mode else None,
        )
        response = await self._client.post(
            CHAT_COMPLETIONS_PATH,
            json=request.model_dump(exclude_none=True),
            headers={"Authorization": f"Bearer {self.config.api_key}"},
        )
        if response.is_error:
            raise _api_error(response)

        try:
            payload = ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise LlmAPIError(
                "Unexpected chat completion payload", status_code=response.status_code
            ) from exc

        content = payload.content
        if content is None:
            raise LlmAPIError("Chat completion returned no content")
        return content

    async def complete_model[M: BaseModel](
        self,
        messages: Sequence[ChatMessage],
        model_type: type[M],
        *,
        temperature: float | None = None,
    ) -> M:
        """Complete in JSON mode and validate the answer as ``model_type``."""

        content = await self.complete(messages, temperature=temperature)
        try:
            return model_type.model_validate_json(strip_code_fence(content))
        except ValidationError as exc:
            log.debug("Malformed model answer: %s", content)
            raise LlmAPIError(
                f"Model answer does not match {model_type.__name__}: {exc.error_count()} errors"
            ) from exc


def _api_error(response: httpx.Response) -> LlmAPIError:
    message = f"Chat completion request failed with HTTP {response.status_code}"
    try:
        error = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        pass
    else:
        message = f"{message}: {error.error.message}"
    log.error(message)
    return LlmAPIError(message, status_code=response.status_code)
