from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

import httpx
import pytest

from mindrift.adapters.llm import ChatClient, ChatMessage, ConsistencyVerdict, LlmAPIError
from mindrift.adapters.llm.client import strip_code_fence

from tests.helpers.llm import completion, make_client_factory

if TYPE_CHECKING:
    from mindrift.config import LlmConfig

MESSAGES = [ChatMessage(role="user", content="ping")]


def _complete(config: LlmConfig, response: httpx.Response) -> str:
    async def run() -> str:
        factory = make_client_factory(lambda request: response)
        async with ChatClient(config, client_factory=factory) as chat:
            return await chat.complete(MESSAGES)

    return asyncio.run(run())


def test_complete_posts_chat_request(
    llm_config: LlmConfig,
    recorded_requests: list[httpx.Request],
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        return completion("pong")

    async def run() -> str:
        async with ChatClient(llm_config, client_factory=make_client_factory(handler)) as chat:
            return await chat.complete(MESSAGES, temperature=0.0)

    assert asyncio.run(run()) == "pong"

    request = recorded_requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert body["temperature"] == 0.0
    assert body["response_format"] == {"type": "json_object"}
    assert body["messages"] == [{"role": "user", "content": "ping"}]


def test_http_error_carries_api_message(llm_config: LlmConfig) -> None:
    response = httpx.Response(
        401,
        json={"error": {"message": "Invalid API key", "type": "invalid_request_error"}},
    )

    with pytest.raises(LlmAPIError, match="Invalid API key") as excinfo:
        _complete(llm_config, response)

    assert excinfo.value.status_code == 401


def test_unexpected_payload_is_rejected(llm_config: LlmConfig) -> None:
    with pytest.raises(LlmAPIError, match="Unexpected"):
        _complete(llm_config, httpx.Response(200, text="not json"))


def test_empty_choices_are_rejected(llm_config: LlmConfig) -> None:
    with pytest.raises(LlmAPIError, match="no content"):
        _complete(llm_config, httpx.Response(200, json={"choices": []}))


def test_client_requires_context_manager(llm_config: LlmConfig) -> None:
    chat = ChatClient(llm_config, client_factory=make_client_factory(lambda _: completion("x")))

    with pytest.raises(LlmAPIError, match="async with"):
        asyncio.run(chat.complete(MESSAGES))


def test_complete_model_validates_fenced_json(llm_config: LlmConfig) -> None:
    fenced = '```json\n{"consistent": true, "reason": "same meaning"}\n```'

    async def run() -> ConsistencyVerdict:
        factory = make_client_factory(lambda _: completion(fenced))
        async with ChatClient(llm_config, client_factory=factory) as chat:
            return await chat.complete_model(MESSAGES, ConsistencyVerdict)

    verdict = asyncio.run(run())

    assert verdict.consistent is True
    assert verdict.reason == "same meaning"


def test_complete_model_rejects_wrong_shape(llm_config: LlmConfig) -> None:
    async def run() -> ConsistencyVerdict:
        factory = make_client_factory(lambda _: completion({"verdict": "yes"}))
        async with ChatClient(llm_config, client_factory=factory) as chat:
            return await chat.complete_model(MESSAGES, ConsistencyVerdict)

    with pytest.raises(LlmAPIError, match="ConsistencyVerdict"):
        asyncio.run(run())


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  {"a": 1} ', '{"a": 1}'),
    ],
)
def test_strip_code_fence(content: str, expected: str) -> None:
    assert strip_code_fence(content) == expected
