import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from core.errors import ErrorCode
from core.resilience import CombinedPolicy, RetryConfig
from engines.oracle import OpenAIContentOracle, clamp_score


async def no_sleep(_delay: float) -> None:
    return None


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replies are strings or exceptions."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_oracle(*replies) -> tuple[OpenAIContentOracle, FakeCompletions]:
    completions = FakeCompletions(*replies)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    policy = CombinedPolicy(timeout_seconds=5.0, retry_config=RetryConfig(max_attempts=3), sleep=no_sleep)
    return OpenAIContentOracle(client=client, model="test-model", policy=policy), completions


def rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return openai.RateLimitError("slow down", response=httpx.Response(429, request=request), body=None)


async def test_missing_client_is_unavailable():
    oracle = OpenAIContentOracle(client=None, policy=CombinedPolicy(5.0, sleep=no_sleep))

    result = await oracle.generate_distractors("cat", "a feline", 3)

    assert result.unwrap_err().code is ErrorCode.E1010_EXTERNAL_SERVICE_UNAVAILABLE


async def test_distractors_are_truncated_to_count():
    oracle, completions = make_oracle(json.dumps({"items": ["con chó", " cái bàn ", "quả táo", "ngôi nhà", ""]}))

    result = await oracle.generate_distractors("cat", "a feline", 3)

    assert result.unwrap() == ["con chó", "cái bàn", "quả táo"]
    request = completions.requests[0]
    assert request["model"] == "test-model"
    assert request["response_format"] == {"type": "json_object"}
    assert '"cat"' in request["messages"][0]["content"]


async def test_image_concept_prompt_is_used():
    oracle, completions = make_oracle(json.dumps({"items": ["a boat"]}))

    await oracle.generate_distractors("cat", "mèo", 3, kind="image_concept")

    assert "image" in completions.requests[0]["messages"][0]["content"]


@pytest.mark.parametrize("raw,expected", [(140, 100), (72.5, 73), (-3, 0), (60, 60)])
async def test_free_text_score_is_clamped(raw, expected):
    oracle, _ = make_oracle(json.dumps({"score": raw, "feedback": "ok"}))

    result = await oracle.score_free_text("The cat sleeps.", "cat", "a feline")

    assert result.unwrap().score == expected
    assert result.unwrap().feedback == "ok"


@pytest.mark.parametrize("content", ["not json", "[1, 2]", json.dumps({"items": "nope"})])
async def test_malformed_distractor_reply_is_service_error(content):
    oracle, _ = make_oracle(content)

    result = await oracle.generate_distractors("cat", "a feline", 3)

    assert result.unwrap_err().code is ErrorCode.E1011_EXTERNAL_SERVICE_ERROR


async def test_malformed_score_reply_is_service_error():
    oracle, _ = make_oracle(json.dumps({"score": "great", "feedback": "ok"}))

    result = await oracle.score_free_text("The cat sleeps.", "cat", None, mode="pronunciation")

    assert result.unwrap_err().code is ErrorCode.E1011_EXTERNAL_SERVICE_ERROR


async def test_rate_limit_is_retried_then_succeeds():
    oracle, completions = make_oracle(rate_limit_error(), json.dumps({"score": 90, "feedback": "fine"}))

    result = await oracle.score_free_text("The cat sleeps.", "cat", "a feline")

    assert result.unwrap().score == 90
    assert len(completions.requests) == 2


async def test_persistent_rate_limit_gives_up_after_three_calls():
    oracle, completions = make_oracle(rate_limit_error())

    result = await oracle.score_free_text("The cat sleeps.", "cat", "a feline")

    assert len(completions.requests) == 3
    assert result.unwrap_err().code is ErrorCode.E1011_EXTERNAL_SERVICE_ERROR


def test_clamp_score_rounds_half_up():
    assert clamp_score(49.5) == 50
