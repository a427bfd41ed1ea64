"""Content Oracle client.

The oracle supplies distractor text and scores free-text answers. Callers
get ``Result`` values: rate limiting is retried with backoff inside the
client; anything else (including a missing API key) comes back as an Err
immediately so generators can fall back and scorers can degrade.
"""
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

import openai
from openai import AsyncOpenAI

from core.config import settings
from core.errors import (
    AppError,
    Ok,
    Err,
    Result,
    external_service_error,
    external_service_unavailable,
    rate_limited,
    timeout_error,
)
from core.logging import oracle_logger
from core.resilience import CombinedPolicy, RetryConfig, BackoffStrategy, Sleeper
from engines.srs import round_half_up

log = oracle_logger()

DistractorKind = Literal['definition', 'image_concept']
ScoringMode = Literal['sentence', 'pronunciation']

SERVICE = "content_oracle"


@dataclass(frozen=True, slots=True)
class FreeTextScore:
    """Oracle verdict on a free-text answer."""
    score: int  # 0-100
    feedback: str


class ContentOracle(ABC):
    """Distractor generation and free-text scoring."""

    @abstractmethod
    async def generate_distractors(
        self,
        word: str,
        definition: str,
        count: int,
        kind: DistractorKind = 'definition',
    ) -> Result[list[str], AppError]:
        ...

    @abstractmethod
    async def score_free_text(
        self,
        user_text: str,
        target_word: str,
        target_context: str | None,
        mode: ScoringMode = 'sentence',
    ) -> Result[FreeTextScore, AppError]:
        ...


DISTRACTOR_PROMPTS = {
    'definition': """For the word "{word}" with definition "{definition}", give {count} plausible but incorrect translated definitions that a learner could mistake for the right one in a multiple choice question.

Return JSON: {{"items": ["...", "..."]}}""",

    'image_concept': """For the word "{word}" ({definition}), give {count} plausible but incorrect picture concepts (short descriptions of objects or scenes) to use as distractors in a "listen and choose the image" question.

Return JSON: {{"items": ["...", "..."]}}""",
}

SCORING_PROMPTS = {
    'sentence': """You are a language teacher. Evaluate the learner's sentence, focusing on how it uses the word "{word}" (definition: {context}).

Comment on grammar, word usage, naturalness and relevance to the target word, then give a score from 0 to 100.

Learner sentence: "{text}"

Return JSON: {{"score": <number 0-100>, "feedback": "<string>"}}""",

    'pronunciation': """You are a pronunciation teacher. The learner tried to say "{word}" (IPA: {context}); speech recognition captured: "{text}".

Judge the pronunciation from how well the transcript matches the target, note strengths and what to improve, then give a score from 0 to 100.

Return JSON: {{"score": <number 0-100>, "feedback": "<string>"}}""",
}


def build_policy(sleep: Sleeper | None = None) -> CombinedPolicy:
    return CombinedPolicy(
        timeout_seconds=settings.ORACLE_TIMEOUT_SECONDS,
        retry_config=RetryConfig(
            max_attempts=settings.ORACLE_MAX_ATTEMPTS,
            base_delay_seconds=settings.ORACLE_RETRY_BASE_DELAY,
            max_delay_seconds=settings.ORACLE_RETRY_MAX_DELAY,
            strategy=BackoffStrategy.EXPONENTIAL_JITTER,
        ),
        sleep=sleep,
    )


def clamp_score(raw: float) -> int:
    return round_half_up(min(100.0, max(0.0, float(raw))))


class OpenAIContentOracle(ContentOracle):
    """Oracle backed by OpenAI chat completions in JSON mode."""

    __slots__ = ('_client', '_model', '_policy')

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        policy: CombinedPolicy | None = None,
    ):
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self._client = client
        self._model = model or settings.OPENAI_MODEL
        self._policy = policy or build_policy()
        log.debug("oracle_initialized", model=self._model, has_client=client is not None)

    async def generate_distractors(
        self,
        word: str,
        definition: str,
        count: int,
        kind: DistractorKind = 'definition',
    ) -> Result[list[str], AppError]:
        prompt = DISTRACTOR_PROMPTS[kind].format(word=word, definition=definition, count=count)
        result = await self._policy.execute(
            lambda: self._complete_json(prompt, temperature=0.8),
            operation=f"distractors.{kind}",
        )
        return result.and_then(lambda payload: self._parse_items(payload, count))

    async def score_free_text(
        self,
        user_text: str,
        target_word: str,
        target_context: str | None,
        mode: ScoringMode = 'sentence',
    ) -> Result[FreeTextScore, AppError]:
        prompt = SCORING_PROMPTS[mode].format(
            word=target_word,
            context=target_context or "N/A",
            text=user_text,
        )
        result = await self._policy.execute(
            lambda: self._complete_json(prompt, temperature=0),
            operation=f"score.{mode}",
        )
        return result.and_then(self._parse_score)

    async def _complete_json(self, prompt: str, temperature: float) -> Result[dict, AppError]:
        if self._client is None:
            return external_service_unavailable(SERVICE, "OPENAI_API_KEY not configured", origin="oracle")

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{'role': 'user', 'content': prompt}],
                response_format={'type': 'json_object'},
                max_tokens=400,
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            log.warning("oracle_rate_limited", error=str(e))
            return rate_limited(SERVICE, origin="oracle")
        except openai.APITimeoutError:
            return timeout_error("oracle completion", settings.ORACLE_TIMEOUT_SECONDS, origin="oracle")
        except openai.OpenAIError as e:
            log.error("oracle_api_error", error=str(e), error_type=type(e).__name__)
            return external_service_error(SERVICE, str(e), origin="oracle", cause=e)

        content = response.choices[0].message.content or ""
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            return external_service_error(SERVICE, "response was not valid JSON", origin="oracle", cause=e)
        if not isinstance(payload, dict):
            return external_service_error(SERVICE, "response was not a JSON object", origin="oracle")
        return Ok(payload)

    @staticmethod
    def _parse_items(payload: dict, count: int) -> Result[list[str], AppError]:
        items = payload.get('items')
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            return external_service_error(SERVICE, "expected 'items' as a list of strings", origin="oracle")
        return Ok([i.strip() for i in items if i.strip()][:count])

    @staticmethod
    def _parse_score(payload: dict) -> Result[FreeTextScore, AppError]:
        score = payload.get('score')
        feedback = payload.get('feedback')
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not isinstance(feedback, str):
            return external_service_error(SERVICE, "expected numeric 'score' and string 'feedback'", origin="oracle")
        return Ok(FreeTextScore(score=clamp_score(score), feedback=feedback))


# Singleton instance
_oracle: ContentOracle | None = None


def get_content_oracle() -> ContentOracle:
    """Get or create the oracle singleton."""
    global _oracle
    if _oracle is None:
        _oracle = OpenAIContentOracle()
    return _oracle
