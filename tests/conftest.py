import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import random
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers tables)
from core.database import Base
from core.errors import AppError, Err, Ok
from engines.exercises import WordCard
from engines.learning import LearningEngine
from engines.oracle import ContentOracle, FreeTextScore

USER_ID = "00000000-0000-0000-0000-000000000001"
OTHER_USER_ID = "00000000-0000-0000-0000-0000000000ff"
START = datetime(2024, 3, 14, 9, 30)


class FakeOracle(ContentOracle):
    """Scripted oracle: canned replies, optional forced error, call log."""

    def __init__(self):
        self.distractors = {
            'definition': ["con chó", "cái bàn", "quả táo"],
            'image_concept': ["a red car", "a mountain", "a teacup"],
        }
        self.verdict = FreeTextScore(score=85, feedback="Natural and correct.")
        self.error: AppError | None = None
        self.calls: list[tuple] = []

    async def generate_distractors(self, word, definition, count, kind='definition'):
        self.calls.append(("distractors", word, definition, kind))
        if self.error is not None:
            return Err(self.error)
        return Ok(list(self.distractors[kind])[:count])

    async def score_free_text(self, user_text, target_word, target_context, mode='sentence'):
        self.calls.append(("score", user_text, target_word, target_context, mode))
        if self.error is not None:
            return Err(self.error)
        return Ok(self.verdict)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_card(word: str = "cat", **overrides) -> WordCard:
    fields = {
        "id": f"id-{word}",
        "word": word,
        "translation": "mèo",
        "definition": "a small domesticated feline",
        "translated_definition": "con mèo",
        "phonetic": "/kæt/",
        "audio_url": f"https://audio.example/{word}.mp3",
        "example": f"The {word} sat on the mat.",
    }
    fields.update(overrides)
    return WordCard(**fields)


WORD_DATA = {
    "cat": {
        "translation": "mèo",
        "definition": "a small domesticated feline",
        "translated_definition": "con mèo",
        "phonetic": "/kæt/",
        "audio_url": "https://audio.example/cat.mp3",
        "example": "The cat sat on the mat.",
    },
    "dog": {
        "translation": "chó",
        "definition": "a domesticated canine",
        "translated_definition": "con chó",
        "phonetic": "/dɒɡ/",
        "audio_url": "https://audio.example/dog.mp3",
        "example": "My dog loves the park.",
    },
    "tree": {
        "translation": "cây",
        "definition": "a tall perennial woody plant",
        "translated_definition": "cái cây",
        "phonetic": "/triː/",
        "audio_url": "N/A",
        "example": "N/A (AI Failed)",
    },
}


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def learning(session, oracle, clock, rng) -> LearningEngine:
    return LearningEngine(session, oracle=oracle, rng=rng, clock=clock)


@pytest.fixture
def add_words(learning, clock):
    """Add words from WORD_DATA one minute apart; returns them in insertion order."""

    async def _add(*names: str, user_id: str = USER_ID):
        words = []
        for name in names:
            result = await learning.add_word(user_id, {"word": name, **WORD_DATA.get(name, {})})
            words.append(result.unwrap())
            clock.advance(minutes=1)
        return words

    return _add
