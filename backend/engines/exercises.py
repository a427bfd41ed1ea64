"""Exercise Generator Engine

Builds practice exercises for a learner's words. Each slot gets one of seven
exercise kinds chosen at random; per-kind construction goes through a builder
table. Builders that lack the material they need (no example sentence, no
audio, not enough words) skip their slot instead of failing.
"""
import random
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator
from urllib.parse import quote

from core.logging import exercise_logger
from core.errors import Ok, Err
from engines.oracle import ContentOracle

log = exercise_logger()


class ExerciseKind(str, Enum):
    FLASHCARD = 'flashcard'
    MULTIPLE_CHOICE = 'multiple_choice'
    FILL_IN_BLANK = 'fill_in_blank'
    SENTENCE_CONSTRUCTION = 'sentence_construction'
    PRONUNCIATION_PRACTICE = 'pronunciation_practice'
    MATCHING = 'matching'
    LISTEN_CHOOSE_IMAGE = 'listen_choose_image'


EXERCISE_KINDS: tuple[ExerciseKind, ...] = tuple(ExerciseKind)

DISTRACTOR_COUNT = 3
MATCHING_PARTNERS = 2
BLANK = "____"

FALLBACK_DISTRACTORS = ("Incorrect meaning 1", "Incorrect meaning 2", "Incorrect meaning 3")
FALLBACK_IMAGE_CONCEPTS = ("a related but incorrect image", "another incorrect image", "a third incorrect image")

IMAGE_URL_TEMPLATE = "https://placehold.co/150x150/{color}/ffffff?text={label}"


def is_placeholder(value: str | None) -> bool:
    """Empty, ``N/A`` or an ``N/A (...)`` marker left by failed enrichment."""
    if value is None:
        return True
    text = value.strip()
    return text == "" or text == "N/A" or text.startswith("N/A (")


@dataclass(frozen=True, slots=True)
class WordCard:
    """Read-only snapshot of a vocabulary word for builders and scorers."""
    id: str
    word: str
    translation: str | None = None
    definition: str | None = None
    translated_definition: str | None = None
    phonetic: str | None = None
    audio_url: str | None = None
    example: str | None = None

    @classmethod
    def from_model(cls, word) -> "WordCard":
        return cls(
            id=str(word.id),
            word=word.word,
            translation=word.translation,
            definition=word.definition,
            translated_definition=word.translated_definition,
            phonetic=word.phonetic,
            audio_url=word.audio_url,
            example=word.example,
        )

    @property
    def meaning(self) -> str:
        """The answer text learners match against (translated definition first)."""
        for value in (self.translated_definition, self.translation, self.definition):
            if not is_placeholder(value):
                return value.strip()
        return self.word


@dataclass(slots=True)
class ExerciseDraft:
    """A constructed, not yet persisted exercise."""
    kind: ExerciseKind
    word_ids: list[str]
    question: Any
    options: Any = None
    correct_answer: Any = None
    word: str = ""

    def to_record(self) -> dict:
        return {
            'exercise_type': self.kind.value,
            'word_ids': self.word_ids,
            'question': self.question,
            'options': self.options,
            'correct_answer': self.correct_answer,
        }


def select_candidates(due: list, recent: list, limit: int) -> list:
    """Due words first (already most-overdue first), then recent ones, no repeats."""
    selected = list(due[:limit])
    seen = {str(w.id) for w in selected}
    for word in recent:
        if len(selected) >= limit:
            break
        if str(word.id) not in seen:
            selected.append(word)
            seen.add(str(word.id))
    return selected


@dataclass(slots=True)
class _Batch:
    """Per-call state: the candidate pool and words already placed in an exercise."""
    cards: list[WordCard]
    used: set[str] = field(default_factory=set)


class ExerciseGenerator:
    """Turns candidate words into exercise drafts."""

    __slots__ = ('_oracle', '_rng', '_builders')

    def __init__(self, oracle: ContentOracle, rng: random.Random | None = None):
        self._oracle = oracle
        self._rng = rng or random.Random()
        self._builders = {
            ExerciseKind.FLASHCARD: self._build_flashcard,
            ExerciseKind.MULTIPLE_CHOICE: self._build_multiple_choice,
            ExerciseKind.FILL_IN_BLANK: self._build_fill_in_blank,
            ExerciseKind.SENTENCE_CONSTRUCTION: self._build_sentence_construction,
            ExerciseKind.PRONUNCIATION_PRACTICE: self._build_pronunciation_practice,
            ExerciseKind.MATCHING: self._build_matching,
            ExerciseKind.LISTEN_CHOOSE_IMAGE: self._build_listen_choose_image,
        }

    def pick_kind(self) -> ExerciseKind:
        return self._rng.choice(EXERCISE_KINDS)

    async def drafts(self, cards: list[WordCard]) -> AsyncIterator[ExerciseDraft]:
        """Yield one draft per candidate slot; skipped slots yield nothing."""
        batch = _Batch(cards=list(cards))
        self._rng.shuffle(batch.cards)

        for card in list(batch.cards):
            kind = self.pick_kind()
            draft = await self._builders[kind](card, batch)
            if draft is None:
                log.info("exercise_slot_skipped", kind=kind.value, word=card.word)
                continue
            batch.used.update(draft.word_ids)
            log.debug("exercise_built", kind=kind.value, word=card.word)
            yield draft

    async def build(
        self,
        kind: ExerciseKind,
        card: WordCard,
        pool: list[WordCard] | None = None,
        used: set[str] | None = None,
    ) -> ExerciseDraft | None:
        """Build one exercise of ``kind`` for ``card``; None when the slot is skipped.

        ``pool`` supplies matching partners, ``used`` lists word ids already
        placed in this batch.
        """
        batch = _Batch(cards=pool if pool is not None else [card], used=used if used is not None else set())
        return await self._builders[kind](card, batch)

    async def _build_flashcard(self, card: WordCard, batch: _Batch) -> ExerciseDraft:
        return ExerciseDraft(
            kind=ExerciseKind.FLASHCARD,
            word_ids=[card.id],
            question=card.word,
            correct_answer=card.meaning,
            word=card.word,
        )

    async def _build_multiple_choice(self, card: WordCard, batch: _Batch) -> ExerciseDraft:
        correct = card.meaning
        if is_placeholder(card.definition):
            distractors = list(FALLBACK_DISTRACTORS)
        else:
            distractors = await self._distractors(card, card.definition, 'definition', correct, FALLBACK_DISTRACTORS)

        options = [correct, *distractors]
        self._rng.shuffle(options)
        return ExerciseDraft(
            kind=ExerciseKind.MULTIPLE_CHOICE,
            word_ids=[card.id],
            question=f'Choose the correct meaning of "{card.word}":',
            options=options,
            correct_answer=correct,
            word=card.word,
        )

    async def _build_fill_in_blank(self, card: WordCard, batch: _Batch) -> ExerciseDraft | None:
        if is_placeholder(card.example):
            return None
        pattern = re.compile(rf"\b{re.escape(card.word)}\b", re.IGNORECASE)
        if not pattern.search(card.example):
            return None
        return ExerciseDraft(
            kind=ExerciseKind.FILL_IN_BLANK,
            word_ids=[card.id],
            question=pattern.sub(BLANK, card.example),
            correct_answer=card.word,
            word=card.word,
        )

    async def _build_sentence_construction(self, card: WordCard, batch: _Batch) -> ExerciseDraft:
        definition = card.definition if not is_placeholder(card.definition) else "N/A"
        return ExerciseDraft(
            kind=ExerciseKind.SENTENCE_CONSTRUCTION,
            word_ids=[card.id],
            question=f'Write a sentence using the word "{card.word}" (definition: {definition}).',
            word=card.word,
        )

    async def _build_pronunciation_practice(self, card: WordCard, batch: _Batch) -> ExerciseDraft:
        phonetic = card.phonetic if not is_placeholder(card.phonetic) else "N/A"
        return ExerciseDraft(
            kind=ExerciseKind.PRONUNCIATION_PRACTICE,
            word_ids=[card.id],
            question=f'Pronounce the word "{card.word}" (phonetic: {phonetic}).',
            word=card.word,
        )

    async def _build_matching(self, card: WordCard, batch: _Batch) -> ExerciseDraft | None:
        partners = [
            c for c in batch.cards
            if c.id != card.id and c.id not in batch.used and c.word != card.word
        ][:MATCHING_PARTNERS]
        group = [card, *partners]
        if len(group) < 2:
            return None

        options = [{'id': c.id, 'definition': c.meaning} for c in group]
        self._rng.shuffle(options)
        return ExerciseDraft(
            kind=ExerciseKind.MATCHING,
            word_ids=[c.id for c in group],
            question=[{'id': c.id, 'word': c.word} for c in group],
            options=options,
            correct_answer={c.id: c.meaning for c in group},
            word=card.word,
        )

    async def _build_listen_choose_image(self, card: WordCard, batch: _Batch) -> ExerciseDraft | None:
        if is_placeholder(card.audio_url):
            return None

        gloss = next(
            (v for v in (card.translation, card.translated_definition, card.definition) if not is_placeholder(v)),
            card.word,
        )
        correct = f"Image for {card.word} ({gloss})"
        concepts = await self._distractors(card, gloss, 'image_concept', correct, FALLBACK_IMAGE_CONCEPTS)

        options = [{'concept': c, 'image_url': self._image_url(c)} for c in [correct, *concepts]]
        self._rng.shuffle(options)
        return ExerciseDraft(
            kind=ExerciseKind.LISTEN_CHOOSE_IMAGE,
            word_ids=[card.id],
            question={'prompt': 'Listen and choose the matching image', 'audio_url': card.audio_url},
            options=options,
            correct_answer=correct,
            word=card.word,
        )

    async def _distractors(
        self,
        card: WordCard,
        definition: str,
        kind: str,
        correct: str,
        fallback: tuple[str, ...],
    ) -> list[str]:
        """Oracle distractors minus the correct answer, padded from ``fallback``."""
        match await self._oracle.generate_distractors(card.word, definition, DISTRACTOR_COUNT, kind=kind):
            case Ok(items):
                picked = []
                for item in items:
                    if item.casefold() != correct.casefold() and item not in picked:
                        picked.append(item)
                picked = picked[:DISTRACTOR_COUNT]
            case Err(error):
                log.warning(
                    "oracle_distractors_unavailable",
                    word=card.word,
                    kind=kind,
                    error_code=error.code.name,
                )
                picked = []

        for filler in fallback:
            if len(picked) >= DISTRACTOR_COUNT:
                break
            if filler not in picked:
                picked.append(filler)
        return picked

    def _image_url(self, concept: str) -> str:
        color = f"{self._rng.randrange(0x1000000):06x}"
        return IMAGE_URL_TEMPLATE.format(color=color, label=quote(concept[:10]))
