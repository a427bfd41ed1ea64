import random
from types import SimpleNamespace

import pytest

from conftest import make_card
from core.errors import external_service_error
from engines.exercises import (
    BLANK,
    FALLBACK_DISTRACTORS,
    FALLBACK_IMAGE_CONCEPTS,
    ExerciseGenerator,
    ExerciseKind,
    WordCard,
    is_placeholder,
    select_candidates,
)


@pytest.fixture
def generator(oracle, rng) -> ExerciseGenerator:
    return ExerciseGenerator(oracle, rng)


@pytest.mark.parametrize("value", [None, "", "   ", "N/A", "N/A (AI Failed)", " N/A (timeout)"])
def test_placeholders(value):
    assert is_placeholder(value)


@pytest.mark.parametrize("value", ["cat", "N/Aardvark", "Not available"])
def test_real_values_are_not_placeholders(value):
    assert not is_placeholder(value)


def test_meaning_prefers_translated_definition():
    assert make_card().meaning == "con mèo"
    assert make_card(translated_definition="N/A").meaning == "mèo"
    assert make_card(translated_definition=None, translation="").meaning == "a small domesticated feline"
    assert make_card(translated_definition=None, translation=None, definition="N/A").meaning == "cat"


async def test_flashcard(generator):
    draft = await generator.build(ExerciseKind.FLASHCARD, make_card())

    assert draft.question == "cat"
    assert draft.correct_answer == "con mèo"
    assert draft.word_ids == ["id-cat"]
    assert draft.to_record()["exercise_type"] == "flashcard"


async def test_multiple_choice_uses_oracle_distractors(generator, oracle):
    draft = await generator.build(ExerciseKind.MULTIPLE_CHOICE, make_card())

    assert draft.correct_answer == "con mèo"
    assert sorted(draft.options) == sorted(["con mèo", "con chó", "cái bàn", "quả táo"])
    assert "cat" in draft.question
    assert oracle.calls == [("distractors", "cat", "a small domesticated feline", "definition")]


async def test_multiple_choice_without_definition_skips_oracle(generator, oracle):
    draft = await generator.build(ExerciseKind.MULTIPLE_CHOICE, make_card(definition="N/A"))

    assert sorted(draft.options) == sorted(["con mèo", *FALLBACK_DISTRACTORS])
    assert oracle.calls == []


async def test_multiple_choice_falls_back_when_oracle_fails(generator, oracle):
    oracle.error = external_service_error("oracle", "down").error

    draft = await generator.build(ExerciseKind.MULTIPLE_CHOICE, make_card())

    assert len(draft.options) == 4
    assert set(FALLBACK_DISTRACTORS) <= set(draft.options)


async def test_multiple_choice_drops_correct_answer_and_pads(generator, oracle):
    oracle.distractors["definition"] = ["Con Mèo", "con chó"]

    draft = await generator.build(ExerciseKind.MULTIPLE_CHOICE, make_card())

    assert sorted(draft.options) == sorted(["con mèo", "con chó", FALLBACK_DISTRACTORS[0], FALLBACK_DISTRACTORS[1]])


async def test_fill_in_blank_masks_whole_word_case_insensitively(generator):
    card = make_card(example="Cat food is for the cat, not the category.")

    draft = await generator.build(ExerciseKind.FILL_IN_BLANK, card)

    assert draft.question == f"{BLANK} food is for the {BLANK}, not the category."
    assert draft.correct_answer == "cat"


@pytest.mark.parametrize("example", [None, "N/A (AI Failed)", "The category is empty."])
async def test_fill_in_blank_skipped_without_usable_example(generator, example):
    assert await generator.build(ExerciseKind.FILL_IN_BLANK, make_card(example=example)) is None


async def test_sentence_construction_mentions_definition(generator):
    draft = await generator.build(ExerciseKind.SENTENCE_CONSTRUCTION, make_card())
    bare = await generator.build(ExerciseKind.SENTENCE_CONSTRUCTION, make_card(definition=""))

    assert "a small domesticated feline" in draft.question
    assert draft.correct_answer is None
    assert "(definition: N/A)" in bare.question


async def test_pronunciation_practice_mentions_phonetic(generator):
    draft = await generator.build(ExerciseKind.PRONUNCIATION_PRACTICE, make_card())

    assert "/kæt/" in draft.question
    assert draft.options is None


async def test_matching_groups_unused_partners(generator):
    cat, dog, tree = make_card("cat"), make_card("dog", translated_definition="con chó"), make_card("tree")

    draft = await generator.build(ExerciseKind.MATCHING, cat, pool=[cat, dog, tree])

    assert draft.word_ids[0] == "id-cat"
    assert set(draft.word_ids) == {"id-cat", "id-dog", "id-tree"}
    assert draft.correct_answer["id-dog"] == "con chó"
    assert sorted(o["id"] for o in draft.options) == sorted(draft.word_ids)
    assert {q["word"] for q in draft.question} == {"cat", "dog", "tree"}


async def test_matching_skipped_without_partners(generator):
    cat, dog = make_card("cat"), make_card("dog")

    assert await generator.build(ExerciseKind.MATCHING, cat) is None
    assert await generator.build(ExerciseKind.MATCHING, cat, pool=[cat, dog], used={"id-dog"}) is None


async def test_listen_choose_image(generator, oracle):
    draft = await generator.build(ExerciseKind.LISTEN_CHOOSE_IMAGE, make_card())

    assert draft.correct_answer == "Image for cat (mèo)"
    assert draft.question["audio_url"] == "https://audio.example/cat.mp3"
    concepts = [o["concept"] for o in draft.options]
    assert sorted(concepts) == sorted(["Image for cat (mèo)", "a red car", "a mountain", "a teacup"])
    assert all(o["image_url"].startswith("https://placehold.co/150x150/") for o in draft.options)
    assert oracle.calls[0][3] == "image_concept"


async def test_listen_choose_image_falls_back(generator, oracle):
    oracle.error = external_service_error("oracle", "down").error

    draft = await generator.build(ExerciseKind.LISTEN_CHOOSE_IMAGE, make_card())

    assert {o["concept"] for o in draft.options} == {"Image for cat (mèo)", *FALLBACK_IMAGE_CONCEPTS}


async def test_listen_choose_image_needs_audio(generator):
    assert await generator.build(ExerciseKind.LISTEN_CHOOSE_IMAGE, make_card(audio_url="N/A")) is None


async def test_drafts_skip_slots_that_cannot_be_built(generator, monkeypatch):
    monkeypatch.setattr(ExerciseGenerator, "pick_kind", lambda self: ExerciseKind.FILL_IN_BLANK)
    cards = [make_card("cat"), make_card("tree", example="N/A (AI Failed)")]

    drafts = [d async for d in generator.drafts(cards)]

    assert [d.word for d in drafts] == ["cat"]


async def test_matching_batch_does_not_reuse_words(generator, monkeypatch):
    monkeypatch.setattr(ExerciseGenerator, "pick_kind", lambda self: ExerciseKind.MATCHING)
    cards = [make_card("cat"), make_card("dog"), make_card("tree")]

    drafts = [d async for d in generator.drafts(cards)]

    assert len(drafts) == 1
    assert set(drafts[0].word_ids) == {"id-cat", "id-dog", "id-tree"}


def test_every_kind_is_reachable(oracle):
    generator = ExerciseGenerator(oracle, random.Random(7))

    kinds = {generator.pick_kind() for _ in range(500)}

    assert kinds == set(ExerciseKind)


def test_select_candidates_prefers_due_then_recent():
    due = [SimpleNamespace(id=i) for i in ("a", "b")]
    recent = [SimpleNamespace(id=i) for i in ("b", "c", "d")]

    picked = select_candidates(due, recent, 3)

    assert [w.id for w in picked] == ["a", "b", "c"]
    assert [w.id for w in select_candidates(due, recent, 1)] == ["a"]
    assert select_candidates([], [], 5) == []


def test_word_card_from_model():
    model = SimpleNamespace(
        id="42", word="cat", translation="mèo", definition=None, translated_definition=None,
        phonetic=None, audio_url=None, example=None,
    )

    assert WordCard.from_model(model) == WordCard(id="42", word="cat", translation="mèo")
