# tests/unit/test_dedupe.py
"""Tests for edit-distance similarity and near-duplicate removal."""

import pytest

from studyforge.generation.dedupe import dedupe, levenshtein, similarity
from studyforge.models.items import ClozeItem, Flashcard, TrueFalseItem


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ("", "", 0),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("same", "same", 0),
    ],
)
def test_levenshtein(a, b, expected):
    assert levenshtein(a, b) == expected
    assert levenshtein(b, a) == expected


def test_similarity_bounds():
    assert similarity("Osmosis", "osmosis") == 1.0
    assert similarity("", "") == 1.0
    assert similarity("text", "") == 0.0
    assert similarity("abcd", "abce") == pytest.approx(0.75)


def test_near_duplicate_question_dropped():
    first = Flashcard(
        question="What is the powerhouse of the cell?", answer="The mitochondria."
    )
    near = Flashcard(
        question="What is the powerhouse of the cell ?", answer="Mitochondria, which make ATP."
    )
    other = Flashcard(question="What does DNA stand for?", answer="Deoxyribonucleic acid.")

    kept = dedupe([first, near, other], threshold=0.92)

    assert kept == [first, other]


def test_answer_similarity_alone_is_enough():
    a = Flashcard(question="Name the process plants use to make food.", answer="Photosynthesis")
    b = Flashcard(question="How do plants make glucose?", answer="photosynthesis")

    assert dedupe([a, b]) == [a]


def test_threshold_is_exclusive():
    a = Flashcard(question="abcd", answer="x1")
    b = Flashcard(question="abce", answer="y2")

    # similarity 0.75 is not above 0.75
    assert dedupe([a, b], threshold=0.75) == [a, b]
    assert dedupe([a, b], threshold=0.7) == [a]


def test_different_kinds_never_collide():
    card = Flashcard(question="The ____ is the unit of life.", answer="cell")
    cloze = ClozeItem(sentence="The ____ is the unit of life.", blanks=["cell"])

    assert dedupe([card, cloze]) == [card, cloze]


def test_cloze_and_truefalse_compare_their_text():
    c1 = ClozeItem(sentence="Water boils at ____ degrees.", blanks=["100"])
    c2 = ClozeItem(sentence="Water boils at ____ degrees!", blanks=["100"])
    t1 = TrueFalseItem(statements=[{"statement": "Ice floats on water.", "isTrue": True}])
    t2 = TrueFalseItem(statements=[{"statement": "Ice floats on water", "isTrue": True}])

    assert dedupe([c1, c2, t1, t2]) == [c1, t1]


def test_no_two_kept_items_too_similar():
    items = [
        Flashcard(question=f"Question number {n % 4}", answer=f"Answer {n}")
        for n in range(12)
    ]

    kept = dedupe(items, threshold=0.92)

    for i, a in enumerate(kept):
        for b in kept[i + 1:]:
            assert similarity(a.question, b.question) <= 0.92
            assert similarity(a.answer, b.answer) <= 0.92
