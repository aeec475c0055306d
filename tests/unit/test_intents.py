"""Tests for the keyword intent classifier."""

import pytest

from src.models.schemas import ChatIntent
from src.parsing.intents import (
    DEFAULT_QUESTIONS,
    SUGGESTED_QUESTIONS,
    detect_intent,
    suggested_questions_for_intent,
)


def test_competitor_question_is_unambiguous():
    result = detect_intent("What are competitors doing?")

    assert result.intent == ChatIntent.COMPETITIVE_BENCHMARKING
    assert result.confidence == pytest.approx(1.0)


def test_self_assessment():
    result = detect_intent("How did we do this month?")

    assert result.intent == ChatIntent.SELF_ASSESSMENT


def test_category_boost_applies_only_to_its_category():
    boosted = detect_intent("multimeter", "dmm")
    plain = detect_intent("multimeter")

    assert boosted.intent == ChatIntent.PRODUCT_TYPE_MIX
    assert boosted.confidence == pytest.approx(1.0)
    assert plain.intent == ChatIntent.UNKNOWN
    assert plain.confidence == 0.0


def test_confidence_splits_between_top_two():
    # competitive benchmarking scores 3 ("compare", "autel"), self assessment 2 ("innova")
    result = detect_intent("compare autel and innova")

    assert result.intent == ChatIntent.COMPETITIVE_BENCHMARKING
    assert result.confidence == pytest.approx(0.6)


@pytest.mark.parametrize("message", ["", "   ", "zzz"])
def test_nothing_scores(message):
    result = detect_intent(message)

    assert result.intent == ChatIntent.UNKNOWN
    assert result.confidence == 0.0


def test_suggested_questions_fall_back_for_unknown_values():
    generic = suggested_questions_for_intent("nonsense")

    assert generic == list(SUGGESTED_QUESTIONS[ChatIntent.UNKNOWN])
    assert len(generic) == 4
    assert list(DEFAULT_QUESTIONS) == generic[:3]


def test_suggested_questions_for_known_intent():
    questions = suggested_questions_for_intent("fastest_mover")

    assert questions[0] == "Who is the fastest growth brand this month (MoM)?"
