"""Tests for the category question bank."""

from src.models.schemas import ChatIntent
from src.services.question_bank import (
    CATEGORY_BANK,
    DEFAULT_QUESTIONS,
    STARTER_CAPABILITIES,
    category_suggested_questions,
    starter_questions,
)


def test_starter_questions_follow_capability_order():
    questions = starter_questions("code_reader_scanner")

    assert questions[:3] == CATEGORY_BANK["code_reader_scanner"]["self_assessment"]
    assert questions[3] == "Where do we rank in overall revenue and units this month?"
    assert len(questions) == 6


def test_intent_questions_come_first():
    questions = category_suggested_questions(
        "code_reader_scanner", STARTER_CAPABILITIES, intent=ChatIntent.RISK_THREAT
    )

    assert questions[0] == "What should we worry about this month?"
    assert questions[3] == "How did Innova/BLCKTEC perform this month vs last month?"


def test_unknown_intent_is_ignored():
    assert category_suggested_questions(
        "code_reader_scanner", STARTER_CAPABILITIES, intent="unknown"
    ) == starter_questions("code_reader_scanner")


def test_intent_outside_capabilities_is_ignored():
    questions = category_suggested_questions("code_reader_scanner", ["market_size"], intent="risk_threat")

    assert questions == DEFAULT_QUESTIONS


def test_unknown_category_gets_defaults():
    questions = starter_questions("lawn_mowers")
    questions.append("mutated")

    assert starter_questions("lawn_mowers") == DEFAULT_QUESTIONS


def test_questions_are_deduplicated_per_category():
    questions = category_suggested_questions("dmm", ["feature_analysis", "market_size", "feature_analysis"])

    assert questions == [
        "What premium is associated with true-RMS or automotive-targeted DMM features?",
        "Do rechargeable DMM products command higher prices?",
        "What is the total DMM market size this month (revenue + units)?",
    ]
