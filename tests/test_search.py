"""Relevance scoring, boosts, summaries and highlighting."""

from datetime import timedelta

import pytest

from app.services.search import (
    SearchDocument,
    field_relevance,
    highlight,
    levenshtein,
    relevance_score,
    search_boost,
    search_summary,
)
from app.utils.helpers import utcnow


@pytest.mark.parametrize(
    "a, b, distance",
    [
        ("budget", "budget", 0),
        ("budget", "budgte", 2),
        ("budget", "budgets", 1),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
    ],
)
def test_levenshtein(a, b, distance):
    assert levenshtein(a, b) == distance


def test_whole_phrase_hit_scores_full_weight_once():
    assert field_relevance("payment completed today", ["payment", "completed"], 3.0) == 3.0


def test_word_and_substring_hits():
    assert field_relevance("the budget was approved", ["budget", "approved"], 2.0) == pytest.approx(3.2)
    assert field_relevance("budgetary review", ["budget", "xyz"], 2.0) == pytest.approx(0.8)


def test_fuzzy_hit_only_for_short_fields():
    assert field_relevance("budgte", ["budget"], 1.0) == pytest.approx(0.2)
    assert field_relevance("a much longer budgte field text", ["budget"], 1.0) == 0.0


def test_single_character_terms_are_ignored():
    assert field_relevance("a b c", ["a"], 1.0) == 0.0


def test_relevance_is_normalized_and_capped():
    document = SearchDocument(title="Budget", description="Budget", keywords={"budget"})

    assert relevance_score("budget", document) == 1.0


def test_relevance_only_counts_present_fields():
    document = SearchDocument(title="Budget warning")

    # Only the title (weight 3.0) is present
    assert relevance_score("budget", document, {"title", "description"}) == pytest.approx(1.0)


def test_relevance_of_blank_query_is_zero():
    assert relevance_score("  ", SearchDocument(title="Budget")) == 0.0


def test_keyword_hits_add_full_weight():
    document = SearchDocument(title="Unrelated", keywords={"PAYMENT_COMPLETED"})

    assert relevance_score("payment_completed", document) == pytest.approx(2.5 / 5.5)


def test_search_boost():
    now = utcnow()

    assert search_boost(SearchDocument(created_at=now - timedelta(days=3), status="active"), now) == pytest.approx(1.3)
    assert search_boost(SearchDocument(created_at=now - timedelta(days=90), status="PRIORITY"), now) == pytest.approx(1.2)
    assert search_boost(SearchDocument(created_at=now - timedelta(days=90), status="DRAFT"), now) == 1.0


def test_search_summary_truncates_long_description():
    summary = search_summary(SearchDocument(title="Report", description="d" * 200))

    assert summary == "Report - " + "d" * 147 + "..."


def test_highlight_is_case_insensitive():
    assert highlight("Budget over budget", "BUDGET") == "**BUDGET** over **BUDGET**"
    assert highlight("Budget over", "") == "Budget over"
