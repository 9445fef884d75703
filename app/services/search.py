"""
Relevance scoring for free-text search over notifications

Any record is searchable once it is described by a SearchDocument. Scores are
normalized to [0, 1]; ranking multiplies the score by a recency and status
boost.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import FrozenSet, Iterable, List, Optional, Set
import re

from app.utils.helpers import ensure_utc, utcnow

FIELD_WEIGHTS = {
    "title": 3.0,
    "description": 2.0,
    "content": 1.0,
    "keywords": 2.5,
    "owner": 1.5,
}

DEFAULT_SEARCH_FIELDS: FrozenSet[str] = frozenset({"title", "description", "keywords"})

BOOSTED_STATUSES = {"ACTIVE", "PRIORITY"}

MIN_TERM_LENGTH = 2
MAX_FUZZY_LENGTH = 20
MAX_FUZZY_DISTANCE = 2
SUMMARY_LIMIT = 150

@dataclass
class SearchDocument:
    """Searchable view of a record"""

    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    keywords: Set[str] = field(default_factory=set)
    owner: Optional[str] = None
    created_at: Optional[datetime] = None
    status: Optional[str] = None

def query_terms(query: Optional[str]) -> List[str]:
    if not query or not query.strip():
        return []
    return query.lower().split()

def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings"""
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j - 1] + (ca != cb),
                previous[j] + 1,
                current[j - 1] + 1,
            ))
        previous = current
    return previous[-1]

def field_relevance(field_content: Optional[str], terms: List[str], weight: float) -> float:
    """
    Score one text field against the query terms

    A hit on the whole query phrase scores the full weight and ends scoring for
    the field. Otherwise each term scores 0.8 for a whole-word hit, 0.4 for a
    substring hit, plus 0.2 when the field is within edit distance 2 of the
    term (short strings only).
    """
    if not field_content or not field_content.strip():
        return 0.0

    content = field_content.lower()
    phrase = " ".join(terms)
    score = 0.0

    for term in terms:
        if len(term) < MIN_TERM_LENGTH:
            continue

        if phrase in content:
            score += 1.0 * weight
            break

        if term in content:
            if re.search(r"\b" + re.escape(term) + r"\b", content):
                score += 0.8 * weight
            else:
                score += 0.4 * weight

        if (
            len(term) <= MAX_FUZZY_LENGTH
            and len(content) <= MAX_FUZZY_LENGTH
            and levenshtein(term, content) <= MAX_FUZZY_DISTANCE
        ):
            score += 0.2 * weight

    return score

def keyword_relevance(keywords: Iterable[str], terms: List[str], weight: float) -> float:
    lowered = {k.lower() for k in keywords}
    if not lowered:
        return 0.0
    return sum(weight for term in terms if term in lowered)

def relevance_score(
    query: Optional[str],
    document: SearchDocument,
    search_fields: Iterable[str] = DEFAULT_SEARCH_FIELDS
) -> float:
    """Relevance of a document to a query, between 0.0 and 1.0"""
    terms = query_terms(query)
    if not terms:
        return 0.0

    search_fields = set(search_fields)
    total = 0.0
    max_possible = 0.0

    for name in ("title", "description", "content", "owner"):
        value = getattr(document, name)
        if name in search_fields and value is not None:
            total += field_relevance(value, terms, FIELD_WEIGHTS[name])
            max_possible += FIELD_WEIGHTS[name]

    if "keywords" in search_fields and document.keywords is not None:
        total += keyword_relevance(document.keywords, terms, FIELD_WEIGHTS["keywords"])
        max_possible += FIELD_WEIGHTS["keywords"]

    if max_possible == 0:
        return 0.0
    return min(total / max_possible, 1.0)

def search_boost(document: SearchDocument, now: Optional[datetime] = None) -> float:
    """Ranking multiplier: newer than a month +0.1, ACTIVE or PRIORITY +0.2"""
    boost = 1.0

    created_at = ensure_utc(document.created_at)
    if created_at is not None:
        month_ago = (now or utcnow()) - timedelta(days=30)
        if created_at > month_ago:
            boost += 0.1

    if document.status and document.status.upper() in BOOSTED_STATUSES:
        boost += 0.2

    return boost

def search_summary(document: SearchDocument) -> str:
    """Title and description, the description cut to 147 characters plus '...'"""
    parts = []
    if document.title is not None:
        parts.append(document.title)

    if document.description is not None:
        description = document.description
        if len(description) > SUMMARY_LIMIT:
            description = description[:SUMMARY_LIMIT - 3] + "..."
        parts.append(description)

    return " - ".join(parts)

def highlight(summary: str, query: Optional[str]) -> str:
    """Wrap every case-insensitive occurrence of a query term as **TERM**"""
    terms = [t for t in query_terms(query) if len(t) >= MIN_TERM_LENGTH]
    if not terms:
        return summary

    # Longest first so overlapping terms wrap the longer match
    pattern = re.compile(
        "|".join(re.escape(t) for t in sorted(set(terms), key=len, reverse=True)),
        re.IGNORECASE
    )
    return pattern.sub(lambda m: f"**{m.group(0).upper()}**", summary)
