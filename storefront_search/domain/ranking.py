# storefront_search/domain/ranking.py
#
# Relevance scoring shared by the cached-index search and the live
# catalogue fallback. No storage or network access here: both call sites
# must rank identically.

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .models import GroupedResults, SearchIndexItem
from .tokenizer import tokenize


# ── Query shape ───────────────────────────────────────────────────────────────

SKU_QUERY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
# Commas, newlines, or runs of two or more whitespace characters.
MULTI_SKU_DELIMITERS = re.compile(r"[,\n\r]+|\s{2,}")
_SEPARATORS = re.compile(r"[-_]")

# ── Score bands ───────────────────────────────────────────────────────────────
# Bands are ordinal: each outranks everything below it for the same item.

MULTI_SKU_EXACT_SCORE = 2000
MULTI_SKU_PARTIAL_SCORE = 1500

DIRECT_MATCH_FINAL_THRESHOLD = 800

SKU_EXACT_SCORE = (2000, 1000)          # (SKU-like query, other query)
SKU_PREFIX_SCORE = (1000, 500)
SKU_CONTAINS_SCORE = (600, 300)
SKU_SUBSEQUENCE_SCORE = 400

DIRECT_SKU_EXACT_SCORE = (2000, 1500)
DIRECT_SKU_PREFIX_SCORE = (1200, 700)
DIRECT_SKU_CONTAINS_SCORE = (800, 400)
DIRECT_SKU_COMPACT_SCORE = 600
DIRECT_SKU_COMPACT_MAX_QUERY = 6

NAME_EXACT_SCORE = 1000
NAME_PREFIX_SCORE = 500
NAME_CONTAINS_SCORE = 200
SLUG_CONTAINS_SCORE = 150

TOKEN_EXACT_SCORE = 50
TOKEN_PREFIX_SCORE = 25
TOKEN_CONTAINS_SCORE = 10
TOKEN_COMPLETENESS_BONUS = 1.5

TYPE_WEIGHTS = {"product": 5, "category": 2, "brand": 1, "tag": 1}
FUZZY_WEIGHT = 30

# ── Grouping caps (search box sections) ───────────────────────────────────────

GROUP_LIMITS = {
    "products": 10,
    "categories": 8,
    "brands": 8,
    "tags": 8,
    "skus": 10,
}
_GROUP_FOR_TYPE = {
    "product": "products",
    "category": "categories",
    "brand": "brands",
    "tag": "tags",
}


@dataclass(frozen=True)
class ParsedQuery:
    """A search query with its shape detected once, before scoring."""
    raw: str
    lowered: str
    tokens: List[str]
    skus: List[str]
    is_multi_sku: bool
    is_sku_like: bool

    @property
    def lowered_skus(self) -> List[str]:
        return [sku.lower() for sku in self.skus]


def parse_multiple_skus(query: str) -> List[str]:
    """
    Split pasted text into SKU candidates.

    Segments are separated by commas, newlines, or 2+ spaces; a segment is
    kept when it is at least 2 characters of letters, digits, `-` or `_`.
    Shape is all that matters: "blue  red" yields ["blue", "red"].
    """
    segments = (segment.strip() for segment in MULTI_SKU_DELIMITERS.split(query))
    return [s for s in segments if len(s) >= 2 and SKU_QUERY_PATTERN.match(s)]


def is_sku_like(query: str) -> bool:
    return len(query) >= 2 and SKU_QUERY_PATTERN.match(query) is not None


def parse_query(query: str) -> ParsedQuery:
    trimmed = query.strip()
    skus = parse_multiple_skus(query)
    lowered = trimmed.lower()
    return ParsedQuery(
        raw=trimmed,
        lowered=lowered,
        tokens=tokenize(lowered),
        skus=skus,
        is_multi_sku=len(skus) > 1,
        is_sku_like=is_sku_like(trimmed),
    )


# ── Scoring ───────────────────────────────────────────────────────────────────

def _ordered_match_count(query: str, text: str) -> int:
    """How many query characters appear in order in `text`, in one pass."""
    matched = 0
    for char in text:
        if matched == len(query):
            break
        if char == query[matched]:
            matched += 1
    return matched


def fuzzy_match(query: str, text: str) -> float:
    """Share of query characters found in order in `text`. Not an edit distance."""
    if not query:
        return 0.0
    return _ordered_match_count(query, text) / len(query)


def multi_sku_score(skus: Sequence[str], item: SearchIndexItem) -> int:
    """2000 when the item SKU equals any requested SKU, 1500 when one contains the other."""
    if not item.sku:
        return 0

    item_sku = item.sku.lower()
    score = 0
    for sku in skus:
        sku = sku.lower()
        if item_sku == sku:
            return MULTI_SKU_EXACT_SCORE
        if sku in item_sku or item_sku in sku:
            score = MULTI_SKU_PARTIAL_SCORE
    return score


def _name_and_slug_score(query: str, item: SearchIndexItem) -> int:
    name = item.name.lower()
    score = 0

    if name == query:
        score += NAME_EXACT_SCORE
    elif name.startswith(query):
        score += NAME_PREFIX_SCORE
    elif query in name:
        score += NAME_CONTAINS_SCORE

    if query in item.slug.lower():
        score += SLUG_CONTAINS_SCORE

    return score


def direct_match_score(query: str, item: SearchIndexItem) -> float:
    """
    Plain substring scoring of a lowercased query against SKU, name and slug.
    Used first for SKU-like queries and as a last resort when token scoring
    finds nothing.
    """
    sku_like = is_sku_like(query)
    pick = 0 if sku_like else 1
    score = 0

    if item.sku:
        sku = item.sku.lower()
        if sku == query:
            score += DIRECT_SKU_EXACT_SCORE[pick]
        elif sku.startswith(query):
            score += DIRECT_SKU_PREFIX_SCORE[pick]
        elif query in sku:
            score += DIRECT_SKU_CONTAINS_SCORE[pick]
        elif sku_like and len(query) < DIRECT_SKU_COMPACT_MAX_QUERY:
            if _SEPARATORS.sub("", query) in _SEPARATORS.sub("", sku):
                score += DIRECT_SKU_COMPACT_SCORE

    return score + _name_and_slug_score(query, item)


def _token_overlap_score(query_tokens: Sequence[str], item_tokens: Sequence[str]) -> float:
    score = 0.0
    matched = 0

    for query_token in query_tokens:
        if len(query_token) < 2:
            continue
        for item_token in item_tokens:
            if item_token == query_token:
                score += TOKEN_EXACT_SCORE
            elif item_token.startswith(query_token):
                score += TOKEN_PREFIX_SCORE
            elif query_token in item_token:
                score += TOKEN_CONTAINS_SCORE
            else:
                continue
            matched += 1
            break

    if query_tokens and matched == len(query_tokens):
        score *= TOKEN_COMPLETENESS_BONUS
    return score


def relevance_score(query: ParsedQuery, item: SearchIndexItem) -> float:
    """Full band scoring: SKU, name, slug, token overlap, type weight, fuzzy tie-break."""
    text = query.lowered
    pick = 0 if query.is_sku_like else 1
    score = 0.0

    if item.sku:
        sku = item.sku.lower()
        if sku == text:
            score += SKU_EXACT_SCORE[pick]
        elif sku.startswith(text):
            score += SKU_PREFIX_SCORE[pick]
        elif text in sku:
            score += SKU_CONTAINS_SCORE[pick]
        elif query.is_sku_like:
            matched = _ordered_match_count(text, sku)
            if matched >= min(len(text), 3):
                score += SKU_SUBSEQUENCE_SCORE * (matched / len(text))

    score += _name_and_slug_score(text, item)
    score += _token_overlap_score(query.tokens, item.tokens)
    score += TYPE_WEIGHTS.get(item.type, 0)
    score += fuzzy_match(text, item.name.lower()) * FUZZY_WEIGHT
    return score


def score_item(query: ParsedQuery, item: SearchIndexItem) -> float:
    """Score one candidate; 0 means the item is excluded."""
    score = 0.0

    if query.is_multi_sku and item.sku:
        score = multi_sku_score(query.skus, item)
        if score >= MULTI_SKU_PARTIAL_SCORE:
            return score

    if query.is_sku_like and not query.is_multi_sku and item.sku:
        score = direct_match_score(query.lowered, item)
        if score >= DIRECT_MATCH_FINAL_THRESHOLD:
            return score

    if query.tokens:
        score = max(score, relevance_score(query, item))

    if score == 0 and len(query.lowered) >= 2:
        score = direct_match_score(query.lowered, item)

    return score


# ── Ranking ───────────────────────────────────────────────────────────────────

def sku_match_kind(query: ParsedQuery, item: SearchIndexItem) -> Optional[str]:
    """
    "exact" or "partial" when the item SKU answers the query directly, else None.
    Multi-SKU queries compare against every requested SKU; single SKU-like
    queries match on equality, prefix or containment.
    """
    if not item.sku:
        return None

    item_sku = item.sku.lower()
    if query.is_multi_sku:
        kind = None
        for sku in query.lowered_skus:
            if item_sku == sku:
                return "exact"
            if sku in item_sku or item_sku in sku:
                kind = "partial"
        return kind

    if query.is_sku_like:
        if item_sku == query.lowered:
            return "exact"
        if query.lowered in item_sku:
            return "partial"
    return None


def partition_by_sku_match(
    query: ParsedQuery,
    items: Sequence[SearchIndexItem],
) -> List[SearchIndexItem]:
    """Stable re-order: exact SKU hits, then partial SKU hits, then the rest."""
    exact, partial, other = [], [], []
    for item in items:
        kind = sku_match_kind(query, item)
        if kind == "exact":
            exact.append(item)
        elif kind == "partial":
            partial.append(item)
        else:
            other.append(item)
    return exact + partial + other


def rank_items(
    items: Sequence[SearchIndexItem],
    query: str,
    limit: int = 50,
) -> List[SearchIndexItem]:
    """
    Score, filter, sort and truncate candidates for one query.

    Ties keep their input order. Multi-SKU queries get a second pass that
    groups SKU hits ahead of everything else. A non-positive limit yields
    no results.
    """
    if limit <= 0 or not items or not query.strip():
        return []

    parsed = parse_query(query)
    scores = np.fromiter(
        (score_item(parsed, item) for item in items),
        dtype=np.float64,
        count=len(items),
    )

    candidates = np.flatnonzero(scores > 0)
    order = candidates[np.argsort(-scores[candidates], kind="stable")][:limit]
    ranked = [items[i] for i in order]

    if parsed.is_multi_sku:
        ranked = partition_by_sku_match(parsed, ranked)
    return ranked


def group_results(
    items: Sequence[SearchIndexItem],
    query: str,
) -> GroupedResults:
    """
    Shape an already-ranked list into search box sections.
    Products whose SKU answers the query go to `skus` instead of `products`.
    """
    parsed = parse_query(query)
    grouped = GroupedResults()

    for item in items:
        group = _GROUP_FOR_TYPE.get(item.type)
        if group is None:
            continue
        if group == "products" and sku_match_kind(parsed, item) is not None:
            group = "skus"

        bucket = getattr(grouped, group)
        if len(bucket) < GROUP_LIMITS[group]:
            bucket.append(item)

    return grouped
