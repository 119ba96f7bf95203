# storefront_search/domain/tokenizer.py

import re
from typing import List


SKU_TOKEN_PATTERN = re.compile(r"^[a-z0-9_-]{2,}$", re.IGNORECASE)
_NON_TOKEN_CHARS = re.compile(r"[^a-z0-9\s_-]+")
_SEPARATORS = re.compile(r"[-_]")


def tokenize(text: str) -> List[str]:
    """
    Split pre-lowercased text into search tokens, keeping SKU-shaped parts whole.

    A SKU-shaped part ("abc-123") is emitted as-is and, when it contains
    separators, once more without them ("abc123") so either spelling matches.
    Other parts lose punctuation and are re-split on whitespace.
    No stemming, stopwords or deduplication.
    """
    tokens: List[str] = []

    for part in text.lower().split():
        if SKU_TOKEN_PATTERN.match(part):
            tokens.append(part)
            compact = _SEPARATORS.sub("", part)
            if compact != part and len(compact) >= 2:
                tokens.append(compact)
        else:
            tokens.extend(_NON_TOKEN_CHARS.sub(" ", part).split())

    return tokens
