# tests/test_tokenizer.py

from storefront_search.domain.tokenizer import tokenize


def test_plain_words_are_lowercased_and_split():
    assert tokenize("Nitrile Gloves") == ["nitrile", "gloves"]


def test_sku_part_is_kept_whole_with_compact_variant():
    assert tokenize("GLV-200") == ["glv-200", "glv200"]


def test_underscore_sku_gets_compact_variant():
    assert tokenize("ab_12") == ["ab_12", "ab12"]


def test_punctuation_is_stripped_from_non_sku_parts():
    assert tokenize("hello, world!") == ["hello", "world"]


def test_compact_variant_needs_two_characters():
    assert tokenize("--") == ["--"]


def test_no_deduplication():
    assert tokenize("red red") == ["red", "red"]


def test_empty_and_whitespace_text():
    assert tokenize("") == []
    assert tokenize("   \n\t ") == []


def test_tokenize_is_deterministic():
    text = "Powder-free Nitrile Gloves, size L (GLV-200)"
    assert tokenize(text) == tokenize(text)
