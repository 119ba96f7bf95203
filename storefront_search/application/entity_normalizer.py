# storefront_search/application/entity_normalizer.py

from typing import Any, Iterable, List, Optional

from storefront_search.domain.models import (
    CatalogueBundle,
    EntityType,
    SearchIndexItem,
    make_item_key,
)
from storefront_search.domain.tokenizer import tokenize


def normalize_product(record: dict) -> SearchIndexItem:
    """
    Build the index item for one raw catalogue product.

    Searchable text, in priority order: name, SKU, the SKU split on dashes,
    the SKU split on underscores, description, category/tag/brand names,
    attribute option values. The split spellings make each SKU part a token
    of its own ("glv-200" also yields "glv" and "200").
    """
    sku = _clean_sku(record.get("sku"))
    sku_lower = (sku or "").lower()
    categories = _records(record.get("categories"))
    tags = _records(record.get("tags"))
    brands = _records(record.get("brands"))

    searchable_text = _join_searchable([
        _text(record.get("name")),
        sku_lower,
        sku_lower.replace("-", " "),
        sku_lower.replace("_", " "),
        _text(record.get("description")),
        *(_text(c.get("name")) for c in categories),
        *(_text(t.get("name")) for t in tags),
        *(_text(b.get("name")) for b in brands),
        *_attribute_options(record.get("attributes")),
    ])

    entity_id = _as_int(record.get("id"))
    images = _records(record.get("images"))

    return SearchIndexItem(
        key=make_item_key("product", entity_id),
        id=entity_id,
        type="product",
        name=_text(record.get("name")),
        slug=_text(record.get("slug")),
        searchable_text=searchable_text,
        tokens=tokenize(searchable_text),
        sku=sku,
        price=_optional_text(record.get("price")),
        regular_price=_optional_text(record.get("regular_price")),
        on_sale=bool(record.get("on_sale", False)),
        image=_optional_text(images[0].get("src")) if images else _optional_text(record.get("image")),
        category_ids=[_as_int(c.get("id")) for c in categories],
        brand_id=_as_int(brands[0].get("id")) if brands else None,
    )


def normalize_taxonomy(record: dict, entity_type: EntityType) -> SearchIndexItem:
    """Categories, brands and tags are searched by name and slug only."""
    entity_id = _as_int(record.get("id"))
    name = _text(record.get("name"))
    slug = _text(record.get("slug"))
    searchable_text = _join_searchable([name, slug])

    return SearchIndexItem(
        key=make_item_key(entity_type, entity_id),
        id=entity_id,
        type=entity_type,
        name=name,
        slug=slug,
        searchable_text=searchable_text,
        tokens=tokenize(searchable_text),
    )


def normalize_record(record: dict, entity_type: EntityType) -> SearchIndexItem:
    if entity_type == "product":
        return normalize_product(record)
    return normalize_taxonomy(record, entity_type)


def normalize_records(records: Iterable[Any], entity_type: EntityType) -> List[SearchIndexItem]:
    return [normalize_record(r, entity_type) for r in records if isinstance(r, dict)]


def build_index_items(bundle: CatalogueBundle) -> List[SearchIndexItem]:
    """
    Flatten a catalogue bundle into one index snapshot: products, categories,
    brands, tags. Keys are unique within the snapshot; a repeated record
    (e.g. a product seen on two pages) keeps its first occurrence.
    """
    items = (
        normalize_records(bundle.products, "product")
        + normalize_records(bundle.categories, "category")
        + normalize_records(bundle.brands, "brand")
        + normalize_records(bundle.tags, "tag")
    )

    seen = set()
    unique: List[SearchIndexItem] = []
    for item in items:
        if item.key in seen:
            continue
        seen.add(item.key)
        unique.append(item)

    if len(unique) < len(items):
        print(f"[Normalizer] Dropped {len(items) - len(unique)} duplicate item(s).")
    return unique


# ─── Private: Field Coercion ──────────────────────────────────────────────────

def _clean_sku(value: Any) -> Optional[str]:
    # Empty SKUs must be absent, never "": scoring branches on truthiness.
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _records(value: Any) -> List[dict]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def _attribute_options(value: Any) -> List[str]:
    options: List[str] = []
    for attribute in _records(value):
        raw = attribute.get("options")
        if isinstance(raw, list):
            options.extend(_text(option) for option in raw)
    return options


def _join_searchable(parts: Iterable[str]) -> str:
    return " ".join(part for part in parts if part).lower()
