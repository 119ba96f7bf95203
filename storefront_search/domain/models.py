# storefront_search/domain/models.py

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Literal, Optional


EntityType = Literal["product", "category", "brand", "tag"]
ENTITY_TYPES = ("product", "category", "brand", "tag")

# Fields only products carry. Absent (None) on every other type.
PRODUCT_ONLY_FIELDS = (
    "sku",
    "price",
    "regular_price",
    "on_sale",
    "image",
    "category_ids",
    "brand_id",
)


def make_item_key(entity_type: str, entity_id: int) -> str:
    """Composite storage key: unique per (type, id) within one snapshot."""
    return f"{entity_type}_{entity_id}"


@dataclass
class SearchIndexItem:
    """
    One catalogue entity (product, category, brand or tag) prepared for search.

    `searchable_text` and `tokens` are computed once when the index is built
    and never recomputed at query time.
    """
    key: str
    id: int
    type: EntityType
    name: str
    slug: str
    searchable_text: str = ""
    tokens: List[str] = field(default_factory=list, repr=False)
    sku: Optional[str] = None
    price: Optional[str] = None
    regular_price: Optional[str] = None
    on_sale: Optional[bool] = None
    image: Optional[str] = None
    category_ids: Optional[List[int]] = None
    brand_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form. Absent optional fields are omitted, not nulled."""
        data: Dict[str, Any] = {}
        for item_field in fields(self):
            value = getattr(self, item_field.name)
            if value is None:
                continue
            data[item_field.name] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchIndexItem":
        known = {item_field.name for item_field in fields(cls)}
        return cls(**{name: value for name, value in data.items() if name in known})


@dataclass
class CatalogueBundle:
    """Raw catalogue records grouped by entity type, as fetched for a full sync."""
    products: List[dict] = field(default_factory=list)
    categories: List[dict] = field(default_factory=list)
    brands: List[dict] = field(default_factory=list)
    tags: List[dict] = field(default_factory=list)
    timestamp: int = 0
    total_products: int = 0

    def is_empty(self) -> bool:
        return not (self.products or self.categories or self.brands or self.tags)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": self.products,
            "categories": self.categories,
            "brands": self.brands,
            "tags": self.tags,
            "timestamp": self.timestamp,
            "totalProducts": self.total_products,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogueBundle":
        def _records(name: str) -> List[dict]:
            value = data.get(name)
            return [r for r in value if isinstance(r, dict)] if isinstance(value, list) else []

        products = _records("products")
        return cls(
            products=products,
            categories=_records("categories"),
            brands=_records("brands"),
            tags=_records("tags"),
            timestamp=int(data.get("timestamp") or 0),
            total_products=int(data.get("totalProducts") or len(products)),
        )


@dataclass
class GroupedResults:
    """
    Ranked search results shaped for the search box: one list per entity
    type, plus `skus` for products whose SKU matched the query directly.
    """
    products: List[SearchIndexItem] = field(default_factory=list)
    categories: List[SearchIndexItem] = field(default_factory=list)
    brands: List[SearchIndexItem] = field(default_factory=list)
    tags: List[SearchIndexItem] = field(default_factory=list)
    skus: List[SearchIndexItem] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.products or self.categories or self.brands or self.tags or self.skus)

    def total(self) -> int:
        return (
            len(self.products) + len(self.categories) + len(self.brands)
            + len(self.tags) + len(self.skus)
        )

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "products":   [item.to_dict() for item in self.products],
            "categories": [item.to_dict() for item in self.categories],
            "brands":     [item.to_dict() for item in self.brands],
            "tags":       [item.to_dict() for item in self.tags],
            "skus":       [item.to_dict() for item in self.skus],
        }
