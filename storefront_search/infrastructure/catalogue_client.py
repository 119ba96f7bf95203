# storefront_search/infrastructure/catalogue_client.py

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from storefront_search.config import Settings, settings
from storefront_search.domain.interfaces import CatalogueSourcePort, CatalogueUnavailableError
from storefront_search.domain.models import CatalogueBundle


PRODUCT_FIELDS = ",".join([
    "id",
    "name",
    "slug",
    "sku",
    "price",
    "regular_price",
    "on_sale",
    "images",
    "categories",
    "tags",
    "brands",
    "attributes",
    "description",
])
TAXONOMY_FIELDS = "id,name,slug"

INDEX_PAGE_SIZE = 100
MAX_INDEX_PAGES = 10
TAXONOMY_INDEX_PAGE_SIZE = 100

# WordPress taxonomy routes, each with the WooCommerce route (or alternate
# taxonomy) tried when the primary is missing or empty.
CATEGORY_TAXONOMY = "product_cat"
BRAND_TAXONOMY = "product_brand"
ALTERNATE_BRAND_TAXONOMY = "brands"
TAG_TAXONOMY = "product_tag"


class WooCatalogueClient(CatalogueSourcePort):
    """
    Catalogue source backed by a WooCommerce store.

    Products come from the authenticated WooCommerce REST API; categories,
    brands and tags from the public WordPress taxonomy routes, falling back
    to WooCommerce routes (categories, tags) or an alternate taxonomy
    name (brands).
    """

    def __init__(
        self,
        wc_api_url: str,
        wp_api_url: str = "",
        consumer_key: str = "",
        consumer_secret: str = "",
        timeout_seconds: float = 15,
        debug: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not wc_api_url:
            raise ValueError("WooCommerce API URL is not configured (WC_API_URL).")
        self.wc_api_url = wc_api_url.rstrip("/")
        self.wp_api_url = wp_api_url.rstrip("/")
        self.timeout = timeout_seconds
        self.debug = debug
        self._auth = (consumer_key, consumer_secret) if consumer_key else None
        self._transport = transport

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "WooCatalogueClient":
        return cls(
            wc_api_url=config.wc_api_url,
            wp_api_url=config.wp_api_url,
            consumer_key=config.wc_consumer_key,
            consumer_secret=config.wc_consumer_secret,
            timeout_seconds=config.request_timeout_seconds,
            debug=config.debug_log,
        )

    # ─── Full Sync ───────────────────────────────────────────────────────────

    async def fetch_index_bundle(self) -> CatalogueBundle:
        async with self._client() as client:
            products = await self._fetch_all_products(client)
            categories, brands, tags = await asyncio.gather(
                self._index_taxonomy(client, self._find_categories, "categories"),
                self._index_taxonomy(client, self._find_brands, "brands"),
                self._index_taxonomy(client, self._find_tags, "tags"),
            )

        print(
            f"[CatalogueClient] Fetched index bundle: {len(products)} products, "
            f"{len(categories)} categories, {len(brands)} brands, {len(tags)} tags."
        )
        return CatalogueBundle(
            products=products,
            categories=categories,
            brands=brands,
            tags=tags,
            timestamp=int(time.time() * 1000),
            total_products=len(products),
        )

    async def _fetch_all_products(self, client: httpx.AsyncClient) -> list[dict]:
        try:
            products = await self._fetch_products_page(client, page=1)
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogueUnavailableError(f"Product index fetch failed: {exc}") from exc

        page = 2
        while len(products) == INDEX_PAGE_SIZE * (page - 1) and page <= MAX_INDEX_PAGES:
            try:
                batch = await self._fetch_products_page(client, page=page)
            except (httpx.HTTPError, ValueError) as exc:
                print(f"[CatalogueClient] ⚠ Error fetching products page {page}: {exc}")
                break
            if not batch:
                break
            products.extend(batch)
            page += 1
        return products

    async def _fetch_products_page(self, client: httpx.AsyncClient, page: int) -> list[dict]:
        return await self._get_records(
            client,
            f"{self.wc_api_url}/products",
            {"status": "publish", "per_page": INDEX_PAGE_SIZE, "page": page, "_fields": PRODUCT_FIELDS},
            authenticated=True,
        )

    async def _index_taxonomy(self, client: httpx.AsyncClient, finder, label: str) -> list[dict]:
        try:
            return await finder(client, query="", limit=TAXONOMY_INDEX_PAGE_SIZE)
        except CatalogueUnavailableError as exc:
            print(f"[CatalogueClient] ⚠ Error fetching {label}: {exc}")
            return []

    # ─── Live Search ─────────────────────────────────────────────────────────

    async def search_products(self, query: str, limit: int = 20) -> list[dict]:
        params = {"status": "publish", "per_page": limit, "search": query.strip(), "_fields": PRODUCT_FIELDS}
        async with self._client() as client:
            try:
                return await self._get_records(client, f"{self.wc_api_url}/products", params, authenticated=True)
            except (httpx.HTTPError, ValueError) as exc:
                raise CatalogueUnavailableError(f"Product search failed: {exc}") from exc

    async def search_categories(self, query: str, limit: int = 10) -> list[dict]:
        async with self._client() as client:
            return await self._find_categories(client, query, limit)

    async def search_brands(self, query: str, limit: int = 10) -> list[dict]:
        async with self._client() as client:
            return await self._find_brands(client, query, limit)

    async def search_tags(self, query: str, limit: int = 10) -> list[dict]:
        async with self._client() as client:
            return await self._find_tags(client, query, limit)

    # ─── Taxonomies ──────────────────────────────────────────────────────────

    async def _find_categories(self, client: httpx.AsyncClient, query: str, limit: int) -> list[dict]:
        return await self._find_with_woo_fallback(client, CATEGORY_TAXONOMY, "products/categories", query, limit)

    async def _find_tags(self, client: httpx.AsyncClient, query: str, limit: int) -> list[dict]:
        return await self._find_with_woo_fallback(client, TAG_TAXONOMY, "products/tags", query, limit)

    async def _find_with_woo_fallback(
        self,
        client: httpx.AsyncClient,
        taxonomy: str,
        woo_route: str,
        query: str,
        limit: int,
    ) -> list[dict]:
        params = self._taxonomy_params(query, limit)
        try:
            if self.wp_api_url:
                try:
                    return await self._get_records(client, f"{self.wp_api_url}/{taxonomy}", params)
                except httpx.HTTPStatusError as exc:
                    if self.debug:
                        print(f"[DEBUG][CatalogueClient] {taxonomy} HTTP {exc.response.status_code}, trying /{woo_route}")
                except httpx.TransportError as exc:
                    if self.debug:
                        print(f"[DEBUG][CatalogueClient] {taxonomy} unreachable ({exc}), trying /{woo_route}")
            return await self._get_records(client, f"{self.wc_api_url}/{woo_route}", params, authenticated=True)
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogueUnavailableError(f"{taxonomy} lookup failed: {exc}") from exc

    async def _find_brands(self, client: httpx.AsyncClient, query: str, limit: int) -> list[dict]:
        if not self.wp_api_url:
            return []

        params = self._taxonomy_params(query, limit)
        brands: list[dict] = []
        try:
            brands = await self._get_records(client, f"{self.wp_api_url}/{BRAND_TAXONOMY}", params)
        except httpx.HTTPStatusError as exc:
            if self.debug:
                print(f"[DEBUG][CatalogueClient] {BRAND_TAXONOMY} HTTP {exc.response.status_code}")
        except (httpx.HTTPError, ValueError) as exc:
            raise CatalogueUnavailableError(f"{BRAND_TAXONOMY} lookup failed: {exc}") from exc

        if brands:
            return brands

        # Alternate taxonomy name, tried only after the primary came back empty.
        try:
            return await self._get_records(client, f"{self.wp_api_url}/{ALTERNATE_BRAND_TAXONOMY}", params)
        except (httpx.HTTPError, ValueError) as exc:
            if self.debug:
                print(f"[DEBUG][CatalogueClient] {ALTERNATE_BRAND_TAXONOMY} lookup failed: {exc.__class__.__name__}")
            return []

    @staticmethod
    def _taxonomy_params(query: str, limit: int) -> dict[str, Any]:
        params: dict[str, Any] = {"per_page": limit, "hide_empty": "true", "_fields": TAXONOMY_FIELDS}
        if query.strip():
            params["search"] = query.strip()
        return params

    # ─── HTTP ────────────────────────────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(connect=10.0, read=max(10.0, float(self.timeout)), write=10.0, pool=10.0)
        headers = {"User-Agent": "storefront-search/0.1", "Accept": "application/json"}
        return httpx.AsyncClient(timeout=timeout, headers=headers, transport=self._transport)

    async def _get_records(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any],
        authenticated: bool = False,
    ) -> list[dict]:
        auth = self._auth if authenticated and self._auth else httpx.USE_CLIENT_DEFAULT
        response = await client.get(url, params=params, auth=auth)
        if self.debug:
            print(f"[DEBUG][CatalogueClient] status={response.status_code} url={response.request.url}")
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, list):
            return []
        return [record for record in data if isinstance(record, dict)]
