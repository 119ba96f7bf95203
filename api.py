import asyncio
import time
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from storefront_search.application.fallback_search_service import FallbackSearchService
from storefront_search.application.search_index_service import SearchIndexService
from storefront_search.application.ttl_cache import TTLCache
from storefront_search.config import Settings, settings
from storefront_search.container import (
    build_catalogue_source,
    build_fallback_service,
    build_index_service,
)
from storefront_search.domain.interfaces import CatalogueSourcePort
from storefront_search.domain.models import CatalogueBundle, GroupedResults

# ── Configuration ────────────────────────────────────────────────────────────
INDEX_BUNDLE_CACHE_KEY = "index_bundle"
DEFAULT_SUGGEST_LIMIT = 30
MAX_SUGGEST_LIMIT = 100

# ── API Models ───────────────────────────────────────────────────────────────
class SearchItemSchema(BaseModel):
    id: int
    type: str
    name: str
    slug: str
    sku: Optional[str] = None
    price: Optional[str] = None
    regular_price: Optional[str] = None
    on_sale: Optional[bool] = None
    image: Optional[str] = None
    category_ids: Optional[List[int]] = None
    brand_id: Optional[int] = None

class GroupedResultsSchema(BaseModel):
    products: List[SearchItemSchema] = []
    categories: List[SearchItemSchema] = []
    brands: List[SearchItemSchema] = []
    tags: List[SearchItemSchema] = []
    skus: List[SearchItemSchema] = []

class SuggestResponse(GroupedResultsSchema):
    query: str
    source: str

class CountResponse(BaseModel):
    count: int

class StatusResponse(BaseModel):
    is_ready: bool
    is_refreshing: bool
    items_indexed: int
    total_products: int
    last_sync_time: int

class ReindexResponse(BaseModel):
    message: str
    synced: bool
    is_ready: bool
    total_products: int


def create_app(
    catalogue: Optional[CatalogueSourcePort] = None,
    index_service: Optional[SearchIndexService] = None,
    fallback_service: Optional[FallbackSearchService] = None,
    config: Settings = settings,
) -> FastAPI:
    """
    Build the HTTP app. Services not passed in are built from `config` on
    startup; the index loads in the background so the server answers at
    once, with live search covering the gap.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        source = catalogue or build_catalogue_source(config)
        app.state.catalogue = source
        app.state.index_service = index_service or build_index_service(source, config)
        app.state.fallback_service = fallback_service or build_fallback_service(source, config)
        app.state.bundle_cache = TTLCache(config.index_bundle_cache_ttl_seconds, max_entries=1)

        app.state.init_task = asyncio.create_task(app.state.index_service.initialize())
        try:
            yield
        finally:
            if not app.state.init_task.done():
                app.state.init_task.cancel()
            await app.state.index_service.close()

    app = FastAPI(
        title="Storefront Search API",
        description="Instant product, category, brand and SKU search over a WooCommerce catalogue.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # ── CORS Middleware ──────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Endpoints ────────────────────────────────────────────────────────────
    @app.get("/")
    def read_root(request: Request):
        service: SearchIndexService = request.app.state.index_service
        return {
            "message": "Storefront Search API is running.",
            "status": "ready" if service.is_ready() else "live_search_only",
            "items_indexed": service.item_count,
        }

    @app.get("/status", response_model=StatusResponse)
    def get_status(request: Request):
        service: SearchIndexService = request.app.state.index_service
        return StatusResponse(
            is_ready=service.is_ready(),
            is_refreshing=service.is_refreshing,
            items_indexed=service.item_count,
            total_products=service.get_total_count(),
            last_sync_time=service.last_sync_time,
        )

    @app.get("/search", response_model=GroupedResultsSchema)
    async def search(request: Request, q: str = ""):
        """Live catalogue search. Always answers 200, with empty groups on failure."""
        results = await _live_search(request.app.state.fallback_service, q)
        return results.to_dict()

    @app.get("/search/suggest", response_model=SuggestResponse)
    async def suggest(
        request: Request,
        q: str = "",
        limit: int = Query(DEFAULT_SUGGEST_LIMIT, ge=1, le=MAX_SUGGEST_LIMIT),
    ):
        service: SearchIndexService = request.app.state.index_service
        if service.is_ready():
            results, source = service.search_grouped(q, limit=limit), "index"
        else:
            results, source = await _live_search(request.app.state.fallback_service, q), "live"
        return {**results.to_dict(), "query": q, "source": source}

    @app.get("/search/count", response_model=CountResponse)
    def count(request: Request):
        return CountResponse(count=request.app.state.index_service.get_total_count())

    @app.get("/search/index")
    async def index_bundle(request: Request):
        """Everything a full index sync consumes, cached in-process."""
        cache: TTLCache = request.app.state.bundle_cache
        cached = cache.get(INDEX_BUNDLE_CACHE_KEY)
        if cached is not None:
            return cached

        try:
            bundle = await request.app.state.catalogue.fetch_index_bundle()
        except Exception as error:
            print(f"[API] ⚠ Index bundle fetch failed: {error}")
            return CatalogueBundle(timestamp=int(time.time() * 1000)).to_dict()

        payload = bundle.to_dict()
        cache.set(INDEX_BUNDLE_CACHE_KEY, payload)
        return payload

    @app.post("/reindex", response_model=ReindexResponse)
    async def trigger_reindex(request: Request):
        """Force a full sync, whatever the age of the current index."""
        service: SearchIndexService = request.app.state.index_service
        synced = await service.sync()
        if synced:
            request.app.state.bundle_cache.clear()
        return ReindexResponse(
            message="Re-indexing complete." if synced else "Re-indexing failed, previous index kept.",
            synced=synced,
            is_ready=service.is_ready(),
            total_products=service.get_total_count(),
        )

    return app


async def _live_search(service: FallbackSearchService, query: str) -> GroupedResults:
    try:
        return await service.search(query)
    except Exception as error:
        print(f"[API] ⚠ Live search failed for '{query}': {error}")
        return GroupedResults()


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
