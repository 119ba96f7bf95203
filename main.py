# main.py

import asyncio
import sys

from storefront_search.config import settings
from storefront_search.container import (
    build_catalogue_source,
    build_fallback_service,
    build_index_service,
)
from storefront_search.interface.cli import (
    ask_continue,
    display_error,
    display_index_status,
    display_index_unavailable,
    display_results,
    display_welcome_banner,
    prompt_for_query,
)


async def run() -> None:
    display_welcome_banner()

    # ── 1. Initialize infrastructure ─────────────────────────────────────────
    try:
        catalogue = build_catalogue_source(settings)
    except ValueError as error:
        display_error(f"{error}\nSet WC_API_URL or CATALOGUE_SNAPSHOT_PATH in .env.")
        sys.exit(1)

    index_service = build_index_service(catalogue, settings)
    fallback_service = build_fallback_service(catalogue, settings)

    # ── 2. Load cached index, or sync one ────────────────────────────────────
    await index_service.initialize()

    if index_service.is_ready():
        display_index_status(
            item_count=index_service.item_count,
            product_count=index_service.get_total_count(),
            from_cache=index_service.served_from_cache,
        )
    else:
        display_index_unavailable()

    # ── 3. Interactive search loop ────────────────────────────────────────────
    # Prompts block, so they run on a thread while a background refresh continues.
    try:
        while True:
            query = await asyncio.to_thread(prompt_for_query)

            if index_service.is_ready():
                results = index_service.search_grouped(query, limit=settings.search_result_limit)
                source = "index"
            else:
                results = await fallback_service.search(query)
                source = "live catalogue"

            display_results(query, results, source)

            if not await asyncio.to_thread(ask_continue):
                break
    finally:
        await index_service.close()


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\n[Main] Interrupted.")


if __name__ == "__main__":
    main()
