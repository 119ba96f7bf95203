# storefront_search/interface/cli.py

from typing import List

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from storefront_search.domain.models import GroupedResults, SearchIndexItem


console = Console()

# Section title and accent colour, in display order.
SECTIONS = [
    ("skus",       "🏷  SKU matches", "green"),
    ("products",   "📦 Products",     "cyan"),
    ("categories", "🗂  Categories",  "magenta"),
    ("brands",     "⭐ Brands",       "yellow"),
    ("tags",       "🔖 Tags",         "blue"),
]


def display_welcome_banner() -> None:
    console.print(Panel.fit(
        "[bold cyan]🔍 Storefront Search[/bold cyan]\n"
        "[dim]Products, categories, brands and tags · paste several SKUs separated by commas[/dim]",
        box=box.DOUBLE,
        border_style="cyan",
    ))


def display_index_status(item_count: int, product_count: int, from_cache: bool) -> None:
    origin = "loaded from cache" if from_cache else "synced from catalogue"
    console.print(
        f"\n[green]✓[/green] Index {origin} — [bold]{product_count}[/bold] products, "
        f"[bold]{item_count}[/bold] searchable items.\n"
    )


def display_index_unavailable() -> None:
    console.print(
        "\n[yellow]⚠[/yellow] Search index unavailable — querying the catalogue live.\n"
    )


def prompt_for_query() -> str:
    return Prompt.ask("\n[bold yellow]🔎 Search[/bold yellow]")


def display_results(query: str, results: GroupedResults, source: str) -> None:
    console.print(
        f"\n[bold]Results for:[/bold] [italic]\"{query}\"[/italic] "
        f"[dim]({results.total()} from {source})[/dim]\n"
    )

    if results.is_empty():
        console.print("[dim]No matches.[/dim]")
        return

    for group, title, color in SECTIONS:
        items = getattr(results, group)
        if items:
            console.print(_section_table(title, color, items, with_product_columns=group in ("skus", "products")))


def display_error(message: str) -> None:
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}\n")


def ask_continue() -> bool:
    answer = Prompt.ask(
        "\n[dim]Search again?[/dim]",
        choices=["y", "n"],
        default="y",
    )
    return answer.lower() == "y"


def _section_table(
    title: str,
    color: str,
    items: List[SearchIndexItem],
    with_product_columns: bool,
) -> Table:
    table = Table(title=title, title_style=f"bold {color}", box=box.ROUNDED, border_style=color)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="bold white")
    if with_product_columns:
        table.add_column("SKU")
        table.add_column("Price", justify="right")
    table.add_column("Slug", style="dim")

    for rank, item in enumerate(items, start=1):
        row = [str(rank), item.name]
        if with_product_columns:
            row += [item.sku or "—", _format_price(item)]
        row.append(item.slug)
        table.add_row(*row)
    return table


def _format_price(item: SearchIndexItem) -> str:
    if not item.price:
        return "—"
    if item.on_sale and item.regular_price and item.regular_price != item.price:
        return f"[green]{item.price}[/green] [dim strike]{item.regular_price}[/dim strike]"
    return item.price
