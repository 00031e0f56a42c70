"""Print catalog pages and dashboard statistics, optionally exporting to CSV."""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

load_dotenv()

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

from listing_catalog.config import Config
from listing_catalog.db.operations import ListingStore, close_db, get_db
from listing_catalog.errors import CatalogError
from listing_catalog.export import export_row, write_csv
from listing_catalog.query import CatalogFilter, CatalogQuery, CatalogSort, PageRequest
from listing_catalog.stats import summarize


console = Console()


def show_page(items) -> None:
    """Render one page of listings."""
    table = Table(title="Listings")
    table.add_column("Name", style="cyan", max_width=40)
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Location")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Views", justify="right")

    for listing in items:
        row = export_row(listing)
        table.add_row(row.name, row.type, row.status, row.location or "-", row.price or "-", str(row.views))

    console.print(table)


def show_stats(store: ListingStore) -> None:
    """Render dashboard statistics over the whole (non-deleted) catalog."""
    stats = summarize(store.all_listings())
    shares = stats.share_by_type()

    console.print(f"\n[bold]Catalog summary[/bold] ({stats.total} listings)")
    table = Table()
    table.add_column("Type")
    table.add_column("Count", justify="right")
    table.add_column("Share", justify="right")
    for listing_type, count in sorted(stats.by_type.items()):
        table.add_row(listing_type, str(count), f"{shares[listing_type]:.1f}%")
    console.print(table)

    console.print(f"  Recently added:   {stats.recently_added}")
    console.print(f"  Pending approval: {stats.pending_approval}")
    console.print(f"  Published:        {stats.published_count}")


def main():
    parser = argparse.ArgumentParser(description="Browse the listing catalog")
    parser.add_argument("--type", help="Filter by listing type")
    parser.add_argument("--status", help="Filter by status")
    parser.add_argument("--industry", action="append", default=[], help="Industry filter (repeatable)")
    parser.add_argument("--search", help="Search term applied to each fetched page")
    parser.add_argument("--sort", default="createdAt", help="createdAt, name or analytics.viewCount")
    parser.add_argument("--order", default="desc", choices=["asc", "desc"])
    parser.add_argument("--page-size", type=int, default=None)
    parser.add_argument("--pages", type=int, default=1, help="Number of pages to walk")
    parser.add_argument("--export", type=Path, help="Write the walked listings to this CSV file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("listing_catalog").setLevel(logging.DEBUG)

    cfg = Config()
    cfg.ensure_dirs()
    store = ListingStore(get_db(cfg.db_path))
    engine = CatalogQuery(store, max_page_size=cfg.max_page_size)

    try:
        filter = CatalogFilter(type=args.type, status=args.status, industries=args.industry, search_term=args.search)
        sort = CatalogSort(sort_field=args.sort, sort_order=args.order)
        page = PageRequest(page_size=args.page_size or cfg.default_page_size)

        walked = []
        for number in range(1, args.pages + 1):
            result = engine.query(filter, sort, page)
            console.print(f"\n[bold blue]Page {number}[/bold blue] ({len(result.items)} shown, more: {result.has_more})")
            show_page(result.items)
            walked.extend(result.items)
            if not result.has_more:
                break
            page = PageRequest(page_size=page.page_size, cursor=result.cursor)

        show_stats(store)

        if args.export:
            with args.export.open("w", newline="", encoding="utf-8") as fp:
                count = write_csv(walked, fp, currency=cfg.currency)
            console.print(f"\n[green]Exported {count} listings to {args.export}[/green]")
    except CatalogError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e.user_message}")
        logger.exception("Catalog report failed")
        sys.exit(1)
    finally:
        close_db()


if __name__ == "__main__":
    main()
