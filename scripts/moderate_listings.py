"""Apply a moderation action to one or more listings."""

import argparse
import logging
import os
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

from listing_catalog.config import Config
from listing_catalog.db.operations import ListingStore, close_db, get_db
from listing_catalog.models.listing import Actor, ListingStatus
from listing_catalog.workflow import StatusWorkflow


console = Console()

ACTIONS = {
    "publish": ListingStatus.PUBLISHED,
    "pending": ListingStatus.PENDING,
    "reject": ListingStatus.REJECTED,
    "archive": ListingStatus.ARCHIVED,
}


def main():
    parser = argparse.ArgumentParser(description="Moderate listings")
    parser.add_argument("action", choices=[*ACTIONS, "delete"])
    parser.add_argument("listing_ids", nargs="+")
    parser.add_argument("--reason", help="Rejection or deletion reason")
    parser.add_argument(
        "--actor",
        default=os.environ.get("LISTING_CATALOG_ACTOR_UID"),
        help="Acting moderator uid (default: $LISTING_CATALOG_ACTOR_UID)",
    )
    args = parser.parse_args()

    if not args.actor:
        console.print("[bold red]An acting identity is required (--actor)[/bold red]")
        sys.exit(2)
    actor = Actor(uid=args.actor, display_name=os.environ.get("LISTING_CATALOG_ACTOR_NAME"))

    cfg = Config()
    cfg.ensure_dirs()
    store = ListingStore(get_db(cfg.db_path))
    try:
        if args.action == "delete":
            result = store.bulk_soft_delete(args.listing_ids, actor, reason=args.reason)
        else:
            workflow = StatusWorkflow(store)
            result = workflow.bulk_set_status(args.listing_ids, ACTIONS[args.action], actor, reason=args.reason)
    finally:
        close_db()

    console.print(f"[green]{args.action}:[/green] {result.success_count} succeeded, {result.error_count} failed")
    if result.errors:
        table = Table(title="Failures")
        table.add_column("Listing")
        table.add_column("Error")
        table.add_column("Message", style="red")
        for error in result.errors:
            table.add_row(error.listing_id, error.error_type, error.error_message)
        console.print(table)
        sys.exit(1)


if __name__ == "__main__":
    main()
