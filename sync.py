#!/usr/bin/env python3
"""mybook catalog sync - crawl genres, tags and books into the document store."""
import asyncio
import sys
from tabulate import tabulate
from mybook_sync.config import Config
from mybook_sync.models import SyncSummary
from mybook_sync.pipeline import CatalogPipeline
import logging

logger = logging.getLogger(__name__)


def setup_logging(config: Config):
    """Configure root logging from LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def display_summary(summary: SyncSummary):
    """Print one row per stage."""
    headers = ["Resource", "Pages", "Records", "Saved", "Status", "Error"]
    rows = [
        [
            stage.resource,
            stage.pages,
            stage.records,
            stage.saved,
            stage.status,
            (stage.error[:60] + "...") if stage.error and len(stage.error) > 60 else (stage.error or "")
        ]
        for stage in summary.stages
    ]
    print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))
    print(f"Total books processed: {summary.books_processed}\n")


def main():
    """Main entry point."""
    config = Config()
    setup_logging(config)

    try:
        summary = asyncio.run(CatalogPipeline(config).run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Error during data fetching: {e}", exc_info=True)
        sys.exit(1)

    display_summary(summary)


if __name__ == "__main__":
    main()
