"""mybook.ru catalog sync: paginated crawl, author reconciliation and document storage."""
