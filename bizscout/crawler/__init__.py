"""bizscout.crawler: retrieval strategies, managed crawl API client, fetchers and data models."""
