"""Services: retry, cache registry and persistence, providers and sync."""
