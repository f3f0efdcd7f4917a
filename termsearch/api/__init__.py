"""HTTP API for search and cache maintenance."""
