"""Search service package.

Layout:
- ``api``: HTTP endpoints for search and cache maintenance.
- ``hybrid``: search orchestration (``SearchManager``).
- ``query``: query normalization and exact subject matching.
- ``ranking``: stream merge, tie-aware windows, business ordering.
- ``retrievers``: ref cache, hydration, index field boosts.
- ``runtime``: service-local metrics helpers.
"""
