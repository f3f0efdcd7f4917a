"""Shared libraries for the term search service.

Subpackages:
- ``termsearch_libs.common``: configuration, logging, and metrics.
- ``termsearch_libs.providers``: data provider and search index contracts,
  the ref key hasher, and an in-memory term dump provider.

Notes:
- Avoid service-specific ranking logic here; keep modules cohesive and
  broadly useful to anything that reads term datasets.
"""
