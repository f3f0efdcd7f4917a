"""Common utilities shared across the search service.

Includes:
- ``config``: Pydantic-based service configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.

Import pattern:
- from termsearch_libs.common.config import SearchConfig
- from termsearch_libs.common.logging import configure_logging
"""
