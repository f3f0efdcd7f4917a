"""Query understanding: normalization and exact subject matching."""
