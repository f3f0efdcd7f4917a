"""Search ranking components.

This package merges the per-collection result streams and reorders results
inside tie groups without breaking relevance order.

Contents
- ``fusion``: two-stream ranked merge
- ``window``: tie-aware pagination windows
- ``business``: business-score ordering within tie groups
"""
