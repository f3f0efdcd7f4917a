"""Retrieval-side components.

- ``cache_manager``: the time-bounded cache of ranked refs.
- ``hydrator``: expands refs into display records via the data provider.
- ``index_weights``: field boosts sent with each index query.
"""
