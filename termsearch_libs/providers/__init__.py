"""Data provider and search index adapters.

Primary components:
- ``records``: scored refs and the class, section and employee records.
- ``base``: abstract ``DataProvider`` and ``SearchIndex`` interfaces.
- ``keys``: ``KeyHasher`` for deterministic class and section refs.
- ``term_dump``: ``TermDumpDataProvider`` over scraped term dumps held in
  memory.

Guidance:
- Depend on the ``base`` interfaces from engine code so datasets can come
  from anywhere.
"""
