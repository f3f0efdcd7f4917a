"""Tests for the term search service.

Unit tests drive each engine component with in-memory fakes for the data
provider and the full-text indexes; the API tests exercise the FastAPI app
end to end over the same fakes.
"""
