"""API routes for the search service."""

import time
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request, Depends, Query
from pydantic import BaseModel, Field
import structlog

from ..hybrid.search_manager import SearchManager
from ..models import HydratedResult

logger = structlog.get_logger("search_service.api")

router = APIRouter()


class SearchResult(BaseModel):
    """Search result model."""
    score: float = Field(..., description="Relevance score")
    type: str = Field(..., description="Entity type: class or employee")
    payload: Dict[str, Any] = Field(..., description="Class (with sections) or employee record")


class SearchAnalytics(BaseModel):
    """How the request was served."""
    status: str = Field(..., description="Outcome status")
    query: str = Field(..., description="Normalized query, or the raw query on validation errors")
    term_id: str = Field(..., description="Requested term")
    min_index: int = Field(..., description="Requested start index")
    max_index: int = Field(..., description="Requested end index (exclusive)")
    was_subject_match: bool = Field(..., description="Query named a subject exactly")
    subject_name: Optional[str] = Field(None, description="Matched subject display name")
    subject_count: Optional[int] = Field(None, description="Classes in the matched subject")
    is_cache_hit: bool = Field(..., description="Refs were served from cache")
    result_count: int = Field(..., description="Total refs matched, 0 when the page is empty")


class SearchResponseModel(BaseModel):
    """Response model for search endpoint."""
    results: List[SearchResult] = Field(..., description="Search results for the requested page")
    analytics: SearchAnalytics = Field(..., description="Request analytics")
    latency_ms: float = Field(..., description="Search latency in milliseconds")


def get_search_manager(request: Request) -> SearchManager:
    """Get search manager from application state."""
    return request.app.state.search_manager


def _to_result(result: HydratedResult) -> SearchResult:
    return SearchResult(score=result.score, type=result.kind.value, payload=asdict(result.payload))


@router.get("/search", response_model=SearchResponseModel)
async def search(
    query: str = Query(..., description="Search query"),
    term_id: str = Query(..., alias="termId", description="Term to search"),
    min_index: int = Query(0, alias="minIndex", description="First result index (inclusive)"),
    max_index: Optional[int] = Query(None, alias="maxIndex", description="Last result index (exclusive)"),
    search_manager: SearchManager = Depends(get_search_manager),
):
    """Search classes and employees for one term."""
    start_time = time.time()

    try:
        response = await search_manager.search(
            query=query,
            term_id=term_id,
            min_index=min_index,
            max_index=max_index,
        )
    except Exception as e:
        logger.error("Search failed", query=query, term_id=term_id, error=str(e))
        raise HTTPException(status_code=500, detail=f"Search failed: {str(e)}")

    latency_ms = (time.time() - start_time) * 1000
    logger.info(
        "Search completed",
        query=query,
        term_id=term_id,
        status=response.analytics.status,
        results_count=len(response.results),
        latency_ms=latency_ms
    )

    return SearchResponseModel(
        results=[_to_result(r) for r in response.results],
        analytics=SearchAnalytics(**asdict(response.analytics)),
        latency_ms=latency_ms,
    )


@router.get("/cache/stats")
async def get_cache_stats(
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Get result cache statistics."""
    stats = search_manager.get_cache_stats()
    logger.info("Cache stats retrieved", entries=stats["entries"])
    return stats


@router.post("/cache/sweep")
async def sweep_cache(
    search_manager: SearchManager = Depends(get_search_manager)
):
    """Run a cache sweep now."""
    removed = search_manager.sweep_cache()
    logger.info("Cache sweep triggered", removed=removed)
    return {"status": "success", "removed": removed, "entries": search_manager.cache.size}
