"""Catalog routes: search, categories, statistics and download analytics."""
from fastapi import APIRouter, Depends, Query

from openchecklist.checklists.store import ChecklistStore
from openchecklist.core.auth import require_admin
from openchecklist.models.schemas import CatalogStats, ChecklistSummary, DownloadAnalytics
from openchecklist.routes.deps import get_store

router = APIRouter(tags=["catalog"])


@router.get("/search", response_model=list[ChecklistSummary])
def search_checklists(q: str = "", store: ChecklistStore = Depends(get_store)):
    """Search titles, descriptions and categories, most downloaded first."""
    return [ChecklistSummary.from_checklist(c) for c in store.search(q)]


@router.get("/categories", response_model=list[str])
def list_categories(store: ChecklistStore = Depends(get_store)):
    return store.list_categories()


@router.get("/categories/{category}", response_model=list[ChecklistSummary])
def checklists_in_category(category: str, store: ChecklistStore = Depends(get_store)):
    return [ChecklistSummary.from_checklist(c) for c in store.list_by_category(category)]


@router.get("/stats", response_model=CatalogStats)
def catalog_stats(store: ChecklistStore = Depends(get_store)):
    """Totals across the catalog."""
    return store.get_stats()


@router.get(
    "/analytics/downloads",
    response_model=list[DownloadAnalytics],
    dependencies=[Depends(require_admin)],
)
def download_analytics(
    limit: int | None = Query(default=None, ge=1),
    store: ChecklistStore = Depends(get_store),
):
    """Download counts and unique requesters per checklist."""
    return store.download_analytics(limit)
