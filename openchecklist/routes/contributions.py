"""Contribution routes for community submissions and moderation."""
from fastapi import APIRouter, Depends

from openchecklist.checklists.contributions import ContributionQueue
from openchecklist.core.auth import require_admin
from openchecklist.core.config import settings
from openchecklist.models.schemas import (
    ContributionRead,
    ContributionReview,
    ContributionStats,
    ContributionSubmit,
)
from openchecklist.routes.deps import get_queue

router = APIRouter(prefix="/contributions", tags=["contributions"])


@router.post("/submit", status_code=201)
def submit_contribution(
    submission: ContributionSubmit,
    queue: ContributionQueue = Depends(get_queue),
):
    """Queue a proposed item or feature for moderation."""
    contribution_id = queue.submit(
        submission.checklist_id,
        submission.name,
        submission.email,
        submission.type,
        submission.content,
    )
    return {
        "success": True,
        "id": contribution_id,
        "message": "Thank you for your contribution! It will be reviewed soon.",
    }


@router.get(
    "/pending",
    response_model=list[ContributionRead],
    dependencies=[Depends(require_admin)],
)
def pending_contributions(queue: ContributionQueue = Depends(get_queue)):
    return queue.list_pending()


@router.put("/{contribution_id}/review", dependencies=[Depends(require_admin)])
def review_contribution(
    contribution_id: int,
    review: ContributionReview,
    queue: ContributionQueue = Depends(get_queue),
):
    """
    Approve or reject a pending contribution.

    Approval merges the content into the checklist. Reviewing the same
    contribution twice returns 409.
    """
    contribution = queue.review(contribution_id, review.status, review.notes)
    return {
        "success": True,
        "id": contribution_id,
        "status": contribution.status,
        "message": "Contribution reviewed successfully",
    }


@router.get("/stats", response_model=ContributionStats)
def contribution_stats(queue: ContributionQueue = Depends(get_queue)):
    return queue.stats()


@router.get("/checklist/{checklist_id}", response_model=list[ContributionRead])
def approved_contributions(
    checklist_id: int,
    queue: ContributionQueue = Depends(get_queue),
):
    """Approved contributions for a checklist, newest first."""
    return queue.list_approved_for_checklist(
        checklist_id, limit=settings.contribution_page_size
    )
