"""Contribution queue: community submissions and their moderation.

Reviewing is a one-time transition out of ``pending``. Approval merges the
contribution into its checklist inside the same transaction that records
the decision, so an approved contribution is never visible without its
merged item or feature.
"""
import logging
from datetime import UTC, datetime

from sqlalchemy import case, distinct, update
from sqlmodel import Session, func, select

from openchecklist.checklists.store import ChecklistStore
from openchecklist.core.database import storage_guard, transaction
from openchecklist.core.errors import AlreadyReviewed, Invalid, NotFound
from openchecklist.models import (
    Checklist,
    Contribution,
    ContributionKind,
    ContributionStatus,
)
from openchecklist.models.schemas import ContributionRead, ContributionStats

logger = logging.getLogger(__name__)

COMMUNITY_PHASE = "Community Contributions"

REVIEW_DECISIONS = (ContributionStatus.APPROVED, ContributionStatus.REJECTED)


class ContributionQueue:
    """Pending submissions and their merge into checklists."""

    def __init__(self, session: Session, store: ChecklistStore | None = None):
        self.session = session
        self.store = store or ChecklistStore(session)

    def submit(
        self,
        checklist_id: int | None,
        contributor_name: str | None,
        contributor_email: str | None,
        kind: str,
        content: str | None,
    ) -> int:
        """Queue a contribution as pending and return its id."""
        if checklist_id is None:
            raise Invalid("checklist_id is required")
        if content is None or not content.strip():
            raise Invalid("content is required")
        self.store.get(checklist_id)

        contribution = Contribution(
            checklist_id=checklist_id,
            contributor_name=contributor_name,
            contributor_email=contributor_email,
            contribution_type=(kind or ContributionKind.ITEM.value).lower(),
            content=content.strip(),
        )
        with transaction(self.session):
            self.session.add(contribution)
            self.session.flush()
            contribution_id = contribution.id

        logger.info(f"Queued {contribution.contribution_type} contribution {contribution_id}")
        return contribution_id

    def list_pending(self) -> list[ContributionRead]:
        """Pending contributions with their checklist title, newest first."""
        statement = (
            select(Contribution, Checklist.title)
            .join(Checklist, Checklist.id == Contribution.checklist_id)
            .where(Contribution.status == ContributionStatus.PENDING.value)
            .order_by(Contribution.created_at.desc(), Contribution.id.desc())
        )
        with storage_guard():
            rows = self.session.exec(statement).all()
        return [ContributionRead.from_contribution(c, title) for c, title in rows]

    def review(
        self, contribution_id: int, decision: str, notes: str | None = None
    ) -> Contribution:
        """Approve or reject a pending contribution.

        Raises NotFound for an unknown id and AlreadyReviewed when the
        contribution has left ``pending``. Approved items are appended to
        the checklist in the community phase; approved features are added
        to its feature list.
        """
        try:
            status = ContributionStatus(decision)
        except ValueError:
            raise Invalid(f"Unknown review decision {decision!r}") from None
        if status not in REVIEW_DECISIONS:
            raise Invalid("Decision must be 'approved' or 'rejected'")

        with storage_guard():
            contribution = self.session.get(Contribution, contribution_id)
        if contribution is None:
            raise NotFound(f"Contribution {contribution_id} not found")
        if contribution.status != ContributionStatus.PENDING.value:
            raise AlreadyReviewed(
                f"Contribution {contribution_id} was already {contribution.status}"
            )

        with transaction(self.session):
            # Conditional on pending so concurrent reviews cannot both win.
            result = self.session.exec(
                update(Contribution)
                .where(Contribution.id == contribution_id)
                .where(Contribution.status == ContributionStatus.PENDING.value)
                .values(
                    status=status.value,
                    reviewer_notes=notes,
                    reviewed_at=datetime.now(UTC),
                )
            )
            if result.rowcount != 1:
                raise AlreadyReviewed(f"Contribution {contribution_id} was already reviewed")
            if status is ContributionStatus.APPROVED:
                self._merge(contribution)

        logger.info(f"Contribution {contribution_id} {status.value}")
        return contribution

    def _merge(self, contribution: Contribution) -> None:
        checklist_id = contribution.checklist_id
        if contribution.contribution_type == ContributionKind.ITEM.value:
            self.store.append_item(checklist_id, contribution.content, phase=COMMUNITY_PHASE)
        elif contribution.contribution_type == ContributionKind.FEATURE.value:
            self.store.append_feature(checklist_id, contribution.content)
        else:
            logger.info(
                f"Contribution {contribution.id} has type "
                f"{contribution.contribution_type!r}, nothing to merge"
            )
            return

        self.session.exec(
            update(Checklist)
            .where(Checklist.id == checklist_id)
            .values(contributors=Checklist.contributors + 1)
        )

    def stats(self) -> ContributionStats:
        statement = select(
            func.count(Contribution.id),
            func.count(distinct(Contribution.contributor_email)),
            func.coalesce(
                func.sum(case((Contribution.status == ContributionStatus.APPROVED.value, 1), else_=0)),
                0,
            ),
            func.coalesce(
                func.sum(case((Contribution.status == ContributionStatus.PENDING.value, 1), else_=0)),
                0,
            ),
        )
        with storage_guard():
            total, unique, approved, pending = self.session.exec(statement).one()
        return ContributionStats(
            total_contributions=total,
            unique_contributors=unique,
            approved_contributions=approved,
            pending_contributions=pending,
        )

    def list_approved_for_checklist(
        self, checklist_id: int, limit: int = 10
    ) -> list[ContributionRead]:
        """Approved contributions for public display, newest first."""
        statement = (
            select(Contribution)
            .where(Contribution.checklist_id == checklist_id)
            .where(Contribution.status == ContributionStatus.APPROVED.value)
            .order_by(Contribution.created_at.desc(), Contribution.id.desc())
            .limit(limit)
        )
        with storage_guard():
            rows = self.session.exec(statement).all()
        return [ContributionRead.from_contribution(c) for c in rows]
