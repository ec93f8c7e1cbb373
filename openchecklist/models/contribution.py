"""Community contribution model.

Contributions are created as ``pending`` and reviewed exactly once. An
approved contribution is merged into its checklist in the same transaction
that records the review.
"""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Text
from sqlmodel import Field, SQLModel


class ContributionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContributionKind(str, Enum):
    ITEM = "item"
    FEATURE = "feature"


class Contribution(SQLModel, table=True):
    """A user-submitted item or feature awaiting moderation.

    Attributes:
        id: Autoincrement primary key.
        checklist_id: The checklist the contribution targets.
        contributor_name: Name given by the contributor.
        contributor_email: Email given by the contributor.
        contribution_type: "item" or "feature".
        content: The proposed item text or feature line.
        status: "pending", "approved" or "rejected".
        created_at: Submission time.
        reviewed_at: When the moderation decision was recorded.
        reviewer_notes: Optional notes from the moderator.
    """
    __tablename__ = "user_contributions"

    id: int | None = Field(default=None, primary_key=True)
    checklist_id: int = Field(foreign_key="checklists.id", index=True)
    contributor_name: str | None = None
    contributor_email: str | None = None
    contribution_type: str = Field(default=ContributionKind.ITEM.value)
    content: str = Field(sa_type=Text)
    status: str = Field(default=ContributionStatus.PENDING.value, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    reviewed_at: datetime | None = None
    reviewer_notes: str | None = None
