"""Request and response schemas for the HTTP layer and the core API."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from openchecklist.models.checklist import Checklist
from openchecklist.models.contribution import Contribution


class ItemInput(SQLModel):
    """An item as supplied on create, update or append."""
    phase: str | None = None
    item_text: str
    is_required: bool = False


class ChecklistCreate(SQLModel):
    title: str
    description: str
    icon: str | None = None
    category: str | None = None
    version: str | None = None
    content: str | None = None  # Plain text body
    formats: list[str] | None = None
    features: list[str] = Field(default_factory=list)
    items: list[ItemInput] = Field(default_factory=list)


class ChecklistUpdate(SQLModel):
    """Partial update. Only fields that are explicitly set are applied.

    ``items`` and ``features``, when present, replace the existing rows.
    """
    title: str | None = None
    description: str | None = None
    icon: str | None = None
    category: str | None = None
    version: str | None = None
    content: str | None = None
    formats: list[str] | None = None
    features: list[str] | None = None
    items: list[ItemInput] | None = None


class ItemRead(SQLModel):
    id: int
    phase: str | None
    item_text: str
    is_required: bool
    item_order: int


class ChecklistSummary(SQLModel):
    id: int
    title: str
    description: str
    icon: str
    category: str | None
    version: str
    downloads: int
    contributors: int
    formats: list[str]
    has_file: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_checklist(cls, checklist: Checklist, **extra) -> "ChecklistSummary":
        return cls(
            id=checklist.id,
            title=checklist.title,
            description=checklist.description,
            icon=checklist.icon,
            category=checklist.category,
            version=checklist.version,
            downloads=checklist.downloads,
            contributors=checklist.contributors,
            formats=checklist.offered_formats,
            has_file=checklist.file_kind is not None,
            created_at=checklist.created_at,
            updated_at=checklist.updated_at,
            **extra,
        )


class ChecklistDetail(ChecklistSummary):
    features: list[str]
    items: list[ItemRead]

    @classmethod
    def from_checklist(cls, checklist: Checklist) -> "ChecklistDetail":
        return super().from_checklist(
            checklist,
            features=checklist.feature_texts,
            items=[ItemRead.model_validate(i, from_attributes=True) for i in checklist.items],
        )


class CatalogStats(SQLModel):
    total_checklists: int
    total_downloads: int
    total_contributors: int


class DownloadAnalytics(SQLModel):
    checklist_id: int
    title: str
    download_count: int
    unique_downloads: int


class ContributionSubmit(SQLModel):
    checklist_id: int
    name: str | None = None
    email: str | None = None
    type: str = "item"
    content: str


class ContributionReview(SQLModel):
    status: str
    notes: str | None = None


class ContributionRead(SQLModel):
    id: int
    checklist_id: int
    contributor_name: str | None
    contribution_type: str
    content: str
    status: str
    created_at: datetime
    reviewed_at: datetime | None
    reviewer_notes: str | None
    checklist_title: str | None = None

    @classmethod
    def from_contribution(
        cls, contribution: Contribution, checklist_title: str | None = None
    ) -> "ContributionRead":
        return cls(
            id=contribution.id,
            checklist_id=contribution.checklist_id,
            contributor_name=contribution.contributor_name,
            contribution_type=contribution.contribution_type,
            content=contribution.content,
            status=contribution.status,
            created_at=contribution.created_at,
            reviewed_at=contribution.reviewed_at,
            reviewer_notes=contribution.reviewer_notes,
            checklist_title=checklist_title,
        )


class ContributionStats(SQLModel):
    total_contributions: int
    unique_contributors: int
    approved_contributions: int
    pending_contributions: int
