"""Checklist model, the aggregate root of the catalog.

A checklist owns its ordered items and its feature list; both are deleted
with it. The downloadable content is held in four nullable columns that
together encode exactly one ContentPayload form (see
``openchecklist.checklists.payload``).
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Text
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from openchecklist.models.feature import ChecklistFeature
    from openchecklist.models.item import ChecklistItem

DEFAULT_ICON = "\U0001F4CB"  # clipboard
DEFAULT_CATEGORY = "Other"
DEFAULT_VERSION = "1.0"
DEFAULT_FORMATS = "pdf,markdown"


class Checklist(SQLModel, table=True):
    """A downloadable checklist document.

    Attributes:
        id: Autoincrement primary key.
        title: Display title, also the base of derived download filenames.
        description: Short summary shown in list views.
        icon: Single glyph shown next to the title.
        category: Free-text grouping label used for browsing.
        version: Free-form version string, e.g. "1.0".
        downloads: Number of successful downloads.
        contributors: Number of people credited, bumped by approved
            contributions.
        formats: Comma-separated output formats offered, e.g. "pdf,markdown".
        content: Plain text/markdown body when the payload is PlainText.
        file_kind: "pdf" or "zip" when a file backs the checklist.
        file_name: Original (embedded) or stored (referenced) filename.
        file_blob: Base64 file contents for embedded files; None for
            file references.
        created_at: When the checklist was created.
        updated_at: When core fields last changed.
        items: Checklist items, ordered by item_order.
        features: Feature bullet points.
    """
    __tablename__ = "checklists"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    description: str = Field(sa_type=Text)
    icon: str = Field(default=DEFAULT_ICON)
    category: str | None = Field(default=DEFAULT_CATEGORY, index=True)
    version: str = Field(default=DEFAULT_VERSION)
    downloads: int = Field(default=0)
    contributors: int = Field(default=1)
    formats: str = Field(default=DEFAULT_FORMATS)

    # Content payload columns
    content: str | None = Field(default=None, sa_type=Text)
    file_kind: str | None = None
    file_name: str | None = None
    file_blob: str | None = Field(default=None, sa_type=Text)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Relationships
    items: list["ChecklistItem"] = Relationship(
        back_populates="checklist",
        sa_relationship_kwargs={
            "order_by": "ChecklistItem.item_order",
            "cascade": "all, delete-orphan",
        },
    )
    features: list["ChecklistFeature"] = Relationship(
        back_populates="checklist",
        sa_relationship_kwargs={
            "order_by": "ChecklistFeature.id",
            "cascade": "all, delete-orphan",
        },
    )

    @property
    def offered_formats(self) -> list[str]:
        return [f.strip() for f in self.formats.split(",") if f.strip()]

    @property
    def feature_texts(self) -> list[str]:
        return [f.feature for f in self.features]
