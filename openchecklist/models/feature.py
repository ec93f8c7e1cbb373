"""Feature bullet points advertised for a checklist."""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Text
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from openchecklist.models.checklist import Checklist


class ChecklistFeature(SQLModel, table=True):
    """One feature line. Duplicates are allowed."""
    __tablename__ = "checklist_features"

    id: int | None = Field(default=None, primary_key=True)
    checklist_id: int = Field(foreign_key="checklists.id", index=True)
    feature: str = Field(sa_type=Text)

    checklist: Optional["Checklist"] = Relationship(back_populates="features")
