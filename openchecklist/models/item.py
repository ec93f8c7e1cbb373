"""Checklist item model.

Items belong to exactly one checklist and are presented in ``item_order``.
Order indices are dense: 0..n-1 after a create or a full replace, and
appends take max + 1.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Text
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from openchecklist.models.checklist import Checklist


class ChecklistItem(SQLModel, table=True):
    """A single step of a checklist.

    Attributes:
        id: Autoincrement primary key.
        checklist_id: Foreign key to the parent Checklist.
        phase: Grouping label, e.g. "Planning and Research". Items with no
            phase are rendered under a generic heading.
        item_text: The step itself.
        is_required: Whether the step is mandatory.
        item_order: Position within the checklist.
        checklist: Reference to the parent Checklist object.
    """
    __tablename__ = "checklist_items"

    id: int | None = Field(default=None, primary_key=True)
    checklist_id: int = Field(foreign_key="checklists.id", index=True)
    phase: str | None = None
    item_text: str = Field(sa_type=Text)
    is_required: bool = Field(default=False)
    item_order: int = Field(default=0)

    # Relationship
    checklist: Optional["Checklist"] = Relationship(back_populates="items")
