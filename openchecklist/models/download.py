"""Download log model.

Each successful download appends one row. Rows are never updated; they
feed the per-checklist analytics and are removed when their checklist is
deleted.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class DownloadEvent(SQLModel, table=True):
    """A record of one served download.

    Attributes:
        id: Autoincrement primary key.
        checklist_id: The downloaded checklist.
        format: Requested format ("pdf", "markdown", "zip").
        ip_address: Requester address, if known.
        user_agent: Requester user agent, if sent.
        downloaded_at: When the download was served.
    """
    __tablename__ = "downloads"

    id: int | None = Field(default=None, primary_key=True)
    checklist_id: int = Field(foreign_key="checklists.id", index=True)
    format: str
    ip_address: str | None = None
    user_agent: str | None = None
    downloaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
