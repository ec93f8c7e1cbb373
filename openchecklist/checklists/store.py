"""Checklist store: persistence of the checklist aggregate.

A checklist, its ordered items and its features are written in one
transaction. Reads return ORM objects; items come back ordered by
``item_order`` through the relationship definition.
"""
import logging
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import delete, distinct, inspect, update
from sqlalchemy.orm import selectinload
from sqlmodel import Session, func, or_, select

from openchecklist.checklists.payload import (
    EMPTY,
    ContentPayload,
    EmbeddedBinary,
    FileKind,
    FileReference,
    PlainText,
    apply_payload,
    parse_legacy_content,
    payload_of,
)
from openchecklist.core.database import storage_guard, transaction
from openchecklist.core.errors import Invalid, NotFound
from openchecklist.models import (
    Checklist,
    ChecklistFeature,
    ChecklistItem,
    Contribution,
    DownloadEvent,
)
from openchecklist.models.checklist import (
    DEFAULT_CATEGORY,
    DEFAULT_FORMATS,
    DEFAULT_ICON,
    DEFAULT_VERSION,
)
from openchecklist.models.schemas import (
    CatalogStats,
    ChecklistCreate,
    ChecklistUpdate,
    DownloadAnalytics,
    ItemInput,
)

logger = logging.getLogger(__name__)

# Core columns a partial update may touch. Anything else in the payload
# is ignored, never turned into a column name.
UPDATABLE_FIELDS = ("title", "description", "icon", "category", "version")

# Related tables that older deployments may not have created yet.
OPTIONAL_CASCADES = (DownloadEvent, Contribution)


class ListOrder(str, Enum):
    NEWEST = "newest"
    POPULAR = "popular"


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise Invalid(f"{field} is required")
    return value.strip()


def _clean_features(features: list[str]) -> list[str]:
    return [f.strip() for f in features if f and f.strip()]


def _build_items(items: list[ItemInput], checklist_id: int | None = None) -> list[ChecklistItem]:
    """Create item rows numbered 0..n-1 in input order."""
    return [
        ChecklistItem(
            checklist_id=checklist_id,
            phase=item.phase,
            item_text=item.item_text.strip(),
            is_required=item.is_required,
            item_order=index,
        )
        for index, item in enumerate(items)
    ]


def formats_for(requested: list[str] | None, payload: ContentPayload) -> str:
    """Offered formats: "zip" only when a zip file backs the checklist."""
    formats = [f.strip().lower() for f in requested or [] if f.strip()]
    if not formats:
        formats = DEFAULT_FORMATS.split(",")
    is_zip = isinstance(payload, (FileReference, EmbeddedBinary)) and payload.kind is FileKind.ZIP
    if is_zip and "zip" not in formats:
        formats.append("zip")
    elif not is_zip and "zip" in formats:
        formats.remove("zip")
    return ",".join(dict.fromkeys(formats))


def convert_legacy_checklist(checklist: Checklist) -> ContentPayload | None:
    """Move a prefix-encoded ``content`` value into the payload columns.

    Returns the new file payload, or None when the content is plain text
    and nothing changes. Raises Invalid for undecodable base64.
    """
    payload = parse_legacy_content(checklist.content)
    if not isinstance(payload, (FileReference, EmbeddedBinary)):
        return None
    if isinstance(payload, EmbeddedBinary):
        payload.decode()
    apply_payload(checklist, payload)
    checklist.formats = formats_for(checklist.offered_formats, payload)
    return payload


def bump_version(version: str) -> str:
    """Increase the minor part of a "major.minor" version string."""
    major, _, minor = version.partition(".")
    if major.isdigit() and (not minor or minor.isdigit()):
        return f"{major}.{int(minor or 0) + 1}"
    return version


class ChecklistStore:
    """Transactional access to checklists, their items and features."""

    def __init__(self, session: Session):
        self.session = session

    # Reads

    def get(self, checklist_id: int) -> Checklist:
        """Load a checklist with its items and features, or raise NotFound."""
        with storage_guard():
            checklist = self.session.get(
                Checklist,
                checklist_id,
                options=[selectinload(Checklist.items), selectinload(Checklist.features)],
            )
        if checklist is None:
            raise NotFound(f"Checklist {checklist_id} not found")
        return checklist

    def list_all(self, order: ListOrder) -> list[Checklist]:
        """All checklists, core fields only, in the requested order."""
        if order is ListOrder.POPULAR:
            ordering = (Checklist.downloads.desc(), Checklist.id)
        else:
            ordering = (Checklist.created_at.desc(), Checklist.id.desc())
        with storage_guard():
            return list(self.session.exec(select(Checklist).order_by(*ordering)).all())

    def search(self, query: str) -> list[Checklist]:
        """Case-insensitive substring match on title, description and category.

        On SQLite, ILIKE folds ASCII letters only, so non-ASCII text matches
        case-sensitively there.
        """
        needle = query.strip()
        if not needle:
            return []
        escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        statement = (
            select(Checklist)
            .where(
                or_(
                    Checklist.title.ilike(pattern, escape="\\"),
                    Checklist.description.ilike(pattern, escape="\\"),
                    Checklist.category.ilike(pattern, escape="\\"),
                )
            )
            .order_by(Checklist.downloads.desc(), Checklist.id)
        )
        with storage_guard():
            return list(self.session.exec(statement).all())

    def list_by_category(self, category: str) -> list[Checklist]:
        statement = (
            select(Checklist)
            .where(Checklist.category == category)
            .order_by(Checklist.created_at.desc(), Checklist.id.desc())
        )
        with storage_guard():
            return list(self.session.exec(statement).all())

    def list_categories(self) -> list[str]:
        statement = (
            select(Checklist.category)
            .where(Checklist.category.isnot(None))
            .distinct()
            .order_by(Checklist.category)
        )
        with storage_guard():
            return list(self.session.exec(statement).all())

    def get_stats(self) -> CatalogStats:
        statement = select(
            func.count(Checklist.id),
            func.coalesce(func.sum(Checklist.downloads), 0),
            func.coalesce(func.sum(Checklist.contributors), 0),
        )
        with storage_guard():
            total, downloads, contributors = self.session.exec(statement).one()
        return CatalogStats(
            total_checklists=total,
            total_downloads=downloads,
            total_contributors=contributors,
        )

    def download_analytics(self, limit: int | None = None) -> list[DownloadAnalytics]:
        """Download events per checklist, most downloaded first."""
        download_count = func.count(DownloadEvent.id)
        statement = (
            select(
                Checklist.id,
                Checklist.title,
                download_count,
                func.count(distinct(DownloadEvent.ip_address)),
            )
            .outerjoin(DownloadEvent, DownloadEvent.checklist_id == Checklist.id)
            .group_by(Checklist.id, Checklist.title)
            .order_by(download_count.desc(), Checklist.id)
        )
        if limit:
            statement = statement.limit(limit)
        with storage_guard():
            rows = self.session.exec(statement).all()
        return [
            DownloadAnalytics(
                checklist_id=row[0],
                title=row[1],
                download_count=row[2],
                unique_downloads=row[3],
            )
            for row in rows
        ]

    def next_item_order(self, checklist_id: int) -> int:
        statement = select(func.max(ChecklistItem.item_order)).where(
            ChecklistItem.checklist_id == checklist_id
        )
        with storage_guard():
            current = self.session.exec(statement).one()
        return 0 if current is None else current + 1

    # Writes

    def create(self, data: ChecklistCreate, payload: ContentPayload | None = None) -> int:
        """Persist a new checklist with its features and items.

        The checklist row, then the feature rows, then the item rows are
        written inside one transaction. Items are numbered 0..n-1 in input
        order. Returns the new checklist id.
        """
        title = _require_text(data.title, "title")
        description = _require_text(data.description, "description")
        for item in data.items:
            _require_text(item.item_text, "item_text")
        if payload is None:
            payload = PlainText(data.content) if data.content else EMPTY

        checklist = Checklist(
            title=title,
            description=description,
            icon=data.icon or DEFAULT_ICON,
            category=data.category or DEFAULT_CATEGORY,
            version=data.version or DEFAULT_VERSION,
            formats=formats_for(data.formats, payload),
        )
        apply_payload(checklist, payload)

        with transaction(self.session):
            self.session.add(checklist)
            self.session.flush()
            checklist_id = checklist.id

            for feature in _clean_features(data.features):
                self.session.add(ChecklistFeature(checklist_id=checklist_id, feature=feature))
            self.session.flush()

            for item in _build_items(data.items, checklist_id):
                self.session.add(item)

        logger.info(
            f"Created checklist {checklist_id} '{title}' with "
            f"{len(data.items)} items and {len(data.features)} features"
        )
        return checklist_id

    def update(
        self,
        checklist_id: int,
        changes: ChecklistUpdate,
        payload: ContentPayload | None = None,
    ) -> Checklist:
        """Apply a partial update.

        Only fields explicitly set on ``changes`` are written. Supplying
        ``items`` or ``features`` replaces the existing rows; new items are
        renumbered 0..n-1. A non-null ``content`` replaces the payload with a
        plain text body; a null one is ignored like the other core fields.
        An explicit ``payload`` wins over both.
        """
        fields = changes.model_dump(exclude_unset=True)
        for name in ("title", "description"):
            if name in fields:
                fields[name] = _require_text(fields[name], name)
        if changes.items:
            for item in changes.items:
                _require_text(item.item_text, "item_text")
        if payload is None and fields.get("content") is not None:
            payload = PlainText(fields["content"])

        checklist = self.get(checklist_id)

        with transaction(self.session):
            for name in UPDATABLE_FIELDS:
                if name in fields and fields[name] is not None:
                    setattr(checklist, name, fields[name])
            if payload is not None:
                apply_payload(checklist, payload)
            if changes.formats is not None or payload is not None:
                checklist.formats = formats_for(
                    changes.formats or checklist.offered_formats, payload_of(checklist)
                )

            if changes.features is not None:
                checklist.features.clear()
                self.session.flush()
                checklist.features = [
                    ChecklistFeature(feature=f) for f in _clean_features(changes.features)
                ]
            if changes.items is not None:
                checklist.items.clear()
                self.session.flush()
                checklist.items = _build_items(changes.items)

            checklist.updated_at = datetime.now(UTC)
            self.session.add(checklist)

        logger.info(f"Updated checklist {checklist_id}: {sorted(fields)}")
        return self.get(checklist_id)

    def replace_file(self, checklist_id: int, payload: ContentPayload) -> ContentPayload:
        """Attach a new file payload and bump the version.

        Returns the payload that was replaced so the caller can release any
        file it referenced.
        """
        checklist = self.get(checklist_id)
        previous = payload_of(checklist)

        with transaction(self.session):
            apply_payload(checklist, payload)
            checklist.formats = formats_for(checklist.offered_formats, payload)
            checklist.version = bump_version(checklist.version)
            checklist.updated_at = datetime.now(UTC)
            self.session.add(checklist)

        logger.info(f"Replaced file of checklist {checklist_id}")
        return previous

    def delete(self, checklist_id: int) -> ContentPayload:
        """Delete a checklist with its items, features, downloads and contributions.

        Related tables that do not exist in this deployment are skipped.
        Returns the payload of the deleted checklist.
        """
        checklist = self.get(checklist_id)
        payload = payload_of(checklist)

        with transaction(self.session):
            inspector = inspect(self.session.connection())
            for model in OPTIONAL_CASCADES:
                table = model.__tablename__
                if not inspector.has_table(table):
                    logger.info(f"Table {table} absent, nothing to cascade")
                    continue
                result = self.session.exec(delete(model).where(model.checklist_id == checklist_id))
                logger.debug(f"Removed {result.rowcount} rows from {table}")
            self.session.delete(checklist)

        logger.info(f"Deleted checklist {checklist_id}")
        return payload

    def add_item(self, checklist_id: int, item: ItemInput) -> ChecklistItem:
        """Append one item after the current last item."""
        self.get(checklist_id)
        text = _require_text(item.item_text, "item_text")
        with transaction(self.session):
            row = self.append_item(checklist_id, text, item.phase, item.is_required)
        return row

    def append_item(
        self,
        checklist_id: int,
        item_text: str,
        phase: str | None = None,
        is_required: bool = False,
    ) -> ChecklistItem:
        """Stage an item at the next order index. The caller commits."""
        row = ChecklistItem(
            checklist_id=checklist_id,
            phase=phase,
            item_text=item_text,
            is_required=is_required,
            item_order=self.next_item_order(checklist_id),
        )
        self.session.add(row)
        self.session.flush()
        return row

    def append_feature(self, checklist_id: int, feature: str) -> ChecklistFeature:
        """Stage a feature line. The caller commits."""
        row = ChecklistFeature(checklist_id=checklist_id, feature=feature)
        self.session.add(row)
        self.session.flush()
        return row

    def record_download(
        self,
        checklist_id: int,
        fmt: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Increment the download counter and log the event atomically."""
        with transaction(self.session):
            self.session.exec(
                update(Checklist)
                .where(Checklist.id == checklist_id)
                .values(downloads=Checklist.downloads + 1)
            )
            self.session.add(
                DownloadEvent(
                    checklist_id=checklist_id,
                    format=fmt,
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
            )
        logger.info(f"Recorded {fmt} download of checklist {checklist_id}")
