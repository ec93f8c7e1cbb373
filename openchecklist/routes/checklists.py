"""Checklist routes: browsing, admin management and downloads."""
import logging

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import Response
from pydantic import TypeAdapter, ValidationError

from openchecklist.checklists.payload import FileKind, payload_of
from openchecklist.checklists.resolver import ContentResolver, Requester, parse_format
from openchecklist.checklists.store import ChecklistStore, ListOrder
from openchecklist.core.auth import require_admin
from openchecklist.core.config import settings
from openchecklist.core.errors import Invalid
from openchecklist.models.schemas import (
    ChecklistCreate,
    ChecklistDetail,
    ChecklistSummary,
    ChecklistUpdate,
    ItemInput,
    ItemRead,
)
from openchecklist.routes.deps import get_resolver, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checklists", tags=["checklists"])

_items_adapter = TypeAdapter(list[ItemInput])


def parse_items(raw: str | None) -> list[ItemInput]:
    """Parse the JSON array of items sent in a multipart form."""
    if not raw or not raw.strip():
        return []
    try:
        return _items_adapter.validate_json(raw)
    except ValidationError as e:
        raise Invalid(f"items must be a JSON list of items: {e.error_count()} errors") from e


def parse_features(raw: str | None) -> list[str]:
    """Features arrive newline-separated."""
    return [line.strip() for line in (raw or "").splitlines() if line.strip()]


def read_upload(upload: UploadFile) -> tuple[FileKind, str | None, bytes]:
    """Validate an uploaded file's type and size and return its bytes."""
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in settings.upload_types:
        raise Invalid(f"Unsupported file type {content_type!r}; upload a PDF or ZIP file")
    kind = FileKind.PDF if "pdf" in content_type else FileKind.ZIP

    data = upload.file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise Invalid(f"File exceeds the {settings.max_upload_mb} MB upload limit")
    if not data:
        raise Invalid("Uploaded file is empty")
    return kind, upload.filename, data


@router.get("", response_model=list[ChecklistSummary])
def list_checklists(
    sort: ListOrder = ListOrder.NEWEST,
    store: ChecklistStore = Depends(get_store),
):
    """List all checklists without items or features."""
    return [ChecklistSummary.from_checklist(c) for c in store.list_all(sort)]


@router.get("/{checklist_id}", response_model=ChecklistDetail)
def get_checklist(checklist_id: int, store: ChecklistStore = Depends(get_store)):
    """Get a checklist with its ordered items and features."""
    return ChecklistDetail.from_checklist(store.get(checklist_id))


@router.post("", status_code=201, dependencies=[Depends(require_admin)])
def create_checklist(
    title: str = Form(""),
    description: str = Form(""),
    icon: str | None = Form(None),
    category: str | None = Form(None),
    version: str | None = Form(None),
    content: str | None = Form(None),
    features: str = Form(""),
    items: str = Form(""),
    file: UploadFile | None = File(None),
    store: ChecklistStore = Depends(get_store),
    resolver: ContentResolver = Depends(get_resolver),
):
    """
    Create a checklist from a multipart form.

    ``features`` is newline-separated and ``items`` is a JSON array of
    ``{"phase", "item_text", "is_required"}`` objects. An optional PDF or
    ZIP ``file`` becomes the checklist's downloadable content; in file
    storage mode it is kept only if the database write succeeds.
    """
    data = ChecklistCreate(
        title=title,
        description=description,
        icon=icon or None,
        category=category or None,
        version=version or None,
        content=content or None,
        features=parse_features(features),
        items=parse_items(items),
    )

    if file is None or not file.filename:
        checklist_id = store.create(data)
    else:
        kind, filename, raw = read_upload(file)
        with resolver.attach(kind, filename, raw) as payload:
            checklist_id = store.create(data, payload)

    return {"id": checklist_id, "message": "Checklist created successfully"}


@router.put(
    "/{checklist_id}",
    response_model=ChecklistDetail,
    dependencies=[Depends(require_admin)],
)
def update_checklist(
    checklist_id: int,
    changes: ChecklistUpdate,
    store: ChecklistStore = Depends(get_store),
    resolver: ContentResolver = Depends(get_resolver),
):
    """Partially update a checklist; items/features, if given, are replaced."""
    previous = None
    if changes.content is not None:
        previous = payload_of(store.get(checklist_id))
    checklist = store.update(checklist_id, changes)
    if previous is not None:
        resolver.release(previous)
    return ChecklistDetail.from_checklist(checklist)


@router.delete("/{checklist_id}", dependencies=[Depends(require_admin)])
def delete_checklist(
    checklist_id: int,
    store: ChecklistStore = Depends(get_store),
    resolver: ContentResolver = Depends(get_resolver),
):
    """Delete a checklist and everything it owns."""
    payload = store.delete(checklist_id)
    resolver.release(payload)
    return {"message": "Checklist deleted successfully"}


@router.post(
    "/{checklist_id}/items",
    status_code=201,
    response_model=ItemRead,
    dependencies=[Depends(require_admin)],
)
def add_item(
    checklist_id: int,
    item: ItemInput,
    store: ChecklistStore = Depends(get_store),
):
    """Append one item after the last item of the checklist."""
    row = store.add_item(checklist_id, item)
    return ItemRead.model_validate(row, from_attributes=True)


@router.post("/{checklist_id}/file", dependencies=[Depends(require_admin)])
def upload_file(
    checklist_id: int,
    file: UploadFile = File(...),
    store: ChecklistStore = Depends(get_store),
    resolver: ContentResolver = Depends(get_resolver),
):
    """Attach or replace the PDF/ZIP file of an existing checklist."""
    store.get(checklist_id)
    kind, filename, raw = read_upload(file)
    with resolver.attach(kind, filename, raw) as payload:
        previous = store.replace_file(checklist_id, payload)
    resolver.release(previous)
    return {"message": "File uploaded successfully", "kind": kind.value}


@router.get("/{checklist_id}/download")
def download_checklist(
    checklist_id: int,
    request: Request,
    fmt: str | None = Query(default=None, alias="format"),
    resolver: ContentResolver = Depends(get_resolver),
):
    """
    Download a checklist as pdf, markdown, zip or excel.

    Stored files are served when present; otherwise the document is
    generated from the checklist. Each successful download is counted.
    """
    requester = Requester(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    download = resolver.resolve(checklist_id, parse_format(fmt), requester)
    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": f'attachment; filename="{download.filename}"'},
    )
