"""Content resolver: decide what bytes to serve for a download request.

Resolution follows a fixed fallback chain:

1. ``zip`` is served only from a stored zip file; otherwise NotAvailable.
2. ``pdf`` is served from an embedded PDF, then from a referenced PDF in
   file storage when the file exists.
3. Everything else is synthesized from the checklist rows: ``markdown``
   directly, ``pdf`` through the Markdown to PDF renderer. ``excel`` is
   not implemented.

A download event is recorded only after a successful resolution.
"""
import logging
import re
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from sqlmodel import Session

from openchecklist.checklists.files import FileStorage, safe_filename
from openchecklist.checklists.payload import (
    ContentPayload,
    EmbeddedBinary,
    FileKind,
    FileReference,
    PlainText,
    payload_of,
)
from openchecklist.checklists.render import render_markdown, render_pdf
from openchecklist.checklists.store import ChecklistStore
from openchecklist.core.config import StorageMode
from openchecklist.core.errors import FormatNotImplemented, Invalid, NotAvailable
from openchecklist.models import Checklist

logger = logging.getLogger(__name__)


class DownloadFormat(str, Enum):
    PDF = "pdf"
    MARKDOWN = "markdown"
    EXCEL = "excel"
    ZIP = "zip"

    @property
    def extension(self) -> str:
        return {"pdf": "pdf", "markdown": "md", "excel": "xlsx", "zip": "zip"}[self.value]

    @property
    def media_type(self) -> str:
        return {
            "pdf": "application/pdf",
            "markdown": "text/markdown; charset=utf-8",
            "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "zip": "application/zip",
        }[self.value]


@dataclass(frozen=True)
class Requester:
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class Download:
    content: bytes
    media_type: str
    filename: str
    source: str  # "embedded", "file" or "generated"


# Stored file names carry an 8 hex digit prefix to keep them unique.
_STORED_PREFIX = re.compile(r"^[0-9a-f]{8}-")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def derive_filename(title: str, fmt: DownloadFormat) -> str:
    """Lower-case the title and collapse non-alphanumeric runs into "-"."""
    base = _NON_ALNUM_RUN.sub("-", title.lower()).strip("-") or "checklist"
    return f"{base}.{fmt.extension}"


def original_filename(payload: EmbeddedBinary | FileReference) -> str:
    name = payload.filename
    if isinstance(payload, FileReference):
        name = _STORED_PREFIX.sub("", name)
    return safe_filename(name)


def parse_format(value: str | None) -> DownloadFormat:
    try:
        return DownloadFormat((value or DownloadFormat.PDF.value).lower())
    except ValueError:
        allowed = ", ".join(f.value for f in DownloadFormat)
        raise Invalid(f"Unknown format {value!r}; expected one of {allowed}") from None


class ContentResolver:
    """Serve checklist downloads and attach uploaded files."""

    def __init__(
        self,
        session: Session,
        files: FileStorage,
        storage_mode: StorageMode = StorageMode.EMBEDDED,
        pdf_renderer: Callable[[str], bytes] = render_pdf,
        store: ChecklistStore | None = None,
    ):
        self.session = session
        self.files = files
        self.storage_mode = storage_mode
        self.pdf_renderer = pdf_renderer
        self.store = store or ChecklistStore(session)

    def resolve(
        self,
        checklist_id: int,
        fmt: DownloadFormat,
        requester: Requester | None = None,
    ) -> Download:
        """Produce the download and record it. Failures record nothing."""
        checklist = self.store.get(checklist_id)
        download = self._resolve(checklist, fmt)

        requester = requester or Requester()
        self.store.record_download(
            checklist_id, fmt.value, requester.ip_address, requester.user_agent
        )
        logger.info(
            f"Served {fmt.value} for checklist {checklist_id} from {download.source}"
        )
        return download

    def _resolve(self, checklist: Checklist, fmt: DownloadFormat) -> Download:
        payload = payload_of(checklist)
        stored_kind = getattr(payload, "kind", None)

        if fmt is DownloadFormat.ZIP:
            if isinstance(payload, EmbeddedBinary) and stored_kind is FileKind.ZIP:
                return self._embedded(payload, fmt, checklist)
            if isinstance(payload, FileReference) and stored_kind is FileKind.ZIP:
                data = self.files.read(payload.filename)
                if data is not None:
                    return self._file(data, payload, fmt, checklist)
                logger.warning(
                    f"Zip file {payload.filename} for checklist {checklist.id} is missing"
                )
            raise NotAvailable(f"No zip file is available for checklist {checklist.id}")

        if fmt is DownloadFormat.PDF and stored_kind is FileKind.PDF:
            if isinstance(payload, EmbeddedBinary):
                return self._embedded(payload, fmt, checklist)
            data = self.files.read(payload.filename)
            if data is not None:
                return self._file(data, payload, fmt, checklist)
            logger.warning(
                f"PDF file {payload.filename} for checklist {checklist.id} is missing, "
                "generating from checklist content"
            )

        return self._synthesize(checklist, payload, fmt)

    def _embedded(
        self, payload: EmbeddedBinary, fmt: DownloadFormat, checklist: Checklist
    ) -> Download:
        return Download(
            content=payload.decode(),
            media_type=payload.kind.media_type,
            filename=original_filename(payload) or derive_filename(checklist.title, fmt),
            source="embedded",
        )

    def _file(
        self, data: bytes, payload: FileReference, fmt: DownloadFormat, checklist: Checklist
    ) -> Download:
        return Download(
            content=data,
            media_type=payload.kind.media_type,
            filename=original_filename(payload) or derive_filename(checklist.title, fmt),
            source="file",
        )

    def _synthesize(
        self, checklist: Checklist, payload: ContentPayload, fmt: DownloadFormat
    ) -> Download:
        if fmt is DownloadFormat.EXCEL:
            raise FormatNotImplemented("Excel export is not supported")

        body = payload.body if isinstance(payload, PlainText) else None
        text = render_markdown(checklist, body)

        if fmt is DownloadFormat.MARKDOWN:
            content = text.encode("utf-8")
        else:
            content = self.pdf_renderer(text)

        return Download(
            content=content,
            media_type=fmt.media_type,
            filename=derive_filename(checklist.title, fmt),
            source="generated",
        )

    @contextmanager
    def attach(self, kind: FileKind, filename: str | None, data: bytes) -> Iterator[ContentPayload]:
        """Turn an upload into a payload according to the storage mode.

        In file mode the bytes are staged first and published only when the
        ``with`` block exits cleanly, i.e. after the referencing row has
        committed. Any exception discards the staged file.
        """
        name = safe_filename(filename, fallback=f"checklist.{kind.value}")

        if self.storage_mode is StorageMode.EMBEDDED:
            yield EmbeddedBinary.from_bytes(kind, name, data)
            return

        staged = self.files.stage(data)
        stored_name = f"{uuid4().hex[:8]}-{name}"
        try:
            yield FileReference(kind, stored_name)
        except BaseException:
            self.files.discard(staged)
            raise
        self.files.publish(staged, stored_name)

    def release(self, payload: ContentPayload) -> None:
        """Delete the stored file behind a payload that is no longer referenced."""
        if isinstance(payload, FileReference):
            self.files.delete(payload.filename)
