"""Content payload: what, if anything, backs a checklist's download.

A payload is exactly one of four forms. It is persisted in dedicated
nullable columns on the checklist row (``content``, ``file_kind``,
``file_name``, ``file_blob``) instead of a prefixed string, so filenames
and base64 data may contain any character, including ``:``.
"""
import base64
import binascii
import re
from dataclasses import dataclass
from enum import Enum

from openchecklist.core.errors import Invalid
from openchecklist.models import Checklist


class FileKind(str, Enum):
    PDF = "pdf"
    ZIP = "zip"

    @property
    def media_type(self) -> str:
        return "application/pdf" if self is FileKind.PDF else "application/zip"


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class PlainText:
    body: str


@dataclass(frozen=True)
class FileReference:
    """A file kept in file storage under ``filename``."""
    kind: FileKind
    filename: str


@dataclass(frozen=True)
class EmbeddedBinary:
    """A file stored inline as base64."""
    kind: FileKind
    filename: str
    data: str

    @classmethod
    def from_bytes(cls, kind: FileKind, filename: str, raw: bytes) -> "EmbeddedBinary":
        return cls(kind, filename, base64.b64encode(raw).decode("ascii"))

    def decode(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise Invalid(f"Stored {self.kind.value} data is not valid base64") from e


ContentPayload = Empty | PlainText | FileReference | EmbeddedBinary

EMPTY = Empty()


def payload_of(checklist: Checklist) -> ContentPayload:
    """Read the active payload form from a checklist's columns."""
    if checklist.file_kind:
        kind = FileKind(checklist.file_kind)
        if checklist.file_blob is not None:
            return EmbeddedBinary(kind, checklist.file_name or "", checklist.file_blob)
        return FileReference(kind, checklist.file_name or "")
    if checklist.content:
        return PlainText(checklist.content)
    return EMPTY


def apply_payload(checklist: Checklist, payload: ContentPayload) -> None:
    """Write a payload to a checklist, clearing the columns of other forms."""
    checklist.content = None
    checklist.file_kind = None
    checklist.file_name = None
    checklist.file_blob = None

    if isinstance(payload, PlainText):
        checklist.content = payload.body or None
    elif isinstance(payload, (FileReference, EmbeddedBinary)):
        checklist.file_kind = payload.kind.value
        checklist.file_name = payload.filename
        if isinstance(payload, EmbeddedBinary):
            checklist.file_blob = payload.data


_LEGACY_BASE64 = re.compile(r"^(PDF|ZIP)_BASE64:(.*)$", re.DOTALL)
_LEGACY_FILE = re.compile(r"^PDF File:\s*(.+)$", re.DOTALL)
# Base64 never contains ":" so the data is always the last segment.
_B64_TAIL = re.compile(r"^(?:(.*):)?([A-Za-z0-9+/=\s]*)$", re.DOTALL)


def parse_legacy_content(content: str | None) -> ContentPayload:
    """Decode the prefix-encoded ``content`` strings written by older releases.

    Recognised forms::

        PDF_BASE64:<filename>:<base64>
        ZIP_BASE64:<base64>          (or ZIP_BASE64:<filename>:<base64>)
        PDF File: <filename>

    Anything else is treated as a plain text body. Filenames may themselves
    contain ``:``; the base64 segment is taken from the last ``:`` onward.
    """
    if not content:
        return EMPTY

    match = _LEGACY_BASE64.match(content)
    if match:
        kind = FileKind(match.group(1).lower())
        tail = _B64_TAIL.match(match.group(2))
        if not tail:
            raise Invalid(f"Legacy {kind.value} content has no base64 segment")
        filename = tail.group(1) or f"checklist.{kind.value}"
        data = re.sub(r"\s+", "", tail.group(2))
        return EmbeddedBinary(kind, filename, data)

    match = _LEGACY_FILE.match(content)
    if match:
        return FileReference(FileKind.PDF, match.group(1).strip())

    return PlainText(content)
