"""Render checklists as Markdown and PDF documents."""
import logging

import bleach
import markdown2
from fpdf import FPDF
from fpdf.errors import FPDFException

from openchecklist.core.errors import RenderFailed
from openchecklist.models import Checklist, ChecklistItem

logger = logging.getLogger(__name__)

UNPHASED_HEADING = "General"
REQUIRED_MARKER = " *(required)*"

# Core PDF fonts only cover Latin-1; anything else is replaced.
PDF_ENCODING = "latin-1"

# Tags the PDF writer lays out as text. Images and links are stripped so
# checklist text never makes the renderer open a path or fetch a URL.
PDF_ALLOWED_TAGS = [
    "h1", "h2", "h3", "h4", "h5", "h6",
    "p", "br", "hr", "strong", "em", "b", "i", "u",
    "ul", "ol", "li", "blockquote", "code", "pre",
]


def group_items_by_phase(items: list[ChecklistItem]) -> dict[str, list[ChecklistItem]]:
    """Group items under their phase, phases in first-seen order.

    Items keep their ``item_order`` sequence inside each phase, even when a
    phase reappears later in the list.
    """
    groups: dict[str, list[ChecklistItem]] = {}
    for item in sorted(items, key=lambda i: i.item_order):
        groups.setdefault(item.phase or UNPHASED_HEADING, []).append(item)
    return groups


def format_item(item: ChecklistItem) -> str:
    """One checkbox line, marked when the item is required."""
    line = f"- [ ] {item.item_text}"
    if item.is_required:
        line += REQUIRED_MARKER
    return line


def render_markdown(checklist: Checklist, body: str | None = None) -> str:
    """
    Build a Markdown document from a checklist.

    Layout:
        # Title
        description
        optional body text
        ## Features
        - feature
        ## <phase>          (one per distinct phase)
        - [ ] item *(required)*
    """
    lines = [f"# {checklist.title}", "", checklist.description.strip(), ""]

    if body and body.strip():
        lines += [body.strip(), ""]

    features = checklist.feature_texts
    if features:
        lines.append("## Features")
        lines += [f"- {feature}" for feature in features]
        lines.append("")

    for phase, items in group_items_by_phase(checklist.items).items():
        lines.append(f"## {phase}")
        lines += [format_item(item) for item in items]
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def markdown_to_html(markdown_text: str) -> str:
    """Convert Markdown to HTML restricted to PDF_ALLOWED_TAGS."""
    html = markdown2.markdown(markdown_text)
    return bleach.clean(html, tags=PDF_ALLOWED_TAGS, attributes={}, strip=True)


def render_pdf(markdown_text: str) -> bytes:
    """Convert Markdown to a PDF byte stream."""
    safe_text = markdown_text.encode(PDF_ENCODING, "replace").decode(PDF_ENCODING)
    html = markdown_to_html(safe_text)

    try:
        pdf = FPDF()
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()
        pdf.set_font("Helvetica", size=11)
        pdf.write_html(html)
        data = bytes(pdf.output())
    except (FPDFException, OSError, ValueError) as e:
        logger.error(f"PDF rendering failed: {e}")
        raise RenderFailed("Could not generate the PDF document") from e

    logger.debug(f"Rendered PDF of {len(data)} bytes")
    return data
