#!/usr/bin/env python3
"""
One-off script to convert prefix-encoded checklist content.

Older releases stored files in the ``content`` column as strings such as
``PDF_BASE64:<name>:<data>``, ``ZIP_BASE64:<data>`` or ``PDF File: <name>``.
This script moves them into the dedicated file columns.

Usage:
    python scripts/convert_legacy_content.py [--dry-run]

Options:
    --dry-run    Show what would be converted without making changes
"""
import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session, or_, select

from openchecklist.checklists.payload import EmbeddedBinary
from openchecklist.checklists.store import convert_legacy_checklist
from openchecklist.core.database import engine
from openchecklist.core.errors import Invalid
from openchecklist.models import Checklist

LEGACY_PREFIXES = ("PDF_BASE64:", "ZIP_BASE64:", "PDF File:")


def main(dry_run: bool = False):
    """Find legacy content values and rewrite them as file payloads."""
    with Session(engine) as session:
        statement = select(Checklist).where(
            Checklist.file_kind.is_(None),
            or_(*(Checklist.content.startswith(p) for p in LEGACY_PREFIXES)),
        )
        checklists = session.exec(statement).all()

        if not checklists:
            print("No legacy content found.")
            return

        print(f"Found {len(checklists)} checklists with legacy content:\n")

        converted = 0
        for checklist in checklists:
            try:
                payload = convert_legacy_checklist(checklist)
            except Invalid as e:
                print(f"  [{checklist.id}] {checklist.title}: skipped ({e.message})")
                continue
            if payload is None:
                continue

            if isinstance(payload, EmbeddedBinary):
                size = len(payload.decode())
                print(f"  [{checklist.id}] {checklist.title}: embedded {payload.kind.value}, {size} bytes")
            else:
                print(f"  [{checklist.id}] {checklist.title}: file reference {payload.filename}")
            print(f"      formats: {checklist.formats}")
            session.add(checklist)
            converted += 1

        if dry_run:
            session.rollback()
            print(f"\nDry run: {converted} checklists would be converted.")
            return

        session.commit()
        print(f"\nConverted {converted} checklists.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--dry-run", action="store_true", help="Show changes without writing")
    args = parser.parse_args()
    main(dry_run=args.dry_run)
