"""Dependency providers wiring the core components to a request session."""
from fastapi import Depends
from sqlmodel import Session

from openchecklist.checklists.contributions import ContributionQueue
from openchecklist.checklists.files import FileStorage
from openchecklist.checklists.resolver import ContentResolver
from openchecklist.checklists.store import ChecklistStore
from openchecklist.core.config import settings
from openchecklist.core.database import get_session


def get_store(session: Session = Depends(get_session)) -> ChecklistStore:
    return ChecklistStore(session)


def get_file_storage() -> FileStorage:
    return FileStorage(settings.file_storage_dir)


def get_resolver(
    session: Session = Depends(get_session),
    files: FileStorage = Depends(get_file_storage),
) -> ContentResolver:
    return ContentResolver(session, files, storage_mode=settings.storage_mode)


def get_queue(session: Session = Depends(get_session)) -> ContributionQueue:
    return ContributionQueue(session)
