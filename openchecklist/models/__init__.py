from openchecklist.models.checklist import Checklist
from openchecklist.models.contribution import (
    Contribution,
    ContributionKind,
    ContributionStatus,
)
from openchecklist.models.download import DownloadEvent
from openchecklist.models.feature import ChecklistFeature
from openchecklist.models.item import ChecklistItem

__all__ = [
    "Checklist",
    "ChecklistItem",
    "ChecklistFeature",
    "DownloadEvent",
    "Contribution",
    "ContributionKind",
    "ContributionStatus",
]
