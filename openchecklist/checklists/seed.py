"""Sample checklists loaded into an empty catalog when AUTO_SEED is set."""
import logging

from openchecklist.checklists.store import ChecklistStore, ListOrder
from openchecklist.models.schemas import ChecklistCreate, ItemInput

logger = logging.getLogger(__name__)


def _items(phase: str, *texts: str, optional: tuple[str, ...] = ()) -> list[ItemInput]:
    items = [ItemInput(phase=phase, item_text=t, is_required=True) for t in texts]
    items += [ItemInput(phase=phase, item_text=t, is_required=False) for t in optional]
    return items


SAMPLE_CHECKLISTS = [
    ChecklistCreate(
        title="Food Truck Business Checklist",
        description="Complete guide to launching your food truck from concept to first sale",
        icon="\U0001F69A",
        category="Food & Beverage",
        features=["150+ step checklist", "Permit templates", "Menu planning tools", "Supplier directory"],
        items=[
            *_items(
                "Planning and Research",
                "Define your concept and unique value proposition",
                "Research target market and competition",
                "Create business plan and financial projections",
                "Research local food truck regulations",
            ),
            *_items(
                "Legal and Regulatory",
                "Register business name and obtain EIN",
                "Apply for business license",
                "Get health department permits",
                "Obtain commercial vehicle insurance",
            ),
            *_items(
                "Marketing and Launch",
                "Create social media accounts",
                "Design menu and pricing",
                optional=("Plan grand opening event", "Set up online ordering system"),
            ),
        ],
    ),
    ChecklistCreate(
        title="Podcast Production Workflow",
        description="Professional podcast setup and production system",
        icon="\U0001F399",
        category="Media & Entertainment",
        features=["Equipment checklist", "Recording templates", "Editing workflow", "Distribution guide"],
        items=[
            *_items("Planning", "Define podcast concept and target audience", "Create content calendar"),
            *_items("Equipment Setup", "Purchase microphone and audio interface", "Set up recording software"),
            *_items(
                "Distribution",
                "Choose podcast hosting platform",
                "Submit to podcast directories",
                optional=("Create podcast website",),
            ),
        ],
    ),
    ChecklistCreate(
        title="Online Course Creation",
        description="Build and launch your online course from scratch",
        icon="\U0001F4DA",
        category="Education",
        features=["Course planning framework", "Video production checklist", "Marketing templates"],
        items=[
            *_items("Course Planning", "Validate course topic demand", "Create course outline"),
            *_items("Content Creation", "Write course scripts", "Record video lessons"),
            *_items("Launch", "Create sales page", optional=("Set up email automation",)),
        ],
    ),
]


def seed_if_empty(store: ChecklistStore) -> int:
    """Create the sample checklists when the catalog is empty."""
    if store.list_all(ListOrder.NEWEST):
        return 0
    created = 0
    for data in SAMPLE_CHECKLISTS:
        store.create(data)
        created += 1
    logger.info(f"Seeded {created} sample checklists")
    return created
