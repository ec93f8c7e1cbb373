"""Error taxonomy shared by the store, resolver and contribution queue.

Core operations raise these instead of returning sentinel values. The HTTP
layer maps them to responses through a single exception handler, so route
functions never translate errors by hand.
"""


class ChecklistError(Exception):
    """Base class for every error the core raises on purpose."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotFound(ChecklistError):
    """The requested entity does not exist."""

    kind = "not_found"
    status_code = 404


class Invalid(ChecklistError):
    """A required field is missing or the input is malformed."""

    kind = "invalid"
    status_code = 400


class NotAvailable(ChecklistError):
    """The entity exists but the requested format or resource does not."""

    kind = "not_available"
    status_code = 404


class FormatNotImplemented(ChecklistError):
    """The output format is known but intentionally unsupported."""

    kind = "not_implemented"
    status_code = 501


class StorageUnavailable(ChecklistError):
    """The database could not be reached or timed out."""

    kind = "storage_unavailable"
    status_code = 503


class AlreadyReviewed(ChecklistError):
    """A contribution was already approved or rejected."""

    kind = "already_reviewed"
    status_code = 409


class Unauthorized(ChecklistError):
    """The shared admin secret was missing or wrong."""

    kind = "unauthorized"
    status_code = 401


class RenderFailed(ChecklistError):
    """A document could not be generated from the checklist."""

    kind = "render_failed"
    status_code = 500
