"""Error taxonomy for the report workflow.

Domain errors (validation, authentication, not found, conflict) describe
the caller's request and are propagated verbatim. Collaborator errors
(upload, store, persistence, notification) describe infrastructure
failures; they are logged with context where they occur.
"""


class ReportError(Exception):
    """Base class for report workflow failures."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =========================
# Domain errors
# =========================


class ValidationError(ReportError):
    """Missing attachment or malformed input."""

    status_code = 422
    error_code = "VALIDATION_ERROR"


class Unauthenticated(ReportError):
    """Bearer credential missing or not resolvable to a user."""

    status_code = 401
    error_code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class NotFoundError(ReportError):
    """Referenced report or moderator does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with ID {identifier} not found")


class ConflictError(ReportError):
    """Assignment ownership violation."""

    status_code = 409
    error_code = "CONFLICT"

    ASSIGNED_TO_ANOTHER = "This report is already assigned to another moderator"
    ALREADY_ASSIGNED_TO_YOU = "This report is already assigned to you"
    NOT_ASSIGNED_TO_YOU = "This report is not assigned to you"
    ALREADY_COMPLETED = "This report has already been completed"


# =========================
# Collaborator errors
# =========================


class UploadError(ReportError):
    """The blob store rejected or failed an upload."""

    error_code = "UPLOAD_FAILED"


class StoreError(ReportError):
    """The record store failed (connectivity, constraint, unexpected reply)."""

    error_code = "STORE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)


class DuplicateKeyError(StoreError):
    """A unique constraint rejected an insert."""

    error_code = "DUPLICATE_KEY"


class PersistenceError(ReportError):
    """A report could not be saved after its attachment was uploaded."""

    error_code = "PERSISTENCE_FAILED"


class NotificationError(ReportError):
    """The outbound e-mail could not be delivered."""

    error_code = "NOTIFICATION_FAILED"


# Errors whose message is shown to clients verbatim
DOMAIN_ERRORS = (ValidationError, Unauthenticated, NotFoundError, ConflictError)
