"""Report lifecycle and assignment workflow.

State machine per report, derived from ``report_content``:

    pending --assign--> assigned --review--> completed
    assigned --unassign--> pending

The ``assigned_reports`` row is the source of truth for ownership; the
``assigned_to``/``assigned_at`` keys in content are a read cache. Mutual
exclusion between concurrent assigners comes from the unique constraint
on ``assigned_reports.report_id``, not from anything in this process.
"""

import asyncio
import re
from typing import Any

from ..errors import (
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    PersistenceError,
    StoreError,
    UploadError,
    ValidationError,
)
from ..logging import get_context_logger, log_report_transition
from ..moderators.directory import ModeratorDirectory, get_moderator_directory
from ..moderators.models import ModeratorRecord
from ..notifications import Notifier, get_notifier
from ..storage import BlobStore, build_report_storage_path, get_blob_store
from ..timestamps import format_timestamp, utc_now
from .mapper import to_report_response, to_report_responses
from .models import (
    WORKFLOW_KEYS,
    AssignReportResponse,
    CreateReportRequest,
    CreateReportResponse,
    ReportContent,
    ReportFileResponse,
    ReportRecord,
    ReportResponse,
    ReportStatus,
    ReviewReportRequest,
    ReviewReportResponse,
    UnassignReportResponse,
)
from .repository import ReportRepository, get_report_repository
from .saga import Saga

logger = get_context_logger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def resolve_institution_id(request: CreateReportRequest) -> str | None:
    """Institution id, else registry number, else free-text institution."""
    return (
        request.institution_id
        or request.numer_rspo
        or request.reported_institution
        or None
    )


class ReportWorkflow:
    """Orchestrates report creation, assignment and review.

    Collaborators are injected for tests; by default the module
    singletons are used.
    """

    def __init__(
        self,
        repository: ReportRepository | None = None,
        directory: ModeratorDirectory | None = None,
        blob_store: BlobStore | None = None,
        notifier: Notifier | None = None,
    ):
        self._repository = repository or get_report_repository()
        self._directory = directory or get_moderator_directory()
        self._blob_store = blob_store or get_blob_store()
        self._notifier = notifier or get_notifier()

    # =========================================================================
    # Creation
    # =========================================================================

    async def create(
        self,
        request: CreateReportRequest,
        pdf: bytes | None,
        filename: str | None = None,
        content_type: str | None = None,
        submitter_id: str | None = None,
    ) -> CreateReportResponse:
        """Store a report attachment and its record.

        The attachment is uploaded first; if the record insert then fails,
        the uploaded blob is deleted before the error surfaces. A crash
        between the two steps leaves an orphaned blob, which is not
        reconciled.

        Args:
            request: Reporter and institution metadata
            pdf: Attachment bytes
            filename: Original upload filename, for its extension
            content_type: MIME type of the attachment
            submitter_id: Authenticated submitter, if any

        Returns:
            Report id, stored blob path and resolved institution id

        Raises:
            ValidationError: If the attachment is missing or input is malformed
            UploadError: If the blob store rejected the upload
            PersistenceError: If the record could not be saved
        """
        self._validate_create(request, pdf)

        storage_path = build_report_storage_path(
            request.institution_id or request.numer_rspo, filename
        )
        institution_id = resolve_institution_id(request)

        seed = {
            key: value
            for key, value in (request.report_content or {}).items()
            if key not in WORKFLOW_KEYS
        }
        fields = {
            "reporter_name": request.reporter_name.strip(),
            "reporter_email": request.reporter_email.strip(),
            "reported_institution": request.reported_institution,
            "report_description": request.report_description,
            "institution_name": request.institution_name,
            "institution_id": institution_id,
            "report_reason": request.report_reason,
            "report_content": {
                **seed,
                "pdf_storage_path": storage_path,
                "numer_rspo": request.numer_rspo,
                "submitted_by_user_id": submitter_id,
            },
        }

        async def upload() -> str:
            try:
                return await asyncio.to_thread(
                    self._blob_store.upload,
                    storage_path,
                    pdf,
                    content_type or "application/pdf",
                )
            except UploadError:
                logger.error(
                    "Attachment upload failed",
                    extra={"storage_path": storage_path, "submitter_id": submitter_id},
                )
                raise

        async def delete_upload() -> None:
            await asyncio.to_thread(self._blob_store.delete, [storage_path])

        async def insert() -> ReportRecord:
            try:
                return await self._repository.create(fields)
            except StoreError as e:
                raise PersistenceError(f"Could not save report: {e.message}") from e
            except Exception as e:
                logger.exception(
                    "Report insert failed unexpectedly",
                    extra={"storage_path": storage_path},
                )
                raise PersistenceError(f"Could not save report: {e}") from e

        saga = Saga("create", identifiers={"storage_path": storage_path})
        saga.step("upload_attachment", upload, compensation=delete_upload)
        saga.step("insert_report", insert)
        _, record = await saga.run()

        logger.info(
            "Report created",
            extra={"report_id": record.report_id, "storage_path": storage_path},
        )
        return CreateReportResponse(
            report_id=record.report_id,
            pdf_path=storage_path,
            institution_id=institution_id,
        )

    @staticmethod
    def _validate_create(request: CreateReportRequest, pdf: bytes | None) -> None:
        if not pdf:
            raise ValidationError("A PDF file is required.")
        if not request.reporter_name or not request.reporter_name.strip():
            raise ValidationError("reporterName must not be empty.")
        if not _EMAIL_PATTERN.match((request.reporter_email or "").strip()):
            raise ValidationError("reporterEmail must be a valid e-mail address.")

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, report_id: str) -> ReportResponse:
        """Get one report, joined with its assignment row.

        Raises:
            NotFoundError: If the report does not exist
        """
        record = await self._require_report(report_id)
        assignment = await self._repository.find_assignment(report_id)
        return to_report_response(record, assignment)

    async def get_file_url(self, report_id: str, expires_in: int = 3600) -> ReportFileResponse:
        """Issue a temporary download link for a report's attachment.

        Raises:
            NotFoundError: If the report or its attachment pointer is missing
        """
        record = await self._require_report(report_id)
        path = ReportContent(record.report_content).pdf_storage_path
        if path is None:
            raise NotFoundError("Report attachment", report_id)

        url = await asyncio.to_thread(self._blob_store.generate_presigned_url, path, expires_in)
        return ReportFileResponse(
            report_id=record.report_id, pdf_path=path, url=url, expires_in=expires_in
        )

    async def list_all(self) -> list[ReportResponse]:
        """All reports, newest first, without an assignment join."""
        records = await self._repository.find_all()
        return to_report_responses(records)

    async def list_assigned_to(self, user_id: str) -> list[ReportResponse]:
        """Reports the user's moderator owns and has not completed."""
        return await self._list_mine(user_id, ReportStatus.ASSIGNED)

    async def list_completed_by(self, user_id: str) -> list[ReportResponse]:
        """Reports the user's moderator owns and has completed."""
        return await self._list_mine(user_id, ReportStatus.COMPLETED)

    async def _list_mine(self, user_id: str, status: ReportStatus) -> list[ReportResponse]:
        moderator = await self._directory.find(user_id)
        if moderator is None:
            return []

        assignments = await self._repository.find_assignments_by_moderator_id(moderator.id)
        if not assignments:
            return []

        by_report = {assignment.report_id: assignment for assignment in assignments}
        records = await self._repository.find_by_ids(list(by_report))
        responses = to_report_responses(records, by_report, assigned_user_id=user_id)
        return [response for response in responses if response.status == status]

    async def list_available(self) -> list[ReportResponse]:
        """Pending reports with no assignment row."""
        records = await self._repository.find_all()
        assigned = set(await self._repository.find_all_assigned_report_ids())

        return [
            response
            for response in to_report_responses(
                record for record in records if record.report_id not in assigned
            )
            if response.status == ReportStatus.PENDING
        ]

    # =========================================================================
    # Transitions
    # =========================================================================

    async def assign(self, report_id: str, actor_id: str) -> AssignReportResponse:
        """Claim a report for the acting moderator.

        Raises:
            NotFoundError: If the report does not exist
            ConflictError: If the report is already assigned (to anyone)
        """
        record = await self._require_report(report_id)
        moderator = await self._directory.ensure_moderator(actor_id)

        existing = await self._repository.find_assignment(report_id)
        if existing is not None:
            if existing.moderator_id != moderator.id:
                raise ConflictError(ConflictError.ASSIGNED_TO_ANOTHER)
            raise ConflictError(ConflictError.ALREADY_ASSIGNED_TO_YOU)

        now = utc_now()

        async def insert_assignment() -> None:
            try:
                await self._repository.create_assignment(report_id, moderator.id, now)
            except DuplicateKeyError as e:
                # Lost the race to a concurrent assigner
                raise ConflictError(ConflictError.ASSIGNED_TO_ANOTHER) from e

        async def delete_assignment() -> None:
            await self._repository.delete_assignment(report_id, moderator.id)

        async def merge_content() -> None:
            await self._repository.update(
                report_id,
                {
                    "status": ReportStatus.ASSIGNED.value,
                    "assigned_to": actor_id,
                    "assigned_at": format_timestamp(now),
                },
            )

        saga = Saga("assign", identifiers={"report_id": report_id, "moderator_id": moderator.id})
        saga.step("create_assignment", insert_assignment, compensation=delete_assignment)
        saga.step("merge_content", merge_content)
        await saga.run()

        log_report_transition(
            report_id,
            ReportContent(record.report_content).status.value,
            ReportStatus.ASSIGNED.value,
            actor_id=actor_id,
        )
        return AssignReportResponse(
            message="Report assigned successfully",
            report_id=report_id,
            moderator_id=moderator.id,
        )

    async def unassign(self, report_id: str, actor_id: str) -> UnassignReportResponse:
        """Release a report held by the acting moderator.

        Raises:
            ConflictError: If the actor does not hold the report, or it is completed
        """
        record, moderator = await self._require_ownership(report_id, actor_id)

        await self._repository.delete_assignment(report_id, moderator.id)
        await self._repository.update(
            report_id,
            {
                "status": ReportStatus.PENDING.value,
                "assigned_to": None,
                "assigned_at": None,
            },
        )

        log_report_transition(
            report_id,
            ReportContent(record.report_content).status.value,
            ReportStatus.PENDING.value,
            actor_id=actor_id,
        )
        return UnassignReportResponse(
            message="Report unassigned successfully", report_id=report_id
        )

    async def review(
        self, report_id: str, actor_id: str, payload: ReviewReportRequest
    ) -> ReviewReportResponse:
        """Complete a report held by the acting moderator and notify the reporter.

        Keys the payload omits keep their stored values. Notification
        failures are logged and never undo the completion.

        Raises:
            ConflictError: If the actor does not hold the report, or it is completed
        """
        record, moderator = await self._require_ownership(report_id, actor_id)

        review_notes = payload.resolved_notes()
        patch: dict[str, Any] = {
            "status": ReportStatus.COMPLETED.value,
            "completed_at": format_timestamp(utc_now()),
            "review_notes": review_notes,
        }
        if payload.report_content is not None:
            if payload.report_content.findings is not None:
                patch["findings"] = payload.report_content.findings
            if payload.report_content.comparison_notes is not None:
                patch["comparisonNotes"] = payload.report_content.comparison_notes

        await self._repository.update(report_id, patch)

        log_report_transition(
            report_id,
            ReportContent(record.report_content).status.value,
            ReportStatus.COMPLETED.value,
            actor_id=actor_id,
        )

        await self._notify_reviewed(record, review_notes, moderator)

        return ReviewReportResponse(
            message="Report reviewed successfully", report_id=report_id
        )

    async def _notify_reviewed(
        self,
        record: ReportRecord,
        review_notes: str | None,
        moderator: ModeratorRecord,
    ) -> None:
        try:
            await self._notifier.notify(
                record, review_notes, self._directory.display_name(moderator)
            )
        except Exception as e:
            logger.error(
                f"Failed to send review notification: {e}",
                extra={"report_id": record.report_id, "moderator_id": moderator.id},
            )

    # =========================================================================
    # Guards
    # =========================================================================

    async def _require_report(self, report_id: str) -> ReportRecord:
        record = await self._repository.find_by_id(report_id)
        if record is None:
            raise NotFoundError("Report", report_id)
        return record

    async def _require_ownership(
        self, report_id: str, actor_id: str
    ) -> tuple[ReportRecord, ModeratorRecord]:
        """Load a report the actor holds and has not completed."""
        record = await self._require_report(report_id)
        moderator = await self._directory.ensure_moderator(actor_id)

        assignment = await self._repository.find_assignment(report_id, moderator.id)
        if assignment is None:
            raise ConflictError(ConflictError.NOT_ASSIGNED_TO_YOU)

        if ReportContent(record.report_content).status == ReportStatus.COMPLETED:
            raise ConflictError(ConflictError.ALREADY_COMPLETED)

        return record, moderator


# Singleton instance
_report_workflow: ReportWorkflow | None = None


def get_report_workflow() -> ReportWorkflow:
    """Get the report workflow singleton."""
    global _report_workflow
    if _report_workflow is None:
        _report_workflow = ReportWorkflow()
    return _report_workflow
