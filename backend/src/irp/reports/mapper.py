"""Projection of stored reports into API responses.

Status and ownership are re-derived from the open ``report_content``
document on every read.
"""

from typing import Iterable, Mapping

from ..timestamps import parse_timestamp, timestamp_or_now
from .models import AssignmentRecord, ReportContent, ReportRecord, ReportResponse, ReportStatus


def derive_status(content: object) -> ReportStatus:
    """Derive the workflow status from a report's content document.

    Args:
        content: The stored ``report_content`` value (any shape)

    Returns:
        ``content.status`` if it is a known status, otherwise pending
    """
    return ReportContent(content).status


def to_report_response(
    record: ReportRecord,
    assignment: AssignmentRecord | None = None,
    assigned_user_id: str | None = None,
) -> ReportResponse:
    """Project a stored report.

    Args:
        record: The stored report row
        assignment: Assignment row for this report, when the caller joined one
        assigned_user_id: Last-resort owner, used only by the list-mine views

    Returns:
        The report projection
    """
    content = ReportContent(record.report_content)

    assigned_to = (
        content.assigned_to
        or (assignment.moderator_id if assignment else None)
        or assigned_user_id
    )
    assigned_at = parse_timestamp(content.assigned_at) or (
        parse_timestamp(assignment.assigned_at) if assignment else None
    )

    return ReportResponse(
        id=record.report_id or "",
        reporter_name=record.reporter_name or "",
        reporter_email=record.reporter_email or "",
        reported_institution=record.reported_institution or None,
        institution_name=record.institution_name or None,
        institution_id=record.institution_id or None,
        numer_rspo=content.numer_rspo,
        report_description=record.report_description or None,
        report_reason=record.report_reason or None,
        status=content.status,
        assigned_to=assigned_to,
        assigned_at=assigned_at,
        completed_at=parse_timestamp(content.completed_at),
        created_at=timestamp_or_now(record.created_at),
        updated_at=timestamp_or_now(record.updated_at),
        pdf_path=content.pdf_storage_path,
    )


def to_report_responses(
    records: Iterable[ReportRecord],
    assignments: Mapping[str, AssignmentRecord] | None = None,
    assigned_user_id: str | None = None,
) -> list[ReportResponse]:
    """Project a batch of reports, joining assignments by report id."""
    assignments = assignments or {}
    return [
        to_report_response(record, assignments.get(record.report_id), assigned_user_id)
        for record in records
    ]
