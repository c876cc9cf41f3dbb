"""API endpoints for reports.

Submission is open to anonymous reporters; every other endpoint acts on
behalf of the authenticated moderator.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from ..errors import ValidationError
from ..reports.models import (
    AssignReportResponse,
    CreateReportRequest,
    CreateReportResponse,
    ReportFileResponse,
    ReportResponse,
    ReviewReportRequest,
    ReviewReportResponse,
    UnassignReportResponse,
)
from ..reports.workflow import ReportWorkflow, get_report_workflow
from .auth import CurrentUser, OptionalUser

router = APIRouter(prefix="/reports", tags=["reports"])

PDF_CONTENT_TYPE = "application/pdf"


def _parse_report_content(raw: str | None) -> dict[str, Any]:
    """Parse the ``reportContent`` form field (a JSON object)."""
    if raw is None or not raw.strip():
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("reportContent must be a JSON object.")
    if not isinstance(value, dict):
        raise ValidationError("reportContent must be a JSON object.")
    return value


# =============================================================================
# Submission
# =============================================================================


@router.post(
    "",
    response_model=CreateReportResponse,
    response_model_exclude_none=True,
    status_code=201,
)
async def create_report(
    user: OptionalUser,
    reporter_name: str = Form(..., alias="reporterName"),
    reporter_email: str = Form(..., alias="reporterEmail"),
    reported_institution: str | None = Form(None, alias="reportedInstitution"),
    report_description: str | None = Form(None, alias="reportDescription"),
    report_content: str | None = Form(None, alias="reportContent"),
    institution_name: str | None = Form(None, alias="institutionName"),
    institution_id: str | None = Form(None, alias="institutionId"),
    numer_rspo: str | None = Form(None, alias="numerRspo"),
    report_reason: str | None = Form(None, alias="reportReason"),
    pdf: UploadFile | None = File(None),
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> CreateReportResponse:
    """Submit a report with its PDF attachment."""
    if pdf is not None and pdf.content_type != PDF_CONTENT_TYPE:
        raise ValidationError("Only PDF files are allowed.")

    request = CreateReportRequest(
        reporter_name=reporter_name,
        reporter_email=reporter_email,
        reported_institution=reported_institution or None,
        report_description=report_description or None,
        report_content=_parse_report_content(report_content),
        institution_name=institution_name or None,
        institution_id=institution_id or None,
        numer_rspo=numer_rspo or None,
        report_reason=report_reason or None,
    )
    data = await pdf.read() if pdf is not None else None

    return await workflow.create(
        request,
        data,
        filename=pdf.filename if pdf is not None else None,
        content_type=PDF_CONTENT_TYPE,
        submitter_id=user.id if user else None,
    )


# =============================================================================
# Listings
# =============================================================================


@router.get("", response_model=list[ReportResponse], response_model_exclude_none=True)
async def list_reports(
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> list[ReportResponse]:
    """List all reports, newest first."""
    return await workflow.list_all()


@router.get(
    "/assigned", response_model=list[ReportResponse], response_model_exclude_none=True
)
async def list_assigned_reports(
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> list[ReportResponse]:
    """List reports assigned to the caller and not yet completed."""
    return await workflow.list_assigned_to(user.id)


@router.get(
    "/completed", response_model=list[ReportResponse], response_model_exclude_none=True
)
async def list_completed_reports(
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> list[ReportResponse]:
    """List reports the caller has completed."""
    return await workflow.list_completed_by(user.id)


@router.get(
    "/available", response_model=list[ReportResponse], response_model_exclude_none=True
)
async def list_available_reports(
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> list[ReportResponse]:
    """List pending reports nobody has claimed."""
    return await workflow.list_available()


@router.get("/{report_id}", response_model=ReportResponse, response_model_exclude_none=True)
async def get_report(
    report_id: str,
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> ReportResponse:
    """Get report details."""
    return await workflow.get(report_id)


@router.get("/{report_id}/pdf-url", response_model=ReportFileResponse)
async def get_report_pdf_url(
    report_id: str,
    user: CurrentUser,
    expires_in: int = Query(default=3600, ge=60, le=86400, alias="expiresIn"),
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> ReportFileResponse:
    """Get a temporary download link for the report's PDF."""
    return await workflow.get_file_url(report_id, expires_in)


# =============================================================================
# Transitions
# =============================================================================


@router.post("/{report_id}/assign", response_model=AssignReportResponse)
async def assign_report(
    report_id: str,
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> AssignReportResponse:
    """Claim a report for the caller."""
    return await workflow.assign(report_id, user.id)


@router.delete(
    "/{report_id}/assign",
    response_model=UnassignReportResponse,
)
async def unassign_report(
    report_id: str,
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> UnassignReportResponse:
    """Release a report the caller holds."""
    return await workflow.unassign(report_id, user.id)


@router.patch("/{report_id}/review", response_model=ReviewReportResponse)
async def review_report(
    report_id: str,
    payload: ReviewReportRequest,
    user: CurrentUser,
    workflow: ReportWorkflow = Depends(get_report_workflow),
) -> ReviewReportResponse:
    """Complete the review of a report the caller holds."""
    return await workflow.review(report_id, user.id, payload)
