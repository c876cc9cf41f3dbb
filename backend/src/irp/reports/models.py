"""Pydantic models for reports and assignments.

Stored rows are mirrored as snake_case records; request and response
shapes use camelCase aliases to match the public API.
"""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enumerations
# =============================================================================


class ReportStatus(str, Enum):
    """Derived workflow status of a report."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


# Content keys owned by the workflow; never accepted from a submitter
WORKFLOW_KEYS = frozenset(
    {"status", "assigned_to", "assigned_at", "completed_at", "review_notes"}
)


# =============================================================================
# Stored records
# =============================================================================


class ReportRecord(BaseModel):
    """A row of the ``reports`` table."""

    report_id: str
    reporter_name: str = ""
    reporter_email: str = ""
    reported_institution: str | None = None
    report_description: str | None = None
    report_content: dict[str, Any] = Field(default_factory=dict)
    institution_name: str | None = None
    institution_id: str | None = None
    report_reason: str | None = None
    created_at: Any = None
    updated_at: Any = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_row(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if isinstance(data.get("report_id"), UUID):
                data["report_id"] = str(data["report_id"])
            if not isinstance(data.get("report_content"), dict):
                data["report_content"] = {}
        return data


class AssignmentRecord(BaseModel):
    """A row of the ``assigned_reports`` table."""

    report_id: str
    moderator_id: str
    assigned_at: Any = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_row(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("report_id"), UUID):
            data = {**data, "report_id": str(data["report_id"])}
        return data


class ReportContent:
    """Validated-on-read view over the schema-less ``report_content`` document.

    The document may hold anything; every accessor tolerates missing keys
    and unexpected types, and an unknown ``status`` reads as pending.
    """

    def __init__(self, raw: Any):
        self.raw: dict[str, Any] = raw if isinstance(raw, dict) else {}

    def _text(self, key: str) -> str | None:
        value = self.raw.get(key)
        if isinstance(value, str) and value:
            return value
        return None

    @property
    def status(self) -> ReportStatus:
        value = self.raw.get("status")
        try:
            return ReportStatus(value)
        except (ValueError, TypeError):
            return ReportStatus.PENDING

    @property
    def assigned_to(self) -> str | None:
        return self._text("assigned_to")

    @property
    def assigned_at(self) -> Any:
        return self.raw.get("assigned_at")

    @property
    def completed_at(self) -> Any:
        return self.raw.get("completed_at")

    @property
    def pdf_storage_path(self) -> str | None:
        return self._text("pdf_storage_path")

    @property
    def numer_rspo(self) -> str | None:
        return self._text("numer_rspo")

    @property
    def review_notes(self) -> str | None:
        return self._text("review_notes")


# =============================================================================
# Workflow inputs
# =============================================================================


class CreateReportRequest(BaseModel):
    """Metadata submitted alongside a report attachment."""

    reporter_name: str
    reporter_email: str
    reported_institution: str | None = None
    report_description: str | None = None
    report_content: dict[str, Any] = Field(default_factory=dict)
    institution_name: str | None = None
    institution_id: str | None = None
    numer_rspo: str | None = None
    report_reason: str | None = None


class ReviewContent(BaseModel):
    """Structured review content from the moderator."""

    model_config = ConfigDict(populate_by_name=True)

    comparison_notes: str | None = Field(default=None, alias="comparisonNotes")
    findings: list[Any] | None = None


class ReviewReportRequest(BaseModel):
    """Review payload.

    ``comparisonNotes`` and ``findings`` may be sent at the top level as a
    shorthand for the nested ``reportContent`` form.
    """

    model_config = ConfigDict(populate_by_name=True)

    review_notes: str | None = Field(default=None, alias="reviewNotes")
    report_content: ReviewContent | None = Field(default=None, alias="reportContent")

    @model_validator(mode="before")
    @classmethod
    def _lift_shorthand(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        shorthand = {
            key: data[key] for key in ("comparisonNotes", "findings") if key in data
        }
        if shorthand and not data.get("reportContent"):
            data = {k: v for k, v in data.items() if k not in shorthand}
            data["reportContent"] = shorthand
        return data

    def resolved_notes(self) -> str | None:
        """First non-empty of the structured notes and the legacy field."""
        candidates = [
            self.report_content.comparison_notes if self.report_content else None,
            self.review_notes,
        ]
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        return None


# =============================================================================
# API responses
# =============================================================================


class _CamelResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateReportResponse(_CamelResponse):
    """Identifiers of a newly stored report."""

    report_id: str = Field(serialization_alias="reportId")
    pdf_path: str | None = Field(default=None, serialization_alias="pdfPath")
    institution_id: str | None = Field(default=None, serialization_alias="institutionId")


class ReportResponse(_CamelResponse):
    """External projection of a report."""

    id: str
    reporter_name: str = Field(serialization_alias="reporterName")
    reporter_email: str = Field(serialization_alias="reporterEmail")
    reported_institution: str | None = Field(
        default=None, serialization_alias="reportedInstitution"
    )
    institution_name: str | None = Field(default=None, serialization_alias="institutionName")
    institution_id: str | None = Field(default=None, serialization_alias="institutionId")
    numer_rspo: str | None = Field(default=None, serialization_alias="numerRspo")
    report_description: str | None = Field(
        default=None, serialization_alias="reportDescription"
    )
    report_reason: str | None = Field(default=None, serialization_alias="reportReason")
    status: ReportStatus
    assigned_to: str | None = Field(default=None, serialization_alias="assignedTo")
    assigned_at: str | None = Field(default=None, serialization_alias="assignedAt")
    completed_at: str | None = Field(default=None, serialization_alias="completedAt")
    created_at: str = Field(serialization_alias="createdAt")
    updated_at: str = Field(serialization_alias="updatedAt")
    pdf_path: str | None = Field(default=None, serialization_alias="pdfPath")


class AssignReportResponse(_CamelResponse):
    message: str
    report_id: str = Field(serialization_alias="reportId")
    moderator_id: str | None = Field(default=None, serialization_alias="moderatorId")


class UnassignReportResponse(_CamelResponse):
    message: str
    report_id: str = Field(serialization_alias="reportId")


class ReviewReportResponse(_CamelResponse):
    message: str
    report_id: str = Field(serialization_alias="reportId")
    status: ReportStatus = ReportStatus.COMPLETED


class ReportFileResponse(_CamelResponse):
    """Temporary download link for a report attachment."""

    report_id: str = Field(serialization_alias="reportId")
    pdf_path: str = Field(serialization_alias="pdfPath")
    url: str
    expires_in: int = Field(serialization_alias="expiresIn")

