"""Persistence access patterns for reports and assignments.

Each method is one named query against the record store. No business
rules live here: the workflow decides what a missing row or a
duplicate key means.
"""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import bindparam, text

from ..errors import StoreError
from ..repository import SQLRepository
from .models import AssignmentRecord, ReportRecord

REPORT_COLUMNS = (
    "reporter_name",
    "reporter_email",
    "reported_institution",
    "report_description",
    "report_content",
    "institution_name",
    "institution_id",
    "report_reason",
)


def _is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False


class ReportRepository(SQLRepository):
    """Queries over ``reports`` and ``assigned_reports``."""

    # =========================================================================
    # Reports
    # =========================================================================

    async def create(self, fields: dict[str, Any]) -> ReportRecord:
        """Insert a report.

        Args:
            fields: Column values; ``report_content`` must be a dict

        Returns:
            The stored row, including generated id and timestamps

        Raises:
            StoreError: On constraint violation or connectivity failure
        """
        values = {column: fields.get(column) for column in REPORT_COLUMNS}
        values["report_content"] = json.dumps(fields.get("report_content") or {})

        async with self._operation("create_report") as session:
            result = await session.execute(
                text("""
                INSERT INTO reports (
                    reporter_name, reporter_email, reported_institution,
                    report_description, report_content, institution_name,
                    institution_id, report_reason
                ) VALUES (
                    :reporter_name, :reporter_email, :reported_institution,
                    :report_description, CAST(:report_content AS jsonb), :institution_name,
                    :institution_id, :report_reason
                )
                RETURNING *
                """),
                values,
            )
            row = result.mappings().first()
            await session.commit()

        if row is None:
            raise StoreError("Insert returned no row", operation="create_report")
        return ReportRecord.model_validate(dict(row))

    async def find_by_id(self, report_id: str) -> ReportRecord | None:
        """Get a report by ID, or None if absent."""
        if not _is_uuid(report_id):
            return None

        async with self._operation("find_report", report_id=report_id) as session:
            result = await session.execute(
                text("SELECT * FROM reports WHERE report_id = :report_id"),
                {"report_id": str(report_id)},
            )
            row = result.mappings().first()

        return ReportRecord.model_validate(dict(row)) if row is not None else None

    async def find_by_ids(self, report_ids: list[str]) -> list[ReportRecord]:
        """Get reports by ID, newest first. Unknown ids are skipped."""
        ids = [str(report_id) for report_id in report_ids if _is_uuid(report_id)]
        if not ids:
            return []

        async with self._operation("find_reports_by_ids", count=len(ids)) as session:
            result = await session.execute(
                text("""
                SELECT * FROM reports
                WHERE report_id IN :report_ids
                ORDER BY created_at DESC
                """).bindparams(bindparam("report_ids", expanding=True)),
                {"report_ids": ids},
            )
            rows = result.mappings().all()

        return [ReportRecord.model_validate(dict(row)) for row in rows]

    async def find_all(self) -> list[ReportRecord]:
        """Get all reports, newest first."""
        async with self._operation("find_reports") as session:
            result = await session.execute(
                text("SELECT * FROM reports ORDER BY created_at DESC")
            )
            rows = result.mappings().all()

        return [ReportRecord.model_validate(dict(row)) for row in rows]

    async def update(self, report_id: str, content_patch: dict[str, Any]) -> None:
        """Merge keys into a report's content document.

        Keys absent from the patch keep their stored values. There is no
        version check: concurrent merges of the same key are last-write-wins.

        Args:
            report_id: Report to update
            content_patch: Keys to set in ``report_content``
        """
        async with self._operation("update_report", report_id=report_id) as session:
            await session.execute(
                text("""
                UPDATE reports SET
                    report_content = COALESCE(report_content, CAST('{}' AS jsonb))
                        || CAST(:patch AS jsonb),
                    updated_at = now()
                WHERE report_id = :report_id
                """),
                {"report_id": str(report_id), "patch": json.dumps(content_patch, default=str)},
            )
            await session.commit()

    # =========================================================================
    # Assignments
    # =========================================================================

    async def find_assignment(
        self, report_id: str, moderator_id: str | None = None
    ) -> AssignmentRecord | None:
        """Get the assignment of a report, optionally only if owned by a moderator."""
        if not _is_uuid(report_id):
            return None

        query = """
            SELECT report_id, moderator_id, assigned_at
            FROM assigned_reports
            WHERE report_id = :report_id
        """
        params = {"report_id": str(report_id)}
        if moderator_id is not None:
            query += " AND moderator_id = :moderator_id"
            params["moderator_id"] = moderator_id

        async with self._operation(
            "find_assignment", report_id=report_id, moderator_id=moderator_id
        ) as session:
            result = await session.execute(text(query), params)
            row = result.mappings().first()

        return AssignmentRecord.model_validate(dict(row)) if row is not None else None

    async def find_assignments_by_moderator_id(
        self, moderator_id: str
    ) -> list[AssignmentRecord]:
        """Get all assignments held by a moderator."""
        async with self._operation(
            "find_assignments", moderator_id=moderator_id
        ) as session:
            result = await session.execute(
                text("""
                SELECT report_id, moderator_id, assigned_at
                FROM assigned_reports
                WHERE moderator_id = :moderator_id
                """),
                {"moderator_id": moderator_id},
            )
            rows = result.mappings().all()

        return [AssignmentRecord.model_validate(dict(row)) for row in rows]

    async def find_all_assigned_report_ids(self) -> list[str]:
        """Get the ids of every report that currently has an assignment."""
        async with self._operation("find_assigned_report_ids") as session:
            result = await session.execute(text("SELECT report_id FROM assigned_reports"))
            rows = result.mappings().all()

        return [str(row["report_id"]) for row in rows]

    async def create_assignment(
        self, report_id: str, moderator_id: str, assigned_at: datetime
    ) -> AssignmentRecord:
        """Insert an assignment.

        Raises:
            DuplicateKeyError: If the report already has an assignment
            StoreError: On any other failure
        """
        async with self._operation(
            "create_assignment", report_id=report_id, moderator_id=moderator_id
        ) as session:
            await session.execute(
                text("""
                INSERT INTO assigned_reports (report_id, moderator_id, assigned_at)
                VALUES (:report_id, :moderator_id, :assigned_at)
                """),
                {
                    "report_id": str(report_id),
                    "moderator_id": moderator_id,
                    "assigned_at": assigned_at,
                },
            )
            await session.commit()

        return AssignmentRecord(
            report_id=str(report_id), moderator_id=moderator_id, assigned_at=assigned_at
        )

    async def delete_assignment(
        self, report_id: str, moderator_id: str | None = None
    ) -> bool:
        """Delete a report's assignment, optionally only if owned by a moderator.

        Returns:
            True if a row was deleted
        """
        query = "DELETE FROM assigned_reports WHERE report_id = :report_id"
        params = {"report_id": str(report_id)}
        if moderator_id is not None:
            query += " AND moderator_id = :moderator_id"
            params["moderator_id"] = moderator_id

        async with self._operation(
            "delete_assignment", report_id=report_id, moderator_id=moderator_id
        ) as session:
            result = await session.execute(text(query), params)
            await session.commit()

        return (result.rowcount or 0) > 0


# Singleton instance
_report_repository: ReportRepository | None = None


def get_report_repository() -> ReportRepository:
    """Get the report repository singleton."""
    global _report_repository
    if _report_repository is None:
        _report_repository = ReportRepository()
    return _report_repository
