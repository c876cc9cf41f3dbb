"""Shared pytest fixtures for IRP tests.

Provides in-memory stand-ins for the record store, blob store and
notifier so workflow behavior can be exercised without infrastructure.
"""

import copy
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest

from irp.errors import DuplicateKeyError, NotificationError, StoreError, UploadError
from irp.moderators.directory import ModeratorDirectory
from irp.moderators.models import ModeratorRecord
from irp.reports.models import AssignmentRecord, ReportRecord
from irp.reports.workflow import ReportWorkflow

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


# =========================
# Record store
# =========================


class FakeReportRepository:
    """In-memory report repository enforcing one assignment per report."""

    def __init__(self):
        self.reports: dict[str, ReportRecord] = {}
        self.assignments: dict[str, AssignmentRecord] = {}
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.fail_create: Exception | None = None
        self.fail_update: Exception | None = None
        self.fail_create_assignment: Exception | None = None
        self._clock = 0

    def _tick(self) -> datetime:
        self._clock += 1
        return BASE_TIME + timedelta(seconds=self._clock)

    def add_report(self, **fields: Any) -> ReportRecord:
        """Seed a stored report directly."""
        now = self._tick()
        record = ReportRecord(
            report_id=fields.pop("report_id", str(uuid4())),
            reporter_name=fields.pop("reporter_name", "Jane Doe"),
            reporter_email=fields.pop("reporter_email", "jane.doe@example.com"),
            created_at=fields.pop("created_at", now),
            updated_at=fields.pop("updated_at", now),
            **fields,
        )
        self.reports[record.report_id] = record
        return record

    async def create(self, fields: dict[str, Any]) -> ReportRecord:
        if self.fail_create is not None:
            raise self.fail_create
        return self.add_report(**copy.deepcopy(fields))

    async def find_by_id(self, report_id: str) -> ReportRecord | None:
        return self.reports.get(report_id)

    async def find_by_ids(self, report_ids: list[str]) -> list[ReportRecord]:
        found = [self.reports[r] for r in report_ids if r in self.reports]
        return sorted(found, key=lambda r: r.created_at, reverse=True)

    async def find_all(self) -> list[ReportRecord]:
        return sorted(self.reports.values(), key=lambda r: r.created_at, reverse=True)

    async def update(self, report_id: str, content_patch: dict[str, Any]) -> None:
        if self.fail_update is not None:
            raise self.fail_update
        self.updates.append((report_id, content_patch))
        record = self.reports.get(report_id)
        if record is None:
            return
        merged = {**record.report_content, **copy.deepcopy(content_patch)}
        self.reports[report_id] = record.model_copy(
            update={"report_content": merged, "updated_at": self._tick()}
        )

    async def find_assignment(
        self, report_id: str, moderator_id: str | None = None
    ) -> AssignmentRecord | None:
        assignment = self.assignments.get(report_id)
        if assignment is None:
            return None
        if moderator_id is not None and assignment.moderator_id != moderator_id:
            return None
        return assignment

    async def find_assignments_by_moderator_id(self, moderator_id: str) -> list[AssignmentRecord]:
        return [a for a in self.assignments.values() if a.moderator_id == moderator_id]

    async def find_all_assigned_report_ids(self) -> list[str]:
        return list(self.assignments)

    async def create_assignment(
        self, report_id: str, moderator_id: str, assigned_at: datetime
    ) -> AssignmentRecord:
        if self.fail_create_assignment is not None:
            raise self.fail_create_assignment
        if report_id in self.assignments:
            raise DuplicateKeyError("Duplicate key in create_assignment", "create_assignment")
        assignment = AssignmentRecord(
            report_id=report_id, moderator_id=moderator_id, assigned_at=assigned_at
        )
        self.assignments[report_id] = assignment
        return assignment

    async def delete_assignment(self, report_id: str, moderator_id: str | None = None) -> bool:
        assignment = await self.find_assignment(report_id, moderator_id)
        if assignment is None:
            return False
        del self.assignments[report_id]
        return True


class FakeModeratorRepository:
    """In-memory moderator repository with a unique primary key."""

    def __init__(self):
        self.moderators: dict[str, ModeratorRecord] = {}
        self.create_calls = 0
        self.concurrent_creator: str | None = None

    def add(self, moderator_id: str, **fields: Any) -> ModeratorRecord:
        record = ModeratorRecord(id=moderator_id, **fields)
        self.moderators[moderator_id] = record
        return record

    async def find_by_id(self, moderator_id: str) -> ModeratorRecord | None:
        return self.moderators.get(moderator_id)

    async def create(
        self,
        moderator_id: str,
        full_name: str | None = None,
        email: str | None = None,
        image_url: str | None = None,
    ) -> ModeratorRecord:
        self.create_calls += 1
        if self.concurrent_creator == moderator_id:
            # Another request inserts the row between our lookup and insert
            self.add(moderator_id, full_name="Concurrent Winner", created_at=BASE_TIME)
        if moderator_id in self.moderators:
            raise DuplicateKeyError("Duplicate key in create_moderator", "create_moderator")
        return self.add(
            moderator_id,
            full_name=full_name,
            email=email,
            image_url=image_url,
            created_at=BASE_TIME,
        )


# =========================
# Blob store
# =========================


class FakeBlobStore:
    """In-memory blob store with the non-overwriting upload contract."""

    bucket = "report-files"

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_upload = False
        self.fail_delete = False

    def upload(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/pdf",
        overwrite: bool = False,
    ) -> str:
        if self.fail_upload:
            raise UploadError(f"Failed to upload {path}: simulated outage")
        if path in self.objects and not overwrite:
            raise UploadError(f"Object already exists: {path}")
        self.objects[path] = data
        return path

    def delete(self, paths: list[str]) -> None:
        if self.fail_delete:
            raise StoreError("simulated delete failure")
        for path in paths:
            self.objects.pop(path, None)
            self.deleted.append(path)

    def exists(self, path: str) -> bool:
        return path in self.objects

    def generate_presigned_url(self, path: str, expiration: int = 3600) -> str:
        return f"https://blobs.test/{self.bucket}/{path}?expires={expiration}"


# =========================
# Notifier
# =========================


class RecordingNotifier:
    """Notifier that records calls instead of sending e-mail."""

    def __init__(self):
        self.calls: list[dict[str, Any]] = []
        self.fail: Exception | None = None

    async def notify(
        self,
        report: ReportRecord,
        review_notes: str | None,
        moderator_name: str | None,
    ) -> None:
        self.calls.append(
            {"report": report, "review_notes": review_notes, "moderator_name": moderator_name}
        )
        if self.fail is not None:
            raise self.fail


# =========================
# Fixtures
# =========================


@pytest.fixture
def report_repository() -> FakeReportRepository:
    return FakeReportRepository()


@pytest.fixture
def moderator_repository() -> FakeModeratorRepository:
    return FakeModeratorRepository()


@pytest.fixture
def directory(moderator_repository) -> ModeratorDirectory:
    return ModeratorDirectory(moderator_repository)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    notifier = RecordingNotifier()
    notifier.fail = NotificationError("E-mail API rejected message with status 500")
    return notifier


@pytest.fixture
def workflow(report_repository, directory, blob_store, notifier) -> ReportWorkflow:
    return ReportWorkflow(
        repository=report_repository,
        directory=directory,
        blob_store=blob_store,
        notifier=notifier,
    )


@pytest.fixture
def pdf_bytes() -> bytes:
    return b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"
