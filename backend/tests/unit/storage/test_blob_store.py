"""Unit tests for the S3 blob store.

Uses a mocked boto3 client.

Run with: pytest backend/tests/unit/storage/test_blob_store.py -v
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from irp.errors import UploadError
from irp.storage import BlobStore, build_report_storage_path


def _client_error(code: str, operation: str = "PutObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def s3_client():
    return MagicMock()


@pytest.fixture
def store(s3_client):
    return BlobStore(bucket="report-files", client=s3_client)


class TestStoragePath:
    """Tests for the attachment key scheme."""

    def test_institution_and_date_folders(self):
        """Test keys group by institution and UTC day."""
        path = build_report_storage_path(
            "inst-42",
            "scan.pdf",
            now=datetime(2026, 7, 9, 23, 30, tzinfo=timezone.utc),
            unique_id="abc",
        )

        assert path == "inst-42/2026-07-09/abc.pdf"

    def test_fallbacks(self):
        """Test missing institution and extension use the defaults."""
        path = build_report_storage_path(None, "noextension", unique_id="abc")

        assert path.startswith("unassigned/")
        assert path.endswith("/abc.pdf")

    def test_random_component_differs(self):
        """Test two keys for the same institution and day never collide."""
        now = datetime(2026, 7, 9, tzinfo=timezone.utc)

        assert build_report_storage_path("i", "a.pdf", now=now) != build_report_storage_path(
            "i", "a.pdf", now=now
        )


class TestBlobStore:
    """Tests for upload and delete."""

    def test_upload_is_non_overwriting(self, store, s3_client):
        """Test uploads are conditional on the key being absent."""
        assert store.upload("a/b.pdf", b"%PDF") == "a/b.pdf"

        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["IfNoneMatch"] == "*"
        assert kwargs["ContentType"] == "application/pdf"
        assert kwargs["Bucket"] == "report-files"

    def test_upload_overwrite(self, store, s3_client):
        """Test overwrite drops the condition."""
        store.upload("a/b.pdf", b"%PDF", overwrite=True)

        assert "IfNoneMatch" not in s3_client.put_object.call_args.kwargs

    def test_existing_object_rejected(self, store, s3_client):
        """Test a lost precondition is an UploadError."""
        s3_client.put_object.side_effect = _client_error("PreconditionFailed")

        with pytest.raises(UploadError, match="already exists"):
            store.upload("a/b.pdf", b"%PDF")

    def test_transport_failure(self, store, s3_client):
        """Test botocore transport errors are UploadErrors."""
        s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url="http://s3")

        with pytest.raises(UploadError):
            store.upload("a/b.pdf", b"%PDF")

    def test_delete_empty_is_noop(self, store, s3_client):
        """Test deleting nothing makes no request."""
        store.delete([])

        s3_client.delete_objects.assert_not_called()

    def test_delete_batch(self, store, s3_client):
        """Test deletes go out in one quiet batch."""
        s3_client.delete_objects.return_value = {}

        store.delete(["a", "b"])

        delete = s3_client.delete_objects.call_args.kwargs["Delete"]
        assert delete == {"Objects": [{"Key": "a"}, {"Key": "b"}], "Quiet": True}

    def test_delete_reports_errors(self, store, s3_client):
        """Test per-object failures raise."""
        s3_client.delete_objects.return_value = {
            "Errors": [{"Key": "a", "Code": "AccessDenied", "Message": "denied"}]
        }

        with pytest.raises(ClientError):
            store.delete(["a"])

    def test_exists(self, store, s3_client):
        """Test missing objects are reported as absent."""
        s3_client.head_object.side_effect = _client_error("404", "HeadObject")

        assert store.exists("a") is False

    def test_ensure_bucket_creates_missing(self, store, s3_client):
        """Test a missing bucket is created."""
        s3_client.head_bucket.side_effect = _client_error("NoSuchBucket", "HeadBucket")

        assert store.ensure_bucket() is True
        s3_client.create_bucket.assert_called_once_with(Bucket="report-files")
