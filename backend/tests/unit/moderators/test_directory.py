"""Unit tests for ModeratorDirectory.

Run with: pytest backend/tests/unit/moderators/test_directory.py -v
"""

import pytest

from irp.errors import NotFoundError
from irp.moderators.directory import ModeratorDirectory
from irp.moderators.mapper import to_moderator_response
from irp.moderators.models import ModeratorRecord


class TestEnsureModerator:
    """Tests for get-or-create semantics."""

    @pytest.mark.asyncio
    async def test_creates_minimal_record(self, directory, moderator_repository):
        """Test an unknown identity gets an id-only moderator."""
        moderator = await directory.ensure_moderator("user-1")

        assert moderator.id == "user-1"
        assert moderator.full_name is None
        assert moderator_repository.create_calls == 1

    @pytest.mark.asyncio
    async def test_returns_existing(self, directory, moderator_repository):
        """Test an existing moderator is returned without an insert."""
        moderator_repository.add("user-1", full_name="Existing")

        moderator = await directory.ensure_moderator("user-1")

        assert moderator.full_name == "Existing"
        assert moderator_repository.create_calls == 0

    @pytest.mark.asyncio
    async def test_duplicate_key_reads_winner(self, directory, moderator_repository):
        """Test losing the creation race returns the concurrently created row."""
        moderator_repository.concurrent_creator = "user-1"

        moderator = await directory.ensure_moderator("user-1")

        assert moderator.full_name == "Concurrent Winner"
        assert moderator_repository.create_calls == 1

    @pytest.mark.asyncio
    async def test_find_does_not_create(self, directory, moderator_repository):
        """Test plain lookups never insert."""
        assert await directory.find("user-1") is None
        assert moderator_repository.moderators == {}


class TestProfile:
    """Tests for the moderator projection."""

    @pytest.mark.asyncio
    async def test_get_profile(self, directory, moderator_repository):
        """Test the projection uses the external field names."""
        moderator_repository.add(
            "user-1",
            full_name="Mod Erator",
            email="mod@example.com",
            image_url="https://img.test/a.png",
            created_at="2026-01-05T10:00:00Z",
        )

        profile = await directory.get_profile("user-1")
        data = profile.model_dump(by_alias=True)

        assert data["uuid"] == "user-1"
        assert data["fullname"] == "Mod Erator"
        assert data["image"] == "https://img.test/a.png"
        assert data["createdAt"] == "2026-01-05T10:00:00.000Z"

    @pytest.mark.asyncio
    async def test_get_profile_missing(self, directory):
        """Test a missing moderator is NotFound."""
        with pytest.raises(NotFoundError):
            await directory.get_profile("nobody")

    def test_unparseable_created_at_becomes_now(self):
        """Test a garbage creation date is silently replaced."""
        response = to_moderator_response(ModeratorRecord(id="u", created_at="not a date"))

        assert response.created_at.endswith("Z")

    def test_display_name(self):
        """Test display name falls back to None."""
        assert ModeratorDirectory.display_name(ModeratorRecord(id="u", full_name="A B")) == "A B"
        assert ModeratorDirectory.display_name(ModeratorRecord(id="u", full_name="")) is None
        assert ModeratorDirectory.display_name(None) is None
