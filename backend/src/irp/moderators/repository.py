"""Persistence access for moderator records."""

from sqlalchemy import text

from ..errors import StoreError
from ..repository import SQLRepository
from .models import ModeratorRecord


class ModeratorRepository(SQLRepository):
    """Queries over ``moderators``."""

    async def find_by_id(self, moderator_id: str) -> ModeratorRecord | None:
        """Get a moderator by identity-provider user id, or None if absent."""
        async with self._operation("find_moderator", moderator_id=moderator_id) as session:
            result = await session.execute(
                text("""
                SELECT id, full_name, email, image_url, created_at
                FROM moderators
                WHERE id = :id
                """),
                {"id": moderator_id},
            )
            row = result.mappings().first()

        return ModeratorRecord.model_validate(dict(row)) if row is not None else None

    async def create(
        self,
        moderator_id: str,
        full_name: str | None = None,
        email: str | None = None,
        image_url: str | None = None,
    ) -> ModeratorRecord:
        """Insert a moderator.

        Raises:
            DuplicateKeyError: If a moderator with this id already exists
            StoreError: On any other failure
        """
        async with self._operation("create_moderator", moderator_id=moderator_id) as session:
            result = await session.execute(
                text("""
                INSERT INTO moderators (id, full_name, email, image_url)
                VALUES (:id, :full_name, :email, :image_url)
                RETURNING id, full_name, email, image_url, created_at
                """),
                {
                    "id": moderator_id,
                    "full_name": full_name,
                    "email": email,
                    "image_url": image_url,
                },
            )
            row = result.mappings().first()
            await session.commit()

        if row is None:
            raise StoreError("Insert returned no row", operation="create_moderator")
        return ModeratorRecord.model_validate(dict(row))


# Singleton instance
_moderator_repository: ModeratorRepository | None = None


def get_moderator_repository() -> ModeratorRepository:
    """Get the moderator repository singleton."""
    global _moderator_repository
    if _moderator_repository is None:
        _moderator_repository = ModeratorRepository()
    return _moderator_repository
