"""Translation of resolved identities into moderator records.

A moderator row is created lazily the first time an identity takes part
in assignment. Creation is idempotent under concurrent callers: losing
the insert race to another request reads back the winner's row.
"""

from ..errors import DuplicateKeyError, NotFoundError
from ..logging import get_context_logger
from .mapper import to_moderator_response
from .models import ModeratorRecord, ModeratorResponse
from .repository import ModeratorRepository, get_moderator_repository

logger = get_context_logger(__name__)


class ModeratorDirectory:
    """Get-or-create access to moderators by user id."""

    def __init__(self, repository: ModeratorRepository | None = None):
        self._repository = repository or get_moderator_repository()

    async def find(self, user_id: str) -> ModeratorRecord | None:
        """Look up a moderator without creating one."""
        return await self._repository.find_by_id(user_id)

    async def ensure_moderator(self, user_id: str) -> ModeratorRecord:
        """Return the moderator for ``user_id``, creating a minimal one if absent.

        Args:
            user_id: Identity-provider user id

        Returns:
            The existing or newly created moderator

        Raises:
            StoreError: If the store fails, or the row vanished after a
                duplicate-key race
        """
        existing = await self._repository.find_by_id(user_id)
        if existing is not None:
            return existing

        try:
            created = await self._repository.create(user_id)
        except DuplicateKeyError:
            logger.info(
                "Moderator created concurrently, reading it back",
                extra={"moderator_id": user_id},
            )
            winner = await self._repository.find_by_id(user_id)
            if winner is None:
                raise
            return winner

        logger.info("Created moderator", extra={"moderator_id": user_id})
        return created

    async def get_profile(self, user_id: str) -> ModeratorResponse:
        """Get the external projection of a moderator.

        Raises:
            NotFoundError: If no moderator exists for ``user_id``
        """
        record = await self._repository.find_by_id(user_id)
        if record is None:
            raise NotFoundError("Moderator", user_id)
        return to_moderator_response(record)

    @staticmethod
    def display_name(moderator: ModeratorRecord | None) -> str | None:
        if moderator is None or not moderator.full_name:
            return None
        return moderator.full_name


# Singleton instance
_moderator_directory: ModeratorDirectory | None = None


def get_moderator_directory() -> ModeratorDirectory:
    """Get the moderator directory singleton."""
    global _moderator_directory
    if _moderator_directory is None:
        _moderator_directory = ModeratorDirectory()
    return _moderator_directory
