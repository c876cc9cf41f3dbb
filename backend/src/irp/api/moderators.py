"""API endpoints for moderators."""

from fastapi import APIRouter, Depends

from ..moderators.directory import ModeratorDirectory, get_moderator_directory
from ..moderators.models import ModeratorResponse
from .auth import CurrentUser

router = APIRouter(prefix="/moderators", tags=["moderators"])


@router.get("/me", response_model=ModeratorResponse, response_model_exclude_none=True)
async def get_my_profile(
    user: CurrentUser,
    directory: ModeratorDirectory = Depends(get_moderator_directory),
) -> ModeratorResponse:
    """Get the caller's moderator profile, creating it on first access."""
    await directory.ensure_moderator(user.id)
    return await directory.get_profile(user.id)
