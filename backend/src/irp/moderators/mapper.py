"""Projection of moderator records."""

from ..timestamps import timestamp_or_now
from .models import ModeratorRecord, ModeratorResponse


def to_moderator_response(record: ModeratorRecord) -> ModeratorResponse:
    return ModeratorResponse(
        uuid=record.id,
        fullname=record.full_name,
        email=record.email,
        image=record.image_url,
        created_at=timestamp_or_now(record.created_at),
    )
