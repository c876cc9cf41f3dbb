"""Shared plumbing for record-store repositories.

Repositories issue explicit SQL through SQLAlchemy ``text()`` and
translate driver failures into ``StoreError`` at this seam only.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_db_session
from .errors import DuplicateKeyError, StoreError
from .logging import get_context_logger

logger = get_context_logger(__name__)

UNIQUE_VIOLATION = "23505"


def is_unique_violation(error: IntegrityError) -> bool:
    """Check whether an integrity error is a unique-constraint violation."""
    orig = getattr(error, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    return "duplicate key" in str(error).lower()


class SQLRepository:
    """Base class for repositories backed by PostgreSQL."""

    def __init__(self, session: AsyncSession | None = None):
        """Initialize the repository.

        Args:
            session: Optional database session. If not provided, each
                    operation opens (and commits) its own session.
        """
        self._session = session

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._session is not None:
            yield self._session
            return
        async with get_db_session() as session:
            yield session

    @asynccontextmanager
    async def _operation(
        self, operation: str, **context: Any
    ) -> AsyncGenerator[AsyncSession, None]:
        """Run one store operation, translating driver failures.

        Usage:
            async with self._operation("find_report", report_id=report_id) as session:
                result = await session.execute(...)
        """
        try:
            async with self._get_session() as session:
                yield session
        except IntegrityError as e:
            if is_unique_violation(e):
                logger.warning(
                    f"Duplicate key in {operation}",
                    extra={"operation": operation, **context},
                )
                raise DuplicateKeyError(
                    f"Duplicate key in {operation}", operation=operation
                ) from e
            logger.error(
                f"Constraint violation in {operation}: {e.orig}",
                extra={"operation": operation, **context},
            )
            raise StoreError(f"Constraint violation in {operation}", operation=operation) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Failed to {operation.replace('_', ' ')}: {e}",
                extra={"operation": operation, **context},
            )
            raise StoreError(f"Failed to {operation.replace('_', ' ')}", operation=operation) from e
