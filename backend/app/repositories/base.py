"""Read-only repository base.

Repositories answer access-control questions and must never write: all
membership mutations go through MembershipService so that every write is
preceded by an authorization decision.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar, Union, cast

from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable
from sqlalchemy.sql.selectable import Select


class RepositoryReadOnlyViolation(RuntimeError):
    """Raised when a repository is asked to run anything but a clean SELECT."""


SessionLike = Union[Session, AsyncSession]
T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Guarded SELECT execution over Session or AsyncSession."""

    def __init__(self, session: SessionLike) -> None:
        self._session: SessionLike = session

    def _sync_session(self) -> Session:
        if isinstance(self._session, AsyncSession):
            return cast(Session, self._session.sync_session)
        return cast(Session, self._session)

    def _assert_clean_uow(self) -> None:
        s = self._sync_session()
        if s.new or s.dirty or s.deleted:
            raise RepositoryReadOnlyViolation(
                "Repository layer is read-only: session has pending changes "
                f"(new={len(s.new)}, dirty={len(s.dirty)}, deleted={len(s.deleted)})."
            )

    async def _execute(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> Result[Any]:
        if not isinstance(stmt, Select):
            raise RepositoryReadOnlyViolation(
                f"Repository layer is read-only: only SELECT statements are allowed (got {type(stmt).__name__})."
            )
        self._assert_clean_uow()

        if isinstance(self._session, AsyncSession):
            result = await self._session.execute(stmt, params or {})
        else:
            result = self._sync_session().execute(stmt, params or {})

        self._assert_clean_uow()
        return result
