"""Persistence layer for temp_media records.

Every state transition is expressed as a single guarded statement
(``UPDATE … WHERE`` / ``DELETE … WHERE … RETURNING``) so that two racing
transitions on the same row cannot both apply: the loser simply matches zero
rows.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy import ColumnElement, and_, delete, func, select, true, update
from sqlalchemy.orm import Session

from ..db.db_models import TempMediaModel
from ..exceptions import handle_sqlalchemy_errors
from ..media.media_models import PurgeScope, RecordStatus, TempMedia, TransferStats
from .unit_of_work import SqlAlchemyUnitOfWork

_TABLE = TempMediaModel.__table__


def _active_clause(now: datetime) -> ColumnElement[bool]:
    return and_(
        TempMediaModel.status == RecordStatus.ACTIVE.value,
        TempMediaModel.is_processed.is_(False),
        TempMediaModel.expires_at > now,
    )


def _scope_clause(scope: PurgeScope, now: datetime) -> ColumnElement[bool]:
    if scope is PurgeScope.EXPIRED:
        return and_(
            TempMediaModel.expires_at <= now,
            TempMediaModel.status == RecordStatus.ACTIVE.value,
        )
    if scope is PurgeScope.PROCESSED:
        return TempMediaModel.is_processed.is_(True)
    if scope is PurgeScope.DISCARDED:
        return TempMediaModel.status == RecordStatus.SOFT_DELETED.value
    return true()


class TempMediaRepository:
    """Store temp media metadata rows."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def unit_of_work(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self._session_factory)

    def add(self, record: TempMedia, *, session: Session | None = None) -> None:
        with self._session_scope(session) as active:
            active.add(
                TempMediaModel(
                    id=record.id,
                    session_id=record.session_id,
                    user_id=record.user_id,
                    original_name=record.original_name,
                    file_name=record.file_name,
                    mime_type=record.mime_type,
                    size=record.size,
                    expires_at=record.expires_at,
                    is_processed=record.is_processed,
                    status=record.status.value,
                    created_at=record.created_at,
                    updated_at=record.created_at,
                    deleted_at=record.deleted_at,
                )
            )
            active.flush()

    def get(self, media_id: str) -> TempMedia | None:
        """Return the record in whatever state it is, or ``None``."""
        with self._session_scope(None) as session:
            model = session.get(TempMediaModel, media_id)
            return self._to_domain(model) if model is not None else None

    def get_active(self, media_id: str, now: datetime) -> TempMedia | None:
        with self._session_scope(None) as session:
            model = session.scalars(
                select(TempMediaModel).where(TempMediaModel.id == media_id, _active_clause(now))
            ).first()
            return self._to_domain(model) if model is not None else None

    def list_active_by_ids(self, media_ids: Collection[str], now: datetime) -> list[TempMedia]:
        if not media_ids:
            return []
        with self._session_scope(None) as session:
            rows = session.scalars(
                select(TempMediaModel).where(TempMediaModel.id.in_(list(media_ids)), _active_clause(now))
            ).all()
            return [self._to_domain(row) for row in rows]

    def count_owned(
        self,
        media_ids: Collection[str],
        *,
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> int:
        query = select(func.count()).select_from(TempMediaModel).where(TempMediaModel.id.in_(list(media_ids)))
        if session_id is not None:
            query = query.where(TempMediaModel.session_id == session_id)
        if user_id is not None:
            query = query.where(TempMediaModel.user_id == user_id)
        with self._session_scope(None) as session:
            return int(session.scalar(query) or 0)

    def mark_processed(
        self,
        media_ids: Collection[str],
        now: datetime,
        *,
        require_active: bool = False,
        session: Session | None = None,
    ) -> list[str]:
        """Flip ``is_processed`` and return the ids this call actually flipped."""
        if not media_ids:
            return []
        conditions: list[ColumnElement[bool]] = [
            TempMediaModel.id.in_(list(media_ids)),
            TempMediaModel.is_processed.is_(False),
        ]
        if require_active:
            conditions.append(_active_clause(now))
        statement = (
            update(_TABLE)
            .where(*conditions)
            .values(is_processed=True, updated_at=now)
            .returning(_TABLE.c.id)
        )
        with self._session_scope(session) as active:
            return list(active.execute(statement).scalars().all())

    def soft_delete(self, media_id: str, now: datetime) -> bool:
        statement = (
            update(_TABLE)
            .where(TempMediaModel.id == media_id, _active_clause(now))
            .values(status=RecordStatus.SOFT_DELETED.value, deleted_at=now, updated_at=now)
            .returning(_TABLE.c.id)
        )
        with self._session_scope(None) as session:
            return session.execute(statement).first() is not None

    def list_ids(self, scope: PurgeScope, now: datetime) -> list[str]:
        """Select ids eligible for ``scope``, oldest first."""
        with self._session_scope(None) as session:
            return list(
                session.scalars(
                    select(TempMediaModel.id)
                    .where(_scope_clause(scope, now))
                    .order_by(TempMediaModel.created_at, TempMediaModel.id)
                ).all()
            )

    def purge(self, media_id: str, scope: PurgeScope, now: datetime) -> TempMedia | None:
        """Hard-delete the row if it still matches ``scope``.

        Returns the removed record with status ``purged``; ``None`` when the
        row is gone or no longer eligible (another actor won the race).
        """
        statement = (
            delete(_TABLE)
            .where(TempMediaModel.id == media_id, _scope_clause(scope, now))
            .returning(*_TABLE.columns)
        )
        with self._session_scope(None) as session:
            row = session.execute(statement).mappings().first()
        if row is None:
            return None
        record = self._from_row(row)
        record.status = RecordStatus.PURGED
        return record

    def stats(self, now: datetime) -> TransferStats:
        def count(*conditions: ColumnElement[bool]) -> Any:
            return select(func.count()).select_from(TempMediaModel).where(*conditions).scalar_subquery()

        query = select(
            count(true()),
            count(_active_clause(now)),
            count(TempMediaModel.is_processed.is_(True)),
            count(TempMediaModel.expires_at <= now),
            count(TempMediaModel.status == RecordStatus.SOFT_DELETED.value),
        )
        with self._session_scope(None) as session:
            total, active, processed, expired, discarded = session.execute(query).one()
        return TransferStats(
            total=int(total),
            active=int(active),
            processed=int(processed),
            expired=int(expired),
            discarded=int(discarded),
        )

    @contextmanager
    def _session_scope(self, session: Session | None) -> Iterator[Session]:
        if session is not None:
            with handle_sqlalchemy_errors(entity="temp_media"):
                yield session
            return
        with handle_sqlalchemy_errors(entity="temp_media"), self._session_factory() as own:
            yield own
            own.commit()

    @staticmethod
    def _from_row(row: Mapping[str, Any]) -> TempMedia:
        return TempMediaRepository._to_domain(TempMediaModel(**dict(row)))

    @staticmethod
    def _to_domain(model: TempMediaModel) -> TempMedia:
        return TempMedia(
            id=model.id,
            session_id=model.session_id,
            user_id=model.user_id,
            original_name=model.original_name,
            file_name=model.file_name,
            mime_type=model.mime_type,
            size=model.size,
            expires_at=model.expires_at,
            is_processed=bool(model.is_processed),
            status=RecordStatus(model.status),
            created_at=model.created_at,
            deleted_at=model.deleted_at,
        )
