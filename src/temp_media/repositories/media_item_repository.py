"""Persistence layer for permanent owner collections."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.db_models import MediaItemModel
from ..exceptions import handle_sqlalchemy_errors
from ..media.media_models import StoredMedia, utcnow


class MediaItemRepository:
    """Store metadata about media attached to owning entities."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def add_all(self, items: Sequence[StoredMedia], *, session: Session) -> None:
        """Stage rows in the caller's transaction; the caller commits."""
        with handle_sqlalchemy_errors(entity="media_item"):
            for item in items:
                session.add(
                    MediaItemModel(
                        id=item.id,
                        owner_type=item.owner_type,
                        owner_id=item.owner_id,
                        collection_name=item.collection_name,
                        name=item.name,
                        file_name=item.file_name,
                        mime_type=item.mime_type,
                        size=item.size,
                        disk_key=item.disk_key,
                        order_column=item.order_column,
                        custom_properties=dict(item.custom_properties),
                        created_at=item.created_at or utcnow(),
                    )
                )
            session.flush()

    def highest_order(
        self, owner_type: str, owner_id: str, collection_name: str, *, session: Session
    ) -> int:
        with handle_sqlalchemy_errors(entity="media_item"):
            value = session.scalar(
                select(func.max(MediaItemModel.order_column)).where(
                    MediaItemModel.owner_type == owner_type,
                    MediaItemModel.owner_id == owner_id,
                    MediaItemModel.collection_name == collection_name,
                )
            )
        return int(value or 0)

    def list_collection(self, owner_type: str, owner_id: str, collection_name: str) -> list[StoredMedia]:
        with handle_sqlalchemy_errors(entity="media_item"), self._session_factory() as session:
            rows = session.scalars(
                select(MediaItemModel)
                .where(
                    MediaItemModel.owner_type == owner_type,
                    MediaItemModel.owner_id == owner_id,
                    MediaItemModel.collection_name == collection_name,
                )
                .order_by(MediaItemModel.order_column, MediaItemModel.created_at)
            ).all()
            return [self._to_domain(row) for row in rows]

    def get(self, media_id: str) -> StoredMedia | None:
        with handle_sqlalchemy_errors(entity="media_item"), self._session_factory() as session:
            model = session.get(MediaItemModel, media_id)
            return self._to_domain(model) if model is not None else None

    @staticmethod
    def _to_domain(model: MediaItemModel) -> StoredMedia:
        return StoredMedia(
            id=model.id,
            owner_type=model.owner_type,
            owner_id=model.owner_id,
            collection_name=model.collection_name,
            name=model.name,
            file_name=model.file_name,
            mime_type=model.mime_type,
            size=model.size,
            disk_key=model.disk_key,
            order_column=model.order_column,
            custom_properties=dict(model.custom_properties or {}),
            created_at=model.created_at,
        )
