"""Permanent media collections attached to owning entities."""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.orm import Session

from ..repositories.media_item_repository import MediaItemRepository
from .blob_store import BlobStore, library_key, temp_media_key
from .media_models import StoredMedia, TempMedia, utcnow


class HasMedia(Protocol):
    """Entity able to own media collections."""

    @property
    def media_owner_type(self) -> str: ...

    @property
    def media_owner_id(self) -> str: ...


@dataclass(frozen=True, slots=True)
class MediaOwner:
    """Plain reference to an owning entity, e.g. ``MediaOwner("article", "42")``."""

    media_owner_type: str
    media_owner_id: str


@dataclass(slots=True)
class MediaLibrary:
    """Add media to, and list, the collections of a :class:`HasMedia` owner.

    Adding is split in two steps: :meth:`copy_from_temp` writes the blob
    outside any transaction, :meth:`persist` stages the rows inside the
    caller's one. :meth:`discard` undoes a copy that never got persisted.
    """

    repo: MediaItemRepository
    blob_store: BlobStore

    def copy_from_temp(
        self,
        owner: HasMedia,
        record: TempMedia,
        collection_name: str,
        *,
        order_column: int | None = None,
        custom_properties: Mapping[str, Any] | None = None,
    ) -> StoredMedia:
        media_id = uuid.uuid4().hex
        key = library_key(owner.media_owner_type, owner.media_owner_id, media_id, record.file_name)
        self.blob_store.copy(temp_media_key(record.id, record.file_name), key)
        return StoredMedia(
            id=media_id,
            owner_type=owner.media_owner_type,
            owner_id=owner.media_owner_id,
            collection_name=collection_name,
            name=record.original_name,
            file_name=record.file_name,
            mime_type=record.mime_type,
            size=record.size,
            disk_key=key,
            order_column=order_column,
            custom_properties=dict(custom_properties or {}),
            created_at=utcnow(),
        )

    def persist(self, items: Sequence[StoredMedia], *, session: Session) -> None:
        """Assign missing order keys after the collection's highest, then stage rows."""
        highest: dict[tuple[str, str, str], int] = {}
        for item in items:
            collection = (item.owner_type, item.owner_id, item.collection_name)
            if collection not in highest:
                highest[collection] = self.repo.highest_order(*collection, session=session)
            if item.order_column is not None:
                highest[collection] = max(highest[collection], item.order_column)
        for item in items:
            if item.order_column is None:
                collection = (item.owner_type, item.owner_id, item.collection_name)
                highest[collection] += 1
                item.order_column = highest[collection]
        self.repo.add_all(items, session=session)

    def discard(self, item: StoredMedia) -> None:
        self.blob_store.remove(item.disk_key)

    def list_collection(self, owner: HasMedia, collection_name: str) -> list[StoredMedia]:
        return self.repo.list_collection(owner.media_owner_type, owner.media_owner_id, collection_name)

    def url(self, item: StoredMedia) -> str:
        return self.blob_store.url(item.disk_key)
