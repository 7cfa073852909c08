"""Validation gate in front of every transfer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from ..exceptions import InvalidOrExpiredIdsError
from ..repositories.temp_media_repository import TempMediaRepository
from .media_models import TempMedia, utcnow

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OwnershipGate:
    repo: TempMediaRepository
    clock: Callable[[], datetime] = utcnow

    def validate_ids(self, media_ids: Sequence[str]) -> list[TempMedia]:
        """Return the active records for ``media_ids`` in request order.

        All-or-nothing: a single id without an active record fails the whole
        call with :class:`InvalidOrExpiredIdsError` naming every missing id.
        """
        if not media_ids:
            return []
        requested = list(dict.fromkeys(media_ids))
        found = {record.id: record for record in self.repo.list_active_by_ids(requested, self.clock())}
        missing = [media_id for media_id in requested if media_id not in found]
        if missing:
            logger.warning("temp_media.validation.missing_ids", extra={"missing_ids": missing})
            raise InvalidOrExpiredIdsError(missing)
        return [found[media_id] for media_id in requested]

    def validate_ownership(
        self,
        media_ids: Sequence[str],
        session_id: str | None = None,
        user_id: str | None = None,
    ) -> bool:
        """Check every id belongs to the given session and/or user."""
        if not media_ids:
            return True
        requested = set(media_ids)
        found = self.repo.count_owned(requested, session_id=session_id, user_id=user_id)
        return found == len(requested)
