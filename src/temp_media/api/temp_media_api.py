"""HTTP routes for temp media operations."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, Header, Request, UploadFile, status
from fastapi.responses import JSONResponse

from ..exceptions import InvalidFileError, InvalidOrExpiredIdsError
from ..media.media_models import IncomingFile
from ..media.ownership import OwnershipGate
from ..media.temp_media_service import TempMediaService
from .errors import ApiError, bad_request, forbidden, not_found, server_error
from .rate_limit import UploadRateLimiter
from .schemas import ValidateRequest

logger = logging.getLogger(__name__)


def build_temp_media_router(
    *,
    service: TempMediaService,
    gate: OwnershipGate,
    rate_limiter: UploadRateLimiter,
    prefix: str = "/api/v1/temp-media",
    validate_session: bool = True,
    max_validate_ids: int = 50,
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=["temp-media"])

    @router.post("/", status_code=status.HTTP_201_CREATED)
    def upload_temp_media(
        request: Request,
        file: UploadFile | None = File(None),
        session_id: str | None = Form(None),
        x_session_id: str | None = Header(None),
    ) -> JSONResponse:
        """Store an upload for later transfer."""
        client = request.client.host if request.client else "anonymous"
        rate_limiter.check(client)
        if file is None:
            raise bad_request("Please select a file to upload.")

        incoming = IncomingFile(filename=file.filename, content_type=file.content_type, stream=file.file)
        try:
            uploaded = service.upload(incoming, session_id=session_id or x_session_id)
        except InvalidFileError as exc:
            raise bad_request(str(exc)) from exc
        except Exception as exc:
            logger.exception("temp_media.upload.unexpected_error", extra={"client": client})
            raise server_error("Upload failed") from exc

        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={
                "success": True,
                "data": uploaded.to_public_dict(),
                "message": "File uploaded successfully",
            },
        )

    @router.post("/validate")
    def validate_temp_media(
        payload: ValidateRequest,
        x_session_id: str | None = Header(None),
    ) -> dict[str, object]:
        """Report whether every id is still active (and owned by the caller)."""
        if not payload.ids:
            raise bad_request("Please provide temp media IDs to validate.")
        if len(payload.ids) > max_validate_ids:
            raise bad_request(f"Maximum {max_validate_ids} temp media IDs can be validated at once.")

        try:
            records = gate.validate_ids(payload.ids)
        except InvalidOrExpiredIdsError as exc:
            raise bad_request(str(exc)) from exc

        owner_session = payload.session_id or x_session_id
        if validate_session and owner_session and not gate.validate_ownership(payload.ids, session_id=owner_session):
            logger.warning("temp_media.validation.foreign_session", extra={"count": len(payload.ids)})
            raise forbidden("Temp media does not belong to this session")

        return {
            "success": True,
            "data": {"valid_ids": [record.id for record in records], "count": len(records)},
        }

    @router.get("/{media_id}")
    def show_temp_media(media_id: str) -> dict[str, object]:
        record = service.get(media_id)
        if record is None:
            raise not_found("Temp media not found or expired")
        return {"success": True, "data": service.public_view(record)}

    @router.delete("/{media_id}")
    def destroy_temp_media(media_id: str) -> dict[str, object]:
        if not service.delete(media_id):
            raise not_found("Temp media not found")
        return {"success": True, "message": "Temp media deleted successfully"}

    return router


__all__ = ["ApiError", "build_temp_media_router"]
