"""Best-effort image derivatives for temp uploads."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from PIL import Image

from .blob_store import BlobStore, conversion_key, temp_media_key
from .media_models import TempMedia

logger = logging.getLogger(__name__)

CONVERSIONS: dict[str, tuple[int, int]] = {
    "thumb": (300, 300),
    "small": (150, 150),
}


@dataclass(slots=True)
class ConversionGenerator:
    """Render JPEG thumbnails next to the uploaded blob."""

    blob_store: BlobStore
    enabled: bool = False

    def generate(self, record: TempMedia) -> list[str]:
        """Render every configured conversion, returning the keys written.

        Failures are logged and swallowed: derivatives are optional and must
        never fail the upload that triggered them.
        """
        if not self.enabled or not record.mime_type.startswith("image/"):
            return []
        source = self.blob_store.path(temp_media_key(record.id, record.file_name))
        written: list[str] = []
        for name, dimensions in CONVERSIONS.items():
            key = conversion_key(record.id, record.file_name, name)
            target = self.blob_store.path(key)
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                with Image.open(source) as img:
                    out = img.convert("RGB")
                    out.thumbnail(dimensions)
                    out.save(target, format="JPEG", optimize=True, quality=86)
            except Exception:
                target.unlink(missing_ok=True)
                logger.warning(
                    "media.conversion.failed",
                    extra={"media_id": record.id, "conversion": name},
                    exc_info=True,
                )
                continue
            written.append(key)
        return written

    def url(self, record: TempMedia, conversion: str = "thumb") -> str | None:
        key = conversion_key(record.id, record.file_name, conversion)
        if not self.blob_store.exists(key):
            return None
        return self.blob_store.url(key)
