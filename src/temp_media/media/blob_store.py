"""Filesystem blob storage for temp and permanent media."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Protocol

CHUNK_SIZE = 1 * 1024 * 1024  # 1 MiB

TEMP_PREFIX = "temp-media"
LIBRARY_PREFIX = "library"


def derive_filename(filename: str | None) -> str:
    """Keep only the final path component of a client supplied name."""
    if filename:
        name = PurePosixPath(filename.replace("\\", "/")).name
        suffix = PurePosixPath(name).suffix
        stem = PurePosixPath(name).stem or "upload"
        if stem not in {".", ".."}:
            return f"{stem}{suffix}"
    return "upload.bin"


def temp_media_prefix(record_id: str) -> str:
    return f"{TEMP_PREFIX}/{record_id}"


def temp_media_key(record_id: str, file_name: str) -> str:
    return f"{temp_media_prefix(record_id)}/{file_name}"


def conversion_key(record_id: str, file_name: str, conversion: str) -> str:
    stem = PurePosixPath(file_name).stem or "upload"
    return f"{temp_media_prefix(record_id)}/conversions/{stem}-{conversion}.jpg"


def library_key(owner_type: str, owner_id: str, media_id: str, file_name: str) -> str:
    return f"{LIBRARY_PREFIX}/{owner_type}/{owner_id}/{media_id}/{file_name}"


class BlobStore(Protocol):
    """Content storage addressed by slash separated keys."""

    def put(self, key: str, stream: BinaryIO) -> int: ...

    def exists(self, key: str) -> bool: ...

    def copy(self, source_key: str, target_key: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def remove_tree(self, prefix: str) -> None: ...

    def path(self, key: str) -> Path: ...

    def url(self, key: str) -> str: ...


@dataclass(slots=True)
class LocalBlobStore:
    """Store blobs below ``root`` on the local filesystem."""

    root: Path
    url_prefix: str = "/media"
    chunk_size: int = CHUNK_SIZE
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def path(self, key: str) -> Path:
        relative = PurePosixPath(key)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"invalid blob key '{key}'")
        return self.root.joinpath(*relative.parts)

    def put(self, key: str, stream: BinaryIO) -> int:
        """Stream ``stream`` into ``key`` and return the number of bytes written."""
        target = self.path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        written = 0
        try:
            with partial.open("wb") as sink:
                while True:
                    chunk = stream.read(self.chunk_size)
                    if not chunk:
                        break
                    sink.write(chunk)
                    written += len(chunk)
            partial.replace(target)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        return written

    def exists(self, key: str) -> bool:
        return self.path(key).is_file()

    def copy(self, source_key: str, target_key: str) -> None:
        source = self.path(source_key)
        target = self.path(target_key)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            shutil.copyfile(source, target)
        except BaseException:
            target.unlink(missing_ok=True)
            raise

    def remove(self, key: str) -> None:
        path = self.path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError:
            # Leftover files are reclaimed by the next removal of the parent tree.
            self.log.warning("media.blob.remove_failed", extra={"key": key}, exc_info=True)
            return
        self._prune_empty_parents(path.parent)

    def remove_tree(self, prefix: str) -> None:
        directory = self.path(prefix)
        if directory.exists():
            shutil.rmtree(directory, ignore_errors=True)

    def url(self, key: str) -> str:
        return f"{self.url_prefix.rstrip('/')}/{key}"

    def _prune_empty_parents(self, directory: Path) -> None:
        root = self.root.resolve()
        current = directory
        while current.resolve() != root and current.is_dir():
            try:
                current.rmdir()
            except OSError:
                break
            current = current.parent
