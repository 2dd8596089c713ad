"""Source Store Adapters.

This module implements the SourceStorePort contract for the two places an
export can live while it is being ingested:

    - LocalUploadStore: uploaded exports written to a server-side directory
      under a random identifier, deleted once ingestion finishes or fails
    - CallerOwnedFileStore: files that belong to the caller (CLI usage),
      read in place and never deleted

Security Impact:
    - Upload handles must be UUIDs, so a handle can never escape the upload directory
    - Only .xml uploads are accepted and uploads are size-limited while streaming
    - Partially written uploads are removed when a limit or write error aborts them
"""

import logging
import uuid
from pathlib import Path
from typing import BinaryIO

from src.domain.ports import (
    CleanupError,
    SourceIOError,
    SourceStorePort,
    UnsupportedSourceError,
    UploadTooLargeError,
)
from src.infrastructure.config_manager import DEFAULT_MAX_UPLOAD_SIZE

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024
ACCEPTED_SUFFIX = ".xml"


class LocalUploadStore(SourceStorePort):
    """Upload directory on the local filesystem.

    Example Usage:
        ```python
        store = LocalUploadStore("uploads", max_upload_size=5 * 1024**3)
        file_id, size = store.save(request_file, "export.xml")
        ```
    """

    def __init__(self, upload_dir: str, max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE):
        """Initialize the store.

        Parameters:
            upload_dir: Directory holding uploads (created on first save)
            max_upload_size: Largest accepted upload in bytes
        """
        self.upload_dir = Path(upload_dir)
        self.max_upload_size = max_upload_size

    def _path(self, handle: str) -> Path:
        """Resolve a handle to its file, rejecting anything that is not a UUID."""
        try:
            file_id = uuid.UUID(str(handle))
        except ValueError:
            raise SourceIOError(f"Invalid file identifier: {handle!r}", source=handle)
        return self.upload_dir / f"{file_id}{ACCEPTED_SUFFIX}"

    def save(self, stream: BinaryIO, filename: str) -> tuple[str, int]:
        """Stream an upload to disk under a fresh identifier.

        Raises:
            UnsupportedSourceError: If the file name does not end in .xml
            UploadTooLargeError: If more than max_upload_size bytes arrive
            SourceIOError: If the file cannot be written
        """
        if not filename or not filename.lower().endswith(ACCEPTED_SUFFIX):
            raise UnsupportedSourceError("Only XML files are supported", source=filename)

        file_id = str(uuid.uuid4())
        path = self._path(file_id)
        written = 0

        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as out:
                while True:
                    chunk = stream.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_size:
                        raise UploadTooLargeError(
                            f"File too large. Maximum size is {self.max_upload_size:,} bytes.",
                            limit=self.max_upload_size
                        )
                    out.write(chunk)
        except UploadTooLargeError:
            path.unlink(missing_ok=True)
            raise
        except OSError as e:
            path.unlink(missing_ok=True)
            raise SourceIOError(f"Failed to store upload: {e.strerror or e}", source=filename) from e

        logger.info(f"Stored upload {filename!r} as {file_id} ({written:,} bytes)")
        return file_id, written

    def open(self, handle: str) -> BinaryIO:
        path = self._path(handle)
        try:
            return open(path, "rb")
        except OSError as e:
            raise SourceIOError(f"Cannot open source {handle}: {e.strerror or e}", source=handle) from e

    def size(self, handle: str) -> int:
        path = self._path(handle)
        try:
            return path.stat().st_size
        except OSError as e:
            raise SourceIOError(f"Cannot stat source {handle}: {e.strerror or e}", source=handle) from e

    def delete(self, handle: str) -> None:
        try:
            path = self._path(handle)
        except SourceIOError as e:
            raise CleanupError(str(e), source=handle) from e
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Source {handle} already removed")
        except OSError as e:
            raise CleanupError(f"Failed to delete {path}: {e.strerror or e}", source=handle) from e

    def exists(self, handle: str) -> bool:
        """Return True if an upload with this handle is present."""
        try:
            return self._path(handle).exists()
        except SourceIOError:
            return False


class CallerOwnedFileStore(SourceStorePort):
    """Files owned by the caller, addressed by path.

    Used by the CLI: the export stays where the user put it, so ``delete``
    only logs that the file is retained.
    """

    def open(self, handle: str) -> BinaryIO:
        try:
            return open(handle, "rb")
        except OSError as e:
            raise SourceIOError(f"Cannot open source {handle}: {e.strerror or e}", source=handle) from e

    def size(self, handle: str) -> int:
        try:
            return Path(handle).stat().st_size
        except OSError as e:
            raise SourceIOError(f"Cannot stat source {handle}: {e.strerror or e}", source=handle) from e

    def delete(self, handle: str) -> None:
        logger.debug(f"Retaining caller-owned source {handle}")
