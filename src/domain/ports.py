"""Domain Ports - Abstract Contracts for Health Export Ingestion.

This module defines the Port interfaces (abstract contracts) that Adapters must implement,
together with the exception hierarchy shared by every layer of the pipeline.
Following Hexagonal Architecture, the Domain Core defines what it needs, not how it's provided.

Security Impact:
    - Uploaded files are only ever addressed through opaque handles, never raw paths
    - Streaming interface prevents memory exhaustion with multi-gigabyte exports
    - Every failure has a typed exception so callers never parse error strings

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (local upload directory, caller-owned files, in-memory fakes) implement these ports
    - The ingestion session is isolated from where the bytes actually live
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Optional


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class IngestionError(Exception):
    """Base exception for all ingestion-related errors.

    This exception should be raised when ingestion fails due to
    source-specific issues (markup, I/O, upload validation, etc.).
    """
    pass


class MarkupError(IngestionError):
    """Raised when the source bytes are not well-formed XML.

    Covers mismatched or unterminated tags, invalid characters and
    truncated documents. The pipeline does not attempt recovery past
    the malformed point; records flushed before the error stay valid.

    Attributes:
        reason: Human-readable description of what is wrong
        line: Line number of the error (if known)
        column: Column number of the error (if known)
    """

    def __init__(self, reason: str, line: Optional[int] = None, column: Optional[int] = None):
        message = reason
        if line is not None:
            message = f"{reason} (line {line}, column {column or 0})"
        super().__init__(message)
        self.reason = reason
        self.line = line
        self.column = column


class MarkupLimitError(MarkupError):
    """Raised when the document exceeds a configured structural limit.

    Deep nesting and runaway element counts are the usual signature of
    a hostile or corrupted file rather than a genuine export.
    """
    pass


class SourceIOError(IngestionError):
    """Raised when the source cannot be located, opened or read.

    Attributes:
        source: The source handle that failed
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class CleanupError(IngestionError):
    """Raised when a temporary source artifact cannot be deleted.

    This error is never surfaced as the outcome of a session; it is
    logged and the session keeps its Completed/Failed result.

    Attributes:
        source: The source handle whose artifact could not be removed
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UnsupportedSourceError(IngestionError):
    """Raised when an upload is not something the pipeline can ingest.

    Attributes:
        source: The original file name of the rejected upload
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class UploadTooLargeError(IngestionError):
    """Raised when an upload exceeds the configured size limit.

    Attributes:
        limit: The maximum accepted size in bytes
    """

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class SourceStorePort(ABC):
    """Abstract contract for the storage collaborator of an ingestion session.

    The session never reaches into a fixed filesystem path. It receives a
    store and an opaque handle, reads the bytes through ``open``, and hands
    the artifact back through ``delete`` once ingestion is over.

    Example Usage:
        ```python
        store = LocalUploadStore("uploads")
        file_id, size = store.save(upload.file, "export.xml")

        session = IngestionSession(store, file_id)
        async for event in session.events():
            ...
        ```
    """

    def save(self, stream: BinaryIO, filename: str) -> tuple[str, int]:
        """Persist an uploaded stream and return its handle.

        Parameters:
            stream: Binary stream with the uploaded content
            filename: Original client-side file name (used for validation only)

        Returns:
            tuple[str, int]: Opaque handle and number of bytes written

        Raises:
            UnsupportedSourceError: If the file type is not accepted
            UploadTooLargeError: If the stream exceeds the size limit
            SourceIOError: If the stream cannot be written

        Note:
            This is a default implementation for read-only stores.
            Stores that receive uploads override it.
        """
        raise UnsupportedSourceError(
            f"{type(self).__name__} does not accept uploads",
            source=filename
        )

    @abstractmethod
    def open(self, handle: str) -> BinaryIO:
        """Open the artifact behind a handle for binary reading.

        Raises:
            SourceIOError: If the handle is invalid or the artifact is unreadable
        """
        pass

    @abstractmethod
    def size(self, handle: str) -> int:
        """Return the size in bytes of the artifact behind a handle.

        Raises:
            SourceIOError: If the handle is invalid or the artifact is missing
        """
        pass

    @abstractmethod
    def delete(self, handle: str) -> None:
        """Remove the artifact behind a handle.

        Raises:
            CleanupError: If the artifact exists but cannot be removed
        """
        pass
