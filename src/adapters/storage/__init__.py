"""Storage adapters for Health-Sieve.

This module contains source store adapters that implement the SourceStorePort
interface for holding exports while they are ingested.
"""

from src.adapters.storage.upload_store import CallerOwnedFileStore, LocalUploadStore

__all__ = ["CallerOwnedFileStore", "LocalUploadStore"]
