"""Ingestion adapters for Health-Sieve.

This module contains the components that turn an Apple Health export into
health records: the streaming extractor, the session controller that drives
it from a source store, and the in-memory document parser.
"""

from src.adapters.ingesters.health_document_parser import parse_health_document
from src.adapters.ingesters.health_export_extractor import (
    ExtractorState,
    HealthExportExtractor,
    decompose_workout,
)
from src.adapters.ingesters.ingestion_session import IngestionSession

__all__ = [
    "ExtractorState",
    "HealthExportExtractor",
    "IngestionSession",
    "decompose_workout",
    "parse_health_document",
]
