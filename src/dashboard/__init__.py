"""Dashboard module for Health-Sieve.

This module provides the FastAPI backend that receives Apple Health exports
and streams their records to the browser as server-sent events.
"""

__version__ = "1.0.0"
