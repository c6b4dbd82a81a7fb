"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import DocumentTransport, FetchResponse

__all__ = ["DocumentTransport", "FetchResponse"]
