"""Root of the typed allocation failure hierarchy."""

from __future__ import annotations


class AllocationError(Exception):
    """Base class for every business or referential failure the engine raises."""
