"""Exceptions raised while collecting imagery samples."""

from __future__ import annotations

from typing import Any


class SampleCollectionError(Exception):
    """Base exception for the sample collector."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ', '.join(f'{k}={v}' for k, v in self.details.items())
            return f'{self.message} ({details_str})'
        return self.message


class TileFetchError(SampleCollectionError):
    """A single attempt to obtain a tile failed."""


class TileNotAvailableError(TileFetchError):
    """The server has no imagery for the requested tile."""


class AssemblyIncompleteError(SampleCollectionError):
    """A region image cannot be built because tiles are missing."""

    def __init__(
        self,
        message: str,
        missed: list[tuple[int, int, int]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.missed = list(missed or [])
        merged = dict(details or {})
        if self.missed:
            merged.setdefault('missed', len(self.missed))
        super().__init__(message, merged)


class InvalidZoomError(SampleCollectionError, ValueError):
    """Zoom level is outside the supported range."""


class InvalidRangeError(SampleCollectionError, ValueError):
    """A range or box has its minimum above its maximum."""


class FilesystemError(SampleCollectionError):
    """Reading or writing output files failed."""


class OutputRootError(FilesystemError):
    """The output folder cannot be created or written; the run cannot proceed."""
