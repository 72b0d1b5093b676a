"""Error taxonomy surfaced to callers of the engine."""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for every failure reported to the caller.

    ``str(error)`` is a message suitable for showing to an end user.
    """


class InvalidParams(MosaicError, ValueError):
    """A request parameter is out of range. Raised before any I/O."""


class EmptyLibrary(MosaicError):
    """The tile directory yielded no decodable images."""


class DecodeFailure(MosaicError):
    """An image could not be opened or decoded."""


class TileDirectoryError(DecodeFailure):
    """The tile directory does not exist or is not a directory."""


class IndexQueryFailure(MosaicError):
    """The colour index was queried in a state that should be impossible."""


class GenerationCancelled(MosaicError):
    """The caller asked for the generation to stop between cells."""
