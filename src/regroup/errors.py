"""Exception types raised by the read group rewrite pipeline."""

from __future__ import annotations

from typing import Iterable, List


class RegroupError(Exception):
    """Base class for every fatal pipeline error."""


class ValidationError(RegroupError):
    """One or more read group fields failed validation.

    Every failing field is reported, not only the first one found.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("\n".join(self.errors))


class SourceError(RegroupError):
    """The input alignment file could not be opened."""


class DecodeError(RegroupError):
    """A record in the input could not be decoded."""


class SpillError(RegroupError):
    """A sorted run could not be written to scratch storage."""


class EncodeError(RegroupError):
    """A record or the header could not be written to the output."""


class IncompleteOutputError(RegroupError, RuntimeError):
    """Fewer records reached the output than were read from the input."""
