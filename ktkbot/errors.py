"""
Error taxonomy shared by all stages of the monitor.

- TransportError: a page fetch or a notification send failed on the network
- ExtractionError (MissingIdentifier, FormatError, ParseError): a listing page
  could not be turned into events
- PersistenceError: the events file could not be read, validated or written
"""

from __future__ import annotations


class KtkbotError(Exception):
    """Base class for every error raised by ktkbot itself."""


class TransportError(KtkbotError):
    pass


class ExtractionError(KtkbotError):
    """
    A page of the listing could not be extracted.

    Raised for a single row, but always fatal for the page it came from.
    """


class MissingIdentifier(ExtractionError):
    pass


class FormatError(ExtractionError):
    pass


class ParseError(ExtractionError):
    pass


class PersistenceError(KtkbotError):
    pass
