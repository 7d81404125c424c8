"""Exception types raised by the vanity search."""


class SearchError(Exception):
    """Base class for every error a search can end with."""


class InvalidPattern(SearchError, ValueError):
    """Pattern contains a character outside the bech32 data charset."""


class EntropyFailure(SearchError):
    """The random source could not produce a seed. Never retried."""


class DerivationFailure(SearchError):
    """Key or address derivation failed inside a worker."""


class SearchCancelled(SearchError):
    """The caller cancelled the search before a match was found."""
