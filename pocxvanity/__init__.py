"""PoCX vanity address search and descriptor checksum tools."""

__version__ = "0.1.0"

from pocxvanity.core import HDKeyProvider, KeyDerivationProvider, Network, Seed
from pocxvanity.descriptor import compute_descriptor_checksum
from pocxvanity.errors import (
    DerivationFailure,
    EntropyFailure,
    InvalidPattern,
    SearchCancelled,
    SearchError,
)
from pocxvanity.generator import CancellationHandle, SearchResult, VanitySearch, search
from pocxvanity.matcher import validate_pattern

__all__ = [
    "CancellationHandle",
    "DerivationFailure",
    "EntropyFailure",
    "HDKeyProvider",
    "InvalidPattern",
    "KeyDerivationProvider",
    "Network",
    "SearchCancelled",
    "SearchError",
    "SearchResult",
    "Seed",
    "VanitySearch",
    "compute_descriptor_checksum",
    "search",
    "validate_pattern",
]
