"""Pattern validation and matching for vanity address search."""

from dataclasses import dataclass

from pocxvanity.core import CHARSET, Network
from pocxvanity.errors import InvalidPattern

_ALPHABET = frozenset(CHARSET)


def validate_pattern(pattern: str) -> bool:
    """Return True if every character, lower-cased, is in the bech32 charset.

    Length is not checked here; an empty string is trivially valid.
    """
    return all(c in _ALPHABET for c in pattern.lower())


def normalize_pattern(pattern: str) -> str:
    """Validate a pattern and return it lower-cased.

    Raises InvalidPattern for empty patterns or characters outside the charset.
    """
    cleaned = pattern.strip().lower()
    if not cleaned:
        raise InvalidPattern("Pattern cannot be empty.")
    if not validate_pattern(cleaned):
        bad = sorted({c for c in cleaned if c not in _ALPHABET})
        raise InvalidPattern(
            f"Pattern '{pattern}' contains invalid characters {''.join(bad)!r}. "
            f"Only {CHARSET} are valid."
        )
    return cleaned


@dataclass(frozen=True)
class MatchPattern:
    """Immutable, picklable pattern specification for workers."""
    pattern: str
    network: Network = Network.MAIN

    def compile(self) -> "CompiledPattern":
        return CompiledPattern(self.network.address_prefix + self.pattern)


class CompiledPattern:
    """Worker-local pattern with the network's fixed prefix folded in.

    The pattern is matched right after ``hrp + "1q"``, not just after the
    ``hrp + "1"`` separator: the witness-version symbol "q" opens every P2WPKH
    data part, so it is treated as part of the fixed prefix. Matching starts at
    the first symbol of the witness program.
    """

    __slots__ = ("_needle",)

    def __init__(self, needle: str):
        self._needle = needle

    def matches(self, address: str) -> bool:
        return address.lower().startswith(self._needle)


def estimate_difficulty(pattern: str) -> dict:
    """Estimate expected attempts to find a match for a normalized pattern.

    Returns dict with: expected_attempts, estimated_seconds_per_core, difficulty_description
    """
    expected = 32 ** len(pattern)

    # mnemonic -> seed stretching dominates; a few hundred per core per second
    keys_per_sec = 300
    secs = expected / keys_per_sec

    if expected < 100:
        desc = "Instant"
    elif expected < 10_000:
        desc = "Seconds"
    elif expected < 1_000_000:
        desc = "Minutes"
    elif expected < 100_000_000:
        desc = "Hours"
    elif expected < 10_000_000_000:
        desc = "Days"
    else:
        desc = "Weeks+ (consider a shorter pattern)"

    return {
        "expected_attempts": expected,
        "estimated_seconds_per_core": secs,
        "difficulty_description": desc,
    }
