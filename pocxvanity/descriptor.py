"""
Output descriptor checksums (BIP-380).

Wallets reject a descriptor whose checksum differs by even one bit, so this
follows the published algorithm exactly, including silently skipping
characters that are not in the input charset.
"""

from pocxvanity.core import CHARSET as CHECKSUM_CHARSET

INPUT_CHARSET = (
    "0123456789()[],'/*abcdefgh@:$%{}"
    "IJKLMNOPQRSTUVWXYZ&+-.;<=>?!^_|~"
    "ijklmnopqrstuvwxyzABCDEFGH`#\"\\ "
)

GENERATOR = (0xF5DEE51989, 0xA9FDCA3312, 0x1BAB10E32D, 0x3706B1677A, 0x644D626FFD)

CHECKSUM_LENGTH = 8

_POSITIONS = {c: i for i, c in enumerate(INPUT_CHARSET)}


def descsum_polymod(c: int, val: int) -> int:
    """Feed one 5-bit value into the checksum accumulator."""
    c0 = c >> 35
    c = ((c & 0x7FFFFFFFF) << 5) ^ val
    for i in range(5):
        if (c0 >> i) & 1:
            c ^= GENERATOR[i]
    return c


def compute_descriptor_checksum(descriptor: str) -> str:
    """Return the 8-character checksum for a descriptor without '#...'."""
    c = 1
    cls = 0
    clscount = 0
    for ch in descriptor:
        pos = _POSITIONS.get(ch)
        if pos is None:
            continue
        c = descsum_polymod(c, pos & 31)
        cls = cls * 3 + (pos >> 5)
        clscount += 1
        if clscount == 3:
            c = descsum_polymod(c, cls)
            cls = 0
            clscount = 0
    if clscount > 0:
        c = descsum_polymod(c, cls)
    for _ in range(CHECKSUM_LENGTH):
        c = descsum_polymod(c, 0)
    c ^= 1
    return "".join(
        CHECKSUM_CHARSET[(c >> (5 * (7 - j))) & 31] for j in range(CHECKSUM_LENGTH)
    )


def add_checksum(descriptor: str) -> str:
    """Return ``descriptor#checksum``, the form exchanged with wallets."""
    return f"{descriptor}#{compute_descriptor_checksum(descriptor)}"


def verify_checksum(descriptor: str) -> bool:
    """Check a ``descriptor#checksum`` string."""
    body, sep, checksum = descriptor.rpartition("#")
    if not sep or len(checksum) != CHECKSUM_LENGTH:
        return False
    return compute_descriptor_checksum(body) == checksum


def wpkh_descriptor(wif: str) -> str:
    """Single-key P2WPKH descriptor for a WIF private key, with checksum."""
    return add_checksum(f"wpkh({wif})")
