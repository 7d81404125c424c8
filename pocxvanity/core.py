"""
Key derivation for PoCX wallet addresses.

A wallet is a 12-word BIP-39 mnemonic. Its primary receiving address is the
P2WPKH bech32 address of the key at m/44'/0'/0'/0/0:
  - BIP-32 derivation over secp256k1 (bip_utils)
  - address payload: RIPEMD160(SHA256(compressed pubkey))
  - hrp "pocx" on mainnet, "tpocx" on testnet, witness version 0
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

import bech32
from bip_utils import Bip32KeyError, Bip32PathError, Bip32Secp256k1
from Crypto.Hash import RIPEMD160
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from mnemonic import Mnemonic

from pocxvanity.errors import DerivationFailure, EntropyFailure

# Bech32 data charset; vanity patterns and descriptor checksums draw from it
CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

# m/44'/0'/account'/0/index with account=0, index=0
PRIMARY_PATH = "m/44'/0'/0'/0/0"

WITNESS_VERSION = 0

# Curve and serialization constants cached at module level for performance
_CURVE = ec.SECP256K1()
_X962 = serialization.Encoding.X962
_COMPRESSED = serialization.PublicFormat.CompressedPoint


class Network(Enum):
    MAIN = "pocx"
    TEST = "tpocx"

    @property
    def hrp(self) -> str:
        return self.value

    @property
    def address_prefix(self) -> str:
        """Constant start of every P2WPKH address on this network."""
        return self.value + "1q"

    @property
    def wif_version(self) -> bytes:
        return b"\x80" if self is Network.MAIN else b"\xef"


@dataclass(frozen=True)
class Seed:
    """One candidate wallet: its mnemonic and the BIP-39 seed derived from it."""
    mnemonic: str
    seed: bytes = field(repr=False)


class KeyDerivationProvider(Protocol):
    """What the search needs from a wallet implementation.

    Implementations are pickled into worker processes, so they must be
    picklable and hold no state shared between calls.
    """

    def generate_seed(self) -> Seed:
        ...

    def derive_address(self, seed: Seed, network: Network) -> str:
        ...


def hash160(data: bytes) -> bytes:
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()


def public_key_bytes(private_key: int) -> bytes:
    """Compressed SEC1 public key for a secp256k1 private scalar."""
    prv = ec.derive_private_key(private_key, _CURVE)
    return prv.public_key().public_bytes(_X962, _COMPRESSED)


def p2wpkh_address(public_key: bytes, hrp: str) -> str:
    """P2WPKH bech32 address for a compressed public key."""
    return bech32.encode(hrp, WITNESS_VERSION, list(hash160(public_key)))


def address_from_private_key(private_key: int, hrp: str) -> str:
    """P2WPKH bech32 address for a private key under the given hrp."""
    return p2wpkh_address(public_key_bytes(private_key), hrp)


def witness_program(address: str, network: Network) -> Optional[bytes]:
    """Decode a P2WPKH address of ``network``; None if it is not one."""
    witver, program = bech32.decode(network.hrp, address)
    if witver != WITNESS_VERSION or program is None or len(program) != 20:
        return None
    return bytes(program)


def derive_keys(seed: bytes, path: str = PRIMARY_PATH) -> tuple[int, bytes]:
    """Return (private_key, compressed_public_key) at ``path``."""
    try:
        node = Bip32Secp256k1.FromSeed(seed).DerivePath(path)
    except (Bip32KeyError, Bip32PathError) as e:
        raise DerivationFailure(f"Invalid key on path {path}: {e}") from e
    private_key = int.from_bytes(node.PrivateKey().Raw().ToBytes(), "big")
    return private_key, node.PublicKey().RawCompressed().ToBytes()


class HDKeyProvider:
    """BIP-39/BIP-32 wallet derivation used for real searches.

    Args:
        words: Mnemonic length (12, 15, 18, 21 or 24).
        passphrase: Optional BIP-39 passphrase.
    """

    def __init__(self, words: int = 12, passphrase: str = "", language: str = "english"):
        if words not in (12, 15, 18, 21, 24):
            raise ValueError(f"Unsupported mnemonic length: {words}")
        self.strength = words // 3 * 32
        self.passphrase = passphrase
        self._mnemo = Mnemonic(language)

    def generate_seed(self) -> Seed:
        try:
            words = self._mnemo.generate(strength=self.strength)
        except (OSError, NotImplementedError) as e:
            raise EntropyFailure(f"Random source failed: {e}") from e
        return Seed(words, Mnemonic.to_seed(words, self.passphrase))

    def seed_from_mnemonic(self, words: str) -> Seed:
        """Rebuild a Seed from an existing mnemonic phrase."""
        words = " ".join(words.split())
        if not self._mnemo.check(words):
            raise ValueError("Invalid mnemonic phrase.")
        return Seed(words, Mnemonic.to_seed(words, self.passphrase))

    def derive_private_key(self, seed: Seed) -> int:
        return derive_keys(seed.seed)[0]

    def derive_address(self, seed: Seed, network: Network) -> str:
        return p2wpkh_address(derive_keys(seed.seed)[1], network.hrp)
