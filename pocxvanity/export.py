"""
Export a found wallet in formats other wallet software can import.

- BIP-39 mnemonic (restores the whole HD wallet)
- WIF private key of the m/44'/0'/0'/0/0 key
- wpkh(WIF)#checksum descriptor (importdescriptors)
- JSON wallet file bundling all of the above
"""

import json
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

import base58

from pocxvanity.core import HDKeyProvider, KeyDerivationProvider, Network
from pocxvanity.descriptor import wpkh_descriptor
from pocxvanity.generator import SearchResult


@dataclass
class ExportedWallet:
    """All information about an exported vanity wallet."""
    mnemonic: str
    address: str
    network: str
    wif: str
    descriptor: str     # with '#checksum'
    pattern: str
    created: str


def encode_wif(private_key: int, network: Network = Network.MAIN) -> str:
    """Base58Check WIF for a private key, flagged for a compressed public key."""
    payload = network.wif_version + private_key.to_bytes(32, "big") + b"\x01"
    return base58.b58encode_check(payload).decode("ascii")


def prepare_export(
    result: SearchResult,
    pattern: str = "",
    provider: Optional[KeyDerivationProvider] = None,
) -> ExportedWallet:
    """Prepare all export formats for a search result.

    Args:
        result: The winning SearchResult.
        pattern: Pattern that was searched, recorded for reference.
        provider: Provider able to rebuild a seed from its mnemonic
            (``seed_from_mnemonic``) and derive its private key.
    """
    provider = provider if provider is not None else HDKeyProvider()
    seed = provider.seed_from_mnemonic(result.mnemonic)
    wif = encode_wif(provider.derive_private_key(seed), result.network)

    return ExportedWallet(
        mnemonic=result.mnemonic,
        address=result.address,
        network=result.network.name.lower(),
        wif=wif,
        descriptor=wpkh_descriptor(wif),
        pattern=pattern,
        created=datetime.now(timezone.utc).isoformat(),
    )


def save_wallet_file(export: ExportedWallet, path: str) -> str:
    """Save the wallet as indented JSON readable only by the owner.

    Returns the absolute path of the saved file.
    """
    abs_path = os.path.abspath(path)
    os.makedirs(os.path.dirname(abs_path) or ".", exist_ok=True)
    fd = os.open(abs_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(asdict(export), f, indent=2)
        f.write("\n")
    try:
        os.chmod(abs_path, 0o600)
    except OSError:
        pass  # Windows: chmod not fully supported
    return abs_path
