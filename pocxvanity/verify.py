"""
Independent re-derivation of a search result before it is handed to the user.

The public key is recomputed with ``cryptography`` from the derived private
key, so the check does not reuse the public key the search itself produced.
"""

from typing import Optional

from pocxvanity.core import HDKeyProvider, address_from_private_key, witness_program
from pocxvanity.descriptor import verify_checksum
from pocxvanity.errors import DerivationFailure
from pocxvanity.export import ExportedWallet
from pocxvanity.generator import SearchResult


def verify_result(
    result: SearchResult,
    export: Optional[ExportedWallet] = None,
    provider: Optional[HDKeyProvider] = None,
) -> dict:
    """Decode the address, re-derive it from the mnemonic and check the descriptor.

    Returns dict with:
        address_valid, address_match, rederived_address, descriptor_valid, error
    """
    verdict = {
        "address_valid": witness_program(result.address, result.network) is not None,
        "address_match": None,
        "rederived_address": None,
        "descriptor_valid": None,
        "error": None,
    }
    provider = provider if provider is not None else HDKeyProvider()

    try:
        seed = provider.seed_from_mnemonic(result.mnemonic)
        address = address_from_private_key(provider.derive_private_key(seed), result.network.hrp)
    except (ValueError, DerivationFailure) as e:
        verdict["error"] = str(e)
        return verdict

    verdict["rederived_address"] = address
    verdict["address_match"] = address == result.address
    if export is not None:
        verdict["descriptor_valid"] = verify_checksum(export.descriptor)
    return verdict
