"""
digest.py - Domain separator and permit digest construction.

Structured-data hashing for the permit message:

    DOMAIN_SEPARATOR = keccak256(
        DOMAIN_TYPEHASH || keccak256(name) || keccak256(version) || chainId || verifyingContract
    )

    digest = keccak256(
        0x19 0x01 || DOMAIN_SEPARATOR ||
        keccak256(PERMIT_TYPEHASH || owner || spender || value || nonce || deadline)
    )

Each field occupies one 32-byte word. These functions are pure; the ledger
calls them with its own identity and current nonce.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

from .core import Address, AddressLike, Signature, PERMIT_VERSION
from .hashing import keccak256, encode_address, encode_uint256, encode_words
from .signatures import PrivateKey, sign_digest

if TYPE_CHECKING:
    from .token import TokenLedger


DOMAIN_TYPE = "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
PERMIT_TYPE = "Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"

DOMAIN_TYPEHASH = keccak256(DOMAIN_TYPE.encode())
PERMIT_TYPEHASH = keccak256(PERMIT_TYPE.encode())

# EIP-191 version 0x01 prefix for structured data.
STRUCTURED_DATA_PREFIX = b"\x19\x01"


def build_domain_separator(
    name: str,
    chain_id: int,
    verifying_contract: AddressLike,
    version: str = PERMIT_VERSION,
) -> bytes:
    """
    Compute the 32-byte domain separator binding signatures to one ledger instance.

    Args:
        name: Token name
        chain_id: Network identifier
        verifying_contract: Address of the ledger that will verify permits
        version: Domain version string (default "1")
    """
    return keccak256(encode_words([
        DOMAIN_TYPEHASH,
        keccak256(name.encode()),
        keccak256(version.encode()),
        encode_uint256(chain_id),
        encode_address(verifying_contract),
    ]))


def permit_struct_hash(
    owner: AddressLike,
    spender: AddressLike,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """Hash of the encoded Permit struct."""
    return keccak256(encode_words([
        PERMIT_TYPEHASH,
        encode_address(owner),
        encode_address(spender),
        encode_uint256(value),
        encode_uint256(nonce),
        encode_uint256(deadline),
    ]))


def permit_digest(
    domain_separator: bytes,
    owner: AddressLike,
    spender: AddressLike,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """The 32-byte digest a holder signs to authorize a permit."""
    if len(domain_separator) != 32:
        raise ValueError(f"Domain separator must be 32 bytes, got {len(domain_separator)}")
    return keccak256(
        STRUCTURED_DATA_PREFIX
        + domain_separator
        + permit_struct_hash(owner, spender, value, nonce, deadline)
    )


def sign_permit(
    private_key: PrivateKey,
    ledger: 'TokenLedger',
    owner: Address,
    spender: AddressLike,
    value: int,
    deadline: int,
) -> Signature:
    """
    Off-chain helper: sign a permit for the ledger's current nonce of owner.

    The owner must be the address of private_key for the signature to be
    accepted; this function does not check that, so that tests can build
    mismatched permits.
    """
    digest = permit_digest(
        ledger.DOMAIN_SEPARATOR,
        owner,
        spender,
        value,
        ledger.nonces(owner),
        deadline,
    )
    return sign_digest(private_key, digest)
