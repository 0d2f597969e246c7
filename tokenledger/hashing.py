"""
hashing.py - Keccak-256 and fixed-width word encoding.

Every hash in the package (type hashes, domain separator, permit digest,
public key to address, CREATE addresses) goes through keccak256().
The word encoders pack values into 32-byte big-endian slots; changing the
width or order of any field changes every signature's validity.
"""

from __future__ import annotations
from typing import Iterable, Union

from Crypto.Hash import keccak as _keccak

from .core import WORD_SIZE, AddressLike, address_bytes, to_amount


def keccak256(data: bytes) -> bytes:
    """Return the 32-byte Keccak-256 digest of data."""
    return _keccak.new(digest_bits=256, data=bytes(data)).digest()


def encode_uint256(value: int) -> bytes:
    """Big-endian 32-byte word."""
    return to_amount(value, "word").to_bytes(WORD_SIZE, "big")


def encode_address(address: AddressLike) -> bytes:
    """Address left-padded with zeros to a 32-byte word."""
    return address_bytes(address).rjust(WORD_SIZE, b"\x00")


def encode_word(value: Union[bytes, int]) -> bytes:
    """Pass a 32-byte value through unchanged, or encode an int."""
    if isinstance(value, (bytes, bytearray)):
        if len(value) != WORD_SIZE:
            raise ValueError(f"Expected a {WORD_SIZE}-byte word, got {len(value)} bytes")
        return bytes(value)
    return encode_uint256(value)


def encode_words(words: Iterable[bytes]) -> bytes:
    """Concatenate already-encoded words, checking each is one slot wide."""
    return b"".join(encode_word(w) for w in words)
