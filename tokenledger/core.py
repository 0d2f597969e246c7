"""
Core types and pure functions for the permit ledger and clone factory.

This module provides the foundational data structures shared by every other module:
1. Constants: the null identity, uint256 bounds, secp256k1 order, chain defaults
2. Identity helpers: address normalization and amount validation
3. Immutable data structures: Signature and the event records
4. Exceptions: LedgerError and one subclass per failure reason

Nothing in this module touches ledger or chain state.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union
import string


# ============================================================================
# CONSTANTS
# ============================================================================

# The null identity. Rejected as a transfer recipient, approval spender and
# mint target; used as the counterparty in mint/burn Transfer events.
ZERO_ADDRESS = "0x" + "00" * 20

ADDRESS_LENGTH = 20
WORD_SIZE = 32

# Largest uint256. As an allowance it means "unlimited" and is never
# decremented; as a permit deadline it never expires.
MAX_UINT256 = 2**256 - 1

# secp256k1 group order and the malleability threshold for 's'.
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

# Recovery ids accepted on the wire.
VALID_RECOVERY_IDS = (27, 28)

# Default chain identifier (local development network).
DEFAULT_CHAIN_ID = 31337

# Version string bound into every permit domain.
PERMIT_VERSION = "1"

DEFAULT_DECIMALS = 18

# Largest runtime code a deployment may produce.
MAX_CODE_SIZE = 24576

_HEX_DIGITS = frozenset(string.hexdigits)


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Lower-case, 0x-prefixed, 40 hex digit account identifier.
Address = str

# Anything to_address() accepts.
AddressLike = Union[str, bytes, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger and clone factory errors."""
    pass


class InsufficientBalance(LedgerError):
    """Raised when an amount exceeds the holder's balance."""
    pass


class InsufficientAllowance(LedgerError):
    """Raised when an amount exceeds the spender's remaining allowance."""
    pass


class InvalidRecipient(LedgerError):
    """Raised when tokens would be sent to the null identity or to the ledger itself."""
    pass


class InvalidSender(LedgerError):
    """Raised when tokens would be moved out of the null identity by a transfer or burn."""
    pass


class InvalidSpender(LedgerError):
    """Raised when approving the null identity."""
    pass


class Unauthorized(LedgerError):
    """Raised when a caller other than the minting authority tries to mint."""
    pass


class ArithmeticOverflow(LedgerError):
    """Raised when total supply would exceed the uint256 range."""
    pass


class PermitExpired(LedgerError):
    """Raised when a permit is submitted after its deadline."""
    pass


class InvalidSignature(LedgerError):
    """Raised when a signature does not recover to the expected owner."""
    pass


class RecoveryFailure(InvalidSignature):
    """Raised when no public key can be recovered from a signature."""
    pass


class MalleableSignature(LedgerError):
    """Raised when 's' lies in the upper half of the curve order."""
    pass


class InvalidRecoveryId(LedgerError):
    """Raised when 'v' is not 27 or 28."""
    pass


class InvalidCallbackTarget(LedgerError):
    """Raised when approve_and_call targets an address with no approval receiver."""
    pass


class DeploymentFailure(LedgerError):
    """Raised when a contract instance cannot be created."""
    pass


# ============================================================================
# IDENTITY AND AMOUNT HELPERS
# ============================================================================

def to_address(value: AddressLike) -> Address:
    """
    Normalize an address to its canonical lower-case hex form.

    Args:
        value: 0x-prefixed hex string, 20 raw bytes, or a non-negative int below 2**160

    Returns:
        Canonical address string

    Raises:
        ValueError: If the value does not describe exactly 20 bytes
    """
    if isinstance(value, bool):
        raise ValueError(f"Not an address: {value!r}")
    if isinstance(value, int):
        if value < 0 or value >= 2 ** (8 * ADDRESS_LENGTH):
            raise ValueError(f"Address out of range: {value}")
        return "0x" + value.to_bytes(ADDRESS_LENGTH, "big").hex()
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_LENGTH:
            raise ValueError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(value)}")
        return "0x" + bytes(value).hex()
    if isinstance(value, str):
        body = value[2:] if value[:2] in ("0x", "0X") else value
        if len(body) != 2 * ADDRESS_LENGTH:
            raise ValueError(f"Address must be {2 * ADDRESS_LENGTH} hex digits: {value!r}")
        # bytes.fromhex() skips whitespace, so a padded string would decode short.
        if not set(body) <= _HEX_DIGITS:
            raise ValueError(f"Address is not hex: {value!r}")
        return "0x" + body.lower()
    raise ValueError(f"Not an address: {value!r}")


def address_bytes(address: AddressLike) -> bytes:
    """Return the 20 raw bytes of an address."""
    return bytes.fromhex(to_address(address)[2:])


def to_amount(value: int, name: str = "amount") -> int:
    """
    Validate an unsigned 256-bit quantity.

    Raises:
        ValueError: If value is not an int in [0, MAX_UINT256]
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ValueError(f"{name} out of uint256 range: {value}")
    return value


# ============================================================================
# SIGNATURE
# ============================================================================

def _word_to_int(value: Union[int, bytes, str], name: str) -> int:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != WORD_SIZE:
            raise ValueError(f"Signature '{name}' must be {WORD_SIZE} bytes, got {len(value)}")
        return int.from_bytes(value, "big")
    if isinstance(value, str):
        return _word_to_int(bytes.fromhex(value[2:] if value.startswith("0x") else value), name)
    return to_amount(value, f"signature '{name}'")


@dataclass(frozen=True, slots=True)
class Signature:
    """
    An (r, s, v) secp256k1 signature as carried on the wire.

    Attributes:
        v: Recovery id, conventionally 27 or 28 (one byte)
        r: x-coordinate of the ephemeral point (32 bytes)
        s: Signature proof scalar (32 bytes)

    Only the encoding is validated here. Whether the values are acceptable
    (low 's', v in {27, 28}) is decided by the signature verifier, so that a
    non-canonical signature can still be represented and rejected there.
    """
    v: int
    r: int
    s: int

    def __post_init__(self):
        if isinstance(self.v, bool) or not isinstance(self.v, int) or not 0 <= self.v <= 0xFF:
            raise ValueError(f"Signature 'v' must fit in one byte, got {self.v!r}")
        object.__setattr__(self, 'r', _word_to_int(self.r, 'r'))
        object.__setattr__(self, 's', _word_to_int(self.s, 's'))

    @classmethod
    def from_bytes(cls, raw: bytes) -> Signature:
        """Decode the 65-byte r || s || v form."""
        if len(raw) != 2 * WORD_SIZE + 1:
            raise ValueError(f"Signature must be {2 * WORD_SIZE + 1} bytes, got {len(raw)}")
        return cls(v=raw[64], r=raw[:32], s=raw[32:64])

    def to_bytes(self) -> bytes:
        """Encode as r || s || v."""
        return self.r.to_bytes(WORD_SIZE, "big") + self.s.to_bytes(WORD_SIZE, "big") + bytes([self.v])

    def __repr__(self) -> str:
        return f"Signature(v={self.v}, r=0x{self.r:064x}, s=0x{self.s:064x})"


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Transfer:
    """Tokens moved; from_ is ZERO_ADDRESS for mints, to is ZERO_ADDRESS for burns."""
    from_: Address
    to: Address
    value: int


@dataclass(frozen=True, slots=True)
class Approval:
    """Allowance of spender over owner's tokens set to value."""
    owner: Address
    spender: Address
    value: int


@dataclass(frozen=True, slots=True)
class CloneCreated:
    """A minimal proxy delegating to master was deployed at clone."""
    master: Address
    clone: Address
