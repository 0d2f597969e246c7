"""
signatures.py - secp256k1 signer recovery for permit messages.

Recovers the signing address from a 32-byte digest and an (r, s, v) triple,
the way the EVM ecrecover precompile does, with two extra rules applied first:

    - 's' must lie in the lower half of the group order (non-malleable form)
    - 'v' must be 27 or 28

Curve arithmetic comes from the ecdsa package; the recovery itself is
Q = r^-1 * (s*R - e*G), where R is the curve point with x = r and the
y parity selected by v.

sign_digest() is the off-chain counterpart used by permit holders and tests.
It always emits the canonical low-'s' form.
"""

from __future__ import annotations
import hashlib
from typing import Union

from ecdsa import SECP256k1, SigningKey
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.numbertheory import inverse_mod

from .core import (
    Address, Signature,
    SECP256K1_N, SECP256K1_HALF_N, VALID_RECOVERY_IDS, WORD_SIZE,
    MalleableSignature, InvalidRecoveryId, RecoveryFailure,
    to_address,
)
from .hashing import keccak256


_CURVE = SECP256k1.curve
_G = SECP256k1.generator
_P = _CURVE.p()


def check_signature_shape(signature: Signature) -> None:
    """
    Reject signatures that are malleable or carry an unusable recovery id.

    Raises:
        MalleableSignature: If s > n/2
        InvalidRecoveryId: If v is not 27 or 28
    """
    if signature.s > SECP256K1_HALF_N:
        raise MalleableSignature("Invalid signature 's' value")
    if signature.v not in VALID_RECOVERY_IDS:
        raise InvalidRecoveryId("Invalid signature 'v' value")


def _lift_x(x: int, odd: bool) -> PointJacobi:
    """Return the curve point with the given x and y parity."""
    if x >= _P:
        raise RecoveryFailure("Signature 'r' is not a field element")
    alpha = (pow(x, 3, _P) + _CURVE.a() * x + _CURVE.b()) % _P
    # p = 3 mod 4, so a square root is alpha^((p+1)/4) when one exists
    beta = pow(alpha, (_P + 1) // 4, _P)
    if beta * beta % _P != alpha:
        raise RecoveryFailure("Signature 'r' is not on the curve")
    y = beta if (beta & 1) == odd else _P - beta
    return PointJacobi(_CURVE, x, y, 1, SECP256K1_N)


def public_key_to_address(public_key: bytes) -> Address:
    """Address of a 64-byte uncompressed public key (X || Y)."""
    if len(public_key) != 2 * WORD_SIZE:
        raise ValueError(f"Public key must be {2 * WORD_SIZE} bytes, got {len(public_key)}")
    return to_address(keccak256(public_key)[12:])


def recover_public_key(digest: bytes, signature: Signature) -> bytes:
    """
    Recover the 64-byte public key that produced signature over digest.

    Raises:
        MalleableSignature: If s > n/2
        InvalidRecoveryId: If v is not 27 or 28
        RecoveryFailure: If r or s is out of range or no valid point results
    """
    if len(digest) != WORD_SIZE:
        raise ValueError(f"Digest must be {WORD_SIZE} bytes, got {len(digest)}")
    check_signature_shape(signature)

    r, s = signature.r, signature.s
    if not 0 < r < SECP256K1_N:
        raise RecoveryFailure("Signature 'r' out of range")
    if not 0 < s < SECP256K1_N:
        raise RecoveryFailure("Signature 's' out of range")

    R = _lift_x(r, odd=signature.v == 28)
    e = int.from_bytes(digest, "big") % SECP256K1_N
    r_inv = inverse_mod(r, SECP256K1_N)
    u1 = (-e * r_inv) % SECP256K1_N
    u2 = (s * r_inv) % SECP256K1_N

    Q = _G * u1 + R * u2
    if Q == INFINITY:
        raise RecoveryFailure("Recovered point is at infinity")
    return Q.x().to_bytes(WORD_SIZE, "big") + Q.y().to_bytes(WORD_SIZE, "big")


def recover_signer(digest: bytes, signature: Signature) -> Address:
    """Recover the address that signed digest. See recover_public_key() for errors."""
    return public_key_to_address(recover_public_key(digest, signature))


# ============================================================================
# OFF-CHAIN SIGNING
# ============================================================================

PrivateKey = Union[int, bytes]


def _signing_key(private_key: PrivateKey) -> SigningKey:
    if isinstance(private_key, int):
        if not 0 < private_key < SECP256K1_N:
            raise ValueError("Private key out of range")
        private_key = private_key.to_bytes(WORD_SIZE, "big")
    return SigningKey.from_string(bytes(private_key), curve=SECP256k1)


def private_key_to_address(private_key: PrivateKey) -> Address:
    """Address controlled by a private key."""
    return public_key_to_address(_signing_key(private_key).get_verifying_key().to_string())


def sign_digest(private_key: PrivateKey, digest: bytes) -> Signature:
    """
    Sign a 32-byte digest directly (no message prefix) with RFC 6979 nonces.

    The returned signature has s <= n/2 and v in {27, 28}.
    """
    if len(digest) != WORD_SIZE:
        raise ValueError(f"Digest must be {WORD_SIZE} bytes, got {len(digest)}")
    key = _signing_key(private_key)
    r, s = key.sign_digest_deterministic(
        digest,
        hashfunc=hashlib.sha256,
        sigencode=lambda r, s, order: (r, s),
    )
    if s > SECP256K1_HALF_N:
        s = SECP256K1_N - s
    expected = key.get_verifying_key().to_string()
    for v in VALID_RECOVERY_IDS:
        candidate = Signature(v=v, r=r, s=s)
        try:
            if recover_public_key(digest, candidate) == expected:
                return candidate
        except RecoveryFailure:
            continue
    raise RecoveryFailure("Could not determine recovery id for signature")
