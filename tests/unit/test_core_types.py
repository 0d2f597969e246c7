"""
test_core_types.py - Unit tests for core data structures

Tests:
- to_address: normalization of str/bytes/int, rejection of malformed input
- to_amount: uint256 range and type checks
- Signature: creation, validation, wire encoding, immutability
- Events: immutability and equality
"""

import pytest
from dataclasses import FrozenInstanceError

from tokenledger import (
    Signature, Transfer, Approval, CloneCreated,
    to_address, to_amount,
    ZERO_ADDRESS, MAX_UINT256, SECP256K1_N, SECP256K1_HALF_N,
    LedgerError, InvalidSignature, RecoveryFailure, MalleableSignature,
    InsufficientBalance, InvalidSender, DeploymentFailure,
)
from tokenledger.core import address_bytes


class TestToAddress:
    """Tests for address normalization."""

    def test_lowercases_checksummed_hex(self):
        assert to_address("0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf") == \
            "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"

    def test_accepts_missing_prefix(self):
        assert to_address("7e5f4552091a69125d5dfcb7b8c2659029395bdf") == \
            "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"

    def test_accepts_raw_bytes(self):
        assert to_address(b"\x11" * 20) == "0x" + "11" * 20

    def test_accepts_int(self):
        assert to_address(0) == ZERO_ADDRESS
        assert to_address(1) == "0x" + "00" * 19 + "01"

    def test_rejects_short_hex(self):
        with pytest.raises(ValueError):
            to_address("0x1234")

    def test_rejects_non_hex(self):
        with pytest.raises(ValueError, match="not hex"):
            to_address("0x" + "zz" * 20)

    def test_rejects_whitespace_inside_hex(self):
        # Same length as a valid address, but only 19 bytes of digits.
        for spelling in ("0x" + "11" * 19 + "  ", " " + "11" * 19 + " ", "11" * 10 + "  " + "11" * 9):
            with pytest.raises(ValueError, match="not hex"):
                to_address(spelling)

    def test_rejects_wrong_byte_length(self):
        with pytest.raises(ValueError):
            to_address(b"\x00" * 19)

    def test_rejects_int_out_of_range(self):
        with pytest.raises(ValueError):
            to_address(2**160)
        with pytest.raises(ValueError):
            to_address(-1)

    def test_rejects_bool_and_none(self):
        with pytest.raises(ValueError):
            to_address(True)
        with pytest.raises(ValueError):
            to_address(None)

    def test_address_bytes(self):
        assert address_bytes("0x" + "ab" * 20) == b"\xab" * 20


class TestToAmount:
    """Tests for uint256 amount validation."""

    def test_bounds_accepted(self):
        assert to_amount(0) == 0
        assert to_amount(MAX_UINT256) == MAX_UINT256

    def test_negative_rejected(self):
        with pytest.raises(ValueError, match="out of uint256 range"):
            to_amount(-1)

    def test_above_max_rejected(self):
        with pytest.raises(ValueError):
            to_amount(MAX_UINT256 + 1)

    def test_float_rejected(self):
        with pytest.raises(ValueError, match="must be int"):
            to_amount(1.0)

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_amount(True)

    def test_name_in_message(self):
        with pytest.raises(ValueError, match="deadline"):
            to_amount(-5, "deadline")


class TestSignature:
    """Tests for the Signature value object."""

    def test_create_from_ints(self):
        sig = Signature(v=27, r=1, s=2)
        assert (sig.v, sig.r, sig.s) == (27, 1, 2)

    def test_r_and_s_from_bytes(self):
        sig = Signature(v=28, r=b"\x00" * 31 + b"\x05", s=b"\x00" * 31 + b"\x07")
        assert sig.r == 5
        assert sig.s == 7

    def test_r_from_hex(self):
        sig = Signature(v=27, r="0x" + "00" * 31 + "ff", s=1)
        assert sig.r == 255

    def test_wrong_width_rejected(self):
        with pytest.raises(ValueError, match="32 bytes"):
            Signature(v=27, r=b"\x01" * 31, s=1)

    def test_v_must_fit_one_byte(self):
        with pytest.raises(ValueError):
            Signature(v=256, r=1, s=1)
        with pytest.raises(ValueError):
            Signature(v=-1, r=1, s=1)

    def test_out_of_range_values_still_representable(self):
        """Non-canonical signatures are rejected by the verifier, not here."""
        sig = Signature(v=29, r=SECP256K1_N, s=SECP256K1_HALF_N + 1)
        assert sig.v == 29

    def test_wire_encoding(self):
        sig = Signature(v=27, r=0xAA, s=0xBB)
        raw = sig.to_bytes()
        assert len(raw) == 65
        assert raw[31] == 0xAA
        assert raw[63] == 0xBB
        assert raw[64] == 27
        assert Signature.from_bytes(raw) == sig

    def test_from_bytes_rejects_wrong_length(self):
        with pytest.raises(ValueError, match="65 bytes"):
            Signature.from_bytes(b"\x00" * 64)

    def test_immutable(self):
        sig = Signature(v=27, r=1, s=2)
        with pytest.raises(FrozenInstanceError):
            sig.v = 28

    def test_repr_is_hex(self):
        assert "r=0x" + "0" * 63 + "1" in repr(Signature(v=27, r=1, s=2))


class TestEvents:
    """Tests for event records."""

    def test_transfer_equality(self):
        assert Transfer(ZERO_ADDRESS, "0x" + "11" * 20, 5) == Transfer(ZERO_ADDRESS, "0x" + "11" * 20, 5)

    def test_events_immutable(self):
        event = Approval(owner="0x" + "11" * 20, spender="0x" + "22" * 20, value=1)
        with pytest.raises(FrozenInstanceError):
            event.value = 2

    def test_clone_created_fields(self):
        event = CloneCreated(master="0x" + "aa" * 20, clone="0x" + "bb" * 20)
        assert event.master == "0x" + "aa" * 20
        assert event.clone == "0x" + "bb" * 20


class TestExceptionHierarchy:
    """All domain failures share LedgerError."""

    def test_recovery_failure_is_invalid_signature(self):
        assert issubclass(RecoveryFailure, InvalidSignature)

    @pytest.mark.parametrize("exc", [
        InsufficientBalance, InvalidSender, InvalidSignature, MalleableSignature, DeploymentFailure,
    ])
    def test_subclasses_ledger_error(self, exc):
        assert issubclass(exc, LedgerError)
