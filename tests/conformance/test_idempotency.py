"""
Idempotency Conformance Tests

INVARIANT: A signed permit authorizes at most one state change.

    ∀ owner o, ∀ permit p signed by o:
        nonces(o) after = nonces(o) before + (1 if p accepted else 0)
        p accepted once ⟹ every later submission of p is rejected

Nonces never decrease. The nonce is consumed only when the whole
permit succeeds.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tokenledger import sign_permit, sign_digest, permit_digest, InvalidSignature, LedgerError

from tests.fake_contracts import ALICE, BOB, CAROL, ALICE_KEY, BOB_KEY, START_TIME
from tests.strategies import fresh_token


DEADLINE = START_TIME + 3600


class TestIdempotencyProperties:
    """Property-based nonce tests."""

    @given(st.lists(st.booleans(), min_size=1, max_size=6))
    @settings(max_examples=20, deadline=None)
    def test_nonce_counts_accepted_permits(self, signed_by_owner):
        """
        PROPERTY: nonces(owner) equals the number of accepted permits.
        """
        token = fresh_token()
        accepted = 0
        for i, genuine in enumerate(signed_by_owner):
            key = ALICE_KEY if genuine else BOB_KEY
            sig = sign_permit(key, token, ALICE, BOB, i, DEADLINE)
            nonce_before = token.nonces(ALICE)
            try:
                token.permit(ALICE, BOB, i, DEADLINE, sig)
                accepted += 1
            except InvalidSignature:
                assert token.nonces(ALICE) == nonce_before
            assert token.nonces(ALICE) >= nonce_before
        assert token.nonces(ALICE) == accepted == sum(signed_by_owner)

    @given(st.integers(min_value=1, max_value=4))
    @settings(max_examples=10, deadline=None)
    def test_every_accepted_permit_is_single_use(self, count):
        """
        PROPERTY: Resubmitting any previously accepted permit fails.
        """
        token = fresh_token()
        used = []
        for amount in range(count):
            sig = sign_permit(ALICE_KEY, token, ALICE, BOB, amount, DEADLINE)
            token.permit(ALICE, BOB, amount, DEADLINE, sig)
            used.append((amount, sig))
        for amount, sig in used:
            with pytest.raises(InvalidSignature):
                token.permit(ALICE, BOB, amount, DEADLINE, sig)
        assert token.nonces(ALICE) == count


class TestIdempotencyExamples:
    """Explicit nonce examples."""

    def test_future_nonce_waits_its_turn(self):
        """A permit signed for the next-but-one nonce is accepted only once that nonce is current."""
        token = fresh_token()
        future = sign_digest(
            ALICE_KEY,
            permit_digest(token.DOMAIN_SEPARATOR, ALICE, CAROL, 2, 1, DEADLINE),
        )
        with pytest.raises(InvalidSignature):
            token.permit(ALICE, CAROL, 2, DEADLINE, future)

        token.permit(ALICE, BOB, 1, DEADLINE, sign_permit(ALICE_KEY, token, ALICE, BOB, 1, DEADLINE))
        token.permit(ALICE, CAROL, 2, DEADLINE, future)
        assert token.nonces(ALICE) == 2

    def test_stale_signature_after_new_permit(self):
        """Two permits signed against the same nonce: only the first submitted wins."""
        token = fresh_token()
        to_bob = sign_permit(ALICE_KEY, token, ALICE, BOB, 1, DEADLINE)
        to_carol = sign_permit(ALICE_KEY, token, ALICE, CAROL, 1, DEADLINE)
        token.permit(ALICE, CAROL, 1, DEADLINE, to_carol)
        with pytest.raises(LedgerError):
            token.permit(ALICE, BOB, 1, DEADLINE, to_bob)
        assert token.allowance(ALICE, BOB) == 0
        assert token.allowance(ALICE, CAROL) == 1

    def test_approve_is_idempotent(self):
        token = fresh_token()
        token.approve(ALICE, BOB, 5)
        token.approve(ALICE, BOB, 5)
        assert token.allowance(ALICE, BOB) == 5
        assert token.nonces(ALICE) == 0
