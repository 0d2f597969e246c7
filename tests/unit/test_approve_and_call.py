"""
test_approve_and_call.py - Unit tests for approve-then-notify

Tests:
- Receiver is called with (owner, amount, token, extra_data) after the approval
- Receiver failure rolls back the approval
- Spenders without a receiver are rejected
"""

import pytest

from tokenledger import (
    Approval, ApprovalReceiver,
    ZERO_ADDRESS,
    InvalidCallbackTarget, InvalidSpender,
)

from tests.fake_contracts import ALICE, BOB, ReceiverRejected


class TestApproveAndCall:

    def test_receiver_notified(self, token, receiver):
        assert token.approve_and_call(ALICE, receiver.address, 75, b"order-42") is True
        assert token.allowance(ALICE, receiver.address) == 75
        assert receiver.calls == [(ALICE, 75, token.address, b"order-42")]
        assert token.events() == [Approval(ALICE, receiver.address, 75)]

    def test_default_extra_data_is_empty(self, token, receiver):
        token.approve_and_call(ALICE, receiver.address, 1)
        assert receiver.calls[0][3] == b""

    def test_stub_satisfies_protocol(self, receiver):
        assert isinstance(receiver, ApprovalReceiver)

    def test_receiver_failure_rolls_back(self, token, reverting_receiver):
        with pytest.raises(ReceiverRejected, match="i am your father luke"):
            token.approve_and_call(ALICE, reverting_receiver.address, 75, b"")
        assert token.allowance(ALICE, reverting_receiver.address) == 0
        assert token.events() == []

    def test_earlier_approval_survives_failed_call(self, token, receiver):
        token.approve_and_call(ALICE, receiver.address, 1)
        receiver.should_revert = True
        with pytest.raises(ReceiverRejected):
            token.approve_and_call(ALICE, receiver.address, 2)
        assert receiver.calls == [(ALICE, 1, token.address, b"")]
        assert token.allowance(ALICE, receiver.address) == 1

    def test_account_without_code(self, token):
        with pytest.raises(InvalidCallbackTarget):
            token.approve_and_call(ALICE, BOB, 75)
        assert token.allowance(ALICE, BOB) == 0

    def test_contract_without_receiver(self, token, master):
        with pytest.raises(InvalidCallbackTarget):
            token.approve_and_call(ALICE, master.address, 75)

    def test_zero_spender(self, token):
        with pytest.raises(InvalidSpender):
            token.approve_and_call(ALICE, ZERO_ADDRESS, 75)

    def test_receiver_reached_through_clone(self, token, receiver, factory):
        clone = factory.create_clone(receiver.address)
        token.approve_and_call(ALICE, clone, 9, b"x")
        assert receiver.calls == []
        assert factory.chain.contract_at(clone).calls == [(ALICE, 9, token.address, b"x")]
