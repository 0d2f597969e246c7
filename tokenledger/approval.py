"""
approval.py - Approve-then-notify extension.

approve_and_call() sets an allowance and, in the same atomic operation,
notifies the spender contract through receive_approval(). If the spender has
no receiver, or the receiver raises, the approval is rolled back with it.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .core import Address, AddressLike, InvalidCallbackTarget, to_address

if TYPE_CHECKING:
    from .token import TokenLedger


@runtime_checkable
class ApprovalReceiver(Protocol):
    """
    Interface of contracts that accept approve_and_call notifications.

    Called after the allowance has been written. Raising aborts the whole
    operation, approval included.
    """

    def receive_approval(
        self,
        sender: Address,
        amount: int,
        token: Address,
        extra_data: bytes,
    ) -> None:
        ...


def approve_and_call(
    ledger: 'TokenLedger',
    owner: AddressLike,
    spender: AddressLike,
    amount: int,
    extra_data: bytes = b"",
) -> bool:
    """
    Approve spender for amount of owner's tokens, then notify spender.

    Must run inside the ledger's atomic block; TokenLedger.approve_and_call()
    is the public entry point.

    Raises:
        InvalidSpender: If spender is the null identity
        InvalidCallbackTarget: If no ApprovalReceiver is deployed at spender
    """
    owner, spender = to_address(owner), to_address(spender)
    ledger.approve(owner, spender, amount)

    receiver = ledger.chain.contract_at(spender)
    if receiver is None or not isinstance(receiver, ApprovalReceiver):
        raise InvalidCallbackTarget(f"No approval receiver deployed at {spender}")
    receiver.receive_approval(owner, amount, ledger.address, bytes(extra_data))
    return True
