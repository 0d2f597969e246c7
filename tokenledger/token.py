"""
token.py - Fungible token ledger with signature-authorized approvals.

TokenLedger is the only module that mutates balances, allowances and nonces.

Key responsibilities:
    - Balances and total supply, with sum(balances) == total_supply at all times
    - Allowances with MAX_UINT256 as the never-decremented unlimited sentinel
    - Per-owner permit nonces, consumed exactly once per accepted permit
    - Domain separator fixed at construction from (name, "1", chain id, address)
    - Every operation all-or-nothing through Chain.atomic(); events only on success

Failure precedence for operations with several checks:
    sender, then recipient/spender validity, then balance, then allowance.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Optional, Tuple

from .core import (
    # Types
    Address, AddressLike, Signature, Transfer, Approval,
    # Constants
    ZERO_ADDRESS, MAX_UINT256, DEFAULT_DECIMALS,
    # Exceptions
    InsufficientBalance, InsufficientAllowance, InvalidRecipient, InvalidSender, InvalidSpender,
    Unauthorized, ArithmeticOverflow, PermitExpired, InvalidSignature,
    # Helpers
    to_address, to_amount,
)
from .chain import Chain, Contract, atomic
from .digest import PERMIT_TYPEHASH, build_domain_separator, permit_digest
from .signatures import check_signature_shape, recover_signer
from . import approval


# Called as hook(from_, to, amount) before any balance changes; raising aborts.
TransferHook = Callable[[Address, Address, int], None]


def _short(address: Address) -> str:
    return f"{address[:6]}…{address[-4:]}"


class TokenLedger(Contract):
    """
    Fungible token with EIP-2612 style permits, deployed on a Chain.

    The acting account is always passed explicitly as the first argument
    (sender, spender, owner or caller), since there is no implicit message sender.

    Example:
        chain = Chain()
        token = TokenLedger(chain, "My Token", "MT", authority=owner)
        token.mint(owner, alice, 100)
        token.transfer(alice, bob, 60)

        signature = sign_permit(alice_key, token, alice, bob, 40, deadline)
        token.permit(alice, bob, 40, deadline, signature)
        token.transfer_from(bob, alice, carol, 40)
    """

    STATE_FIELDS = ("event_log", "_balances", "_allowances", "_nonces", "_total_supply")

    PERMIT_TYPEHASH = PERMIT_TYPEHASH

    def __init__(
        self,
        chain: Chain,
        name: str,
        symbol: str,
        authority: AddressLike,
        decimals: int = DEFAULT_DECIMALS,
        before_transfer: Optional[TransferHook] = None,
        verbose: bool = True,
    ):
        """
        Deploy a ledger from the authority's account.

        Args:
            chain: Chain providing address, time and atomicity
            name: Token name (bound into the permit domain)
            symbol: Token symbol
            authority: Only account allowed to mint; also the deployer
            decimals: Display precision (default: 18)
            before_transfer: Optional hook run before every balance change
            verbose: Print a line per state-changing call (default: True)
        """
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.authority = to_address(authority)
        self._before_transfer = before_transfer
        self._balances: Dict[Address, int] = {}
        self._allowances: Dict[Tuple[Address, Address], int] = {}
        self._nonces: Dict[Address, int] = {}
        self._total_supply = 0
        super().__init__(chain, self.authority, verbose)
        self.DOMAIN_SEPARATOR = build_domain_separator(name, chain.chain_id, self.address)
        self._print(f"📝 Deployed: {symbol} ({name}) at {self.address}")

    def fresh_state(self) -> Dict[str, Any]:
        return {
            "event_log": [],
            "_balances": {},
            "_allowances": {},
            "_nonces": {},
            "_total_supply": 0,
        }

    def delegate(self, address: Address) -> TokenLedger:
        # A clone verifies permits under its own address.
        bound = super().delegate(address)
        bound.DOMAIN_SEPARATOR = build_domain_separator(self.name, self.chain.chain_id, address)
        return bound

    # ========================================================================
    # READ-ONLY
    # ========================================================================

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: AddressLike) -> int:
        return self._balances.get(to_address(account), 0)

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self._allowances.get((to_address(owner), to_address(spender)), 0)

    def nonces(self, owner: AddressLike) -> int:
        """Nonce the next permit signed by owner must carry."""
        return self._nonces.get(to_address(owner), 0)

    def verify_conservation(self) -> Dict[str, Any]:
        """
        Audit the supply invariant two ways.

        1. Sum of all balances equals total supply
        2. Replaying the Transfer event log from an empty ledger reproduces
           both the total supply and every balance

        Returns:
            Dict with keys:
            - 'valid': bool - True if both checks hold
            - 'total_supply': int
            - 'sum_of_balances': int
            - 'replayed_supply': int - supply reconstructed from events
            - 'discrepancies': List[Dict] - accounts whose replayed balance differs
        """
        replayed: Dict[Address, int] = {}
        replayed_supply = 0
        for event in self.events("Transfer"):
            if event.from_ == ZERO_ADDRESS:
                replayed_supply += event.value
            else:
                replayed[event.from_] = replayed.get(event.from_, 0) - event.value
            if event.to == ZERO_ADDRESS:
                replayed_supply -= event.value
            else:
                replayed[event.to] = replayed.get(event.to, 0) + event.value

        discrepancies = []
        for account in sorted(set(replayed) | set(self._balances)):
            expected = replayed.get(account, 0)
            actual = self._balances.get(account, 0)
            if expected != actual:
                discrepancies.append({'account': account, 'expected': expected, 'actual': actual})

        sum_of_balances = sum(self._balances.values())
        return {
            'valid': (
                sum_of_balances == self._total_supply
                and replayed_supply == self._total_supply
                and not discrepancies
            ),
            'total_supply': self._total_supply,
            'sum_of_balances': sum_of_balances,
            'replayed_supply': replayed_supply,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # TRANSFERS
    # ========================================================================

    @atomic
    def transfer(self, sender: AddressLike, to: AddressLike, amount: int) -> bool:
        """
        Move amount from sender to to.

        Raises:
            InvalidSender: If sender is the null identity
            InvalidRecipient: If to is the null identity or this ledger
            InsufficientBalance: If amount exceeds sender's balance
        """
        sender, to, amount = to_address(sender), to_address(to), to_amount(amount)
        self._require_sender(sender, "Transfer")
        self._require_recipient(to)
        self._require_balance(sender, amount, "Transfer")
        self._move(sender, to, amount)
        return True

    @atomic
    def transfer_from(
        self,
        spender: AddressLike,
        owner: AddressLike,
        to: AddressLike,
        amount: int,
    ) -> bool:
        """
        Move amount from owner to to using spender's allowance.

        A finite allowance is reduced by amount (emitting Approval with the
        remainder); an unlimited allowance is left untouched.

        Raises:
            InvalidSender: If owner is the null identity
            InvalidRecipient: If to is the null identity or this ledger
            InsufficientBalance: If amount exceeds owner's balance
            InsufficientAllowance: If amount exceeds spender's allowance
        """
        spender, owner, to = to_address(spender), to_address(owner), to_address(to)
        amount = to_amount(amount)
        self._require_sender(owner, "Transfer")
        self._require_recipient(to)
        self._require_balance(owner, amount, "Transfer")
        self._spend_allowance(owner, spender, amount, "Transfer")
        self._move(owner, to, amount)
        return True

    # ========================================================================
    # APPROVALS
    # ========================================================================

    @atomic
    def approve(self, owner: AddressLike, spender: AddressLike, amount: int) -> bool:
        """
        Set spender's allowance over owner's tokens to amount.

        Overwrites any previous allowance; it does not add to it.

        Raises:
            InvalidSpender: If spender is the null identity
        """
        self._approve(to_address(owner), to_address(spender), to_amount(amount))
        return True

    @atomic
    def approve_and_call(
        self,
        owner: AddressLike,
        spender: AddressLike,
        amount: int,
        extra_data: bytes = b"",
    ) -> bool:
        """Approve spender, then call its receive_approval(owner, amount, token, extra_data)."""
        return approval.approve_and_call(self, owner, spender, amount, extra_data)

    @atomic
    def permit(
        self,
        owner: AddressLike,
        spender: AddressLike,
        amount: int,
        deadline: int,
        signature: Signature,
    ) -> None:
        """
        Approve spender on owner's behalf using owner's off-chain signature.

        The signed digest covers (owner, spender, amount, nonces(owner), deadline)
        under this ledger's domain separator. On success owner's nonce is
        incremented by exactly one and the allowance is set as by approve().

        Args:
            owner: Account whose tokens are approved; must be the signer
            spender: Account receiving the allowance
            amount: New allowance
            deadline: Last block timestamp at which the permit is valid
            signature: Owner's (v, r, s) signature

        Raises:
            PermitExpired: If the chain time is past deadline
            MalleableSignature: If 's' is in the upper half of the curve order
            InvalidRecoveryId: If 'v' is not 27 or 28
            InvalidSignature: If the signature does not recover to owner
            InvalidSpender: If spender is the null identity
        """
        owner, spender = to_address(owner), to_address(spender)
        amount, deadline = to_amount(amount), to_amount(deadline, "deadline")

        if self.chain.timestamp > deadline:
            raise PermitExpired("Permission expired")
        check_signature_shape(signature)

        nonce = self._nonces.get(owner, 0)
        digest = permit_digest(self.DOMAIN_SEPARATOR, owner, spender, amount, nonce, deadline)
        signer = recover_signer(digest, signature)
        if signer == ZERO_ADDRESS or signer != owner:
            raise InvalidSignature("Invalid signature")

        self._nonces[owner] = nonce + 1
        self._approve(owner, spender, amount)

    # ========================================================================
    # SUPPLY
    # ========================================================================

    @atomic
    def mint(self, caller: AddressLike, to: AddressLike, amount: int) -> None:
        """
        Create amount new tokens for to.

        Raises:
            Unauthorized: If caller is not the minting authority
            InvalidRecipient: If to is the null identity
            ArithmeticOverflow: If total supply would exceed MAX_UINT256
        """
        caller, to, amount = to_address(caller), to_address(to), to_amount(amount)
        if caller != self.authority:
            raise Unauthorized("Caller is not the minting authority")
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("Mint to the zero address")
        if self._total_supply + amount > MAX_UINT256:
            raise ArithmeticOverflow("Mint would overflow total supply")
        self._move(ZERO_ADDRESS, to, amount)

    @atomic
    def burn(self, holder: AddressLike, amount: int) -> None:
        """
        Destroy amount of holder's tokens.

        Raises:
            InvalidSender: If holder is the null identity
            InsufficientBalance: If amount exceeds holder's balance
        """
        holder, amount = to_address(holder), to_amount(amount)
        self._require_sender(holder, "Burn")
        self._require_balance(holder, amount, "Burn")
        self._move(holder, ZERO_ADDRESS, amount)

    @atomic
    def burn_from(self, spender: AddressLike, owner: AddressLike, amount: int) -> None:
        """
        Destroy amount of owner's tokens using spender's allowance.

        Raises:
            InvalidSender: If owner is the null identity
            InsufficientBalance: If amount exceeds owner's balance (checked first)
            InsufficientAllowance: If amount exceeds spender's allowance
        """
        spender, owner, amount = to_address(spender), to_address(owner), to_amount(amount)
        self._require_sender(owner, "Burn")
        self._require_balance(owner, amount, "Burn")
        self._spend_allowance(owner, spender, amount, "Burn")
        self._move(owner, ZERO_ADDRESS, amount)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _before_token_transfer(self, from_: Address, to: Address, amount: int) -> None:
        """Runs before every balance change, mints and burns included. Override or pass a hook."""
        if self._before_transfer is not None:
            self._before_transfer(from_, to, amount)

    def _require_sender(self, from_: Address, action: str) -> None:
        # Only mint() may move tokens out of the null identity.
        if from_ == ZERO_ADDRESS:
            raise InvalidSender(f"{action} from the zero address")

    def _require_recipient(self, to: Address) -> None:
        if to == ZERO_ADDRESS:
            raise InvalidRecipient("Transfer to the zero address")
        if to == self.address:
            raise InvalidRecipient("Transfer to the token address")

    def _require_balance(self, holder: Address, amount: int, action: str) -> None:
        if amount > self._balances.get(holder, 0):
            raise InsufficientBalance(f"{action} amount exceeds balance")

    def _spend_allowance(self, owner: Address, spender: Address, amount: int, action: str) -> None:
        current = self._allowances.get((owner, spender), 0)
        if current == MAX_UINT256:
            return
        if amount > current:
            raise InsufficientAllowance(f"{action} amount exceeds allowance")
        self._approve(owner, spender, current - amount)

    def _approve(self, owner: Address, spender: Address, amount: int) -> None:
        if spender == ZERO_ADDRESS:
            raise InvalidSpender("Approve to the zero address")
        self._allowances[(owner, spender)] = amount
        self.emit(Approval(owner=owner, spender=spender, value=amount))
        self._print(f"✓ APPROVAL {amount}: {_short(owner)} → {_short(spender)}")

    def _move(self, from_: Address, to: Address, amount: int) -> None:
        """Apply a checked balance change; ZERO_ADDRESS on either side mints or burns."""
        self._before_token_transfer(from_, to, amount)
        if from_ == ZERO_ADDRESS:
            self._total_supply += amount
        else:
            self._balances[from_] = self._balances.get(from_, 0) - amount
        if to == ZERO_ADDRESS:
            self._total_supply -= amount
        else:
            self._balances[to] = self._balances.get(to, 0) + amount
        self.emit(Transfer(from_=from_, to=to, value=amount))
        self._print(f"✓ TRANSFER {amount}: {_short(from_)} → {_short(to)}")
