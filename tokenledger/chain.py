"""
chain.py - Execution host for ledger and factory contracts.

The Chain is the only place that knows which code lives at which address.
It provides what the contracts assume from their environment:

    - Logical block time and chain id
    - Deterministic CREATE addresses (keccak256(rlp([sender, nonce]))[12:])
    - Deployed code lookup, including code produced by running init code
    - Delegate dispatch: an address whose code is a minimal proxy resolves to
      the master's logic bound to the proxy's own storage
    - Serialized, all-or-nothing execution through atomic()

Thread Safety:
    Every mutating contract call runs under the chain's re-entrant lock, so all
    contracts on one Chain are serialized against each other.
"""

from __future__ import annotations
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import copy
import threading

from .core import (
    Address, AddressLike,
    DEFAULT_CHAIN_ID, MAX_CODE_SIZE, ZERO_ADDRESS,
    LedgerError, DeploymentFailure,
    address_bytes, to_address,
)
from .hashing import keccak256
from .clone_template import decode_master


# ============================================================================
# CREATE ADDRESS DERIVATION
# ============================================================================

def _rlp_bytes(data: bytes) -> bytes:
    if len(data) == 1 and data[0] < 0x80:
        return data
    if len(data) < 56:
        return bytes([0x80 + len(data)]) + data
    length = len(data).to_bytes((len(data).bit_length() + 7) // 8, "big")
    return bytes([0xB7 + len(length)]) + length + data


def _rlp_int(value: int) -> bytes:
    return _rlp_bytes(value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b"")


def compute_create_address(sender: AddressLike, nonce: int) -> Address:
    """Address of the contract created by sender at the given account nonce."""
    payload = _rlp_bytes(address_bytes(sender)) + _rlp_int(nonce)
    # payload is at most 21 + 33 bytes, always a short list
    return to_address(keccak256(bytes([0xC0 + len(payload)]) + payload)[12:])


# ============================================================================
# INIT CODE EXECUTION
# ============================================================================

OP_CODECOPY = 0x39
OP_RETURNDATASIZE = 0x3D
OP_PUSH1 = 0x60
OP_DUP1 = 0x80
OP_DUP2 = 0x81
OP_RETURN = 0xF3

# Runtime code may not begin with 0xEF.
RESERVED_CODE_PREFIX = 0xEF

_MAX_INIT_MEMORY = 1 << 20

# Proxies pointing at proxies resolve at most this many hops.
MAX_DELEGATION_DEPTH = 256


def run_init_code(init_code: bytes, max_code_size: int = MAX_CODE_SIZE) -> bytes:
    """
    Execute constructor bytecode and return the runtime code it deploys.

    Only the instructions needed by copy-and-return constructors are
    understood (RETURNDATASIZE, PUSH1, DUP1, DUP2, CODECOPY, RETURN).
    Running off the end behaves like STOP and deploys empty code.

    Raises:
        DeploymentFailure: On an unsupported opcode, stack underflow,
                           excessive memory, oversized or reserved runtime code
    """
    stack: List[int] = []
    memory = bytearray()
    pc = 0

    def pop() -> int:
        if not stack:
            raise DeploymentFailure(f"Init code stack underflow at pc={pc}")
        return stack.pop()

    def touch(end: int) -> None:
        if end > _MAX_INIT_MEMORY:
            raise DeploymentFailure("Init code out of memory")
        if end > len(memory):
            memory.extend(b"\x00" * (end - len(memory)))

    runtime = b""
    while pc < len(init_code):
        op = init_code[pc]
        if op == OP_RETURNDATASIZE:
            stack.append(0)
        elif op == OP_PUSH1:
            stack.append(init_code[pc + 1] if pc + 1 < len(init_code) else 0)
            pc += 1
        elif op in (OP_DUP1, OP_DUP2):
            depth = op - OP_DUP1 + 1
            if len(stack) < depth:
                raise DeploymentFailure(f"Init code stack underflow at pc={pc}")
            stack.append(stack[-depth])
        elif op == OP_CODECOPY:
            dest, offset, size = pop(), pop(), pop()
            touch(dest + size)
            chunk = init_code[offset:offset + size]
            memory[dest:dest + size] = chunk + b"\x00" * (size - len(chunk))
        elif op == OP_RETURN:
            offset, size = pop(), pop()
            touch(offset + size)
            runtime = bytes(memory[offset:offset + size])
            break
        else:
            raise DeploymentFailure(f"Unsupported opcode 0x{op:02x} in init code at pc={pc}")
        pc += 1

    if len(runtime) > max_code_size:
        raise DeploymentFailure(f"Runtime code of {len(runtime)} bytes exceeds limit {max_code_size}")
    if runtime and runtime[0] == RESERVED_CODE_PREFIX:
        raise DeploymentFailure("Runtime code starts with reserved byte 0xef")
    return runtime


# ============================================================================
# CONTRACT BASE
# ============================================================================

def native_code(contract: 'Contract') -> bytes:
    """
    Placeholder runtime code for a contract implemented in Python.

    Starts with INVALID (0xfe) so it can never be mistaken for a proxy, and
    is unique per contract class.
    """
    cls = type(contract)
    return b"\xfe" + keccak256(f"{cls.__module__}.{cls.__qualname__}".encode())


class Contract:
    """
    Base class for Python objects deployed at an address on a Chain.

    Subclasses list their mutable storage attributes in STATE_FIELDS; those
    are snapshotted by Chain.atomic() and reset to fresh_state() when the
    contract's logic runs on behalf of a clone.
    """

    STATE_FIELDS: Tuple[str, ...] = ("event_log",)

    # Append-only members of STATE_FIELDS; a snapshot records only their length.
    LOG_FIELDS: Tuple[str, ...] = ("event_log",)

    def __init__(self, chain: Chain, deployer: AddressLike, verbose: bool = True):
        self.chain = chain
        self.verbose = verbose
        self.event_log: List[Any] = []
        self.address: Address = chain.deploy(self, deployer)

    def fresh_state(self) -> Dict[str, Any]:
        """Storage of a newly created instance."""
        return {"event_log": []}

    def snapshot(self) -> Dict[str, Any]:
        """
        Capture storage for a later restore().

        Log fields are recorded by length and every other field by a shallow
        copy, so the cost follows the size of live storage, not the number of
        calls made so far. Containers in STATE_FIELDS must hold immutable values.
        """
        state: Dict[str, Any] = {}
        for f in self.STATE_FIELDS:
            value = getattr(self, f)
            state[f] = len(value) if f in self.LOG_FIELDS else copy.copy(value)
        return state

    def restore(self, state: Dict[str, Any]) -> None:
        """Roll storage back to a snapshot() taken earlier on this instance."""
        for f, value in state.items():
            if f in self.LOG_FIELDS:
                del getattr(self, f)[value:]
            else:
                setattr(self, f, value)

    def delegate(self, address: Address) -> Contract:
        """This contract's logic bound to another address with empty storage."""
        bound = copy.copy(self)
        bound.address = address
        for f, value in self.fresh_state().items():
            setattr(bound, f, value)
        return bound

    def emit(self, event: Any) -> None:
        self.event_log.append(event)

    def events(self, name: Optional[str] = None) -> List[Any]:
        """Emitted events in order, optionally filtered by event type name."""
        if name is None:
            return list(self.event_log)
        return [e for e in self.event_log if type(e).__name__ == name]

    def _print(self, text: str) -> None:
        if self.verbose:
            print(text)


def atomic(method: Callable) -> Callable:
    """
    Run a Contract method inside its chain's atomic() block.

    Failures roll back every contract on the chain and are re-raised;
    with verbose enabled the rejection reason is printed first.
    """
    @wraps(method)
    def wrapper(self: Contract, *args, **kwargs):
        try:
            with self.chain.atomic():
                return method(self, *args, **kwargs)
        except LedgerError as e:
            self._print(f"✗ REJECTED {type(self).__name__}.{method.__name__}: {type(e).__name__}: {e}")
            raise
    return wrapper


# ============================================================================
# CHAIN
# ============================================================================

class Chain:
    """
    In-process execution environment holding code, contracts and block time.

    Example:
        chain = Chain(chain_id=31337, timestamp=1_700_000_000)
        token = TokenLedger(chain, "My Token", "MT", authority=owner)
        chain.advance_time(86400)
    """

    def __init__(
        self,
        chain_id: int = DEFAULT_CHAIN_ID,
        timestamp: int = 0,
        max_code_size: int = MAX_CODE_SIZE,
    ):
        """
        Create a chain.

        Args:
            chain_id: Network identifier bound into permit domains
            timestamp: Starting block time in seconds
            max_code_size: Largest runtime code a deployment may produce
        """
        if chain_id < 0:
            raise ValueError(f"chain_id must be non-negative, got {chain_id}")
        self.chain_id = chain_id
        self.max_code_size = max_code_size
        self._timestamp = timestamp
        self._code: Dict[Address, bytes] = {}
        self._contracts: Dict[Address, Contract] = {}
        self._account_nonces: Dict[Address, int] = {}
        self._lock = threading.RLock()

    # ========================================================================
    # TIME
    # ========================================================================

    @property
    def timestamp(self) -> int:
        """Current block time in seconds."""
        return self._timestamp

    def set_time(self, timestamp: int) -> None:
        """
        Move block time to an absolute value.

        Raises:
            ValueError: If timestamp is before the current time
        """
        with self._lock:
            if timestamp < self._timestamp:
                raise ValueError(f"Cannot move time backwards: {timestamp} < {self._timestamp}")
            self._timestamp = timestamp

    def advance_time(self, seconds: int) -> None:
        """Move block time forward by seconds."""
        self.set_time(self._timestamp + seconds)

    # ========================================================================
    # ATOMICITY
    # ========================================================================

    def _snapshot(self) -> Tuple[Any, ...]:
        return (
            dict(self._code),
            dict(self._contracts),
            dict(self._account_nonces),
            {addr: c.snapshot() for addr, c in self._contracts.items()},
        )

    def _restore(self, snap: Tuple[Any, ...]) -> None:
        code, contracts, nonces, states = snap
        self._code, self._contracts, self._account_nonces = code, contracts, nonces
        for addr, state in states.items():
            self._contracts[addr].restore(state)

    @contextmanager
    def atomic(self) -> Iterator[Chain]:
        """
        Serialize and make all-or-nothing the enclosed block.

        Nested blocks each snapshot on entry, so an exception restores the
        chain to the state at the entry of the innermost block it escapes.
        """
        with self._lock:
            snap = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snap)
                raise

    # ========================================================================
    # DEPLOYMENT
    # ========================================================================

    def account_nonce(self, address: AddressLike) -> int:
        return self._account_nonces.get(to_address(address), 0)

    def _next_address(self, sender: AddressLike) -> Address:
        sender = to_address(sender)
        nonce = self._account_nonces.get(sender, 0)
        self._account_nonces[sender] = nonce + 1
        address = compute_create_address(sender, nonce)
        if address in self._code or address in self._contracts:
            raise DeploymentFailure(f"Address collision at {address}")
        return address

    def deploy(self, contract: Contract, deployer: AddressLike, code: Optional[bytes] = None) -> Address:
        """
        Register a Python-implemented contract at the deployer's next CREATE address.

        Args:
            contract: Contract instance to place on the chain
            deployer: Account whose nonce determines the address
            code: Runtime code to report for the address (default: native_code())
        """
        with self.atomic():
            address = self._next_address(deployer)
            self._code[address] = native_code(contract) if code is None else bytes(code)
            self._contracts[address] = contract
            return address

    def create(self, sender: AddressLike, init_code: bytes) -> Address:
        """
        Deploy raw init code from sender and return the new address.

        Raises:
            DeploymentFailure: If the init code fails or the address is taken
        """
        with self.atomic():
            address = self._next_address(sender)
            self._code[address] = run_init_code(bytes(init_code), self.max_code_size)
            return address

    # ========================================================================
    # LOOKUP
    # ========================================================================

    def get_code(self, address: AddressLike) -> bytes:
        """Deployed runtime code at address (empty for accounts without code)."""
        return self._code.get(to_address(address), b"")

    def is_contract(self, address: AddressLike) -> bool:
        return len(self.get_code(address)) > 0

    def contract_at(self, address: AddressLike, _depth: int = 0) -> Optional[Contract]:
        """
        Resolve the logic that runs when address is called.

        Returns the Python contract deployed there, or for a minimal proxy the
        master's logic bound to the proxy's address and storage. Returns None
        when nothing callable lives at address.
        """
        address = to_address(address)
        with self._lock:
            contract = self._contracts.get(address)
            if contract is not None:
                return contract
            master = decode_master(self.get_code(address))
            if master is None or master == ZERO_ADDRESS or _depth >= MAX_DELEGATION_DEPTH:
                return None
            logic = self.contract_at(master, _depth + 1)
            if logic is None:
                return None
            bound = logic.delegate(address)
            self._contracts[address] = bound
            return bound
