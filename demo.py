#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Permits and Clones Step by Step

A pedagogical walk through the token ledger and the clone factory.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-4:  Ledger       - Deploying, minting, transfers, rejections
  5-7:  Permits      - Signing off-chain, submitting, replay and expiry
  8-10: Clones       - Minimal proxies, independent storage, identity checks

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from typing import Tuple
import sys

from tokenledger import (
    # Host and contracts
    Chain, TokenLedger, CloneFactory,
    # Signing
    sign_permit, private_key_to_address,
    # Clone codec
    runtime_code, creation_code,
    # Constants and errors
    MAX_UINT256, LedgerError,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: int = 1_700_000_000
    chain_id: int = 31337

    owner_key: int = 1
    alice_key: int = 2
    bob_key: int = 3

    alice_initial: int = 1_000
    transfer_amount: int = 250
    permit_amount: int = 400
    permit_lifetime: int = 3600

    clone_count: int = 3


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv

OWNER = private_key_to_address(CONFIG.owner_key)
ALICE = private_key_to_address(CONFIG.alice_key)
BOB = private_key_to_address(CONFIG.bob_key)


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


# ============================================================================
# PHASE 1: LEDGER (Steps 1-4)
# ============================================================================

def step_01_deploy() -> Tuple[Chain, TokenLedger]:
    step_header(1, "Deploying a Ledger",
        "See that a ledger lives at an address derived from its deployer.")

    chain = Chain(chain_id=CONFIG.chain_id, timestamp=CONFIG.start_time)
    print(">>> token = TokenLedger(chain, 'My Token', 'MT', authority=OWNER)")
    token = TokenLedger(chain, "My Token", "MT", authority=OWNER, verbose=True)

    section_header("Initial State")
    print(f"Address:          {token.address}")
    print(f"Decimals:         {token.decimals}")
    print(f"Total supply:     {token.total_supply()}")
    print(f"Domain separator: 0x{token.DOMAIN_SEPARATOR.hex()}")
    return chain, token


def step_02_mint(token: TokenLedger) -> TokenLedger:
    step_header(2, "Minting",
        "Only the authority creates supply; mints are transfers from the null address.")

    token.mint(OWNER, ALICE, CONFIG.alice_initial)
    print(f"\nalice balance: {token.balance_of(ALICE)}")
    print(f"Last event:    {token.events()[-1]}")

    section_header("Unauthorized mint")
    try:
        token.mint(ALICE, ALICE, 1)
    except LedgerError:
        pass
    return token


def step_03_transfer(token: TokenLedger) -> TokenLedger:
    step_header(3, "Transfers",
        "Balances move; total supply does not.")

    token.transfer(ALICE, BOB, CONFIG.transfer_amount)
    print(f"\nalice: {token.balance_of(ALICE)}   bob: {token.balance_of(BOB)}")
    print(f"supply: {token.total_supply()}")
    return token


def step_04_rejections(token: TokenLedger) -> TokenLedger:
    step_header(4, "Rejections Change Nothing",
        "Every failed call is rolled back completely.")

    before = token.verify_conservation()
    try:
        token.transfer(BOB, ALICE, CONFIG.alice_initial * 10)
    except LedgerError:
        pass
    after = token.verify_conservation()
    print(f"\nConservation before: {before['valid']}  after: {after['valid']}")
    print(f"Events logged: {len(token.events())}")
    return token


# ============================================================================
# PHASE 2: PERMITS (Steps 5-7)
# ============================================================================

def step_05_sign(chain: Chain, token: TokenLedger):
    step_header(5, "Signing a Permit Off-Chain",
        "Alice authorizes Bob without submitting anything herself.")

    deadline = chain.timestamp + CONFIG.permit_lifetime
    signature = sign_permit(CONFIG.alice_key, token, ALICE, BOB, CONFIG.permit_amount, deadline)
    print(f"Nonce signed over: {token.nonces(ALICE)}")
    print(f"Deadline:          {deadline}")
    print(f"Signature:         {signature}")
    return deadline, signature


def step_06_submit(token: TokenLedger, deadline: int, signature) -> TokenLedger:
    step_header(6, "Submitting the Permit",
        "Anyone may relay it; the allowance appears and the nonce advances.")

    token.permit(ALICE, BOB, CONFIG.permit_amount, deadline, signature)
    print(f"\nallowance(alice, bob): {token.allowance(ALICE, BOB)}")
    print(f"nonces(alice):         {token.nonces(ALICE)}")

    token.transfer_from(BOB, ALICE, BOB, CONFIG.permit_amount)
    print(f"bob pulled {CONFIG.permit_amount}; bob now holds {token.balance_of(BOB)}")
    return token


def step_07_replay_and_expiry(chain: Chain, token: TokenLedger, deadline: int, signature) -> TokenLedger:
    step_header(7, "Replay and Expiry",
        "A permit works once, and only until its deadline.")

    section_header("Replay")
    try:
        token.permit(ALICE, BOB, CONFIG.permit_amount, deadline, signature)
    except LedgerError:
        pass

    section_header("Expiry")
    fresh = sign_permit(CONFIG.alice_key, token, ALICE, BOB, 1, deadline)
    chain.set_time(deadline + 1)
    try:
        token.permit(ALICE, BOB, 1, deadline, fresh)
    except LedgerError:
        pass

    section_header("Unbounded deadline")
    forever = sign_permit(CONFIG.alice_key, token, ALICE, BOB, MAX_UINT256, MAX_UINT256)
    token.permit(ALICE, BOB, MAX_UINT256, MAX_UINT256, forever)
    print(f"allowance(alice, bob) is unlimited: {token.allowance(ALICE, BOB) == MAX_UINT256}")
    return token


# ============================================================================
# PHASE 3: CLONES (Steps 8-10)
# ============================================================================

def step_08_template(token: TokenLedger):
    step_header(8, "The Minimal Proxy Template",
        "A clone's code is 45 bytes, of which only the master address varies.")

    print(f"runtime:  {runtime_code(token.address).hex()}")
    print(f"creation: {creation_code(token.address).hex()}")


def step_09_clone(chain: Chain, token: TokenLedger):
    step_header(9, "Cloning the Ledger",
        "Clones run the master's logic against their own storage.")

    factory = CloneFactory(chain, deployer=OWNER, verbose=True)
    clones = [factory.create_clone(token.address) for _ in range(CONFIG.clone_count)]

    first = chain.contract_at(clones[0])
    first.mint(OWNER, BOB, 5)
    section_header("Independent state")
    print(f"master supply: {token.total_supply()}")
    for address in clones:
        print(f"clone {address} supply: {chain.contract_at(address).total_supply()}")
    return factory, clones


def step_10_identity(factory: CloneFactory, token: TokenLedger, clones):
    step_header(10, "Clone Identity",
        "Identity is recomputed from code, never looked up.")

    print(f"is_clone(master, clone[0]):   {factory.is_clone(token.address, clones[0])}")
    print(f"is_clone(master, master):     {factory.is_clone(token.address, token.address)}")
    print(f"is_clone(clone[0], clone[1]): {factory.is_clone(clones[0], clones[1])}")
    print(f"is_clone(master, alice):      {factory.is_clone(token.address, ALICE)}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       TOKEN LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    chain, token = step_01_deploy()
    wait_for_enter()
    token = step_02_mint(token)
    wait_for_enter()
    token = step_03_transfer(token)
    wait_for_enter()
    token = step_04_rejections(token)
    wait_for_enter()

    deadline, signature = step_05_sign(chain, token)
    wait_for_enter()
    token = step_06_submit(token, deadline, signature)
    wait_for_enter()
    token = step_07_replay_and_expiry(chain, token, deadline, signature)
    wait_for_enter()

    step_08_template(token)
    wait_for_enter()
    factory, clones = step_09_clone(chain, token)
    wait_for_enter()
    step_10_identity(factory, token, clones)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See tokenledger/token.py for the ledger
      - See tokenledger/clone_template.py for the proxy bytes
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
