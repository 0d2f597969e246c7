"""
conftest.py - Shared pytest fixtures for TokenLedger tests

Provides common fixtures used across unit and functional tests:
- A chain at a fixed start time
- Ledgers (empty, funded)
- Clone factory and a cloneable master
- Approval receivers
"""

import pytest

from tokenledger import Chain, TokenLedger, CloneFactory

from tests.fake_contracts import (
    OWNER, ALICE, BOB, CAROL, START_TIME,
    Cloneable, ReceiveApprovalStub,
)


# =============================================================================
# CHAIN AND ACCOUNTS
# =============================================================================

@pytest.fixture
def chain():
    """Fresh chain at START_TIME on the default chain id."""
    return Chain(timestamp=START_TIME)


@pytest.fixture
def owner():
    return OWNER


@pytest.fixture
def alice():
    return ALICE


@pytest.fixture
def bob():
    return BOB


@pytest.fixture
def carol():
    return CAROL


# =============================================================================
# LEDGERS
# =============================================================================

@pytest.fixture
def token(chain):
    """Empty ledger whose minting authority is OWNER."""
    return TokenLedger(chain, "My Token", "MT", authority=OWNER, verbose=False)


@pytest.fixture
def funded_token(token):
    """Ledger with alice holding 1000."""
    token.mint(OWNER, ALICE, 1000)
    return token


# =============================================================================
# CLONES AND CALLBACKS
# =============================================================================

@pytest.fixture
def factory(chain):
    return CloneFactory(chain, deployer=OWNER, verbose=False)


@pytest.fixture
def master(chain):
    """A deployed Cloneable master."""
    return Cloneable(chain, OWNER)


@pytest.fixture
def receiver(chain):
    return ReceiveApprovalStub(chain, OWNER)


@pytest.fixture
def reverting_receiver(chain):
    return ReceiveApprovalStub(chain, OWNER, should_revert=True)
