"""
tokenledger - Permit Ledger and Minimal-Proxy Clone Factory

A fungible token ledger with signature-authorized approvals, and a factory
that deploys and recognizes minimal-proxy clones, both running on an
in-process Chain.

Usage:
    from tokenledger import Chain, TokenLedger, CloneFactory, sign_permit, private_key_to_address

    chain = Chain(timestamp=1_700_000_000)
    owner = private_key_to_address(1)
    alice = private_key_to_address(2)
    bob = private_key_to_address(3)

    token = TokenLedger(chain, "My Token", "MT", authority=owner)
    token.mint(owner, alice, 100)
    token.transfer(alice, bob, 60)

    # Gasless approval: alice signs off-chain, anyone submits
    deadline = chain.timestamp + 3600
    signature = sign_permit(2, token, alice, bob, 40, deadline)
    token.permit(alice, bob, 40, deadline, signature)

    # Clones
    factory = CloneFactory(chain, deployer=owner)
    clone = factory.create_clone(token.address)
    assert factory.is_clone(token.address, clone)
"""

# Core types
from .core import (
    Address,
    AddressLike,
    Signature,
    Transfer,
    Approval,
    CloneCreated,
    to_address,
    to_amount,
    ZERO_ADDRESS,
    MAX_UINT256,
    SECP256K1_N,
    SECP256K1_HALF_N,
    DEFAULT_CHAIN_ID,
    PERMIT_VERSION,
    DEFAULT_DECIMALS,
    MAX_CODE_SIZE,
    LedgerError,
    InsufficientBalance,
    InsufficientAllowance,
    InvalidRecipient,
    InvalidSender,
    InvalidSpender,
    Unauthorized,
    ArithmeticOverflow,
    PermitExpired,
    InvalidSignature,
    RecoveryFailure,
    MalleableSignature,
    InvalidRecoveryId,
    InvalidCallbackTarget,
    DeploymentFailure,
)

# Hashing
from .hashing import keccak256, encode_uint256, encode_address, encode_words

# Signatures
from .signatures import (
    check_signature_shape,
    recover_public_key,
    recover_signer,
    sign_digest,
    private_key_to_address,
    public_key_to_address,
)

# Permit digest
from .digest import (
    DOMAIN_TYPEHASH,
    PERMIT_TYPEHASH,
    build_domain_separator,
    permit_struct_hash,
    permit_digest,
    sign_permit,
)

# Execution host
from .chain import Chain, Contract, atomic, compute_create_address, run_init_code

# Ledger
from .token import TokenLedger
from .approval import ApprovalReceiver

# Clones
from .clone_template import (
    CLONE_PREFIX,
    CLONE_SUFFIX,
    CREATION_PREAMBLE,
    runtime_code,
    creation_code,
    decode_master,
)
from .clone_factory import CloneFactory, is_clone


__all__ = [
    # Core
    'Address', 'AddressLike', 'Signature', 'Transfer', 'Approval', 'CloneCreated',
    'to_address', 'to_amount',
    'ZERO_ADDRESS', 'MAX_UINT256', 'SECP256K1_N', 'SECP256K1_HALF_N',
    'DEFAULT_CHAIN_ID', 'PERMIT_VERSION', 'DEFAULT_DECIMALS', 'MAX_CODE_SIZE',
    # Exceptions
    'LedgerError', 'InsufficientBalance', 'InsufficientAllowance',
    'InvalidRecipient', 'InvalidSender', 'InvalidSpender', 'Unauthorized', 'ArithmeticOverflow',
    'PermitExpired', 'InvalidSignature', 'RecoveryFailure', 'MalleableSignature',
    'InvalidRecoveryId', 'InvalidCallbackTarget', 'DeploymentFailure',
    # Hashing
    'keccak256', 'encode_uint256', 'encode_address', 'encode_words',
    # Signatures
    'check_signature_shape', 'recover_public_key', 'recover_signer', 'sign_digest',
    'private_key_to_address', 'public_key_to_address',
    # Digest
    'DOMAIN_TYPEHASH', 'PERMIT_TYPEHASH', 'build_domain_separator',
    'permit_struct_hash', 'permit_digest', 'sign_permit',
    # Chain
    'Chain', 'Contract', 'atomic', 'compute_create_address', 'run_init_code',
    # Ledger
    'TokenLedger', 'ApprovalReceiver',
    # Clones
    'CLONE_PREFIX', 'CLONE_SUFFIX', 'CREATION_PREAMBLE',
    'runtime_code', 'creation_code', 'decode_master',
    'CloneFactory', 'is_clone',
]

__version__ = '1.0.0'
