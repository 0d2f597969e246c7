"""
clone_template.py - The fixed minimal-proxy byte template.

Runtime code of every clone (45 bytes):

    363d3d373d3d3d363d73 <20-byte master> 5af43d82803e903d91602b57fd5bf3
    |---- CLONE_PREFIX --|                |-------- CLONE_SUFFIX -------|

    CALLDATACOPY the whole call data, DELEGATECALL master with all gas,
    RETURNDATACOPY the result, then RETURN it or REVERT with it.

Creation code prepends a 10-byte constructor that copies the 45 runtime bytes
out of itself and returns them:

    3d602d80600a3d3981f3

Only the master slot varies between clones, so a clone's code can be
re-synthesized from the master address alone. All functions here are pure.
"""

from __future__ import annotations
from typing import Optional

from .core import Address, AddressLike, ADDRESS_LENGTH, address_bytes, to_address


CLONE_PREFIX = bytes.fromhex("363d3d373d3d3d363d73")
CLONE_SUFFIX = bytes.fromhex("5af43d82803e903d91602b57fd5bf3")

RUNTIME_LENGTH = len(CLONE_PREFIX) + ADDRESS_LENGTH + len(CLONE_SUFFIX)

# RETURNDATASIZE PUSH1 0x2d DUP1 PUSH1 0x0a RETURNDATASIZE CODECOPY DUP2 RETURN
CREATION_PREAMBLE = bytes.fromhex(f"3d60{RUNTIME_LENGTH:02x}80600a3d3981f3")

# Offset of the master address inside the runtime code.
MASTER_OFFSET = len(CLONE_PREFIX)


def runtime_code(master: AddressLike) -> bytes:
    """Deployed code of a clone delegating to master."""
    return CLONE_PREFIX + address_bytes(master) + CLONE_SUFFIX


def creation_code(master: AddressLike) -> bytes:
    """Init code that deploys runtime_code(master)."""
    return CREATION_PREAMBLE + runtime_code(master)


def decode_master(code: bytes) -> Optional[Address]:
    """
    Extract the master address from clone runtime code.

    Returns None unless code is byte-for-byte an instance of the template.
    """
    if len(code) != RUNTIME_LENGTH:
        return None
    if not code.startswith(CLONE_PREFIX) or not code.endswith(CLONE_SUFFIX):
        return None
    return to_address(code[MASTER_OFFSET:MASTER_OFFSET + ADDRESS_LENGTH])
