"""
clone_factory.py - Deploys minimal-proxy clones and recognizes them.

The factory keeps no registry of what it created. Clone identity is a pure
function of (master, template): is_clone() re-synthesizes the expected
runtime code for the claimed master and compares it byte-for-byte with what
is deployed at the candidate address.

Consequences of defining identity this way:
    - a clone created by any factory (or by hand) with the same template is recognized
    - the master itself is not a clone of itself
    - two clones of one master are not clones of each other
"""

from __future__ import annotations

from .core import Address, AddressLike, CloneCreated, to_address
from .chain import Chain, Contract, atomic
from .clone_template import creation_code, runtime_code


def is_clone(chain: Chain, master: AddressLike, candidate: AddressLike) -> bool:
    """
    True iff the code deployed at candidate is exactly the clone template for master.

    Never raises: accounts without code, templates, clones of other masters
    and malformed addresses all yield False.
    """
    try:
        return chain.get_code(candidate) == runtime_code(master)
    except ValueError:
        return False


class CloneFactory(Contract):
    """
    Stateless factory for minimal-proxy clones.

    Example:
        factory = CloneFactory(chain, deployer=owner)
        clone = factory.create_clone(master.address)
        assert factory.is_clone(master.address, clone)
        chain.contract_at(clone).initialize(1)
    """

    def __init__(self, chain: Chain, deployer: AddressLike, verbose: bool = True):
        super().__init__(chain, deployer, verbose)

    @atomic
    def create_clone(self, master: AddressLike) -> Address:
        """
        Deploy a new clone delegating to master.

        The clone's address is the factory's next CREATE address. Emits
        CloneCreated(master, clone).

        Returns:
            Address of the new clone

        Raises:
            DeploymentFailure: If the deployment cannot be instantiated
        """
        master = to_address(master)
        clone = self.chain.create(self.address, creation_code(master))
        self.emit(CloneCreated(master=master, clone=clone))
        self._print(f"✓ CLONED {master} → {clone}")
        return clone

    def is_clone(self, master: AddressLike, candidate: AddressLike) -> bool:
        """See module-level is_clone()."""
        return is_clone(self.chain, master, candidate)
