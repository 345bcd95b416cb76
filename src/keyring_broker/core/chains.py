"""Chain definitions for supported EVM networks.

Chains are addressed by CAIP-2 identifiers (``eip155:<chain id>``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

EVM_NAMESPACE = "eip155"

_CAIP2_EVM_RE = re.compile(r"^eip155:(0|[1-9][0-9]*)$")


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible blockchain network."""

    name: str
    chain_id: int
    native_symbol: str
    explorer_url: str

    @property
    def caip2_id(self) -> str:
        return f"{EVM_NAMESPACE}:{self.chain_id}"


CHAINS: dict[str, Chain] = {
    "ethereum": Chain(
        name="ethereum",
        chain_id=1,
        native_symbol="ETH",
        explorer_url="https://etherscan.io",
    ),
    "base": Chain(
        name="base",
        chain_id=8453,
        native_symbol="ETH",
        explorer_url="https://basescan.org",
    ),
    "arbitrum": Chain(
        name="arbitrum",
        chain_id=42161,
        native_symbol="ETH",
        explorer_url="https://arbiscan.io",
    ),
    "polygon": Chain(
        name="polygon",
        chain_id=137,
        native_symbol="POL",
        explorer_url="https://polygonscan.com",
    ),
    "sepolia": Chain(
        name="sepolia",
        chain_id=11155111,
        native_symbol="ETH",
        explorer_url="https://sepolia.etherscan.io",
    ),
}


def is_evm_chain(chain: str) -> bool:
    """Return ``True`` if *chain* is a CAIP-2 id in the ``eip155`` namespace."""
    return isinstance(chain, str) and _CAIP2_EVM_RE.match(chain) is not None


def get_chain(name: str) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found."""
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[name]


def find_chain(caip2_id: str) -> Chain | None:
    """Look up a known chain by its CAIP-2 id."""
    for chain in CHAINS.values():
        if chain.caip2_id == caip2_id:
            return chain
    return None


def list_chain_names() -> list[str]:
    """Return the names of all known chains."""
    return list(CHAINS.keys())
