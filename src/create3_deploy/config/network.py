"""
Chain descriptors for deployment targets.

Maps deployment target names (as used in the deploy config) to the chain
they run against: chain id, native currency and default RPC endpoints.
"""

from dataclasses import dataclass
from typing import Any

from ..exceptions import UnknownTargetError


# =============================================================================
# CHAIN CONFIGURATIONS
# =============================================================================

CHAINS: dict[str, dict[str, Any]] = {
    "foundry": {
        "chain_id": 31337,
        "name": "Foundry",
        "currency": "ETH",
        "decimals": 18,
        "rpc_urls": [
            "http://127.0.0.1:8545",
        ],
        "explorer": None,
    },
    "local2": {
        "chain_id": 31338,
        "name": "Local Devnet 2",
        "currency": "ETH",
        "decimals": 18,
        "rpc_urls": [
            "http://localhost:8546",
        ],
        "explorer": None,
    },
    "base": {
        "chain_id": 8453,
        "name": "Base",
        "currency": "ETH",
        "decimals": 18,
        "rpc_urls": [
            "https://mainnet.base.org",
            "https://base.publicnode.com",
        ],
        "explorer": {
            "name": "Basescan",
            "url": "https://basescan.org",
        },
    },
    "ronin": {
        "chain_id": 2020,
        "name": "Ronin",
        "currency": "RON",
        "decimals": 18,
        "rpc_urls": [
            "https://api.roninchain.com/rpc",
        ],
        "explorer": {
            "name": "Ronin Explorer",
            "url": "https://app.roninchain.com",
        },
    },
}

# Deployment target name to chain key
TARGET_CHAINS: dict[str, str] = {
    "local1": "foundry",
    "devnet1": "foundry",
    "baseFork": "foundry",
    "local2": "local2",
    "devnet2": "local2",
    "base": "base",
    "ronin": "ronin",
}

# Chain ID to chain key mapping
CHAIN_ID_TO_NAME: dict[int, str] = {
    config["chain_id"]: name for name, config in CHAINS.items()
}


@dataclass(frozen=True)
class ChainTarget:
    """One resolved deployment environment."""

    target: str
    network: str
    chain_id: int
    rpc_url: str
    currency: str = "ETH"
    decimals: int = 18
    name: str = ""


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_chain_config(chain: str | int) -> dict[str, Any]:
    """Get the chain descriptor for a chain key or chain ID.

    Raises:
        UnknownTargetError: If the chain is not registered.
    """
    if isinstance(chain, int):
        name = CHAIN_ID_TO_NAME.get(chain)
        if name is None:
            raise UnknownTargetError(f"Unsupported chain ID: {chain}")
        chain = name

    if chain not in CHAINS:
        raise UnknownTargetError(f"Unsupported chain: {chain}. Supported: {list(CHAINS.keys())}")

    return CHAINS[chain]


def get_target_chain(target: str, chain: str | None = None) -> dict[str, Any]:
    """Get the chain descriptor registered for a deployment target.

    Args:
        target: Deployment target name (e.g. 'base', 'devnet1')
        chain: Explicit chain key overriding the target mapping

    Raises:
        UnknownTargetError: If no chain descriptor is registered for the target.
    """
    key = chain or TARGET_CHAINS.get(target)
    if key is None:
        raise UnknownTargetError(
            f"Unknown target: {target}. Known targets: {sorted(TARGET_CHAINS)}"
        )
    return get_chain_config(key)


def register_chain(key: str, descriptor: dict[str, Any], targets: list[str] | None = None) -> None:
    """Register an extra chain descriptor and the targets that use it."""
    CHAINS[key] = descriptor
    CHAIN_ID_TO_NAME[descriptor["chain_id"]] = key
    for target in targets or []:
        TARGET_CHAINS[target] = key


def get_explorer_url(chain: str | int) -> str | None:
    """Get the block explorer URL for a chain, if it has one."""
    explorer = get_chain_config(chain).get("explorer")
    return explorer["url"] if explorer else None
