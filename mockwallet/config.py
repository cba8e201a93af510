# mockwallet/config.py
"""
Centralized configuration for the mock wallet.

All configurable values are read from environment variables with sensible defaults,
so a relying party's test suite can point the wallet at a local chain or IPFS node
without code changes.

Usage:
    from mockwallet.config import DEFAULT_NETWORK, config_network

    network = config_network(DEFAULT_NETWORK)

Environment Variables:
    MOCKWALLET_NETWORK: Default network name (default: rinkeby)
    MOCKWALLET_IPFS_API: IPFS HTTP API used to publish profiles (default: https://ipfs.infura.io:5001)
    MOCKWALLET_IPFS_GATEWAY: IPFS gateway used to fetch profiles (default: https://ipfs.infura.io/ipfs/)
    MOCKWALLET_HTTP_TIMEOUT: Timeout in seconds for outbound HTTP calls (default: 10)
    MOCKWALLET_POST_RESPONSES: POST responses to callback URLs (default: false)
    MOCKWALLET_PROFILE_CACHE_TTL: Seconds a resolved issuer profile is reused (default: 300)
    MOCKWALLET_DEFAULT_GAS: Gas limit when a request names none (default: 43092000)
    MOCKWALLET_DEFAULT_GAS_PRICE: Gas price in wei (default: 20000000000)
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Final, Mapping, Optional, Union

from mockwallet.errors import ConfigurationError

# =============================================================================
# Network Configuration
# =============================================================================

DEFAULT_NETWORK: Final[str] = os.getenv("MOCKWALLET_NETWORK", "rinkeby")

NETWORKS: Final[Dict[str, Dict[str, str]]] = {
    "mainnet": {
        "id": "0x1",
        "registry": "0xab5c8051b9a1df1aab0149f8b0630848b7ecabf6",
        "rpcUrl": "https://mainnet.infura.io",
    },
    "ropsten": {
        "id": "0x3",
        "registry": "0x41566e3a081f5032bdcad470adb797635ddfe1f0",
        "rpcUrl": "https://ropsten.infura.io",
    },
    "kovan": {
        "id": "0x2a",
        "registry": "0x5f8e9351dc2d238fb878b6ae43aa740d62fc9758",
        "rpcUrl": "https://kovan.infura.io",
    },
    "rinkeby": {
        "id": "0x4",
        "registry": "0x2cc31912b2b0f3075a87b3640923d45a26cef3ee",
        "rpcUrl": "https://rinkeby.infura.io",
    },
}

# =============================================================================
# Collaborator Endpoints
# =============================================================================

IPFS_API_URL: Final[str] = os.getenv("MOCKWALLET_IPFS_API", "https://ipfs.infura.io:5001")

IPFS_GATEWAY_URL: Final[str] = os.getenv(
    "MOCKWALLET_IPFS_GATEWAY",
    "https://ipfs.infura.io/ipfs/"
)

HTTP_TIMEOUT: Final[float] = float(os.getenv("MOCKWALLET_HTTP_TIMEOUT", "10"))

POST_RESPONSES: Final[bool] = os.getenv("MOCKWALLET_POST_RESPONSES", "false").lower() in (
    "1",
    "true",
    "yes",
)

PROFILE_CACHE_TTL: Final[float] = float(os.getenv("MOCKWALLET_PROFILE_CACHE_TTL", "300"))

# =============================================================================
# Transaction Defaults
# =============================================================================

DEFAULT_GAS: Final[int] = int(os.getenv("MOCKWALLET_DEFAULT_GAS", "43092000"))

DEFAULT_GAS_PRICE: Final[int] = int(os.getenv("MOCKWALLET_DEFAULT_GAS_PRICE", "20000000000"))

# Development key and address used when a client is built without one
DEFAULT_PRIVATE_KEY: Final[str] = "278a5de700e29faae8e40e366ec5012b5ec63d36ec77e8a2417154cc1d25383f"


@dataclass(frozen=True)
class NetworkConfig:
    """Read-only parameters of the chain the wallet talks to."""

    name: str
    chain_id: int
    registry: str
    rpc_url: str
    identity_manager: Optional[str] = None


def config_network(net: Union[str, Mapping[str, Any], None] = None) -> NetworkConfig:
    """
    Resolve a network name or config mapping into a NetworkConfig.

    Args:
        net: A key of NETWORKS, or a mapping with at least 'id', 'rpcUrl'
             and 'registry' (plus optional 'identityManager' and 'name').

    Returns:
        The resolved NetworkConfig.

    Raises:
        ConfigurationError: If the name is unknown or the mapping incomplete.
    """
    if net is None:
        net = DEFAULT_NETWORK

    if isinstance(net, str):
        if net not in NETWORKS:
            raise ConfigurationError(f"Network configuration not available for '{net}'")
        return _from_mapping(net, NETWORKS[net])

    if isinstance(net, Mapping):
        for key in ("id", "rpcUrl"):
            if key not in net:
                raise ConfigurationError(
                    f"Malformed network config object, object must have '{key}' key specified."
                )
        if not net.get("registry"):
            raise ConfigurationError("Malformed network config object, no registry specified")
        return _from_mapping(net.get("name", "custom"), net)

    raise ConfigurationError("Network configuration object or network string required")


def _from_mapping(name: str, net: Mapping[str, Any]) -> NetworkConfig:
    chain_id = net["id"]
    try:
        chain_id = int(chain_id, 0) if isinstance(chain_id, str) else int(chain_id)
    except ValueError:
        raise ConfigurationError(f"Invalid chain id: {net['id']!r}")

    return NetworkConfig(
        name=name,
        chain_id=chain_id,
        registry=net["registry"],
        rpc_url=net["rpcUrl"],
        identity_manager=net.get("identityManager"),
    )
