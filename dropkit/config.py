"""
Chain registry and runtime settings for dropkit.
"""
import importlib.resources
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from .exceptions import UnsupportedChainError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_DIR = "~/.dropkit/collections"
DEFAULT_CONFIRMATION_TIMEOUT = 120.0


class ChainDescriptor(BaseModel):
    """Static facts about one supported chain"""
    model_config = ConfigDict(frozen=True)

    chain_id: int
    name: str
    rpc_url: str
    explorer_url: str
    native_symbol: str
    factory_address: str
    registry_address: str
    default_transfer_validator: str
    list_id: int = 1
    erc721c_impl_id: int = 5
    legacy_gas: bool = False

    def tx_url(self, tx_hash: Union[str, bytes]) -> str:
        """Block explorer URL for a transaction hash"""
        if isinstance(tx_hash, bytes):
            tx_hash = "0x" + tx_hash.hex()
        elif not tx_hash.startswith("0x"):
            tx_hash = "0x" + tx_hash
        return f"{self.explorer_url}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        """Block explorer URL for an account or contract"""
        return f"{self.explorer_url}/address/{address}"


class ChainRegistry:
    """Chain catalog loaded from the packaged networks.json."""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the network catalog.

        Returns:
            Dictionary of network name to raw network entry
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        resource = importlib.resources.files("dropkit").joinpath("networks.json")
        with resource.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        logger.debug(f"Loaded {len(cls._networks_cache)} networks")
        return cls._networks_cache

    @classmethod
    def names(cls) -> List[str]:
        return list(cls.load_networks().keys())

    @classmethod
    def chain_ids(cls) -> List[int]:
        return [entry["chainId"] for entry in cls.load_networks().values()]

    @classmethod
    def is_supported(cls, chain_id: int) -> bool:
        return chain_id in cls.chain_ids()

    @classmethod
    def get_network(cls, name: str) -> Dict[str, Any]:
        """
        Get the raw catalog entry for a network.

        Raises:
            UnsupportedChainError: If the network is not in the catalog
        """
        networks = cls.load_networks()
        key = name.lower()
        if key not in networks:
            available = ", ".join(networks.keys())
            raise UnsupportedChainError(f"Network '{name}' not found. Available networks: {available}")
        return networks[key]

    @classmethod
    def get_rpc_url(cls, name: str, override: Optional[str] = None) -> str:
        """
        Resolve the RPC URL for a network.

        Precedence: explicit override, then <NAME>_RPC_URL from the
        environment, then the catalog value.
        """
        if override:
            return override
        env_var = f"{name.upper().replace('-', '_')}_RPC_URL"
        env_value = os.environ.get(env_var)
        if env_value:
            logger.debug(f"Using RPC URL from {env_var}")
            return env_value
        return cls.get_network(name)["rpc"]

    @classmethod
    def get_chain_id(cls, name: str) -> int:
        return cls.get_network(name)["chainId"]

    @classmethod
    def name_for_chain_id(cls, chain_id: int) -> str:
        for name, entry in cls.load_networks().items():
            if entry["chainId"] == chain_id:
                return name
        supported = ", ".join(str(c) for c in cls.chain_ids())
        raise UnsupportedChainError(f"Unsupported chain ID: {chain_id}. Try any of {supported}")

    @classmethod
    def get_by_name(cls, name: str, rpc_override: Optional[str] = None) -> ChainDescriptor:
        entry = cls.get_network(name)
        return ChainDescriptor(
            chain_id=entry["chainId"],
            name=name.lower(),
            rpc_url=cls.get_rpc_url(name, rpc_override),
            explorer_url=entry["explorer"].rstrip("/"),
            native_symbol=entry["nativeSymbol"],
            factory_address=entry["factory"],
            registry_address=entry["registry"],
            default_transfer_validator=entry["transferValidator"],
            list_id=entry.get("listId", 1),
            erc721c_impl_id=entry.get("erc721cImplId", 5),
            legacy_gas=entry.get("legacyGas", False),
        )

    @classmethod
    def get_chain(cls, chain_id: int, rpc_override: Optional[str] = None) -> ChainDescriptor:
        """
        Get the descriptor for a chain id.

        Raises:
            UnsupportedChainError: If the chain id is not in the catalog
        """
        return cls.get_by_name(cls.name_for_chain_id(chain_id), rpc_override)


def get_collection_dir() -> Path:
    """Root directory holding the project stores"""
    return Path(os.path.expanduser(os.environ.get("DROPKIT_COLLECTION_DIR", DEFAULT_COLLECTION_DIR)))


def get_confirmation_timeout() -> float:
    """Seconds to wait for a receipt before reporting the transaction as pending"""
    raw = os.environ.get("DROPKIT_CONFIRMATION_TIMEOUT")
    if not raw:
        return DEFAULT_CONFIRMATION_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid DROPKIT_CONFIRMATION_TIMEOUT={raw!r}")
        return DEFAULT_CONFIRMATION_TIMEOUT
