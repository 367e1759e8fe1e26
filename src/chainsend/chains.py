"""Chain metadata and the read-only chain registry.

Each chain's transaction family is resolved once, when the registry is
built, and stored on its ChainMetadata. Nothing downstream re-derives the
family from chain ids or keys.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Sequence

from chainsend.tokens import TokenDescriptor

logger = logging.getLogger(__name__)

# BIP44 coin type of chains that sign with Ethereum-style keys
EVM_COIN_TYPE = 60

# Chains with their own transaction client: chain key -> handler id
CUSTOM_CLIENT_CHAINS: dict[str, str] = {
    "injective": "injective",
}

# Chains with protocol-fixed fees and their own send primitive
FIXED_FEE_CHAINS: tuple[str, ...] = ("mayachain", "thorchain")

# Chain id fragments that select the privacy chain client
DEFAULT_PRIVACY_PATTERNS: tuple[str, ...] = ("atlantic-2", "arctic-1")


class ChainFamily(str, Enum):
    """How transactions are built for a chain."""
    STANDARD = "standard"              # Cosmos SDK bank/IBC via REST
    EVM_COMPATIBLE = "evm_compatible"  # Ethermint signing (coin type 60)
    CUSTOM = "custom"                  # Chain-specific client (handler_variant)
    FIXED_FEE = "fixed_fee"            # THORChain-style native send (handler_variant)
    PRIVACY_TOKEN = "privacy_token"    # Client needs explicit async init


@dataclass(frozen=True)
class ChainApis:
    """Endpoints of a chain for both networks."""

    rpc: Optional[str] = None
    rest: Optional[str] = None
    rpc_test: Optional[str] = None
    evm_rpc: Optional[str] = None  # EVM JSON-RPC (dual-address chains)
    evm_rpc_test: Optional[str] = None
    rest_test: Optional[str] = None


@dataclass(frozen=True)
class ChainMetadata:
    """Immutable configuration for one chain."""

    # Required fields (no defaults) - must come first
    key: str
    chain_name: str
    address_prefix: str
    coin_type: int  # BIP44 coin type (SLIP-44)
    chain_registry_path: str
    native_denom: str
    chain_id: str

    # Optional fields (with defaults)
    testnet_chain_id: Optional[str] = None
    evm_chain_id: Optional[int] = None
    evm_chain_id_testnet: Optional[int] = None
    apis: ChainApis = field(default_factory=ChainApis)
    api_status: bool = True
    family: ChainFamily = ChainFamily.STANDARD
    handler_variant: Optional[str] = None
    registry_extensions: tuple[str, ...] = ()
    chain_symbol_image_url: str = ""
    native_denoms: Mapping[str, TokenDescriptor] = field(default_factory=dict)

    @property
    def supports_evm_addresses(self) -> bool:
        """Dual-address chains accept 0x addresses as well as bech32."""
        return self.evm_chain_id is not None

    def get_chain_id(self, testnet: bool = False) -> str:
        if testnet and self.testnet_chain_id:
            return self.testnet_chain_id
        return self.chain_id

    def get_evm_chain_id(self, testnet: bool = False) -> Optional[int]:
        return self.evm_chain_id_testnet if testnet else self.evm_chain_id

    def get_rest_url(self, testnet: bool = False) -> Optional[str]:
        return self.apis.rest_test if testnet else self.apis.rest

    def get_rpc_url(self, testnet: bool = False) -> Optional[str]:
        return self.apis.rpc_test if testnet else self.apis.rpc

    def get_evm_rpc_url(self, testnet: bool = False) -> Optional[str]:
        return self.apis.evm_rpc_test if testnet else self.apis.evm_rpc


def resolve_chain_family(
    key: str,
    coin_type: int,
    chain_id: str,
    privacy_patterns: Sequence[str] = DEFAULT_PRIVACY_PATTERNS,
) -> tuple[ChainFamily, Optional[str]]:
    """Decide the transaction family of a chain.

    Priority:
    1. Chain has a dedicated client -> CUSTOM
    2. Chain has protocol-fixed fees -> FIXED_FEE
    3. EVM coin type -> EVM_COMPATIBLE
    4. Chain id matches a privacy testnet pattern -> PRIVACY_TOKEN
    5. Default -> STANDARD

    Returns:
        (family, handler variant or None)
    """
    if key in CUSTOM_CLIENT_CHAINS:
        return ChainFamily.CUSTOM, CUSTOM_CLIENT_CHAINS[key]

    if key in FIXED_FEE_CHAINS:
        return ChainFamily.FIXED_FEE, key

    if coin_type == EVM_COIN_TYPE:
        return ChainFamily.EVM_COMPATIBLE, None

    lowered = chain_id.lower()
    if any(pattern in lowered for pattern in privacy_patterns):
        return ChainFamily.PRIVACY_TOKEN, None

    return ChainFamily.STANDARD, None


class ChainRegistry:
    """Read-only lookup tables shared by one send session.

    Attributes:
        chains: chain key -> ChainMetadata
        denoms: minimal denom -> TokenDescriptor
        prefixes: bech32 prefix -> chain key
        contract_tokens: chain key -> {contract address -> TokenDescriptor}
    """

    def __init__(
        self,
        chains: Iterable[ChainMetadata],
        denoms: Optional[Mapping[str, TokenDescriptor]] = None,
        contract_tokens: Optional[Mapping[str, Mapping[str, TokenDescriptor]]] = None,
    ):
        chain_map: dict[str, ChainMetadata] = {}
        prefix_map: dict[str, str] = {}

        for chain in chains:
            chain_map[chain.key] = chain
            if chain.address_prefix in prefix_map:
                logger.warning(
                    f"Prefix '{chain.address_prefix}' already mapped to "
                    f"{prefix_map[chain.address_prefix]}, ignoring {chain.key}"
                )
                continue
            prefix_map[chain.address_prefix] = chain.key

        self.chains: Mapping[str, ChainMetadata] = MappingProxyType(chain_map)
        self.prefixes: Mapping[str, str] = MappingProxyType(prefix_map)
        self.denoms: Mapping[str, TokenDescriptor] = MappingProxyType(dict(denoms or {}))
        self.contract_tokens: Mapping[str, Mapping[str, TokenDescriptor]] = MappingProxyType(
            {k: MappingProxyType(dict(v)) for k, v in (contract_tokens or {}).items()}
        )

    def get_chain(self, key: str) -> Optional[ChainMetadata]:
        """Get chain metadata by key."""
        return self.chains.get(key)

    def chain_for_prefix(self, prefix: str) -> Optional[str]:
        """Map a bech32 prefix to a chain key."""
        return self.prefixes.get(prefix)

    def get_denom(self, minimal_denom: str) -> Optional[TokenDescriptor]:
        return self.denoms.get(minimal_denom)

    def find_native_denom(self, chain_key: str, minimal_denom: str) -> Optional[TokenDescriptor]:
        """Find a denom among a chain's native denoms."""
        chain = self.chains.get(chain_key)
        if not chain:
            return None
        for denom in chain.native_denoms.values():
            if denom.coin_minimal_denom == minimal_denom:
                return denom
        return None

    def is_contract_token(self, chain_key: str, minimal_denom: str) -> bool:
        """Check whether a denom is a registered CW20 contract on a chain."""
        return minimal_denom in self.contract_tokens.get(chain_key, {})

    def get_evm_chains(self) -> list[ChainMetadata]:
        """Chains that accept 0x addresses."""
        return [c for c in self.chains.values() if c.supports_evm_addresses]

    def __contains__(self, key: object) -> bool:
        return key in self.chains

    def __len__(self) -> int:
        return len(self.chains)
