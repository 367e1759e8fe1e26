"""Chain registry loading.

Registry files are JSON documents validated with pydantic before being turned
into immutable ChainMetadata / TokenDescriptor objects. The built-in table
below goes through the same path as a file.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from chainsend.chains import (
    DEFAULT_PRIVACY_PATTERNS,
    ChainApis,
    ChainMetadata,
    ChainRegistry,
    resolve_chain_family,
)
from chainsend.config import Settings, get_settings
from chainsend.tokens import TokenDescriptor

logger = logging.getLogger(__name__)


class TokenRecord(BaseModel):
    """Token entry of a registry file."""

    coin_minimal_denom: str
    coin_denom: str
    coin_decimals: int = Field(default=6, ge=0, le=30)
    name: Optional[str] = None
    ibc_denom: Optional[str] = None
    origin_denom: Optional[str] = None
    origin_chain: Optional[str] = None
    is_evm: bool = False
    icon: str = ""

    def to_descriptor(self) -> TokenDescriptor:
        return TokenDescriptor(**self.model_dump())


class ChainApisRecord(BaseModel):
    rpc: Optional[str] = None
    rest: Optional[str] = None
    rpc_test: Optional[str] = None
    evm_rpc: Optional[str] = None
    evm_rpc_test: Optional[str] = None
    rest_test: Optional[str] = None


class ChainRecord(BaseModel):
    """Chain entry of a registry file."""

    key: str
    chain_name: str
    address_prefix: str
    coin_type: int
    chain_registry_path: str
    native_denom: str
    chain_id: str
    testnet_chain_id: Optional[str] = None
    evm_chain_id: Optional[int] = None
    evm_chain_id_testnet: Optional[int] = None
    apis: ChainApisRecord = Field(default_factory=ChainApisRecord)
    api_status: bool = True
    registry_extensions: list[str] = Field(default_factory=list)
    chain_symbol_image_url: str = ""
    native_denoms: list[TokenRecord] = Field(default_factory=list)

    def to_metadata(self, privacy_patterns: Sequence[str] = DEFAULT_PRIVACY_PATTERNS) -> ChainMetadata:
        """Build ChainMetadata, resolving the chain family once."""
        family, variant = resolve_chain_family(
            self.key, self.coin_type, self.chain_id, privacy_patterns
        )
        return ChainMetadata(
            key=self.key,
            chain_name=self.chain_name,
            address_prefix=self.address_prefix,
            coin_type=self.coin_type,
            chain_registry_path=self.chain_registry_path,
            native_denom=self.native_denom,
            chain_id=self.chain_id,
            testnet_chain_id=self.testnet_chain_id,
            evm_chain_id=self.evm_chain_id,
            evm_chain_id_testnet=self.evm_chain_id_testnet,
            apis=ChainApis(**self.apis.model_dump()),
            api_status=self.api_status,
            family=family,
            handler_variant=variant,
            registry_extensions=tuple(self.registry_extensions),
            chain_symbol_image_url=self.chain_symbol_image_url,
            native_denoms={d.coin_minimal_denom: d.to_descriptor() for d in self.native_denoms},
        )


class RegistryFile(BaseModel):
    """Top-level registry document."""

    chains: list[ChainRecord]
    denoms: list[TokenRecord] = Field(default_factory=list)
    contract_tokens: dict[str, list[TokenRecord]] = Field(default_factory=dict)

    def build(self, privacy_patterns: Sequence[str] = DEFAULT_PRIVACY_PATTERNS) -> ChainRegistry:
        return ChainRegistry(
            chains=[c.to_metadata(privacy_patterns) for c in self.chains],
            denoms={d.coin_minimal_denom: d.to_descriptor() for d in self.denoms},
            contract_tokens={
                chain: {t.coin_minimal_denom: t.to_descriptor() for t in tokens}
                for chain, tokens in self.contract_tokens.items()
            },
        )


# ======================
# Built-in Registry
# ======================

def _token(denom: str, symbol: str, decimals: int = 6, **kwargs) -> TokenRecord:
    return TokenRecord(coin_minimal_denom=denom, coin_denom=symbol, coin_decimals=decimals, **kwargs)


DEFAULT_DENOMS: list[TokenRecord] = [
    _token("uatom", "ATOM", name="Cosmos Hub"),
    _token("uosmo", "OSMO", name="Osmosis"),
    _token("ujuno", "JUNO", name="Juno"),
    _token("ustrd", "STRD", name="Stride"),
    _token("utia", "TIA", name="Celestia"),
    _token("inj", "INJ", 18, name="Injective"),
    _token("aevmos", "EVMOS", 18, name="Evmos"),
    _token("adym", "DYM", 18, name="Dymension"),
    _token("usei", "SEI", name="Sei"),
    _token("uscrt", "SCRT", name="Secret"),
    _token("rune", "RUNE", 8, name="THORChain"),
    _token("cacao", "CACAO", 10, name="Maya Protocol"),
    # SNIP20 tokens are keyed by contract address
    _token("secret1k0jntykt7e4g3y88ltc60czgjuqdy4c9e8fzek", "sSCRT", name="Secret SCRT"),
]

DEFAULT_CONTRACT_TOKENS: dict[str, list[TokenRecord]] = {
    "juno": [
        _token(
            "juno168ctmpyppk90d34p3jjy658zf5a5l3w8wk35wht6ccqj4mr0yv8s4j5awr",
            "NETA",
            name="Neta",
        ),
    ],
}


def _chain(**kwargs) -> ChainRecord:
    native = kwargs.pop("native_symbol")
    decimals = kwargs.pop("native_decimals", 6)
    kwargs.setdefault(
        "native_denoms", [_token(kwargs["native_denom"], native, decimals)]
    )
    return ChainRecord(**kwargs)


DEFAULT_CHAINS: list[ChainRecord] = [
    # Cosmos Hub
    _chain(
        key="cosmos",
        chain_name="Cosmos Hub",
        address_prefix="cosmos",
        coin_type=118,
        chain_registry_path="cosmoshub",
        native_denom="uatom",
        native_symbol="ATOM",
        chain_id="cosmoshub-4",
        testnet_chain_id="theta-testnet-001",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/cosmoshub",
            rest="https://rest.cosmos.directory/cosmoshub",
            rpc_test="https://rpc.sentry-01.theta-testnet.polypore.xyz",
            rest_test="https://rest.sentry-01.theta-testnet.polypore.xyz",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/cosmos.png",
    ),
    # Osmosis
    _chain(
        key="osmosis",
        chain_name="Osmosis",
        address_prefix="osmo",
        coin_type=118,
        chain_registry_path="osmosis",
        native_denom="uosmo",
        native_symbol="OSMO",
        chain_id="osmosis-1",
        testnet_chain_id="osmo-test-5",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/osmosis",
            rest="https://rest.cosmos.directory/osmosis",
            rpc_test="https://rpc.osmotest5.osmosis.zone",
            rest_test="https://lcd.osmotest5.osmosis.zone",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/osmo.png",
    ),
    # Juno (CW20 tokens)
    _chain(
        key="juno",
        chain_name="Juno",
        address_prefix="juno",
        coin_type=118,
        chain_registry_path="juno",
        native_denom="ujuno",
        native_symbol="JUNO",
        chain_id="juno-1",
        testnet_chain_id="uni-6",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/juno",
            rest="https://rest.cosmos.directory/juno",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/juno.png",
    ),
    # Stride (extra message types)
    _chain(
        key="stride",
        chain_name="Stride",
        address_prefix="stride",
        coin_type=118,
        chain_registry_path="stride",
        native_denom="ustrd",
        native_symbol="STRD",
        chain_id="stride-1",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/stride",
            rest="https://rest.cosmos.directory/stride",
        ),
        registry_extensions=[
            "/stride.stakeibc.MsgLiquidStake",
            "/stride.stakeibc.MsgRedeemStake",
            "/stride.stakeibc.MsgClaimUndelegatedTokens",
        ],
        chain_symbol_image_url="https://assets.leapwallet.io/stride.png",
    ),
    # Celestia
    _chain(
        key="celestia",
        chain_name="Celestia",
        address_prefix="celestia",
        coin_type=118,
        chain_registry_path="celestia",
        native_denom="utia",
        native_symbol="TIA",
        chain_id="celestia",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/celestia",
            rest="https://rest.cosmos.directory/celestia",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/celestia.png",
    ),
    # Injective (custom client)
    _chain(
        key="injective",
        chain_name="Injective",
        address_prefix="inj",
        coin_type=60,
        chain_registry_path="injective",
        native_denom="inj",
        native_symbol="INJ",
        native_decimals=18,
        chain_id="injective-1",
        testnet_chain_id="injective-888",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/injective",
            rest="https://rest.cosmos.directory/injective",
            rest_test="https://testnet.sentry.lcd.injective.network",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/injective.png",
    ),
    # Evmos (Ethermint)
    _chain(
        key="evmos",
        chain_name="Evmos",
        address_prefix="evmos",
        coin_type=60,
        chain_registry_path="evmos",
        native_denom="aevmos",
        native_symbol="EVMOS",
        native_decimals=18,
        chain_id="evmos_9001-2",
        testnet_chain_id="evmos_9000-4",
        evm_chain_id=9001,
        evm_chain_id_testnet=9000,
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/evmos",
            rest="https://rest.cosmos.directory/evmos",
            evm_rpc="https://evmos-evm.publicnode.com",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/evmos.png",
    ),
    # Dymension (Ethermint, dual address)
    _chain(
        key="dymension",
        chain_name="Dymension",
        address_prefix="dym",
        coin_type=60,
        chain_registry_path="dymension",
        native_denom="adym",
        native_symbol="DYM",
        native_decimals=18,
        chain_id="dymension_1100-1",
        evm_chain_id=1100,
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/dymension",
            rest="https://rest.cosmos.directory/dymension",
            evm_rpc="https://dymension-evm.blockpi.network/v1/rpc/public",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/dymension.png",
    ),
    # Sei devnet (client needs explicit init, dual address)
    _chain(
        key="seiDevnet",
        chain_name="Sei Devnet",
        address_prefix="sei",
        coin_type=118,
        chain_registry_path="seidevnet",
        native_denom="usei",
        native_symbol="SEI",
        chain_id="arctic-1",
        evm_chain_id=713715,
        apis=ChainApisRecord(
            rpc="https://rpc-arctic-1.sei-apis.com",
            rest="https://rest-arctic-1.sei-apis.com",
            evm_rpc="https://evm-rpc-arctic-1.sei-apis.com",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/sei.png",
    ),
    # Secret Network (SNIP20 tokens)
    _chain(
        key="secret",
        chain_name="Secret Network",
        address_prefix="secret",
        coin_type=529,
        chain_registry_path="secretnetwork",
        native_denom="uscrt",
        native_symbol="SCRT",
        chain_id="secret-4",
        testnet_chain_id="pulsar-3",
        apis=ChainApisRecord(
            rpc="https://rpc.cosmos.directory/secretnetwork",
            rest="https://rest.cosmos.directory/secretnetwork",
        ),
        chain_symbol_image_url="https://assets.leapwallet.io/secret.png",
    ),
    # THORChain (fixed fee)
    _chain(
        key="thorchain",
        chain_name="THORChain",
        address_prefix="thor",
        coin_type=931,
        chain_registry_path="thorchain",
        native_denom="rune",
        native_symbol="RUNE",
        native_decimals=8,
        chain_id="thorchain-1",
        apis=ChainApisRecord(
            rpc="https://rpc.ninerealms.com",
            rest="https://thornode.ninerealms.com",
        ),
        api_status=False,
        chain_symbol_image_url="https://assets.leapwallet.io/rune.png",
    ),
    # Maya Protocol (fixed fee)
    _chain(
        key="mayachain",
        chain_name="Maya Protocol",
        address_prefix="maya",
        coin_type=931,
        chain_registry_path="mayachain",
        native_denom="cacao",
        native_symbol="CACAO",
        native_decimals=10,
        chain_id="mayachain-mainnet-v1",
        apis=ChainApisRecord(
            rpc="https://tendermint.mayachain.info",
            rest="https://mayanode.mayachain.info",
        ),
        api_status=False,
        chain_symbol_image_url="https://assets.leapwallet.io/cacao.png",
    ),
]


def default_registry(settings: Optional[Settings] = None) -> ChainRegistry:
    """Build the built-in chain registry."""
    settings = settings or get_settings()
    document = RegistryFile(
        chains=DEFAULT_CHAINS,
        denoms=DEFAULT_DENOMS,
        contract_tokens=DEFAULT_CONTRACT_TOKENS,
    )
    return document.build(settings.privacy_patterns)


def load_registry(path: str | Path, settings: Optional[Settings] = None) -> ChainRegistry:
    """Load and validate a JSON registry file.

    Args:
        path: Path to the registry JSON
        settings: Settings providing the privacy chain id patterns

    Raises:
        pydantic.ValidationError: If the document does not match the schema
    """
    settings = settings or get_settings()
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    document = RegistryFile.model_validate(raw)
    registry = document.build(settings.privacy_patterns)
    logger.info(f"Loaded {len(registry)} chains from {path}")
    return registry


def get_registry(settings: Optional[Settings] = None) -> ChainRegistry:
    """Registry for this session: the configured file, else the built-in table."""
    settings = settings or get_settings()
    if settings.chain_registry_file:
        return load_registry(settings.chain_registry_file, settings)
    return default_registry(settings)
