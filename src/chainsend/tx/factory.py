"""Factory for transaction handlers.

Handlers bind the wallet they were built with, so a new handler is created
for every send. Every handler is returned fully initialized.
"""

import logging
from typing import Any, Optional

import httpx

from chainsend.chains import EVM_COIN_TYPE, ChainFamily, ChainMetadata, ChainRegistry
from chainsend.config import Settings, get_settings
from chainsend.errors import HandlerInitError, UnsupportedChainError
from chainsend.tx.base import TxHandler
from chainsend.tx.contracts import Cw20TxClient, Snip20TxHandler
from chainsend.tx.cosmos import (
    EvmCompatibleTxHandler,
    InjectiveTxHandler,
    PrivacyChainTxHandler,
    StandardTxHandler,
)
from chainsend.tx.evm import EvmSender
from chainsend.tx.fixed_fee import FIXED_FEE_CLIENTS, FixedFeeClient

logger = logging.getLogger(__name__)


class TxHandlerFactory:
    """Builds transaction clients for chains of a registry."""

    def __init__(
        self,
        registry: ChainRegistry,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def testnet(self) -> bool:
        return self.settings.is_testnet

    def _get_chain(self, chain_key: str) -> ChainMetadata:
        chain = self.registry.get_chain(chain_key)
        if not chain:
            raise UnsupportedChainError(f"Unknown chain: {chain_key}")
        return chain

    async def create(self, chain_key: str, wallet: Any) -> TxHandler:
        """Get a ready-to-use bank/IBC handler for a chain.

        Priority:
        1. CUSTOM family -> chain-specific client
        2. EVM coin type -> Ethermint handler
        3. PRIVACY_TOKEN family -> handler with explicit init
        4. Registry extensions -> standard handler + extra message types
        5. Default -> standard handler

        Raises:
            HandlerInitError: If an endpoint is missing or unreachable
        """
        chain = self._get_chain(chain_key)
        testnet = self.testnet
        chain_id = chain.get_chain_id(testnet)
        rest_url = chain.get_rest_url(testnet)
        rpc_url = chain.get_rpc_url(testnet)

        handler: TxHandler

        if chain.family == ChainFamily.CUSTOM:
            handler = self._create_custom(chain, wallet, testnet)
            await handler.init_client()

        elif chain.coin_type == EVM_COIN_TYPE:
            handler = EvmCompatibleTxHandler(
                rest_url,
                wallet,
                chain_id,
                chain.get_evm_chain_id(testnet),
                settings=self.settings,
                transport=self._transport,
            )

        elif chain.family == ChainFamily.PRIVACY_TOKEN:
            handler = PrivacyChainTxHandler(
                rest_url,
                rpc_url,
                wallet,
                chain_id,
                settings=self.settings,
                transport=self._transport,
            )
            await handler.init_client()

        else:
            handler = StandardTxHandler(
                rpc_url,
                wallet,
                chain_id,
                settings=self.settings,
                transport=self._transport,
            )
            await handler.init_client()
            if not rest_url:
                raise HandlerInitError(f"No REST endpoint configured for {chain.key}")
            handler.set_rest_endpoint(rest_url)
            if chain.registry_extensions:
                handler.register_message_types(chain.registry_extensions)

        logger.debug(f"Created {handler!r} for {chain.key} ({chain.family.value})")
        return handler

    def _create_custom(self, chain: ChainMetadata, wallet: Any, testnet: bool) -> TxHandler:
        if chain.handler_variant == "injective":
            return InjectiveTxHandler(
                testnet,
                wallet,
                chain.get_rest_url(testnet),
                chain.get_chain_id(testnet),
                settings=self.settings,
                transport=self._transport,
            )
        raise HandlerInitError(f"No custom client registered for {chain.handler_variant}")

    async def create_cw20_client(self, chain_key: str, wallet: Any) -> Cw20TxClient:
        """Get an initialized CosmWasm execution client."""
        chain = self._get_chain(chain_key)
        client = Cw20TxClient(
            chain.get_rpc_url(self.testnet),
            chain.get_rest_url(self.testnet),
            wallet,
            chain.get_chain_id(self.testnet),
            settings=self.settings,
            transport=self._transport,
        )
        await client.init_client()
        return client

    def create_snip20_handler(self, chain_key: str, wallet: Any) -> Snip20TxHandler:
        """Get a SNIP20 transfer handler."""
        chain = self._get_chain(chain_key)
        rest_url = chain.get_rest_url(self.testnet)
        if not rest_url:
            raise HandlerInitError(f"No REST endpoint configured for {chain.key}")
        return Snip20TxHandler.create(
            rest_url,
            chain.get_chain_id(self.testnet),
            wallet,
            settings=self.settings,
            transport=self._transport,
        )

    def create_fixed_fee_client(self, chain_key: str, wallet: Any) -> FixedFeeClient:
        """Get the native-send client of a fixed-fee chain."""
        chain = self._get_chain(chain_key)
        client_cls = FIXED_FEE_CLIENTS.get(chain.handler_variant or "")
        if chain.family != ChainFamily.FIXED_FEE or client_cls is None:
            raise HandlerInitError(f"{chain.key} is not a fixed-fee chain")

        rest_url = chain.get_rest_url(self.testnet)
        if not rest_url:
            raise HandlerInitError(f"No REST endpoint configured for {chain.key}")
        return client_cls(
            wallet,
            rest_url=rest_url,
            chain_id=chain.get_chain_id(self.testnet),
            settings=self.settings,
            transport=self._transport,
        )

    def create_evm_sender(self, chain_key: str) -> EvmSender:
        """Get a JSON-RPC sender for a chain's EVM runtime."""
        chain = self._get_chain(chain_key)
        evm_chain_id = chain.get_evm_chain_id(self.testnet)
        rpc_url = chain.get_evm_rpc_url(self.testnet)
        if evm_chain_id is None or not rpc_url:
            raise HandlerInitError(f"{chain.key} has no EVM endpoint")
        return EvmSender(rpc_url, evm_chain_id, settings=self.settings, transport=self._transport)


_factory_instance: Optional[TxHandlerFactory] = None


def get_handler_factory(registry: Optional[ChainRegistry] = None) -> TxHandlerFactory:
    """Get the process-wide handler factory.

    Args:
        registry: Registry to build from on first use (session registry if None)
    """
    global _factory_instance

    if _factory_instance is not None:
        return _factory_instance

    if registry is None:
        from chainsend.registry import get_registry
        registry = get_registry()

    _factory_instance = TxHandlerFactory(registry)
    return _factory_instance


def reset_handler_factory() -> None:
    """Reset the factory instance (for testing)."""
    global _factory_instance
    _factory_instance = None
