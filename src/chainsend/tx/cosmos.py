"""Cosmos SDK transaction handlers.

- StandardTxHandler: default bank/IBC handler (RPC check, then REST binding)
- EvmCompatibleTxHandler: Ethermint chains (coin type 60)
- PrivacyChainTxHandler: chains whose client must be initialized explicitly
- InjectiveTxHandler: Injective's own REST/gas semantics
"""

import logging
from typing import Any, Optional, Sequence

import httpx

from chainsend.config import Settings
from chainsend.errors import HandlerInitError
from chainsend.tx.base import TxHandler
from chainsend.tx.messages import msg_send, msg_transfer
from chainsend.wallet import Coin, Fee, SignDoc

logger = logging.getLogger(__name__)

NODE_INFO_PATH = "/cosmos/base/tendermint/v1beta1/node_info"
RPC_STATUS_PATH = "/status"


class StandardTxHandler(TxHandler):
    """Default handler for Cosmos SDK chains.

    Construct, `await init_client()`, then `set_rest_endpoint()`.
    """

    def __init__(
        self,
        rpc_url: Optional[str],
        wallet: Any,
        chain_id: str,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(wallet, chain_id, settings=settings, transport=transport)
        self.rpc_url = rpc_url.rstrip("/") if rpc_url else None
        self.extra_type_urls: tuple[str, ...] = ()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def init_client(self) -> None:
        """Connect to the chain's RPC and check it serves the expected chain."""
        status = await self._check_endpoint(self.rpc_url, RPC_STATUS_PATH)
        network = (
            status.get("result", {}).get("node_info", {}).get("network")
            if isinstance(status, dict)
            else None
        )
        if network and network != self.chain_id:
            logger.warning(f"RPC {self.rpc_url} serves {network}, expected {self.chain_id}")
        self._initialized = True

    def register_message_types(self, type_urls: Sequence[str]) -> None:
        """Declare extra message types the wallet must be able to encode."""
        merged = list(self.extra_type_urls)
        merged.extend(t for t in type_urls if t not in merged)
        self.extra_type_urls = tuple(merged)
        logger.debug(f"Registered {len(type_urls)} extra message types for {self.chain_id}")

    def _sign_doc(self, signer: str, messages: Sequence[dict], fee: Fee, memo: str) -> SignDoc:
        doc = super()._sign_doc(signer, messages, fee, memo)
        if not self.extra_type_urls:
            return doc
        return SignDoc(
            chain_id=doc.chain_id,
            signer=doc.signer,
            messages=doc.messages,
            fee=doc.fee,
            memo=doc.memo,
            evm_chain_id=doc.evm_chain_id,
            extra_type_urls=self.extra_type_urls,
        )

    async def send_tokens(
        self,
        from_address: str,
        to_address: str,
        amount: Sequence[Coin],
        fee: Fee,
        memo: str = "",
    ) -> str:
        message = msg_send(from_address, to_address, amount)
        return await self.sign_and_broadcast(from_address, [message], fee, memo)

    async def send_ibc_tokens(
        self,
        from_address: str,
        to_address: str,
        amount: Coin,
        source_port: str,
        source_channel: str,
        timeout_height: Optional[dict],
        timeout_timestamp: int,
        fee: Fee,
        memo: str = "",
    ) -> str:
        message = msg_transfer(
            sender=from_address,
            receiver=to_address,
            token=amount,
            source_channel=source_channel,
            timeout_timestamp=timeout_timestamp,
            source_port=source_port,
            timeout_height=timeout_height,
        )
        return await self.sign_and_broadcast(from_address, [message], fee, memo)


class EvmCompatibleTxHandler(StandardTxHandler):
    """Ethermint handler: eth_secp256k1 keys, signed for a Cosmos chain id
    and an EVM chain id (the two are different identifiers).
    """

    def __init__(
        self,
        rest_url: Optional[str],
        wallet: Any,
        chain_id: str,
        evm_chain_id: Optional[int],
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(None, wallet, chain_id, settings=settings, transport=transport)
        if not rest_url:
            raise HandlerInitError(f"No REST endpoint configured for {chain_id}")
        if evm_chain_id is None:
            raise HandlerInitError(f"No EVM chain id configured for {chain_id}")
        self.set_rest_endpoint(rest_url)
        self.evm_chain_id = evm_chain_id
        self._initialized = True

    async def init_client(self) -> None:
        # Signing goes through REST only; nothing to connect.
        return None

    def _sign_doc(self, signer: str, messages: Sequence[dict], fee: Fee, memo: str) -> SignDoc:
        doc = super()._sign_doc(signer, messages, fee, memo)
        return SignDoc(
            chain_id=doc.chain_id,
            signer=doc.signer,
            messages=doc.messages,
            fee=doc.fee,
            memo=doc.memo,
            evm_chain_id=self.evm_chain_id,
            extra_type_urls=doc.extra_type_urls,
        )


class PrivacyChainTxHandler(StandardTxHandler):
    """Handler whose signing client needs an explicit `init_client()`.

    Both the REST and RPC endpoints are required; sending before
    initialization is an error.
    """

    def __init__(
        self,
        rest_url: Optional[str],
        rpc_url: Optional[str],
        wallet: Any,
        chain_id: str,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(rpc_url, wallet, chain_id, settings=settings, transport=transport)
        self.set_rest_endpoint(rest_url or "")

    async def init_client(self) -> None:
        self._require_rest()
        await self._check_endpoint(self.rest_url, NODE_INFO_PATH)
        await super().init_client()

    async def sign_and_broadcast(self, signer: str, messages: Sequence[dict], fee: Fee, memo: str = "") -> str:
        if not self._initialized:
            raise HandlerInitError(f"Client for {self.chain_id} used before init_client()")
        return await super().sign_and_broadcast(signer, messages, fee, memo)


class InjectiveTxHandler(StandardTxHandler):
    """Injective client: REST-only, with its own account/key types."""

    PUBKEY_TYPE_URL = "/injective.crypto.v1beta1.ethsecp256k1.PubKey"
    ACCOUNT_TYPE_URL = "/injective.types.v1beta1.EthAccount"

    def __init__(
        self,
        testnet: bool,
        wallet: Any,
        rest_url: Optional[str],
        chain_id: str,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(None, wallet, chain_id, settings=settings, transport=transport)
        self.testnet = testnet
        self.set_rest_endpoint(rest_url or "")
        self.register_message_types([self.PUBKEY_TYPE_URL, self.ACCOUNT_TYPE_URL])

    async def init_client(self) -> None:
        node_info = await self._check_endpoint(self._require_rest(), NODE_INFO_PATH)
        network = node_info.get("default_node_info", {}).get("network")
        if network and network != self.chain_id:
            raise HandlerInitError(
                f"Injective endpoint serves {network}, expected {self.chain_id}"
            )
        self._initialized = True
