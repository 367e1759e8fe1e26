"""Base interfaces for transaction handlers.

Send flow:
1. Handler is built and initialized for the chain (factory)
2. Messages are built from the send request
3. Wallet signs the transaction (SignDoc -> TxRaw bytes)
4. Signed bytes are broadcast through the chain's REST (LCD) endpoint
5. Caller polls for the transaction by hash
"""

import asyncio
import base64
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx

from chainsend.config import Settings, get_settings
from chainsend.errors import BroadcastError, HandlerInitError, NetworkError, TxTimeoutError
from chainsend.wallet import Coin, Fee, SignDoc

logger = logging.getLogger(__name__)

BROADCAST_MODE = "BROADCAST_MODE_SYNC"


@dataclass
class TxOutcome:
    """Final on-chain result of a transaction."""
    tx_hash: str
    code: int = 0
    height: Optional[int] = None
    raw_log: str = ""
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.code == 0


class RestTxClient:
    """Shared REST plumbing: sign, broadcast, look up and poll transactions."""

    def __init__(
        self,
        wallet: Any,
        chain_id: str,
        rest_url: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.wallet = wallet
        self.chain_id = chain_id
        self.rest_url = rest_url.rstrip("/") if rest_url else None
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self._transport)

    def set_rest_endpoint(self, rest_url: str) -> None:
        """Bind (or rebind) the REST endpoint used for broadcast and queries."""
        self.rest_url = rest_url.rstrip("/") if rest_url else None

    def _require_rest(self) -> str:
        if not self.rest_url:
            raise HandlerInitError(f"No REST endpoint configured for {self.chain_id}")
        return self.rest_url

    async def _check_endpoint(self, url: Optional[str], path: str) -> dict:
        """GET a health-style endpoint, raising HandlerInitError if unreachable."""
        if not url:
            raise HandlerInitError(f"Missing endpoint for {self.chain_id}")
        try:
            async with self._client() as client:
                response = await client.get(f"{url.rstrip('/')}{path}")
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Endpoint {url} unreachable for {self.chain_id}: {e}")
            raise HandlerInitError(f"Unable to reach {url}: {e}") from e

    def _sign_doc(self, signer: str, messages: Sequence[dict], fee: Fee, memo: str) -> SignDoc:
        return SignDoc(
            chain_id=self.chain_id,
            signer=signer,
            messages=tuple(messages),
            fee=fee,
            memo=memo,
        )

    async def sign_and_broadcast(self, signer: str, messages: Sequence[dict], fee: Fee, memo: str = "") -> str:
        """Have the wallet sign the messages, then broadcast.

        Signer errors (including declines) propagate unchanged.

        Returns:
            Transaction hash
        """
        self._require_rest()
        tx_bytes = await self.wallet.sign(self._sign_doc(signer, messages, fee, memo))
        return await self.broadcast(tx_bytes)

    async def broadcast(self, tx_bytes: bytes) -> str:
        """Broadcast signed transaction bytes."""
        rest_url = self._require_rest()
        try:
            async with self._client() as client:
                response = await client.post(
                    f"{rest_url}/cosmos/tx/v1beta1/txs",
                    json={
                        "tx_bytes": base64.b64encode(tx_bytes).decode(),
                        "mode": BROADCAST_MODE,
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to broadcast tx on {self.chain_id}: {e}")
            raise NetworkError(f"Failed to broadcast transaction: {e}") from e

        tx_response = data.get("tx_response") or {}
        code = int(tx_response.get("code", 0) or 0)
        if code != 0:
            raw_log = tx_response.get("raw_log") or f"code {code}"
            logger.warning(f"Broadcast rejected on {self.chain_id}: {raw_log}")
            raise BroadcastError(raw_log, code=code)

        tx_hash = tx_response.get("txhash")
        if not tx_hash:
            raise BroadcastError("Broadcast response did not include a transaction hash")

        logger.info(f"Broadcast {tx_hash} on {self.chain_id}")
        return tx_hash

    async def get_tx(self, tx_hash: str) -> Optional[TxOutcome]:
        """Look up a transaction; None while it is not yet in a block."""
        rest_url = self._require_rest()
        try:
            async with self._client() as client:
                response = await client.get(f"{rest_url}/cosmos/tx/v1beta1/txs/{tx_hash}")
                if response.status_code in (400, 404):
                    return None
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to query tx {tx_hash}: {e}")
            return None

        tx_response = data.get("tx_response")
        if not tx_response:
            return None

        return TxOutcome(
            tx_hash=tx_response.get("txhash", tx_hash),
            code=int(tx_response.get("code", 0) or 0),
            height=int(tx_response["height"]) if tx_response.get("height") else None,
            raw_log=tx_response.get("raw_log", ""),
            gas_used=int(tx_response["gas_used"]) if tx_response.get("gas_used") else None,
        )

    async def poll_for_tx(self, tx_hash: str) -> TxOutcome:
        """Poll until the transaction is included or the deadline passes.

        Raises:
            TxTimeoutError: If the transaction never shows up
        """
        deadline = time.monotonic() + self.settings.poll_timeout_seconds
        while True:
            outcome = await self.get_tx(tx_hash)
            if outcome is not None:
                return outcome
            if time.monotonic() >= deadline:
                raise TxTimeoutError(
                    f"Transaction {tx_hash} was not found after "
                    f"{self.settings.poll_timeout_seconds:g}s"
                )
            await asyncio.sleep(self.settings.poll_interval_seconds)


class TxHandler(RestTxClient, ABC):
    """Abstract transaction handler for bank and IBC sends.

    Each chain family has its own implementation. Handlers returned by the
    factory are already initialized.
    """

    async def init_client(self) -> None:
        """Asynchronous initialization; no-op unless a handler needs one."""
        return None

    @abstractmethod
    async def send_tokens(
        self,
        from_address: str,
        to_address: str,
        amount: Sequence[Coin],
        fee: Fee,
        memo: str = "",
    ) -> str:
        """Same-chain bank send.

        Returns:
            Transaction hash
        """
        pass

    @abstractmethod
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
        """ICS-20 transfer to another chain.

        Args:
            timeout_timestamp: Unix seconds after which the transfer times out

        Returns:
            Transaction hash
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chain_id={self.chain_id})"
