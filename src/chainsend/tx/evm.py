"""EVM-native sends over JSON-RPC.

Used for 0x-to-0x value transfers on chains with an EVM runtime (e.g. Sei),
outside the bech32 flow. Signing is done by an EthWallet; broadcast and
nonce/gas lookups go through the chain's JSON-RPC endpoint.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable

import httpx
from eth_account import Account
from web3 import Web3

from chainsend.config import Settings, get_settings
from chainsend.errors import BroadcastError, NetworkError

logger = logging.getLogger(__name__)

# Fallback: 30 gwei
DEFAULT_GAS_PRICE_WEI = 30 * 10**9


@runtime_checkable
class EthWallet(Protocol):
    """Wallet able to sign EVM transactions."""

    async def sign_transaction(self, tx: dict) -> bytes:
        """Sign a transaction dict and return the raw signed bytes."""
        ...


class LocalEthWallet:
    """EthWallet backed by a private key held in memory."""

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_transaction(self, tx: dict) -> bytes:
        signed = self._account.sign_transaction(tx)
        return bytes(signed.raw_transaction)


@dataclass(frozen=True)
class EvmTxResult:
    tx_hash: str
    nonce: int
    gas_price: int
    value_wei: int


class EvmSender:
    """Builds, signs and broadcasts legacy value transfers."""

    def __init__(
        self,
        rpc_url: str,
        chain_id: int,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.settings = settings or get_settings()
        self._transport = transport

    async def _rpc(self, method: str, params: list) -> object:
        """Make a JSON-RPC call and return its result."""
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.rpc_url,
                    json={"jsonrpc": "2.0", "method": method, "params": params, "id": 1},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"{method} failed on {self.rpc_url}: {e}")
            raise NetworkError(f"{method} failed: {e}") from e

        if "error" in data:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise BroadcastError(message or f"{method} failed")

        return data.get("result")

    async def get_gas_price(self) -> int:
        """Get current gas price in wei."""
        try:
            result = await self._rpc("eth_gasPrice", [])
            return int(str(result), 16)
        except (NetworkError, ValueError) as e:
            logger.warning(f"Failed to get gas price, using fallback: {e}")
            return DEFAULT_GAS_PRICE_WEI

    async def get_nonce(self, address: str) -> int:
        """Get pending transaction count (nonce) for an address."""
        result = await self._rpc("eth_getTransactionCount", [address, "pending"])
        return int(str(result), 16)

    async def send_transaction(
        self,
        from_address: str,
        to_address: str,
        value: str,
        gas: int,
        wallet: EthWallet,
        gas_price: Optional[int] = None,
    ) -> EvmTxResult:
        """Send native value.

        Args:
            from_address: Sender 0x address
            to_address: Recipient 0x address
            value: Amount in ether units (e.g. "0.5")
            gas: Gas limit
            wallet: Signing wallet for from_address
            gas_price: Gas price in wei (queried if omitted)
        """
        nonce = await self.get_nonce(Web3.to_checksum_address(from_address))
        if gas_price is None:
            gas_price = await self.get_gas_price()

        value_wei = Web3.to_wei(Decimal(str(value)), "ether")
        tx = {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": gas,
            "to": Web3.to_checksum_address(to_address),
            "value": value_wei,
            "data": b"",
            "chainId": self.chain_id,
        }

        raw_tx = await wallet.sign_transaction(tx)
        tx_hash = await self._rpc("eth_sendRawTransaction", [Web3.to_hex(raw_tx)])
        if not tx_hash:
            raise BroadcastError("Broadcast response did not include a transaction hash")

        logger.info(f"Sent {value} to {to_address} on EVM chain {self.chain_id}: {tx_hash}")
        return EvmTxResult(
            tx_hash=str(tx_hash),
            nonce=nonce,
            gas_price=gas_price,
            value_wei=value_wei,
        )
