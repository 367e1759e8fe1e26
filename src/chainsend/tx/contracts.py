"""Contract-token clients.

- Cw20TxClient: CosmWasm contract execution (CW20 transfers)
- Snip20TxHandler: Secret Network SNIP20 transfers; the wallet encrypts the
  execute message, so the handler has to supply the contract's code hash
"""

import logging
from decimal import Decimal
from typing import Any, Optional, Sequence

import httpx

from chainsend.config import Settings
from chainsend.errors import NetworkError
from chainsend.tx.base import RestTxClient
from chainsend.tx.cosmos import NODE_INFO_PATH, RPC_STATUS_PATH
from chainsend.tx.messages import msg_execute_contract, msg_secret_execute_contract
from chainsend.wallet import Coin, Fee

logger = logging.getLogger(__name__)

# Gas for a SNIP20 transfer; the fee is paid in uscrt at 0.25 uscrt/gas
SNIP20_TRANSFER_GAS = 150_000
SNIP20_GAS_PRICE_USCRT = "0.25"


class Cw20TxClient(RestTxClient):
    """Executes CosmWasm contracts through a signing wallet."""

    def __init__(
        self,
        rpc_url: Optional[str],
        rest_url: Optional[str],
        wallet: Any,
        chain_id: str,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(wallet, chain_id, rest_url=rest_url, settings=settings, transport=transport)
        self.rpc_url = rpc_url.rstrip("/") if rpc_url else None

    async def init_client(self) -> None:
        """Check both endpoints answer."""
        self._require_rest()
        await self._check_endpoint(self.rpc_url, RPC_STATUS_PATH)
        await self._check_endpoint(self.rest_url, NODE_INFO_PATH)

    async def execute(
        self,
        sender: str,
        contract: str,
        msg: dict,
        fee: Fee,
        memo: str = "",
        funds: Sequence[Coin] = (),
    ) -> str:
        """Execute a contract message.

        Returns:
            Transaction hash
        """
        message = msg_execute_contract(sender, contract, msg, funds)
        return await self.sign_and_broadcast(sender, [message], fee, memo)


class Snip20TxHandler(RestTxClient):
    """SNIP20 transfers on Secret Network."""

    def __init__(
        self,
        rest_url: Optional[str],
        chain_id: str,
        wallet: Any,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(wallet, chain_id, rest_url=rest_url, settings=settings, transport=transport)
        self._code_hashes: dict[str, str] = {}

    @classmethod
    def create(
        cls,
        rest_url: Optional[str],
        chain_id: str,
        wallet: Any,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Snip20TxHandler":
        return cls(rest_url, chain_id, wallet, settings=settings, transport=transport)

    async def get_code_hash(self, contract: str) -> str:
        """Fetch (and remember) a contract's code hash."""
        if contract in self._code_hashes:
            return self._code_hashes[contract]

        rest_url = self._require_rest()
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{rest_url}/compute/v1beta1/code_hash/by_contract_address/{contract}"
                )
                response.raise_for_status()
                code_hash = response.json().get("code_hash")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch code hash for {contract}: {e}")
            raise NetworkError(f"Failed to fetch contract code hash: {e}") from e

        if not code_hash:
            raise NetworkError(f"No code hash returned for {contract}")

        self._code_hashes[contract] = code_hash
        return code_hash

    def default_fee(self, gas: int = SNIP20_TRANSFER_GAS) -> Fee:
        amount = int(Decimal(gas) * Decimal(SNIP20_GAS_PRICE_USCRT))
        return Fee(amount=(Coin("uscrt", str(amount)),), gas=str(gas))

    async def transfer(self, sender: str, contract: str, msg: dict, fee: Optional[Fee] = None) -> str:
        """Send a SNIP20 execute message (e.g. {"transfer": {...}}).

        Returns:
            Transaction hash
        """
        code_hash = await self.get_code_hash(contract)
        message = msg_secret_execute_contract(sender, contract, msg, code_hash)
        return await self.sign_and_broadcast(sender, [message], fee or self.default_fee())
