"""Clients for fixed-fee chains (THORChain, Maya Protocol).

These chains charge a protocol-defined fee and use their own MsgSend type.
They do not take part in IBC transfers through this client.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

import httpx

from chainsend.config import Settings
from chainsend.tokens import floor_base_units
from chainsend.tx.base import RestTxClient
from chainsend.tx.messages import MSG_FIXED_FEE_SEND, msg_send
from chainsend.wallet import Coin, Fee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixedFeeAmount:
    """Human amount plus the precision/denom needed to encode it."""
    amount: Decimal
    decimals: int
    denom: str


@dataclass(frozen=True)
class FixedFeeSendResult:
    tx_hash: str
    base_amount: int  # Amount actually sent, in base units


class FixedFeeClient(RestTxClient):
    """Base client for THORChain-style chains.

    Subclasses only set the chain constants.
    """

    CHAIN_ID: str = ""
    NATIVE_DENOM: str = ""
    NATIVE_DECIMALS: int = 8
    DEFAULT_GAS: str = "6000000"
    MSG_TYPE: str = MSG_FIXED_FEE_SEND

    def __init__(
        self,
        wallet: Any,
        rest_url: Optional[str] = None,
        chain_id: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            wallet,
            chain_id or self.CHAIN_ID,
            rest_url=rest_url,
            settings=settings,
            transport=transport,
        )

    def to_base_amount(self, amount: FixedFeeAmount) -> int:
        decimals = amount.decimals if amount.decimals is not None else self.NATIVE_DECIMALS
        return floor_base_units(amount.amount, decimals)

    async def send_tokens(
        self,
        from_address: str,
        to_address: str,
        amount: FixedFeeAmount,
        fee: int = 0,
        memo: str = "",
    ) -> FixedFeeSendResult:
        """Native send.

        Args:
            amount: Human amount, precision and denom
            fee: Extra fee in native base units (the protocol fee is implicit)
            memo: Transaction memo

        Returns:
            FixedFeeSendResult with hash and base amount
        """
        base_amount = self.to_base_amount(amount)
        coin = Coin(amount.denom or self.NATIVE_DENOM, str(base_amount))
        message = msg_send(from_address, to_address, [coin], type_url=self.MSG_TYPE)
        fee_coins = (Coin(self.NATIVE_DENOM, str(fee)),) if fee else ()

        tx_hash = await self.sign_and_broadcast(
            from_address, [message], Fee(amount=fee_coins, gas=self.DEFAULT_GAS), memo
        )
        logger.info(f"Sent {base_amount} {coin.denom} on {self.chain_id}: {tx_hash}")
        return FixedFeeSendResult(tx_hash=tx_hash, base_amount=base_amount)


class ThorchainClient(FixedFeeClient):
    """THORChain (RUNE, 8 decimals)."""
    CHAIN_ID = "thorchain-1"
    NATIVE_DENOM = "rune"
    NATIVE_DECIMALS = 8


class MayachainClient(FixedFeeClient):
    """Maya Protocol (CACAO, 10 decimals)."""
    CHAIN_ID = "mayachain-mainnet-v1"
    NATIVE_DENOM = "cacao"
    NATIVE_DECIMALS = 10


FIXED_FEE_CLIENTS: dict[str, type[FixedFeeClient]] = {
    "thorchain": ThorchainClient,
    "mayachain": MayachainClient,
}
