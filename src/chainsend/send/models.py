"""Send requests and results."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional, Union

from chainsend.send.pending import CompletionHandle, CompletionState
from chainsend.tokens import SelectedToken, TokenDescriptor
from chainsend.wallet import Fee


class SendState(str, Enum):
    """Where a send attempt currently is."""
    IDLE = "idle"
    VALIDATING = "validating"
    CW20 = "cw20"
    SNIP20 = "snip20"
    FIXED_FEE = "fixed_fee"
    STANDARD = "standard"
    BROADCASTING = "broadcasting"
    SUCCESS = "success"
    FAILED = "failed"


class CosmosTxType(str, Enum):
    """Activity type recorded for a sent transaction."""
    SEND = "send"
    IBC_TRANSFER = "ibc/transfer"
    CW20_TRANSFER = "cw20TokenTransfer"
    SECRET_TRANSFER = "secretTokenTransfer"


@dataclass(frozen=True)
class SendRequest:
    """A user's request to send tokens from the active chain.

    Attributes:
        to_address: Recipient (bech32 or 0x)
        selected_token: Token picked in the form (None if nothing picked)
        amount: Human amount (e.g. Decimal("1.5"))
        memo: Transaction memo
        fee: Fee to pay
        channel_id: Use this IBC channel instead of the registry lookup
        tx_handler: Use this handler instead of building one
    """
    to_address: str
    selected_token: Optional[SelectedToken]
    amount: Decimal
    memo: str = ""
    fee: Fee = field(default_factory=Fee)
    channel_id: Optional[str] = None
    tx_handler: Optional[Any] = None


@dataclass(frozen=True)
class OnChainMetadata:
    """Data the activity history stores for a sent transaction."""
    tx_hash: str
    tx_type: CosmosTxType
    metadata: dict
    fee_denomination: Optional[str] = None
    fee_quantity: Optional[str] = None


@dataclass
class PendingTransactionRecord:
    """A broadcast transaction as shown in the activity list while it confirms."""
    tx_hash: str
    img: str
    sent_amount: str
    sent_token: TokenDescriptor
    title: str
    subtitle: str
    tx_type: CosmosTxType
    completion: CompletionHandle
    fee_denomination: Optional[str] = None
    fee_quantity: Optional[str] = None
    sent_usd_value: str = ""

    @property
    def tx_status(self) -> CompletionState:
        return self.completion.state


@dataclass(frozen=True)
class SendFailure:
    errors: tuple[str, ...]
    success: Literal[False] = field(default=False, init=False)

    def __post_init__(self):
        if not self.errors:
            raise ValueError("SendFailure needs at least one error")


@dataclass(frozen=True)
class SendSuccess:
    pending: PendingTransactionRecord
    data: Optional[OnChainMetadata] = None
    success: Literal[True] = field(default=True, init=False)


SendResult = Union[SendFailure, SendSuccess]
