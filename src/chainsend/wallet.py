"""Wallet-side interfaces consumed by the send pipeline.

Key storage, derivation and signing live outside this package. The send
pipeline only sees:

- WalletProvider: hands out an unlocked signing wallet (may prompt a
  hardware device)
- SigningWallet: signs Cosmos SDK transactions described by a SignDoc
- ActiveWallet: which wallet is selected and its address per chain
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


class WalletType(str, Enum):
    """How the active wallet signs."""
    SEED_PHRASE = "seed_phrase"
    SEED_PHRASE_IMPORTED = "seed_phrase_imported"
    PRIVATE_KEY = "private_key"
    LEDGER = "ledger"


@dataclass(frozen=True)
class Coin:
    """An on-chain amount in a minimal denom."""
    denom: str
    amount: str  # Integer string

    def to_dict(self) -> dict:
        return {"denom": self.denom, "amount": self.amount}


@dataclass(frozen=True)
class Fee:
    """Transaction fee (StdFee shape)."""
    amount: tuple[Coin, ...] = ()
    gas: str = "200000"

    @property
    def denomination(self) -> Optional[str]:
        return self.amount[0].denom if self.amount else None

    @property
    def quantity(self) -> Optional[str]:
        return self.amount[0].amount if self.amount else None

    def to_dict(self) -> dict:
        return {"amount": [c.to_dict() for c in self.amount], "gas": self.gas}


@dataclass(frozen=True)
class SignDoc:
    """Everything a wallet needs to sign one Cosmos SDK transaction.

    Attributes:
        chain_id: Cosmos chain id
        signer: Bech32 address of the signing account
        messages: Messages in JSON form, each with an "@type" type URL
        fee: Fee to pay
        memo: Transaction memo
        evm_chain_id: Set for Ethermint chains (eth_secp256k1 keys)
        extra_type_urls: Non-standard message types the wallet must encode
    """
    chain_id: str
    signer: str
    messages: tuple[dict, ...]
    fee: Fee
    memo: str = ""
    evm_chain_id: Optional[int] = None
    extra_type_urls: tuple[str, ...] = ()


@runtime_checkable
class SigningWallet(Protocol):
    """Unlocked wallet able to sign Cosmos SDK transactions."""

    async def sign(self, doc: SignDoc) -> bytes:
        """Sign a transaction and return the protobuf-encoded TxRaw bytes.

        Raises:
            SignerDeclinedError (or an error whose message is exactly
            "Transaction declined") when the user rejects the request.
        """
        ...


class WalletProvider(Protocol):
    """Source of the signing wallet for the active account."""

    async def get_wallet(self) -> Any:
        ...


@dataclass
class ActiveWallet:
    """The wallet selected in the application."""
    id: str
    name: str
    wallet_type: WalletType
    addresses: dict[str, str] = field(default_factory=dict)  # chain key -> address

    @property
    def is_hardware(self) -> bool:
        return self.wallet_type == WalletType.LEDGER

    def address_for(self, chain_key: str) -> Optional[str]:
        return self.addresses.get(chain_key)
