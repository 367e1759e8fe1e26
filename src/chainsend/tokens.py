"""Token descriptors and amount conversion.

Amounts are handled as Decimal end to end. On-chain amounts are integers in
the token's minimal denom, so every path converts with an explicit rounding
mode:

- contract tokens (CW20) and native sends truncate (ROUND_FLOOR)
- privacy tokens (SNIP20) round half-up
"""

import re
from dataclasses import dataclass, replace
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Optional

DEFAULT_DECIMALS = 6

ERC20_DENOM_PREFIX = "erc20/"

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


@dataclass(frozen=True)
class TokenDescriptor:
    """A token as seen by the send pipeline."""

    coin_minimal_denom: str
    coin_denom: str  # Display symbol
    coin_decimals: int = DEFAULT_DECIMALS
    name: Optional[str] = None
    ibc_denom: Optional[str] = None  # ibc/<hash> trace denom, when bridged
    origin_denom: Optional[str] = None
    origin_chain: Optional[str] = None
    is_evm: bool = False
    icon: str = ""

    @property
    def decimals(self) -> int:
        return self.coin_decimals if self.coin_decimals is not None else DEFAULT_DECIMALS

    @property
    def message_denom(self) -> str:
        """Denom to put in bank/IBC messages.

        The IBC trace denom wins over the minimal denom, and ERC-20 contract
        addresses are namespaced for the chain's bank module.
        """
        denom = self.ibc_denom or self.coin_minimal_denom
        if is_eth_address(denom):
            return f"{ERC20_DENOM_PREFIX}{denom}"
        return denom

    def with_display(self, symbol: Optional[str] = None, name: Optional[str] = None) -> "TokenDescriptor":
        """Copy with the caller's display symbol/name, keeping registry data."""
        return replace(
            self,
            coin_denom=symbol or self.coin_denom,
            name=name or self.name,
        )


@dataclass(frozen=True)
class SelectedToken:
    """The token a user picked in the send form."""

    coin_minimal_denom: str
    symbol: Optional[str] = None
    name: Optional[str] = None
    ibc_denom: Optional[str] = None
    is_evm: bool = False


def is_eth_address(value: str) -> bool:
    """Check for a 0x-prefixed 20-byte hex string."""
    return bool(value) and bool(_EVM_ADDRESS_RE.match(value))


def _scale(decimals: int) -> Decimal:
    return Decimal(10) ** decimals


def to_base_units(amount: Decimal, decimals: int, rounding: str = ROUND_FLOOR) -> int:
    """Convert a human amount into integer minimal-denom units.

    Args:
        amount: Human-readable amount (e.g. Decimal("1.5"))
        decimals: Token precision
        rounding: decimal rounding mode applied to the fractional remainder

    Returns:
        Integer amount in the minimal denom
    """
    scaled = Decimal(amount) * _scale(decimals)
    return int(scaled.quantize(Decimal(1), rounding=rounding))


def floor_base_units(amount: Decimal, decimals: int) -> int:
    """Scale and truncate (contract-token and native sends)."""
    return to_base_units(amount, decimals, ROUND_FLOOR)


def round_base_units(amount: Decimal, decimals: int) -> int:
    """Scale and round half-up (privacy-token sends)."""
    return to_base_units(amount, decimals, ROUND_HALF_UP)


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert integer minimal-denom units back to a human amount."""
    return Decimal(value) / _scale(decimals)


def format_amount(amount: Decimal) -> str:
    """Render a Decimal without exponent notation or trailing zeros."""
    return format(Decimal(amount).normalize(), "f")
