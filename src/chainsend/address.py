"""Address classification.

Bech32 addresses are decoded (checksum included) and their human-readable
prefix is mapped to a chain key through the registry's prefix table.
0x addresses are recognized as EVM accounts without bech32 decoding. A chain
can accept both kinds (dual-address chains such as Ethermint or Sei).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bip_utils import Bech32Decoder, Bech32Encoder
from bip_utils.bech32 import Bech32ChecksumError
from web3 import Web3

from chainsend.chains import ChainFamily, ChainRegistry
from chainsend.errors import DecodeError

logger = logging.getLogger(__name__)

BECH32_SEPARATOR = "1"


class AddressKind(str, Enum):
    BECH32 = "bech32"
    EVM = "evm"


@dataclass(frozen=True)
class ClassifiedAddress:
    """Chain identity of an address string."""

    address: str
    kind: AddressKind
    prefix: Optional[str] = None
    chain_key: Optional[str] = None  # None for EVM addresses and unknown prefixes
    family: Optional[ChainFamily] = None

    @property
    def is_evm(self) -> bool:
        return self.kind == AddressKind.EVM

    @property
    def is_supported(self) -> bool:
        """EVM addresses and bech32 addresses of a known chain."""
        return self.is_evm or self.chain_key is not None


def decode_bech32(address: str) -> tuple[str, bytes]:
    """Decode a bech32 address into (prefix, account bytes).

    Raises:
        DecodeError: If the string is not valid bech32
    """
    if not address or BECH32_SEPARATOR not in address:
        raise DecodeError(f"Invalid bech32 address: {address!r}")

    prefix = address.lower().rsplit(BECH32_SEPARATOR, 1)[0]
    try:
        data = Bech32Decoder.Decode(prefix, address)
    except (ValueError, Bech32ChecksumError) as e:
        raise DecodeError(f"Invalid bech32 address: {e}") from e
    return prefix, data


def is_evm_address(address: str) -> bool:
    """0x-prefixed address with a valid (or all-lowercase) checksum."""
    return address.lower().startswith("0x") and Web3.is_address(address)


def to_bech32(prefix: str, evm_address: str) -> str:
    """Re-encode a 0x address for a dual-address chain."""
    if not is_evm_address(evm_address):
        raise DecodeError(f"Invalid EVM address: {evm_address!r}")
    return Bech32Encoder.Encode(prefix, bytes.fromhex(evm_address[2:]))


def slice_address(address: str, head: int = 5, tail: int = 6) -> str:
    """Shorten an address for display."""
    if not address or len(address) <= head + tail + 3:
        return address or ""
    return f"{address[:head]}...{address[-tail:]}"


class AddressClassifier:
    """Maps address strings to chain identities using a ChainRegistry."""

    def __init__(self, registry: ChainRegistry):
        self.registry = registry

    def decode_prefix(self, address: str) -> str:
        """Get the human-readable prefix of a bech32 address.

        Raises:
            DecodeError: If the string is not valid bech32
        """
        prefix, _ = decode_bech32(address.strip())
        return prefix

    def classify(self, address: str) -> ClassifiedAddress:
        """Classify an address.

        Returns:
            ClassifiedAddress; chain_key is None when the prefix is unknown

        Raises:
            DecodeError: If the address is neither bech32 nor a valid 0x address
        """
        address = address.strip()

        if address.lower().startswith("0x"):
            if not is_evm_address(address):
                raise DecodeError(f"Invalid EVM address: {address!r}")
            return ClassifiedAddress(
                address=address,
                kind=AddressKind.EVM,
                family=ChainFamily.EVM_COMPATIBLE,
            )

        prefix = self.decode_prefix(address)
        chain_key = self.registry.chain_for_prefix(prefix)
        chain = self.registry.get_chain(chain_key) if chain_key else None
        if chain_key is None:
            logger.debug(f"No chain registered for prefix '{prefix}'")

        return ClassifiedAddress(
            address=address,
            kind=AddressKind.BECH32,
            prefix=prefix,
            chain_key=chain_key,
            family=chain.family if chain else None,
        )

    def is_valid(self, address: str) -> bool:
        """Check that an address is decodable (bech32 or 0x)."""
        try:
            self.classify(address)
            return True
        except DecodeError:
            return False

    def chain_key_for(self, address: str) -> Optional[str]:
        """Chain key of a bech32 address, None if undecodable or unmapped."""
        try:
            return self.classify(address).chain_key
        except DecodeError:
            return None

    def check_recipient(
        self,
        recipient: str,
        source_chain_key: str,
        current_address: Optional[str] = None,
        testnet: bool = False,
    ) -> Optional[str]:
        """Pre-send recipient check for forms.

        Args:
            recipient: Address typed by the user
            source_chain_key: Chain the user sends from
            current_address: The user's own address on the source chain
            testnet: Whether the testnet network is selected

        Returns:
            Error string to show, or None if the recipient is acceptable
        """
        recipient = recipient.strip()
        if not recipient:
            return None

        if current_address and recipient == current_address:
            return "Cannot send to self"

        source = self.registry.get_chain(source_chain_key)

        try:
            classified = self.classify(recipient)
        except DecodeError:
            return "Invalid Address"

        if classified.is_evm:
            if source and source.supports_evm_addresses:
                return None
            return "Invalid Address"

        if classified.chain_key is None:
            return "Unsupported Chain"

        if classified.chain_key == source_chain_key:
            return None

        if testnet:
            return "IBC transfers not supported on testnet."

        destination = self.registry.get_chain(classified.chain_key)
        if destination and not destination.api_status:
            source_name = source.chain_name if source else source_chain_key
            return (
                f"IBC transfers not supported between {destination.chain_name} "
                f"and {source_name}."
            )

        return None
