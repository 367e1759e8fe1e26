"""Tests for address classification."""

import pytest
from bip_utils import Bech32Decoder

from chainsend.address import (
    AddressClassifier,
    AddressKind,
    decode_bech32,
    is_evm_address,
    slice_address,
    to_bech32,
)
from chainsend.chains import ChainFamily
from chainsend.errors import DecodeError

from conftest import make_address

EVM_ADDRESS = "0x" + "ab" * 20


def _break_checksum(address: str) -> str:
    last = "q" if address[-1] != "q" else "p"
    return address[:-1] + last


@pytest.fixture
def classifier(registry) -> AddressClassifier:
    return AddressClassifier(registry)


class TestDecode:
    """Tests for bech32 decoding helpers."""

    def test_decode_returns_prefix_and_bytes(self):
        prefix, data = decode_bech32(make_address("cosmos", 7))
        assert prefix == "cosmos"
        assert data == bytes([7]) * 20

    def test_bad_checksum(self):
        with pytest.raises(DecodeError):
            decode_bech32(_break_checksum(make_address("cosmos")))

    @pytest.mark.parametrize("value", ["", "not-an-address", "cosmos", "cosmos1"])
    def test_garbage(self, value):
        with pytest.raises(DecodeError):
            decode_bech32(value)

    def test_to_bech32_keeps_account_bytes(self):
        address = to_bech32("sei", EVM_ADDRESS)

        assert address.startswith("sei1")
        assert Bech32Decoder.Decode("sei", address) == bytes.fromhex("ab" * 20)

    def test_to_bech32_rejects_invalid_evm(self):
        with pytest.raises(DecodeError):
            to_bech32("sei", "0x1234")

    def test_is_evm_address(self):
        assert is_evm_address(EVM_ADDRESS)
        assert not is_evm_address(make_address("cosmos"))
        assert not is_evm_address("0xzz")


class TestClassifier:
    """Tests for AddressClassifier."""

    def test_known_prefix(self, classifier):
        result = classifier.classify(make_address("osmo"))

        assert result.kind == AddressKind.BECH32
        assert result.prefix == "osmo"
        assert result.chain_key == "osmosis"
        assert result.family == ChainFamily.STANDARD
        assert result.is_supported

    def test_family_comes_from_registry(self, classifier):
        assert classifier.classify(make_address("thor")).family == ChainFamily.FIXED_FEE
        assert classifier.classify(make_address("inj")).family == ChainFamily.CUSTOM

    def test_unknown_prefix_is_unsupported(self, classifier):
        result = classifier.classify(make_address("bogus"))

        assert result.prefix == "bogus"
        assert result.chain_key is None
        assert not result.is_supported

    def test_evm_address(self, classifier):
        result = classifier.classify(EVM_ADDRESS)

        assert result.is_evm
        assert result.family == ChainFamily.EVM_COMPATIBLE
        assert result.prefix is None

    def test_invalid_evm_address(self, classifier):
        with pytest.raises(DecodeError):
            classifier.classify("0x1234")

    def test_invalid_bech32(self, classifier):
        with pytest.raises(DecodeError):
            classifier.classify(_break_checksum(make_address("cosmos")))

    def test_whitespace_is_ignored(self, classifier):
        assert classifier.classify(f"  {make_address('juno')} \n").chain_key == "juno"

    def test_classification_is_idempotent(self, classifier):
        address = make_address("stride", 3)
        assert classifier.classify(address) == classifier.classify(address)
        assert classifier.classify(EVM_ADDRESS) == classifier.classify(EVM_ADDRESS)

    def test_is_valid(self, classifier):
        assert classifier.is_valid(make_address("cosmos"))
        assert classifier.is_valid(make_address("bogus"))
        assert classifier.is_valid(EVM_ADDRESS)
        assert not classifier.is_valid("cosmos1invalid")

    def test_chain_key_for(self, classifier):
        assert classifier.chain_key_for(make_address("secret")) == "secret"
        assert classifier.chain_key_for("garbage") is None


class TestCheckRecipient:
    """Tests for the pre-send recipient check."""

    def test_empty_is_not_an_error(self, classifier):
        assert classifier.check_recipient("  ", "cosmos") is None

    def test_cannot_send_to_self(self, classifier):
        own = make_address("cosmos")
        assert classifier.check_recipient(own, "cosmos", current_address=own) == "Cannot send to self"

    def test_invalid_address(self, classifier):
        assert classifier.check_recipient("cosmos1nope", "cosmos") == "Invalid Address"

    def test_unsupported_chain(self, classifier):
        assert classifier.check_recipient(make_address("bogus"), "cosmos") == "Unsupported Chain"

    def test_same_chain(self, classifier):
        assert classifier.check_recipient(make_address("cosmos", 2), "cosmos") is None

    def test_ibc_on_testnet(self, classifier):
        result = classifier.check_recipient(make_address("osmo"), "cosmos", testnet=True)
        assert result == "IBC transfers not supported on testnet."

    def test_ibc_to_chain_without_api(self, classifier):
        result = classifier.check_recipient(make_address("thor"), "cosmos")
        assert result == "IBC transfers not supported between THORChain and Cosmos Hub."

    def test_ibc_allowed(self, classifier):
        assert classifier.check_recipient(make_address("osmo"), "cosmos") is None

    def test_evm_recipient_needs_dual_address_source(self, classifier):
        assert classifier.check_recipient(EVM_ADDRESS, "seiDevnet") is None
        assert classifier.check_recipient(EVM_ADDRESS, "cosmos") == "Invalid Address"


class TestSliceAddress:
    """Tests for display shortening."""

    def test_long_address(self):
        address = make_address("cosmos")
        sliced = slice_address(address)

        assert sliced.startswith(address[:5])
        assert sliced.endswith(address[-6:])
        assert "..." in sliced

    def test_short_values(self):
        assert slice_address("abc") == "abc"
        assert slice_address("") == ""
