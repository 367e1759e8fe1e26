"""Tests for transaction handlers and clients."""

import base64
import json
from decimal import Decimal

import httpx
import pytest

from chainsend.errors import BroadcastError, HandlerInitError, NetworkError, TxTimeoutError
from chainsend.tx.base import BROADCAST_MODE
from chainsend.tx.contracts import Cw20TxClient, Snip20TxHandler
from chainsend.tx.cosmos import (
    EvmCompatibleTxHandler,
    InjectiveTxHandler,
    PrivacyChainTxHandler,
    StandardTxHandler,
)
from chainsend.tx.evm import DEFAULT_GAS_PRICE_WEI, EvmSender, LocalEthWallet
from chainsend.tx.fixed_fee import FixedFeeAmount, MayachainClient, ThorchainClient
from chainsend.tx.messages import (
    MSG_EXECUTE_CONTRACT,
    MSG_FIXED_FEE_SEND,
    MSG_SECRET_EXECUTE_CONTRACT,
    MSG_SEND,
    MSG_TRANSFER,
    msg_transfer,
)
from chainsend.wallet import Coin, Fee

from conftest import FakeSigningWallet, make_address

RPC = "https://rpc.example"
REST = "https://rest.example"
BROADCAST_URL = f"{REST}/cosmos/tx/v1beta1/txs"
NODE_INFO_URL = f"{REST}/cosmos/base/tendermint/v1beta1/node_info"
FEE = Fee(amount=(Coin("uatom", "5000"),), gas="200000")


def _broadcast_ok(tx_hash: str = "ABC123") -> dict:
    return {"tx_response": {"txhash": tx_hash, "code": 0, "raw_log": ""}}


@pytest.fixture
def standard_handler(settings, fake_api, signing_wallet) -> StandardTxHandler:
    fake_api.get(f"{RPC}/status", {"result": {"node_info": {"network": "cosmoshub-4"}}})
    handler = StandardTxHandler(RPC, signing_wallet, "cosmoshub-4", settings=settings, transport=fake_api.transport)
    handler.set_rest_endpoint(f"{REST}/")
    return handler


class TestBroadcast:
    """Tests for the shared REST plumbing."""

    @pytest.mark.asyncio
    async def test_send_tokens_signs_and_broadcasts(self, standard_handler, fake_api, signing_wallet):
        fake_api.post(BROADCAST_URL, _broadcast_ok())
        sender, recipient = make_address("cosmos", 1), make_address("cosmos", 2)

        await standard_handler.init_client()
        tx_hash = await standard_handler.send_tokens(sender, recipient, [Coin("uatom", "1500000")], FEE, "hi")

        assert tx_hash == "ABC123"
        body = fake_api.last_json("POST", BROADCAST_URL)
        assert body["mode"] == BROADCAST_MODE
        assert base64.b64decode(body["tx_bytes"]) == b"signed-tx"

        doc = signing_wallet.docs[0]
        assert doc.chain_id == "cosmoshub-4"
        assert doc.signer == sender
        assert doc.memo == "hi"
        assert doc.messages[0]["@type"] == MSG_SEND
        assert doc.messages[0]["amount"] == [{"denom": "uatom", "amount": "1500000"}]

    @pytest.mark.asyncio
    async def test_rejected_broadcast(self, standard_handler, fake_api):
        fake_api.post(BROADCAST_URL, {"tx_response": {"code": 5, "raw_log": "insufficient funds"}})

        with pytest.raises(BroadcastError) as exc_info:
            await standard_handler.broadcast(b"tx")

        assert exc_info.value.code == 5
        assert "insufficient funds" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_http_failure(self, standard_handler, fake_api):
        fake_api.post(BROADCAST_URL, {"message": "down"}, status=503)

        with pytest.raises(NetworkError):
            await standard_handler.broadcast(b"tx")

    @pytest.mark.asyncio
    async def test_signer_errors_propagate(self, settings, fake_api):
        wallet = FakeSigningWallet(error=RuntimeError("Transaction declined"))
        handler = StandardTxHandler(RPC, wallet, "cosmoshub-4", settings=settings, transport=fake_api.transport)
        handler.set_rest_endpoint(REST)

        with pytest.raises(RuntimeError, match="Transaction declined"):
            await handler.send_tokens("a", "b", [Coin("uatom", "1")], FEE)
        assert not fake_api.calls("POST", BROADCAST_URL)

    @pytest.mark.asyncio
    async def test_no_rest_endpoint(self, settings, signing_wallet):
        handler = StandardTxHandler(RPC, signing_wallet, "cosmoshub-4", settings=settings)

        with pytest.raises(HandlerInitError):
            await handler.send_tokens("a", "b", [Coin("uatom", "1")], FEE)


class TestPolling:
    """Tests for transaction lookup and polling."""

    @pytest.mark.asyncio
    async def test_poll_until_included(self, standard_handler, fake_api):
        fake_api.add(
            "GET",
            f"{REST}/cosmos/tx/v1beta1/txs/ABC123",
            httpx.Response(404, json={"message": "tx not found"}),
            httpx.Response(200, json={"tx_response": {"txhash": "ABC123", "code": 0, "height": "42", "gas_used": "81000"}}),
        )

        outcome = await standard_handler.poll_for_tx("ABC123")

        assert outcome.succeeded
        assert outcome.height == 42
        assert outcome.gas_used == 81000

    @pytest.mark.asyncio
    async def test_failed_tx_is_returned(self, standard_handler, fake_api):
        fake_api.get(
            f"{REST}/cosmos/tx/v1beta1/txs/ABC123",
            {"tx_response": {"txhash": "ABC123", "code": 11, "raw_log": "out of gas"}},
        )

        outcome = await standard_handler.poll_for_tx("ABC123")

        assert not outcome.succeeded
        assert outcome.raw_log == "out of gas"

    @pytest.mark.asyncio
    async def test_poll_timeout(self, standard_handler):
        with pytest.raises(TxTimeoutError):
            await standard_handler.poll_for_tx("MISSING")


class TestMessages:
    """Tests for message builders."""

    def test_transfer_timeout_in_nanoseconds(self):
        message = msg_transfer("a", "b", Coin("uatom", "1"), "channel-141", 1_700_000_120)

        assert message["@type"] == MSG_TRANSFER
        assert message["source_port"] == "transfer"
        assert message["timeout_timestamp"] == "1700000120000000000"
        assert message["timeout_height"] == {"revision_number": "0", "revision_height": "0"}


class TestStandardHandler:
    """Tests for StandardTxHandler."""

    @pytest.mark.asyncio
    async def test_init_checks_rpc(self, standard_handler, fake_api):
        await standard_handler.init_client()

        assert standard_handler.is_initialized
        assert fake_api.calls("GET", f"{RPC}/status")

    @pytest.mark.asyncio
    async def test_unreachable_rpc(self, settings, signing_wallet, fake_api):
        handler = StandardTxHandler(
            "https://down.example", signing_wallet, "cosmoshub-4", settings=settings, transport=fake_api.transport
        )

        with pytest.raises(HandlerInitError):
            await handler.init_client()

    @pytest.mark.asyncio
    async def test_ibc_transfer(self, standard_handler, fake_api, signing_wallet):
        fake_api.post(BROADCAST_URL, _broadcast_ok("IBC1"))

        tx_hash = await standard_handler.send_ibc_tokens(
            make_address("cosmos"),
            make_address("osmo"),
            Coin("uatom", "10"),
            "transfer",
            "channel-141",
            None,
            1_700_000_000,
            FEE,
        )

        assert tx_hash == "IBC1"
        message = signing_wallet.docs[0].messages[0]
        assert message["@type"] == MSG_TRANSFER
        assert message["source_channel"] == "channel-141"
        assert message["receiver"].startswith("osmo1")

    @pytest.mark.asyncio
    async def test_registered_types_reach_the_wallet(self, standard_handler, fake_api, signing_wallet):
        fake_api.post(BROADCAST_URL, _broadcast_ok())
        standard_handler.register_message_types(["/stride.stakeibc.MsgLiquidStake"])
        standard_handler.register_message_types(["/stride.stakeibc.MsgLiquidStake"])

        await standard_handler.send_tokens("a", "b", [Coin("ustrd", "1")], FEE)

        assert signing_wallet.docs[0].extra_type_urls == ("/stride.stakeibc.MsgLiquidStake",)


class TestFamilyHandlers:
    """Tests for EVM-compatible, privacy-chain and Injective handlers."""

    @pytest.mark.asyncio
    async def test_evm_compatible_signs_with_both_ids(self, settings, fake_api, signing_wallet):
        fake_api.post(BROADCAST_URL, _broadcast_ok())
        handler = EvmCompatibleTxHandler(
            REST, signing_wallet, "evmos_9001-2", 9001, settings=settings, transport=fake_api.transport
        )

        await handler.send_tokens("a", "b", [Coin("aevmos", "1")], FEE)

        doc = signing_wallet.docs[0]
        assert doc.chain_id == "evmos_9001-2"
        assert doc.evm_chain_id == 9001

    def test_evm_compatible_needs_evm_id(self, settings, signing_wallet):
        with pytest.raises(HandlerInitError):
            EvmCompatibleTxHandler(REST, signing_wallet, "evmos_9001-2", None, settings=settings)

    @pytest.mark.asyncio
    async def test_privacy_chain_requires_init(self, settings, fake_api, signing_wallet):
        fake_api.post(BROADCAST_URL, _broadcast_ok())
        fake_api.get(NODE_INFO_URL, {"default_node_info": {"network": "arctic-1"}})
        fake_api.get(f"{RPC}/status", {"result": {"node_info": {"network": "arctic-1"}}})
        handler = PrivacyChainTxHandler(REST, RPC, signing_wallet, "arctic-1", settings=settings, transport=fake_api.transport)

        with pytest.raises(HandlerInitError):
            await handler.send_tokens("a", "b", [Coin("usei", "1")], FEE)

        await handler.init_client()
        assert await handler.send_tokens("a", "b", [Coin("usei", "1")], FEE) == "ABC123"

    @pytest.mark.asyncio
    async def test_injective_network_mismatch(self, settings, fake_api, signing_wallet):
        fake_api.get(NODE_INFO_URL, {"default_node_info": {"network": "injective-888"}})
        handler = InjectiveTxHandler(False, signing_wallet, REST, "injective-1", settings=settings, transport=fake_api.transport)

        with pytest.raises(HandlerInitError):
            await handler.init_client()

    @pytest.mark.asyncio
    async def test_injective_registers_key_types(self, settings, fake_api, signing_wallet):
        fake_api.get(NODE_INFO_URL, {"default_node_info": {"network": "injective-1"}})
        handler = InjectiveTxHandler(False, signing_wallet, REST, "injective-1", settings=settings, transport=fake_api.transport)

        await handler.init_client()

        assert handler.is_initialized
        assert InjectiveTxHandler.PUBKEY_TYPE_URL in handler.extra_type_urls


class TestContractClients:
    """Tests for CW20 and SNIP20 clients."""

    @pytest.mark.asyncio
    async def test_cw20_execute(self, settings, fake_api, signing_wallet):
        fake_api.get(f"{RPC}/status", {"result": {}})
        fake_api.get(NODE_INFO_URL, {"default_node_info": {"network": "juno-1"}})
        fake_api.post(BROADCAST_URL, _broadcast_ok("CW20"))
        client = Cw20TxClient(RPC, REST, signing_wallet, "juno-1", settings=settings, transport=fake_api.transport)

        await client.init_client()
        tx_hash = await client.execute(
            "juno1sender", "juno1contract", {"transfer": {"recipient": "juno1to", "amount": "5"}}, FEE
        )

        assert tx_hash == "CW20"
        message = signing_wallet.docs[0].messages[0]
        assert message["@type"] == MSG_EXECUTE_CONTRACT
        assert message["contract"] == "juno1contract"
        assert message["msg"]["transfer"]["amount"] == "5"

    @pytest.mark.asyncio
    async def test_snip20_transfer_uses_code_hash(self, settings, fake_api, signing_wallet):
        contract = "secret1k0jntykt7e4g3y88ltc60czgjuqdy4c9e8fzek"
        code_hash_url = f"{REST}/compute/v1beta1/code_hash/by_contract_address/{contract}"
        fake_api.get(code_hash_url, {"code_hash": "af74387e"})
        fake_api.post(BROADCAST_URL, _broadcast_ok("SNIP"))
        handler = Snip20TxHandler.create(REST, "secret-4", signing_wallet, settings=settings, transport=fake_api.transport)

        await handler.transfer("secret1sender", contract, {"transfer": {"recipient": "secret1to", "amount": "1"}})
        await handler.transfer("secret1sender", contract, {"transfer": {"recipient": "secret1to", "amount": "2"}})

        assert len(fake_api.calls("GET", code_hash_url)) == 1
        doc = signing_wallet.docs[0]
        assert doc.messages[0]["@type"] == MSG_SECRET_EXECUTE_CONTRACT
        assert doc.messages[0]["code_hash"] == "af74387e"
        assert doc.fee.amount == (Coin("uscrt", "37500"),)
        assert doc.fee.gas == "150000"

    @pytest.mark.asyncio
    async def test_snip20_code_hash_failure(self, settings, fake_api, signing_wallet):
        handler = Snip20TxHandler.create(REST, "secret-4", signing_wallet, settings=settings, transport=fake_api.transport)

        with pytest.raises(NetworkError):
            await handler.get_code_hash("secret1missing")


class TestFixedFeeClients:
    """Tests for THORChain and Maya clients."""

    @pytest.mark.asyncio
    async def test_thorchain_send(self, settings, fake_api, signing_wallet):
        fake_api.post(BROADCAST_URL, _broadcast_ok("THOR"))
        client = ThorchainClient(signing_wallet, rest_url=REST, settings=settings, transport=fake_api.transport)

        result = await client.send_tokens(
            "thor1from", "thor1to", FixedFeeAmount(Decimal("1.234567899"), 8, "rune"), 0, "memo"
        )

        assert result.tx_hash == "THOR"
        assert result.base_amount == 123456789
        doc = signing_wallet.docs[0]
        assert doc.chain_id == "thorchain-1"
        assert doc.messages[0]["@type"] == MSG_FIXED_FEE_SEND
        assert doc.messages[0]["amount"] == [{"denom": "rune", "amount": "123456789"}]
        assert doc.fee.gas == "6000000"
        assert doc.fee.amount == ()

    def test_maya_constants(self, settings, signing_wallet):
        client = MayachainClient(signing_wallet, rest_url=REST, settings=settings)

        assert client.chain_id == "mayachain-mainnet-v1"
        assert client.to_base_amount(FixedFeeAmount(Decimal("1"), 10, "cacao")) == 10_000_000_000


class TestEvmSender:
    """Tests for EVM-native sends over JSON-RPC."""

    PRIVATE_KEY = "0x" + "11" * 32

    def _rpc_transport(self, calls: list, gas_price_error: bool = False) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            payload = json.loads(request.content)
            calls.append(payload)
            method = payload["method"]
            if method == "eth_getTransactionCount":
                result = "0x5"
            elif method == "eth_gasPrice":
                if gas_price_error:
                    return httpx.Response(500)
                result = hex(2_000_000_000)
            elif method == "eth_sendRawTransaction":
                result = "0x" + "cd" * 32
            else:
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"message": "unknown"}})
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})

        return httpx.MockTransport(handler)

    @pytest.mark.asyncio
    async def test_send_transaction(self, settings):
        calls: list = []
        wallet = LocalEthWallet(self.PRIVATE_KEY)
        sender = EvmSender("https://evm.example", 713715, settings=settings, transport=self._rpc_transport(calls))

        result = await sender.send_transaction(wallet.address, "0x" + "ab" * 20, "0.5", 21000, wallet)

        assert result.tx_hash == "0x" + "cd" * 32
        assert result.nonce == 5
        assert result.gas_price == 2_000_000_000
        assert result.value_wei == 5 * 10**17
        raw = calls[-1]["params"][0]
        assert calls[-1]["method"] == "eth_sendRawTransaction"
        assert raw.startswith("0x") and len(raw) > 100

    @pytest.mark.asyncio
    async def test_gas_price_fallback(self, settings):
        calls: list = []
        sender = EvmSender(
            "https://evm.example", 713715, settings=settings, transport=self._rpc_transport(calls, gas_price_error=True)
        )

        assert await sender.get_gas_price() == DEFAULT_GAS_PRICE_WEI

    @pytest.mark.asyncio
    async def test_rpc_error(self, settings):
        sender = EvmSender("https://evm.example", 713715, settings=settings, transport=self._rpc_transport([]))

        with pytest.raises(BroadcastError, match="unknown"):
            await sender._rpc("eth_chainId", [])
