"""Send orchestration.

Send flow:
1. Validate the request (token, recipient, active wallet, supported token)
2. Acquire the signing wallet (hardware wallets raise the device prompt)
3. Pick the token path: CW20 contract, SNIP20 contract, fixed-fee chain, or
   standard bank/IBC send
4. Build the handler, broadcast, and wrap confirmation in a CompletionHandle
5. Normalize the outcome into a SendSuccess or SendFailure

Every error raised inside an attempt becomes a SendFailure, except
WalletAlreadyPresentError which is re-raised for the caller.
"""

import logging
import time
from dataclasses import replace
from decimal import Decimal
from typing import Any, Optional

from chainsend import messages
from chainsend.address import AddressClassifier, decode_bech32, is_evm_address, slice_address, to_bech32
from chainsend.chains import ChainFamily, ChainMetadata, ChainRegistry
from chainsend.config import Settings, get_settings
from chainsend.errors import (
    ChannelUnavailableError,
    DecodeError,
    SendError,
    UnsupportedChainError,
    ValidationError,
    WalletAlreadyPresentError,
    error_message,
    is_declined_error,
)
from chainsend.ibc.channels import ChannelResolver
from chainsend.send.metadata import get_metadata_for_ibc_tx, get_metadata_for_send_tx
from chainsend.send.models import (
    CosmosTxType,
    OnChainMetadata,
    PendingTransactionRecord,
    SendFailure,
    SendRequest,
    SendResult,
    SendState,
    SendSuccess,
)
from chainsend.send.pending import CompletionHandle
from chainsend.tokens import SelectedToken, TokenDescriptor, floor_base_units, format_amount, round_base_units
from chainsend.tx.base import TxOutcome
from chainsend.tx.contracts import Cw20TxClient, Snip20TxHandler
from chainsend.tx.evm import EthWallet, EvmSender
from chainsend.tx.factory import TxHandlerFactory
from chainsend.tx.fixed_fee import FixedFeeAmount
from chainsend.tx.messages import TRANSFER_PORT
from chainsend.wallet import ActiveWallet, Coin, WalletProvider

logger = logging.getLogger(__name__)

PRIVACY_TOKEN_PREFIX = "secret"


class SendOrchestrator:
    """Routes send requests from the active chain to the right transaction path.

    One attempt at a time: `is_sending` is exposed for callers to disable
    their send button, requests are not queued.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        active_chain: str,
        wallet_provider: WalletProvider,
        active_wallet: Optional[ActiveWallet] = None,
        factory: Optional[TxHandlerFactory] = None,
        channel_resolver: Optional[ChannelResolver] = None,
        settings: Optional[Settings] = None,
    ):
        self.registry = registry
        self.active_chain = active_chain
        self.wallet_provider = wallet_provider
        self.active_wallet = active_wallet
        self.settings = settings or get_settings()
        self.factory = factory or TxHandlerFactory(registry, self.settings)
        self.channel_resolver = channel_resolver or ChannelResolver(registry, self.settings)
        self.classifier = AddressClassifier(registry)

        self.is_sending = False
        self.show_hardware_popup = False
        self.state = SendState.IDLE

    @property
    def chain(self) -> ChainMetadata:
        chain = self.registry.get_chain(self.active_chain)
        if chain is None:
            raise UnsupportedChainError(f"Chain {self.active_chain} is not supported")
        return chain

    def _set_state(self, state: SendState) -> None:
        logger.debug(f"Send state {self.state.value} -> {state.value}")
        self.state = state

    def _message(self, key: str) -> str:
        return messages.translate(key, self.settings.locale)

    def _fail(self, *errors: str) -> SendFailure:
        self._set_state(SendState.FAILED)
        return SendFailure(tuple(errors))

    def _failure_from(self, exc: Exception) -> SendFailure:
        """Convert an exception raised during an attempt into a SendFailure."""
        if is_declined_error(exc):
            errors = [self._message(messages.TX_DECLINED_BY_USER)]
        elif isinstance(exc, SendError):
            errors = exc.user_messages()
        else:
            errors = [error_message(exc)]
        return self._fail(*errors)

    # ======================
    # Entry points
    # ======================

    async def send_tokens(self, request: SendRequest) -> SendResult:
        """Send tokens from the active wallet on the active chain.

        Returns:
            SendSuccess with a pending record, or SendFailure with messages

        Raises:
            WalletAlreadyPresentError: Passed through from the wallet provider
        """
        self.is_sending = True
        self._set_state(SendState.VALIDATING)
        try:
            try:
                self._validate(request)
                chain = self.chain
            except SendError as e:
                logger.info(f"Send on {self.active_chain} rejected: {e}")
                return self._failure_from(e)

            token = self._resolve_token(request.selected_token)
            if token is None:
                return self._fail(self._message(messages.TOKEN_NOT_SUPPORTED))

            from_address = self.active_wallet.address_for(self.active_chain)
            if not from_address:
                logger.warning(f"Wallet {self.active_wallet.id} has no address on {self.active_chain}")
                return self._fail(self._message(messages.NO_ACTIVE_WALLET))

            if self.active_wallet.is_hardware:
                self.show_hardware_popup = True

            try:
                wallet = await self.wallet_provider.get_wallet()
            except WalletAlreadyPresentError:
                raise
            except Exception as e:
                logger.error(f"Failed to acquire wallet for {self.active_chain}: {e}")
                return self._failure_from(e)

            to_address = request.to_address.strip()
            denom = token.coin_minimal_denom

            if self.registry.is_contract_token(self.active_chain, denom):
                result = await self._send_cw20(request, token, wallet, from_address, to_address)
            elif self._is_privacy_token(denom):
                result = await self._send_snip20(request, token, wallet, from_address, to_address)
            elif chain.family == ChainFamily.FIXED_FEE:
                result = await self._send_fixed_fee(request, token, wallet, from_address, to_address)
            else:
                result = await self._send_standard(request, token, wallet, from_address, to_address)

            self._set_state(SendState.SUCCESS if result.success else SendState.FAILED)
            return result
        finally:
            self.show_hardware_popup = False
            self.is_sending = False

    async def send_token_eth(
        self,
        from_address: str,
        to_address: str,
        value: str,
        gas: int,
        wallet: EthWallet,
        gas_price: Optional[int] = None,
        sender: Optional[EvmSender] = None,
    ) -> SendResult:
        """Send the native token between 0x addresses of the active chain.

        Args:
            value: Amount in whole tokens (e.g. "0.5")
            gas: Gas limit
            wallet: EVM signing wallet
            gas_price: Gas price in wei (queried if omitted)
            sender: Use this JSON-RPC sender instead of building one
        """
        self.is_sending = True
        self._set_state(SendState.BROADCASTING)
        try:
            chain = self.chain
            evm_sender = sender or self.factory.create_evm_sender(self.active_chain)
            result = await evm_sender.send_transaction(
                from_address, to_address, value, gas, wallet, gas_price=gas_price
            )
        except Exception as e:
            logger.error(f"EVM send on {self.active_chain} failed: {e}")
            return self._fail(error_message(e))
        finally:
            self.is_sending = False

        token = self.registry.get_denom(chain.native_denom) or chain.native_denoms.get(chain.native_denom)
        if token is None:
            token = TokenDescriptor(coin_minimal_denom=chain.native_denom, coin_denom=chain.native_denom)

        pending = PendingTransactionRecord(
            tx_hash=result.tx_hash,
            img=chain.chain_symbol_image_url,
            sent_amount=str(value),
            sent_token=token,
            title=f"Sent {token.coin_denom}",
            subtitle=f"to {slice_address(to_address)}",
            tx_type=CosmosTxType.SEND,
            completion=CompletionHandle.resolved(TxOutcome(tx_hash=result.tx_hash)),
        )
        self._set_state(SendState.SUCCESS)
        return SendSuccess(
            pending=pending,
            data=OnChainMetadata(tx_hash=result.tx_hash, tx_type=CosmosTxType.SEND, metadata={}),
        )

    # ======================
    # Validation
    # ======================

    def _validate(self, request: SendRequest) -> None:
        """Validation gate.

        Raises:
            ValidationError: With the message of the first failed check
        """
        if request.selected_token is None:
            raise ValidationError(self._message(messages.NO_TOKEN_SELECTED))

        if not (request.to_address or "").strip():
            raise ValidationError(self._message(messages.NO_RECIPIENT))

        if not self.classifier.is_valid(request.to_address):
            raise ValidationError(self._message(messages.INVALID_RECIPIENT))

        if self.active_wallet is None:
            raise ValidationError(self._message(messages.NO_ACTIVE_WALLET))

    def _resolve_token(self, selected: SelectedToken) -> Optional[TokenDescriptor]:
        """Registry data for the selected token, with the caller's display names."""
        denom = selected.coin_minimal_denom
        descriptor = (
            self.registry.get_denom(denom)
            or self.registry.contract_tokens.get(self.active_chain, {}).get(denom)
            or self.registry.find_native_denom(self.active_chain, denom)
        )
        if descriptor is None:
            logger.info(f"Token {denom} is not supported on {self.active_chain}")
            return None

        descriptor = descriptor.with_display(selected.symbol, selected.name)
        if selected.ibc_denom:
            descriptor = replace(descriptor, ibc_denom=selected.ibc_denom)
        return descriptor

    @staticmethod
    def _is_privacy_token(denom: str) -> bool:
        try:
            prefix, _ = decode_bech32(denom)
        except DecodeError:
            return False
        return prefix == PRIVACY_TOKEN_PREFIX

    def _pending_record(
        self,
        tx_hash: str,
        request: SendRequest,
        token: TokenDescriptor,
        to_address: str,
        tx_type: CosmosTxType,
        completion: CompletionHandle,
    ) -> PendingTransactionRecord:
        return PendingTransactionRecord(
            tx_hash=tx_hash,
            img=self.chain.chain_symbol_image_url,
            sent_amount=format_amount(request.amount),
            sent_token=token,
            title=f"Sent {token.coin_denom}",
            subtitle=f"to {slice_address(to_address)}",
            tx_type=tx_type,
            completion=completion,
            fee_denomination=request.fee.denomination,
            fee_quantity=request.fee.quantity,
        )

    # ======================
    # Token paths
    # ======================

    async def _send_cw20(
        self, request: SendRequest, token: TokenDescriptor, wallet: Any, from_address: str, to_address: str
    ) -> SendResult:
        """CW20 transfer through MsgExecuteContract."""
        self._set_state(SendState.CW20)
        try:
            client = request.tx_handler
            if not isinstance(client, Cw20TxClient):
                client = await self.factory.create_cw20_client(self.active_chain, wallet)

            base_amount = floor_base_units(request.amount, token.decimals)
            self._set_state(SendState.BROADCASTING)
            tx_hash = await client.execute(
                from_address,
                token.coin_minimal_denom,
                {"transfer": {"recipient": to_address, "amount": str(base_amount)}},
                request.fee,
                request.memo,
            )
        except WalletAlreadyPresentError:
            raise
        except Exception as e:
            logger.error(f"CW20 transfer of {token.coin_minimal_denom} failed: {e}")
            return self._failure_from(e)

        completion = CompletionHandle(client.poll_for_tx(tx_hash), tx_hash)
        return SendSuccess(
            pending=self._pending_record(
                tx_hash, request, token, to_address, CosmosTxType.CW20_TRANSFER, completion
            ),
            data=OnChainMetadata(
                tx_hash=tx_hash,
                tx_type=CosmosTxType.CW20_TRANSFER,
                metadata=get_metadata_for_send_tx(
                    to_address, Coin(token.coin_minimal_denom, str(base_amount))
                ),
                fee_denomination=request.fee.denomination,
                fee_quantity=request.fee.quantity,
            ),
        )

    async def _send_snip20(
        self, request: SendRequest, token: TokenDescriptor, wallet: Any, from_address: str, to_address: str
    ) -> SendResult:
        """SNIP20 transfer; the amount is rounded half-up to the token precision."""
        self._set_state(SendState.SNIP20)
        try:
            handler = request.tx_handler
            if not isinstance(handler, Snip20TxHandler):
                handler = self.factory.create_snip20_handler(self.active_chain, wallet)

            base_amount = round_base_units(request.amount, token.decimals)
            self._set_state(SendState.BROADCASTING)
            tx_hash = await handler.transfer(
                from_address,
                token.coin_minimal_denom,
                {"transfer": {"recipient": to_address, "amount": str(base_amount)}},
            )
        except WalletAlreadyPresentError:
            raise
        except Exception as e:
            logger.error(f"SNIP20 transfer of {token.coin_minimal_denom} failed: {e}")
            return self._failure_from(e)

        completion = CompletionHandle(handler.poll_for_tx(tx_hash), tx_hash)
        return SendSuccess(
            pending=self._pending_record(
                tx_hash, request, token, to_address, CosmosTxType.SECRET_TRANSFER, completion
            ),
            data=OnChainMetadata(
                tx_hash=tx_hash,
                tx_type=CosmosTxType.SECRET_TRANSFER,
                metadata=get_metadata_for_send_tx(
                    to_address, Coin(token.coin_minimal_denom, str(base_amount))
                ),
            ),
        )

    async def _send_fixed_fee(
        self, request: SendRequest, token: TokenDescriptor, wallet: Any, from_address: str, to_address: str
    ) -> SendResult:
        """Native send on a fixed-fee chain. Never touches IBC."""
        self._set_state(SendState.FIXED_FEE)
        try:
            client = self.factory.create_fixed_fee_client(self.active_chain, wallet)
            self._set_state(SendState.BROADCASTING)
            sent = await client.send_tokens(
                from_address,
                to_address,
                FixedFeeAmount(
                    amount=Decimal(request.amount),
                    decimals=token.decimals,
                    denom=token.coin_minimal_denom,
                ),
                0,
                request.memo,
            )
        except WalletAlreadyPresentError:
            raise
        except Exception as e:
            logger.error(f"Send on {self.active_chain} failed: {e}")
            return self._fail(self._message(messages.SEND_FAILED), error_message(e))

        # The protocol fee is fixed; the send is final once broadcast succeeds
        completion = CompletionHandle.resolved(TxOutcome(tx_hash=sent.tx_hash, code=0))
        return SendSuccess(
            pending=self._pending_record(
                sent.tx_hash, request, token, to_address, CosmosTxType.SEND, completion
            ),
            data=OnChainMetadata(
                tx_hash=sent.tx_hash,
                tx_type=CosmosTxType.SEND,
                metadata=get_metadata_for_send_tx(
                    to_address, Coin(token.coin_minimal_denom, str(sent.base_amount))
                ),
                fee_denomination=request.fee.denomination,
                fee_quantity=request.fee.quantity,
            ),
        )

    async def _send_standard(
        self, request: SendRequest, token: TokenDescriptor, wallet: Any, from_address: str, to_address: str
    ) -> SendResult:
        """Bank send, or ICS-20 transfer when the recipient is on another chain."""
        self._set_state(SendState.STANDARD)
        invalid_recipient = self._message(messages.INVALID_RECIPIENT)

        try:
            source_prefix = self.classifier.decode_prefix(from_address)
            if is_evm_address(to_address):
                if not self.chain.supports_evm_addresses:
                    return self._fail(invalid_recipient)
                to_address = to_bech32(source_prefix, to_address)
            destination_prefix = self.classifier.decode_prefix(to_address)
        except DecodeError as e:
            logger.info(f"Undecodable address in send from {from_address}: {e}")
            return self._fail(invalid_recipient)

        source_key = self.registry.chain_for_prefix(source_prefix)
        destination_key = self.registry.chain_for_prefix(destination_prefix)
        if not source_key or not destination_key:
            return self._fail(invalid_recipient)

        source = self.registry.get_chain(source_key)
        destination = self.registry.get_chain(destination_key)
        is_ibc = source_prefix != destination_prefix

        base_amount = floor_base_units(request.amount, token.decimals)
        amount = Coin(token.message_denom, str(base_amount))
        sent_coin = Coin(token.coin_minimal_denom, str(base_amount))

        try:
            channel_id = None
            if is_ibc:
                channel_id = request.channel_id or await self.channel_resolver.resolve_channel(
                    source.chain_registry_path, destination.chain_registry_path
                )
                if not channel_id:
                    raise ChannelUnavailableError(source.chain_name, destination.chain_name)

                validation = await self.channel_resolver.validate_channel(
                    channel_id, source_key, destination_key
                )
                if not validation.success:
                    raise ChannelUnavailableError(
                        source.chain_name, destination.chain_name, validation.message
                    )

            handler = request.tx_handler or await self.factory.create(self.active_chain, wallet)

            self._set_state(SendState.BROADCASTING)
            if is_ibc:
                timeout_timestamp = int(time.time()) + self.settings.ibc_timeout_seconds
                tx_hash = await handler.send_ibc_tokens(
                    from_address,
                    to_address,
                    amount,
                    TRANSFER_PORT,
                    channel_id,
                    None,
                    timeout_timestamp,
                    request.fee,
                    request.memo,
                )
                tx_type = CosmosTxType.IBC_TRANSFER
                metadata = get_metadata_for_ibc_tx(channel_id, to_address, sent_coin)
            else:
                tx_hash = await handler.send_tokens(
                    from_address, to_address, [amount], request.fee, request.memo
                )
                tx_type = CosmosTxType.SEND
                metadata = get_metadata_for_send_tx(to_address, sent_coin)
        except WalletAlreadyPresentError:
            raise
        except Exception as e:
            logger.error(f"Send from {source_key} to {destination_key} failed: {e}")
            return self._failure_from(e)

        completion = CompletionHandle(handler.poll_for_tx(tx_hash), tx_hash)
        return SendSuccess(
            pending=self._pending_record(tx_hash, request, token, to_address, tx_type, completion),
            data=OnChainMetadata(
                tx_hash=tx_hash,
                tx_type=tx_type,
                metadata=metadata,
                fee_denomination=request.fee.denomination,
                fee_quantity=request.fee.quantity,
            ),
        )
