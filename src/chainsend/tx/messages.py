"""Cosmos SDK message builders (JSON form, keyed by type URL)."""

from typing import Optional, Sequence

from chainsend.wallet import Coin

MSG_SEND = "/cosmos.bank.v1beta1.MsgSend"
MSG_TRANSFER = "/ibc.applications.transfer.v1.MsgTransfer"
MSG_EXECUTE_CONTRACT = "/cosmwasm.wasm.v1.MsgExecuteContract"
MSG_SECRET_EXECUTE_CONTRACT = "/secret.compute.v1beta1.MsgExecuteContract"
MSG_FIXED_FEE_SEND = "/types.MsgSend"

TRANSFER_PORT = "transfer"

NANOS_PER_SECOND = 1_000_000_000


def msg_send(from_address: str, to_address: str, amount: Sequence[Coin], type_url: str = MSG_SEND) -> dict:
    return {
        "@type": type_url,
        "from_address": from_address,
        "to_address": to_address,
        "amount": [c.to_dict() for c in amount],
    }


def msg_transfer(
    sender: str,
    receiver: str,
    token: Coin,
    source_channel: str,
    timeout_timestamp: int,
    source_port: str = TRANSFER_PORT,
    timeout_height: Optional[dict] = None,
    memo: str = "",
) -> dict:
    """Build an ICS-20 MsgTransfer.

    Args:
        timeout_timestamp: Unix time in seconds; encoded as nanoseconds
        timeout_height: {"revision_number", "revision_height"}; zero disables it
    """
    return {
        "@type": MSG_TRANSFER,
        "source_port": source_port,
        "source_channel": source_channel,
        "token": token.to_dict(),
        "sender": sender,
        "receiver": receiver,
        "timeout_height": timeout_height or {"revision_number": "0", "revision_height": "0"},
        "timeout_timestamp": str(timeout_timestamp * NANOS_PER_SECOND),
        "memo": memo,
    }


def msg_execute_contract(sender: str, contract: str, msg: dict, funds: Sequence[Coin] = ()) -> dict:
    return {
        "@type": MSG_EXECUTE_CONTRACT,
        "sender": sender,
        "contract": contract,
        "msg": msg,
        "funds": [c.to_dict() for c in funds],
    }


def msg_secret_execute_contract(sender: str, contract: str, msg: dict, code_hash: str) -> dict:
    """Secret compute message; the wallet encrypts `msg` with the contract's code hash."""
    return {
        "@type": MSG_SECRET_EXECUTE_CONTRACT,
        "sender": sender,
        "contract": contract,
        "msg": msg,
        "code_hash": code_hash,
        "sent_funds": [],
    }
