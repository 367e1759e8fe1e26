"""Activity metadata for sent transactions."""

from chainsend.wallet import Coin


def get_metadata_for_send_tx(to_address: str, token: Coin) -> dict:
    return {
        "token": token.to_dict(),
        "toAddress": to_address,
    }


def get_metadata_for_ibc_tx(source_channel: str, to_address: str, token: Coin) -> dict:
    metadata = get_metadata_for_send_tx(to_address, token)
    metadata["sourceChannel"] = source_channel
    return metadata
