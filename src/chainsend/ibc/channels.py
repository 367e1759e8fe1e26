"""IBC transfer channel lookup and validation.

Channels come from the public IBC registry (cosmos/chain-registry `_IBC`
folder), one JSON file per chain pair named after both registry paths in
alphabetical order. Before a transfer, the channel is checked against the
source chain's own REST API.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from chainsend import messages
from chainsend.chains import ChainRegistry
from chainsend.config import Settings, get_settings
from chainsend.tx.messages import TRANSFER_PORT

logger = logging.getLogger(__name__)

STATE_OPEN = "STATE_OPEN"
STATUS_LIVE = "live"


@dataclass(frozen=True)
class ChannelValidation:
    """Outcome of an on-chain channel check."""
    success: bool
    message: str = ""


def ibc_registry_file(source_path: str, destination_path: str) -> tuple[str, bool]:
    """Name of the registry file for a chain pair.

    Returns:
        (file name, whether the source chain is `chain_1` in that file)
    """
    first, second = sorted([source_path, destination_path])
    return f"{first}-{second}.json", first == source_path


def _pick_channel(channels: list[dict], side: str) -> Optional[str]:
    """Pick the source-side channel id: live + preferred first, then any live one."""
    live: list[str] = []
    for entry in channels:
        ends = entry.get(side) or {}
        channel_id = ends.get("channel_id")
        if not channel_id or ends.get("port_id", TRANSFER_PORT) != TRANSFER_PORT:
            continue

        tags = entry.get("tags") or {}
        if tags.get("status") != STATUS_LIVE:
            continue

        if tags.get("preferred"):
            return channel_id
        live.append(channel_id)

    return live[0] if live else None


class ChannelResolver:
    """Resolves and validates IBC transfer channels."""

    def __init__(
        self,
        registry: ChainRegistry,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self._transport)

    async def resolve_channel(self, source_path: str, destination_path: str) -> Optional[str]:
        """Find the transfer channel on the source chain towards the destination.

        Args:
            source_path: Chain registry path of the source chain
            destination_path: Chain registry path of the destination chain

        Returns:
            Source-side channel id (e.g. "channel-141"), or None if none found
        """
        file_name, source_is_first = ibc_registry_file(source_path, destination_path)
        url = f"{self.settings.ibc_registry_url.rstrip('/')}/{file_name}"

        try:
            async with self._client() as client:
                response = await client.get(url)

                if response.status_code != 200:
                    logger.warning(f"IBC registry returned {response.status_code} for {file_name}")
                    return None

                data = response.json()
        except Exception as e:
            logger.error(f"Failed to fetch IBC channels {source_path} -> {destination_path}: {e}")
            return None

        side = "chain_1" if source_is_first else "chain_2"
        channel_id = _pick_channel(data.get("channels") or [], side)
        if channel_id is None:
            logger.info(f"No live transfer channel between {source_path} and {destination_path}")
        return channel_id

    async def validate_channel(
        self, channel_id: str, source_chain_key: str, destination_chain_key: str
    ) -> ChannelValidation:
        """Check a channel on the source chain before using it.

        The channel must be open on the transfer port and its light client
        must track the destination chain id. Never raises.
        """
        source = self.registry.get_chain(source_chain_key)
        destination = self.registry.get_chain(destination_chain_key)
        if not source or not destination:
            return ChannelValidation(
                False, messages.translate(messages.DESTINATION_NOT_SUPPORTED, self.settings.locale)
            )

        testnet = self.settings.is_testnet
        rest_url = source.get_rest_url(testnet)
        if not rest_url:
            return ChannelValidation(False, f"No REST endpoint configured for {source.chain_name}")

        base = f"{rest_url.rstrip('/')}/ibc/core/channel/v1/channels/{channel_id}/ports/{TRANSFER_PORT}"

        try:
            async with self._client() as client:
                response = await client.get(base)
                if response.status_code != 200:
                    return ChannelValidation(False, f"IBC channel {channel_id} not found on {source.chain_name}")

                state = (response.json().get("channel") or {}).get("state")
                if state != STATE_OPEN:
                    return ChannelValidation(False, f"IBC channel {channel_id} is not open")

                response = await client.get(f"{base}/client_state")
                if response.status_code != 200:
                    return ChannelValidation(False, f"Unable to verify IBC channel {channel_id}")

                client_state = (
                    (response.json().get("identified_client_state") or {}).get("client_state") or {}
                )
        except Exception as e:
            logger.error(f"Failed to validate IBC channel {channel_id} on {source.key}: {e}")
            return ChannelValidation(False, f"Unable to verify IBC channel {channel_id}")

        expected_chain_id = destination.get_chain_id(testnet)
        if client_state.get("chain_id") != expected_chain_id:
            logger.warning(
                f"Channel {channel_id} on {source.key} tracks {client_state.get('chain_id')}, "
                f"expected {expected_chain_id}"
            )
            return ChannelValidation(
                False,
                f"IBC channel {channel_id} does not connect {source.chain_name} to {destination.chain_name}",
            )

        return ChannelValidation(True)
