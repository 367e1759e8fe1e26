"""IBC channel resolution."""

from chainsend.ibc.channels import ChannelResolver, ChannelValidation

__all__ = [
    "ChannelResolver",
    "ChannelValidation",
]
