"""Multi-chain token send routing.

Routes "send value from A to B" across Cosmos SDK, Ethermint, fixed-fee and
custom-client chains, returning a uniform SendResult.
"""

__version__ = "0.1.0"
