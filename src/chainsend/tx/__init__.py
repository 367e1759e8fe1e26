"""Transaction clients for sending tokens.

This module handles building, signing, broadcasting and polling transactions
for every supported chain family.
"""

from chainsend.tx.base import TxHandler, TxOutcome
from chainsend.tx.factory import TxHandlerFactory, get_handler_factory, reset_handler_factory

__all__ = [
    "TxHandler",
    "TxOutcome",
    "TxHandlerFactory",
    "get_handler_factory",
    "reset_handler_factory",
]
