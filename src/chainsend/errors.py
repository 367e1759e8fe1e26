"""Exception hierarchy for the send pipeline.

Every error raised inside a send attempt derives from SendError and is turned
into a SendFailure at the orchestrator boundary. The only error that is
allowed to escape is WalletAlreadyPresentError.
"""

from typing import Optional

# Longest error text shown to a user; longer messages are cut.
MAX_ERROR_MESSAGE_LENGTH = 200

# Exact message wallets use when the user (or a hardware device) rejects signing.
TRANSACTION_DECLINED_ERROR = "Transaction declined"


def truncate_message(message: Optional[str], limit: int = MAX_ERROR_MESSAGE_LENGTH) -> str:
    """Cut a message to the display limit."""
    return (message or "").strip()[:limit]


def error_message(exc: BaseException) -> str:
    """Return a non-empty, display-safe message for an exception."""
    message = truncate_message(str(exc))
    return message or exc.__class__.__name__


def is_declined_error(exc: BaseException) -> bool:
    """Check whether an exception means the signer declined the transaction."""
    if isinstance(exc, SignerDeclinedError):
        return True
    return str(exc).strip() == TRANSACTION_DECLINED_ERROR


class SendError(Exception):
    """Base exception for send failures."""

    def user_messages(self) -> list[str]:
        """Messages shown to the user, most specific first."""
        return [error_message(self)]


class ValidationError(SendError):
    """Missing or malformed input (token, address, wallet)."""


class UnsupportedChainError(SendError):
    """Destination chain or token is not recognized."""


class ChannelUnavailableError(SendError):
    """No usable IBC channel between two chains.

    The message always names both chains; `detail` carries the reason a
    specific channel was rejected.
    """

    def __init__(self, source_chain: str, destination_chain: str, detail: Optional[str] = None):
        self.source_chain = source_chain
        self.destination_chain = destination_chain
        self.detail = detail
        super().__init__(f"No active IBC channels from {source_chain} to {destination_chain}")

    def user_messages(self) -> list[str]:
        errors = [error_message(self)]
        if self.detail:
            errors.append(truncate_message(self.detail))
        return errors


class SignerDeclinedError(SendError):
    """The user or hardware device rejected the signing request."""

    def __init__(self, message: str = TRANSACTION_DECLINED_ERROR):
        super().__init__(message)


class NetworkError(SendError):
    """Broadcast or polling failed."""


class BroadcastError(NetworkError):
    """The node rejected a transaction at broadcast time."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class TxTimeoutError(NetworkError):
    """A transaction was not found on-chain before the polling deadline."""


class HandlerInitError(SendError):
    """A transaction client could not be constructed for a chain."""


class DecodeError(ValueError):
    """An address string is not valid bech32."""


class WalletAlreadyPresentError(Exception):
    """Raised by wallet providers when importing a wallet that already exists.

    Never converted into a SendFailure: callers rely on seeing it.
    """

    MESSAGE = "Wallet already present"

    def __init__(self, message: str = MESSAGE):
        super().__init__(message)
