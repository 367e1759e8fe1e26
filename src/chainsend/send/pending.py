"""Completion handles for broadcast transactions.

A handle wraps the confirmation poll of one transaction in an asyncio Task
that runs to completion on its own, whether or not anyone awaits it. Its
state moves from PENDING to SUCCEEDED or FAILED exactly once.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from chainsend.tx.base import TxOutcome

logger = logging.getLogger(__name__)


class CompletionState(str, Enum):
    PENDING = "loading"
    SUCCEEDED = "success"
    FAILED = "failed"


class CompletionHandle:
    """Tracks the on-chain outcome of one transaction."""

    def __init__(self, confirmation: Optional[Awaitable[TxOutcome]] = None, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        self._state = CompletionState.PENDING
        self._outcome: Optional[TxOutcome] = None
        self._error: Optional[BaseException] = None
        self._callbacks: list[Callable[["CompletionHandle"], None]] = []
        self._task: Optional[asyncio.Task] = None

        if confirmation is not None:
            self._task = asyncio.ensure_future(self._run(confirmation))

    @classmethod
    def resolved(cls, outcome: TxOutcome) -> "CompletionHandle":
        """Handle for a transaction whose outcome is already known."""
        handle = cls(tx_hash=outcome.tx_hash)
        handle._settle(outcome=outcome)
        return handle

    @property
    def state(self) -> CompletionState:
        return self._state

    @property
    def done(self) -> bool:
        return self._state != CompletionState.PENDING

    @property
    def outcome(self) -> Optional[TxOutcome]:
        return self._outcome

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    async def _run(self, confirmation: Awaitable[TxOutcome]) -> None:
        try:
            outcome = await confirmation
        except asyncio.CancelledError:
            self._settle(error=asyncio.CancelledError("Confirmation cancelled"))
            raise
        except Exception as e:
            logger.warning(f"Confirmation of {self.tx_hash} failed: {e}")
            self._settle(error=e)
        else:
            self._settle(outcome=outcome)

    def _settle(self, outcome: Optional[TxOutcome] = None, error: Optional[BaseException] = None) -> None:
        if self.done:
            return

        self._outcome = outcome
        self._error = error
        if error is None and outcome is not None and outcome.succeeded:
            self._state = CompletionState.SUCCEEDED
        else:
            self._state = CompletionState.FAILED
        if outcome is not None and not self.tx_hash:
            self.tx_hash = outcome.tx_hash

        for callback in self._callbacks:
            try:
                callback(self)
            except Exception as e:
                logger.error(f"Completion callback failed for {self.tx_hash}: {e}")

    def add_done_callback(self, callback: Callable[["CompletionHandle"], None]) -> None:
        """Call `callback(handle)` once settled (immediately if already settled)."""
        if self.done:
            callback(self)
        else:
            self._callbacks.append(callback)

    async def wait(self) -> TxOutcome:
        """Wait for the outcome.

        Returns:
            The on-chain outcome (check `succeeded` for the result code)

        Raises:
            The confirmation error, if polling itself failed
        """
        if self._task is not None and not self._task.done():
            # Waiters do not cancel the poll when they are cancelled
            await asyncio.shield(self._task)

        if self._error is not None:
            raise self._error
        assert self._outcome is not None
        return self._outcome

    def __await__(self):
        return self.wait().__await__()

    def __repr__(self) -> str:
        return f"CompletionHandle(tx_hash={self.tx_hash}, state={self._state.value})"
