"""Send orchestration: validation, token-path selection and result normalization."""

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
from chainsend.send.orchestrator import SendOrchestrator
from chainsend.send.pending import CompletionHandle, CompletionState

__all__ = [
    "CompletionHandle",
    "CompletionState",
    "CosmosTxType",
    "OnChainMetadata",
    "PendingTransactionRecord",
    "SendFailure",
    "SendOrchestrator",
    "SendRequest",
    "SendResult",
    "SendState",
    "SendSuccess",
]
