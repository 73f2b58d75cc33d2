"""Token transfer pipeline: validation, assembly and broadcast."""

from stxsend.transfer.assembler import TransactionAssembler
from stxsend.transfer.broadcaster import Broadcaster, parse_broadcast_response
from stxsend.transfer.pipeline import TransferPipeline
from stxsend.transfer.validator import TransferValidator, check_gates

__all__ = [
    "TransactionAssembler",
    "Broadcaster",
    "parse_broadcast_response",
    "TransferPipeline",
    "TransferValidator",
    "check_gates",
]
