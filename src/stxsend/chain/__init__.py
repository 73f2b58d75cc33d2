"""Chain and account state readers."""

from stxsend.chain.base import ChainStateReader, SimulatedChainReader
from stxsend.chain.blockstack import BlockstackChainReader
from stxsend.chain.fees import FeeEstimator

__all__ = ["ChainStateReader", "SimulatedChainReader", "BlockstackChainReader", "FeeEstimator"]
