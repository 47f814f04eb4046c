"""
Bridge Relayer package.

Multi-signs and submits wrapped token mints on an EVM destination chain for
transfers observed on the source chain.
"""

from .config import RelayerConfig
from .models import RelayRecord, TransferIntent, UnsignedTransaction
from .relay_processor import RelayProcessor
from .relayer import Relayer

__all__ = [
    "RelayerConfig",
    "Relayer",
    "RelayProcessor",
    "RelayRecord",
    "TransferIntent",
    "UnsignedTransaction",
]
__version__ = "0.1.0"
