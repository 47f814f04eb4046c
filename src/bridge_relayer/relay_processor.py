"""
Sequenced relay processing.

This module serializes nonce acquisition, building and broadcasting for the
relaying identity, so no two in-flight relays ever share a nonce. It also
suppresses duplicate deliveries of the same source transaction.
"""

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Mapping
from typing import Any, Optional

from .models import RelayRecord, TransferIntent
from .relayer import Relayer

logger = logging.getLogger(__name__)


class RelayProcessor:
    """Single writer in front of a Relayer."""

    MAX_PROCESSED_HASHES: int = 10_000

    def __init__(self, relayer: Relayer) -> None:
        """Initialize the relay processor.

        Args:
            relayer: Relayer used to build, escalate and broadcast
        """
        self.relayer = relayer

        # Held across nonce read, build and broadcast
        self._lock = asyncio.Lock()

        # OrderedDict provides O(1) lookups and insertion order for LRU eviction
        self.processed_tx_hashes: OrderedDict[str, None] = OrderedDict()

        self.relayed_count = 0
        self.failed_count = 0
        self.escalated_count = 0

    @staticmethod
    def _source_key(tx_hash: str) -> str:
        return tx_hash.lower().removeprefix("0x")

    def is_processed(self, tx_hash: str) -> bool:
        return self._source_key(tx_hash) in self.processed_tx_hashes

    def _track_processed_hash(self, tx_hash: str) -> None:
        """
        Track a relayed source transaction hash with LRU eviction.

        Args:
            tx_hash: Source transaction hash
        """
        key = self._source_key(tx_hash)
        if key in self.processed_tx_hashes:
            self.processed_tx_hashes.move_to_end(key)
        else:
            if len(self.processed_tx_hashes) >= self.MAX_PROCESSED_HASHES:
                self.processed_tx_hashes.popitem(last=False)

            self.processed_tx_hashes[key] = None

    async def process(
        self, intent: TransferIntent, minter_nonce: Optional[int] = None
    ) -> Optional[RelayRecord]:
        """
        Relay a transfer intent.

        Args:
            intent: Transfer to relay
            minter_nonce: Minter nonce for the signed authorization, required
                when the intent carries a minter address

        Returns:
            The broadcast RelayRecord, or None if the source tx was already relayed

        Raises:
            ValueError: If a minter intent comes without a minter nonce
            RelayerError: Build or broadcast failures; the intent is left unprocessed
        """
        if intent.minter_addr and minter_nonce is None:
            self.failed_count += 1
            raise ValueError(f"Minter nonce is required for minter mint of source tx {intent.tx_hash}")

        async with self._lock:
            if self.is_processed(intent.tx_hash):
                logger.info(f"Skipping already relayed source tx {intent.tx_hash}")
                return None

            try:
                nonce = await self.relayer.load_nonce()
                gas_price = await self.relayer.get_gas_price()
                record = await self.relayer.build(intent, nonce, minter_nonce or 0, gas_price)
                await self.relayer.relay(record)
            except Exception as e:
                self.failed_count += 1
                logger.error(f"Failed to relay source tx {intent.tx_hash}: {e}")
                raise

            self._track_processed_hash(intent.tx_hash)
            self.relayed_count += 1
            return record

    async def process_monitoring_data(self, data: Mapping[str, Any]) -> Optional[RelayRecord]:
        """Relay a raw monitoring record; minter records must carry 'minterNonce'."""
        intent = TransferIntent.from_monitoring_data(data)
        minter_nonce = data.get("minterNonce")
        return await self.process(intent, None if minter_nonce is None else int(minter_nonce))

    async def transfer_ownership(self, minter_addr: str, token_contract_addr: str) -> RelayRecord:
        """Build and broadcast an ownership transfer inside the same critical section."""
        async with self._lock:
            try:
                nonce = await self.relayer.load_nonce()
                gas_price = await self.relayer.get_gas_price()
                record = await self.relayer.transfer_ownership(
                    minter_addr, token_contract_addr, nonce, gas_price
                )
                await self.relayer.relay(record)
            except Exception as e:
                self.failed_count += 1
                logger.error(f"Failed to transfer ownership of {token_contract_addr}: {e}")
                raise
            return record

    async def escalate(self, record: RelayRecord, target_gas_price: Optional[int] = None) -> RelayRecord:
        """
        Re-broadcast a pending relay at a higher gas price.

        Args:
            record: Pending relay record
            target_gas_price: Gas price to escalate to, the network price if omitted

        Returns:
            The replacement record, or the original if no escalation was needed
        """
        async with self._lock:
            try:
                if target_gas_price is None:
                    target_gas_price = await self.relayer.get_gas_price()

                escalated = await self.relayer.increase_gas_price(record, target_gas_price)
                if escalated is record:
                    return record

                await self.relayer.relay(escalated)
            except Exception as e:
                self.failed_count += 1
                logger.error(f"Failed to escalate {record.tx_hash}: {e}")
                raise
            self.escalated_count += 1
            return escalated

    def get_stats(self) -> dict:
        """
        Get current processor statistics.

        Returns:
            Dictionary with current counters
        """
        return {
            'processed_hashes': len(self.processed_tx_hashes),
            'relayed': self.relayed_count,
            'failed': self.failed_count,
            'escalated': self.escalated_count,
        }
