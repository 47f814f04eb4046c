"""
Shared data models for the bridge relayer.

This module contains the immutable value types passed between the relayer
components. Records are never mutated in place; escalation produces a new
record carrying the same nonce.
"""

from dataclasses import dataclass, replace
from collections.abc import Mapping
from typing import Any

from web3.types import TxParams


@dataclass(frozen=True, slots=True)
class TransferIntent:
    """A confirmed source chain transfer to be relayed.

    Attributes:
        to: Recipient address on the destination chain (may be malformed)
        amount: Amount in the source chain unit, as an integer or decimal string
        contract_addr: Wrapped token contract on the destination chain
        tx_hash: Source chain transaction hash, hex with or without 0x prefix
        minter_addr: Minter contract for multi-sig mints, None for direct mints
    """
    to: str
    amount: str | int
    contract_addr: str
    tx_hash: str
    minter_addr: str | None = None

    @classmethod
    def from_monitoring_data(cls, data: Mapping[str, Any]) -> "TransferIntent":
        """Build an intent from a monitoring record ({to, amount, contractAddr, minterAddr?, txHash})."""
        return cls(
            to=data["to"],
            amount=data["amount"],
            contract_addr=data["contractAddr"],
            tx_hash=data["txHash"],
            minter_addr=data.get("minterAddr") or None,
        )


@dataclass(frozen=True, slots=True)
class UnsignedTransaction:
    """Legacy (gasPrice) transaction envelope ready for signing."""
    from_address: str
    to: str
    gas: int
    gas_price: int
    data: str
    nonce: int
    chain_id: int
    value: int = 0

    def with_gas_price(self, gas_price: int) -> "UnsignedTransaction":
        return replace(self, gas_price=gas_price)

    def to_tx_params(self) -> TxParams:
        """Return the web3 transaction dict for this envelope."""
        return {
            'from': self.from_address,
            'to': self.to,
            'value': self.value,
            'gas': self.gas,
            'gasPrice': self.gas_price,
            'data': self.data,
            'nonce': self.nonce,
            'chainId': self.chain_id,
        }


@dataclass(frozen=True, slots=True)
class SignedPayload:
    """Raw signed transaction bytes and the hash reported by the signer."""
    raw: bytes
    hash: bytes


@dataclass(frozen=True, slots=True)
class RelayRecord:
    """One relay attempt.

    Attributes:
        transaction: Snapshot of the transaction that was signed
        signed_tx_data: Hex encoded raw signed transaction
        tx_hash: Hex encoded keccak256 of the raw signed transaction
        created_at: Creation time in milliseconds since the epoch
    """
    transaction: UnsignedTransaction
    signed_tx_data: str
    tx_hash: str
    created_at: int

    @property
    def nonce(self) -> int:
        return self.transaction.nonce

    @property
    def gas_price(self) -> int:
        return self.transaction.gas_price
