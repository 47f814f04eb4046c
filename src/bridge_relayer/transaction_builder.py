"""
Transaction assembly for relay and administrative calls.

This module encodes the wrapped token and minter contract calls and wraps
them in unsigned legacy transaction envelopes. Signing and submission happen
in the Relayer.
"""

import logging

from hexbytes import HexBytes
from web3 import Web3

from .models import TransferIntent, UnsignedTransaction
from .signature_coordinator import SignatureCoordinator, authorization_message
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Builds unsigned mint and ownership transfer transactions."""

    GAS_LIMIT = 100_000
    # Source amounts carry 6 decimals, wrapped tokens 18
    AMOUNT_DECIMAL_SHIFT = 12

    def __init__(
        self,
        contract_util: ContractUtility,
        signature_coordinator: SignatureCoordinator,
        from_address: str,
        chain_id: int,
        donation_address: str,
    ) -> None:
        """
        Initialize the TransactionBuilder.

        Args:
            contract_util: Utility providing contract ABIs for call encoding
            signature_coordinator: Collects authorization signatures for minter mints
            from_address: Relaying identity that sends every transaction
            chain_id: Destination chain id embedded for replay protection
            donation_address: Recipient used when the intended one is malformed
        """
        self.signature_coordinator = signature_coordinator
        self.from_address = Web3.to_checksum_address(from_address)
        self.chain_id = chain_id
        self.donation_address = Web3.to_checksum_address(donation_address)

        self.minter_contract = contract_util.contract("Minter")
        self.wrapped_token_contract = contract_util.contract("WrappedToken")

    def resolve_recipient(self, recipient: str) -> str:
        """Return the checksummed recipient, or the donation address if it is malformed."""
        if not Web3.is_address(recipient):
            logger.warning(
                f"Invalid recipient {recipient!r}, redirecting to donation address {self.donation_address}"
            )
            return self.donation_address
        return Web3.to_checksum_address(recipient)

    @classmethod
    def scale_amount(cls, amount: str | int) -> int:
        """Expand a source chain amount to the destination chain's smallest unit."""
        if isinstance(amount, str):
            amount = amount.strip()
            if not (amount.isascii() and amount.isdigit()):
                raise ValueError(f"Amount must be a non-negative integer, got {amount!r}")
        elif isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError(f"Amount must be a non-negative integer, got {amount!r}")
        return int(amount) * 10 ** cls.AMOUNT_DECIMAL_SHIFT

    @staticmethod
    def source_tx_hash(tx_hash: str) -> HexBytes:
        """Convert a source transaction reference to bytes32."""
        value = HexBytes(tx_hash if tx_hash.startswith(("0x", "0X")) else "0x" + tx_hash)
        if len(value) != 32:
            raise ValueError(f"Source transaction hash must be 32 bytes, got {len(value)}")
        return value

    def _envelope(self, to: str, data: str, nonce: int, gas_price: int) -> UnsignedTransaction:
        return UnsignedTransaction(
            from_address=self.from_address,
            to=Web3.to_checksum_address(to),
            gas=self.GAS_LIMIT,
            gas_price=int(gas_price),
            data=data,
            nonce=nonce,
            chain_id=self.chain_id,
        )

    async def build_mint(
        self,
        intent: TransferIntent,
        nonce: int,
        minter_nonce: int,
        gas_price: int,
    ) -> UnsignedTransaction:
        """
        Build the mint transaction for a transfer intent.

        Intents carrying a minter address go through the minter contract with
        multi-sig authorization; the rest call the wrapped token directly.

        Args:
            intent: Transfer observed on the source chain
            nonce: Pending nonce of the relaying identity
            minter_nonce: Minter contract nonce included in the signed authorization
            gas_price: Gas price in wei

        Returns:
            Unsigned transaction envelope
        """
        recipient = self.resolve_recipient(intent.to)
        amount = self.scale_amount(intent.amount)
        token = Web3.to_checksum_address(intent.contract_addr)

        if intent.minter_addr:
            tx_hash = self.source_tx_hash(intent.tx_hash)
            message = authorization_message(minter_nonce, tx_hash)
            signatures = await self.signature_coordinator.collect_signatures(message)

            data = self.minter_contract.encode_abi(
                "mint", args=[token, recipient, amount, tx_hash, signatures]
            )
            to = intent.minter_addr
            logger.info(
                f"Built minter mint of {amount} {token} to {recipient} "
                f"with {len(signatures)} signatures (nonce={nonce})"
            )
        else:
            data = self.wrapped_token_contract.encode_abi("mint", args=[recipient, amount])
            to = token
            logger.info(f"Built direct mint of {amount} {token} to {recipient} (nonce={nonce})")

        return self._envelope(to, data, nonce, gas_price)

    def build_transfer_ownership(
        self,
        minter_addr: str,
        token_contract_addr: str,
        nonce: int,
        gas_price: int,
    ) -> UnsignedTransaction:
        """Build a transaction handing ownership of a wrapped token to the minter."""
        data = self.wrapped_token_contract.encode_abi(
            "transferOwnership", args=[Web3.to_checksum_address(minter_addr)]
        )
        logger.info(f"Built ownership transfer of {token_contract_addr} to {minter_addr} (nonce={nonce})")
        return self._envelope(token_contract_addr, data, nonce, gas_price)
