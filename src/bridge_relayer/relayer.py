"""
Bridge relayer implementation.

This module contains the Relayer, which turns transfer intents into signed
destination chain transactions, escalates their gas price and broadcasts
them. It holds no nonce state: callers must serialize nonce acquisition and
building per relaying identity (see RelayProcessor).
"""

import logging
import time
from decimal import Decimal
from typing import Optional

from web3 import Web3
from web3.types import TxData

from .chain_client import ChainClient, Web3ChainClient
from .config import RelayerConfig
from .identities import SignerIdentitySet
from .models import RelayRecord, TransferIntent, UnsignedTransaction
from .signature_coordinator import SignatureCoordinator
from .transaction_builder import TransactionBuilder
from .utils.contract_utility import ContractUtility

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class Relayer:
    """
    Builds, signs, escalates and submits relay transactions.

    The signer identities are derived once at construction and never change
    for the lifetime of the process.
    """

    # Replacement must beat the current price by more than 10%
    GAS_PRICE_ESCALATION = Decimal("1.1")

    def __init__(
        self,
        config: RelayerConfig,
        identities: Optional[SignerIdentitySet] = None,
        client: Optional[ChainClient] = None,
    ):
        """
        Initialize the Relayer.

        Args:
            config: Relayer configuration
            identities: Pre-derived identities (derived from the mnemonic if omitted)
            client: Chain client (a Web3ChainClient on the configured RPC if omitted)
        """
        self.config = config
        self.identities = identities or SignerIdentitySet.from_mnemonic(
            config.signers.mnemonic, config.signers.signer_indexes
        )
        self.client: ChainClient = client or Web3ChainClient.from_config(config.chain, self.identities)

        self._init_components()

    def _init_components(self) -> None:
        """Wire the signature coordinator and transaction builder."""
        self.signature_coordinator = SignatureCoordinator(
            client=self.client,
            signer_addresses=self.identities.signer_addresses,
        )
        self.builder = TransactionBuilder(
            contract_util=ContractUtility(),
            signature_coordinator=self.signature_coordinator,
            from_address=self.identities.relayer_address,
            chain_id=self.config.chain.chain_id,
            donation_address=self.config.chain.donation_address,
        )

        logger.info(
            f"Relayer initialized for chain {self.config.chain.chain_id} "
            f"with {len(self.identities.signers)} signers"
        )

    @classmethod
    def from_config(cls, config: RelayerConfig) -> "Relayer":
        config.log_config()
        return cls(config)

    @classmethod
    def from_env(cls) -> "Relayer":
        """
        Create a Relayer instance from environment variables.

        Raises:
            ValueError: If required environment variables are missing
        """
        return cls.from_config(RelayerConfig.from_env())

    @property
    def from_address(self) -> str:
        return self.identities.relayer_address

    @property
    def signer_addresses(self) -> tuple[str, ...]:
        return self.identities.signer_addresses

    async def verify_chain_id(self) -> int:
        """
        Check that the connected node serves the configured chain.

        Raises:
            ValueError: If the node reports a different chain id
        """
        chain_id = await self.client.get_chain_id()
        if chain_id != self.config.chain.chain_id:
            raise ValueError(
                f"Node chain id {chain_id} does not match configured chain id "
                f"{self.config.chain.chain_id}"
            )
        return chain_id

    async def load_nonce(self) -> int:
        """Pending transaction count of the relaying identity."""
        return await self.client.get_transaction_count(self.from_address, "pending")

    async def _sign(self, transaction: UnsignedTransaction) -> RelayRecord:
        signed = await self.client.sign_transaction(transaction.to_tx_params())
        return RelayRecord(
            transaction=transaction,
            signed_tx_data=Web3.to_hex(signed.raw),
            tx_hash=Web3.to_hex(Web3.keccak(signed.raw)),
            created_at=int(time.time() * 1000),
        )

    async def build(
        self,
        intent: TransferIntent,
        nonce: int,
        minter_nonce: int,
        gas_price: int,
    ) -> RelayRecord:
        """
        Build and sign the mint transaction for a transfer intent.

        Raises:
            SignerFailure: If an authorization signer fails
            SigningFailure: If the transaction cannot be signed
        """
        transaction = await self.builder.build_mint(intent, nonce, minter_nonce, gas_price)
        record = await self._sign(transaction)
        logger.info(f"Built relay {record.tx_hash} for source tx {intent.tx_hash}")
        return record

    async def transfer_ownership(
        self,
        minter_addr: str,
        token_contract_addr: str,
        nonce: int,
        gas_price: int,
    ) -> RelayRecord:
        """Build and sign a wrapped token ownership transfer to the minter."""
        transaction = self.builder.build_transfer_ownership(
            minter_addr, token_contract_addr, nonce, gas_price
        )
        return await self._sign(transaction)

    async def increase_gas_price(self, record: RelayRecord, target_gas_price: int) -> RelayRecord:
        """
        Replace a pending transaction with a higher gas price.

        The replacement keeps the nonce. If the target does not exceed the
        current price by more than 10%, the record is returned unchanged.

        Args:
            record: Relay record to escalate
            target_gas_price: Desired gas price in wei

        Returns:
            New relay record, or the same record if no escalation happened
        """
        current = record.transaction.gas_price
        if Decimal(int(target_gas_price)) <= Decimal(current) * self.GAS_PRICE_ESCALATION:
            logger.debug(
                f"Gas price {target_gas_price} does not clear escalation floor for "
                f"{record.tx_hash} (current {current})"
            )
            return record

        escalated = await self._sign(record.transaction.with_gas_price(int(target_gas_price)))
        logger.info(
            f"Escalated nonce {record.nonce} gas price {current} -> {target_gas_price}: "
            f"{record.tx_hash} replaced by {escalated.tx_hash}"
        )
        return escalated

    async def relay(self, record: RelayRecord) -> str:
        """
        Broadcast a signed relay transaction.

        Returns:
            Transaction hash acknowledged by the node

        Raises:
            BroadcastFailure: If the node rejects the transaction
        """
        tx_hash = await self.client.send_raw_transaction(record.signed_tx_data)
        logger.info(f"Relayed {tx_hash} (nonce={record.nonce}, gasPrice={record.gas_price})")
        return tx_hash

    async def get_gas_price(self) -> int:
        return await self.client.get_gas_price()

    async def get_transaction(self, tx_hash: str) -> TxData | None:
        return await self.client.get_transaction(tx_hash)
