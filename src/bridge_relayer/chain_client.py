"""
Destination chain client.

This module defines the capabilities the relayer needs from the destination
chain and a web3.py implementation backed by locally derived keys. Blocking
RPC calls run in worker threads so signature collection can proceed
concurrently; there is no retry at this layer. Transport and node errors
surface as RelayerError subclasses.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from hexbytes import HexBytes
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception
from web3.types import TxData, TxParams

from .exceptions import BroadcastFailure, ChainUnavailable, SigningFailure
from .models import SignedPayload
from .utils.contract_utility import ContractUtility

if TYPE_CHECKING:
    from .config import ChainConfig
    from .identities import SignerIdentitySet

logger = logging.getLogger(__name__)

# Errors raised by the HTTP/WS transport below web3
TRANSPORT_ERRORS = (RequestException, OSError)


class ChainClient(Protocol):
    """Capabilities consumed by the relayer."""

    async def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int: ...

    async def get_gas_price(self) -> int: ...

    async def get_chain_id(self) -> int: ...

    async def sign_transaction(self, tx: TxParams) -> SignedPayload: ...

    async def sign_message(self, message: bytes, address: str) -> bytes: ...

    async def send_raw_transaction(self, raw: bytes | str) -> str: ...

    async def get_transaction(self, tx_hash: str) -> TxData | None: ...


class Web3ChainClient:
    """ChainClient over a web3.py connection with a local keyring."""

    def __init__(self, w3: Web3, accounts: Mapping[str, LocalAccount]):
        """
        Initialize the client.

        Args:
            w3: Web3 instance connected to the destination chain
            accounts: Keyring mapping checksummed addresses to accounts
        """
        self.w3 = w3
        self._accounts: dict[str, LocalAccount] = dict(accounts)

    @classmethod
    def from_config(
        cls, config: "ChainConfig", identities: "SignerIdentitySet"
    ) -> "Web3ChainClient":
        contract_util = ContractUtility(config.rpc_url, config.request_timeout)
        return cls(contract_util.w3, identities.accounts())

    def _account_for(self, address: str) -> LocalAccount:
        if not address or not Web3.is_address(address):
            raise SigningFailure(f"Invalid signer address: {address}")
        account = self._accounts.get(Web3.to_checksum_address(address))
        if account is None:
            raise SigningFailure(f"No key available for {address}")
        return account

    async def _read(self, what: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except (Web3Exception, *TRANSPORT_ERRORS) as e:
            raise ChainUnavailable(f"Failed to read {what}: {e}") from e

    async def get_transaction_count(self, address: str, block_identifier: str = "pending") -> int:
        return await self._read(
            "transaction count",
            self.w3.eth.get_transaction_count,
            Web3.to_checksum_address(address),
            block_identifier,
        )

    async def get_gas_price(self) -> int:
        return await self._read("gas price", lambda: self.w3.eth.gas_price)

    async def get_chain_id(self) -> int:
        return await self._read("chain id", lambda: self.w3.eth.chain_id)

    async def sign_transaction(self, tx: TxParams) -> SignedPayload:
        """
        Sign a transaction with the key of its 'from' address.

        Raises:
            SigningFailure: If the key is unknown or the payload is malformed
        """
        account = self._account_for(tx.get('from', ''))
        try:
            signed = await asyncio.to_thread(account.sign_transaction, tx)
        except (TypeError, ValueError) as e:
            raise SigningFailure(f"Failed to sign transaction: {e}") from e
        return SignedPayload(raw=bytes(signed.raw_transaction), hash=bytes(signed.hash))

    async def sign_message(self, message: bytes, address: str) -> bytes:
        """Sign message with the personal message prefix, as eth_sign does."""
        account = self._account_for(address)
        signed = await asyncio.to_thread(
            account.sign_message, encode_defunct(primitive=message)
        )
        return bytes(signed.signature)

    async def send_raw_transaction(self, raw: bytes | str) -> str:
        """
        Broadcast a signed transaction.

        Returns:
            Transaction hash acknowledged by the node

        Raises:
            BroadcastFailure: If the node rejects the transaction or cannot be reached
        """
        try:
            tx_hash = await asyncio.to_thread(self.w3.eth.send_raw_transaction, HexBytes(raw))
        except (Web3Exception, ValueError) as e:
            raise BroadcastFailure(f"Node rejected transaction: {e}") from e
        except TRANSPORT_ERRORS as e:
            raise BroadcastFailure(f"Node unreachable: {e}") from e
        logger.debug(f"Node accepted transaction {Web3.to_hex(tx_hash)}")
        return Web3.to_hex(tx_hash)

    async def get_transaction(self, tx_hash: str) -> TxData | None:
        try:
            return await asyncio.to_thread(self.w3.eth.get_transaction, tx_hash)
        except TransactionNotFound:
            return None
        except (Web3Exception, *TRANSPORT_ERRORS) as e:
            raise ChainUnavailable(f"Failed to read transaction {tx_hash}: {e}") from e
