"""
Multi-signature collection for mint authorizations.

Every authorization signer signs the same message. Signatures are returned
in the order of the authorization set, which the verifier contract requires
to be ascending by signer address.
"""

import asyncio
import logging
from collections.abc import Sequence

from hexbytes import HexBytes
from web3 import Web3

from .chain_client import ChainClient
from .exceptions import SignerFailure, SigningFailure

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65
RECOVERY_OFFSET = 27


def normalize_signature(signature: bytes) -> bytes:
    """
    Map a 0/1 recovery byte to 27/28.

    geth always returns 27/28 while some nodes return 0/1; accepting both
    would make signatures malleable on the verifier side.

    Args:
        signature: 65-byte r || s || v signature

    Returns:
        Signature with v >= 27
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise ValueError(f"Expected {SIGNATURE_LENGTH}-byte signature, got {len(signature)}")

    v = signature[-1]
    if v < RECOVERY_OFFSET:
        v += RECOVERY_OFFSET
    return bytes(signature[:-1]) + bytes([v])


def authorization_message(minter_nonce: int, source_tx_hash: str | bytes) -> bytes:
    """Packed keccak256 of (uint256 minterNonce, bytes32 sourceTxHash)."""
    return bytes(Web3.solidity_keccak(['uint256', 'bytes32'], [minter_nonce, HexBytes(source_tx_hash)]))


class SignatureCoordinator:
    """Collects one signature per authorization signer."""

    def __init__(self, client: ChainClient, signer_addresses: Sequence[str]):
        """
        Args:
            client: Chain client able to sign messages for every signer
            signer_addresses: Authorization set, already sorted ascending; may be
                empty when only direct mints are relayed
        """
        self.client = client
        self.signer_addresses: tuple[str, ...] = tuple(signer_addresses)

    async def _sign(self, message: bytes, address: str) -> bytes:
        try:
            signature = await self.client.sign_message(message, address)
            return normalize_signature(signature)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise SignerFailure(address, str(e)) from e

    async def collect_signatures(self, message: bytes) -> list[bytes]:
        """
        Request signatures from all signers concurrently.

        Args:
            message: Message every signer signs

        Returns:
            Normalized signatures, one per signer, in authorization set order

        Raises:
            SigningFailure: If no authorization signers are configured
            SignerFailure: If any signer fails; remaining requests are cancelled
        """
        if not self.signer_addresses:
            raise SigningFailure("No authorization signers configured (ETH_SIGNER_INDEXES)")

        tasks = [
            asyncio.create_task(self._sign(message, address))
            for address in self.signer_addresses
        ]
        try:
            signatures = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.debug(f"Collected {len(signatures)} signatures for {Web3.to_hex(message)}")
        return list(signatures)
