"""
Configuration module for the bridge relayer.

This module provides validated dataclasses for the destination chain and the
signer wallet. Configuration is loaded once from environment variables at
startup and is immutable afterwards.
"""

import logging
import os
from dataclasses import dataclass
from typing import ClassVar
from urllib.parse import urlparse

from web3 import Web3

logger = logging.getLogger(__name__)

# Known networks the wrapped tokens are deployed to
CHAIN_ID: dict[str, int] = {
    "mainnet": 1,
    "ropsten": 3,
    "kovan": 42,
    "bsc": 56,
    "bsc_testnet": 97,
}


def resolve_chain_id(value: str | int) -> int:
    """
    Resolve a chain id from either a numeric id or a known network name.

    Args:
        value: Numeric chain id (int or decimal string) or network name

    Returns:
        Numeric chain id

    Raises:
        ValueError: If the value is neither a positive number nor a known network
    """
    if isinstance(value, int):
        chain_id = value
    elif value.strip().isdigit():
        chain_id = int(value.strip())
    elif value.strip() in CHAIN_ID:
        chain_id = CHAIN_ID[value.strip()]
    else:
        raise ValueError(
            f"Unknown network: {value}. "
            f"Use a numeric chain id or one of: {', '.join(sorted(CHAIN_ID))}"
        )

    if chain_id <= 0:
        raise ValueError(f"Chain id must be positive, got {chain_id}")
    return chain_id


def parse_signer_indexes(raw: str) -> tuple[int, ...]:
    """
    Parse a comma separated list of HD wallet indexes.

    Empty, zero and non-numeric entries are dropped; index 0 is always the
    relaying identity and never an authorization signer.
    """
    indexes = []
    for part in raw.split(","):
        part = part.strip()
        try:
            idx = int(part)
        except ValueError:
            continue
        if idx:
            indexes.append(idx)
    return tuple(indexes)


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for the destination EVM chain.

    Attributes:
        rpc_url: HTTP(S) or WS(S) RPC endpoint
        chain_id: Numeric chain id embedded in every transaction
        donation_address: Fallback recipient for malformed recipient addresses
        request_timeout: RPC request timeout in seconds
    """

    rpc_url: str
    chain_id: int
    donation_address: str
    request_timeout: int = 30

    def __post_init__(self) -> None:
        """Validate destination chain configuration."""
        if not self.rpc_url:
            raise ValueError("RPC URL is required (ETH_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https', 'ws', 'wss'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http, https, ws, or wss"
            )

        if self.chain_id <= 0:
            raise ValueError(f"Chain id must be positive, got {self.chain_id}")

        if not self.donation_address:
            raise ValueError("Donation address is required (ETH_DONATION)")

        if not Web3.is_address(self.donation_address):
            raise ValueError(f"Invalid donation address: {self.donation_address}")

        checksummed = Web3.to_checksum_address(self.donation_address)
        if checksummed != self.donation_address:
            # Use object.__setattr__ since dataclass is frozen
            object.__setattr__(self, 'donation_address', checksummed)

        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")
        if self.request_timeout > 120:
            raise ValueError(f"Request timeout too long (max 120s), got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class SignerConfig:
    """Configuration for the HD wallet holding the relayer and signer keys.

    Attributes:
        mnemonic: BIP-39 mnemonic the identities are derived from
        signer_indexes: HD indexes of the authorization signers
    """

    mnemonic: str
    signer_indexes: tuple[int, ...]

    # Number of addresses derived from the mnemonic
    NUMBER_OF_ADDRESSES: ClassVar[int] = 10

    def __post_init__(self) -> None:
        """Validate signer configuration."""
        if not self.mnemonic or not self.mnemonic.strip():
            raise ValueError("Mnemonic is required (ETH_MNEMONIC)")

        for idx in self.signer_indexes:
            if not 0 < idx < self.NUMBER_OF_ADDRESSES:
                raise ValueError(
                    f"Signer index out of range: {idx}. "
                    f"Expected 1..{self.NUMBER_OF_ADDRESSES - 1}"
                )

        if len(set(self.signer_indexes)) != len(self.signer_indexes):
            raise ValueError(f"Duplicate signer indexes: {self.signer_indexes}")


@dataclass(frozen=True, slots=True)
class RelayerConfig:
    """Main configuration for the bridge relayer.

    Attributes:
        chain: Destination chain configuration
        signers: Signer wallet configuration
    """

    chain: ChainConfig
    signers: SignerConfig

    @classmethod
    def from_env(cls) -> "RelayerConfig":
        """
        Load configuration from environment variables.

        Returns:
            RelayerConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        mnemonic = os.environ.get("ETH_MNEMONIC", "")
        if not mnemonic:
            raise ValueError(
                "ETH_MNEMONIC environment variable is required. "
                "This is the mnemonic of the relayer and signer wallet."
            )

        rpc_url = os.environ.get("ETH_URL", "")
        if not rpc_url:
            raise ValueError(
                "ETH_URL environment variable is required. "
                "Example: https://ropsten.infura.io/v3/<project-id>"
            )

        donation_address = os.environ.get("ETH_DONATION", "")
        if not donation_address:
            raise ValueError(
                "ETH_DONATION environment variable is required. "
                "This address receives transfers with an invalid recipient."
            )

        network = os.environ.get("ETH_NETWORK_NUMBER", "")
        if not network:
            raise ValueError(
                "ETH_NETWORK_NUMBER environment variable is required. "
                "Use a chain id (e.g. 3) or a network name (e.g. ropsten)."
            )

        chain_config = ChainConfig(
            rpc_url=rpc_url,
            chain_id=resolve_chain_id(network),
            donation_address=donation_address,
            request_timeout=int(os.environ.get("ETH_REQUEST_TIMEOUT", "30")),
        )

        signer_config = SignerConfig(
            mnemonic=mnemonic,
            signer_indexes=parse_signer_indexes(os.environ.get("ETH_SIGNER_INDEXES", "")),
        )

        return cls(chain=chain_config, signers=signer_config)

    def log_config(self) -> None:
        """Log the configuration in a readable format (hiding sensitive data)."""
        logger.info("=" * 60)
        logger.info("Bridge Relayer Configuration")
        logger.info("=" * 60)

        logger.info("Destination Chain:")
        logger.info(f"  RPC URL: {self.chain.rpc_url}")
        logger.info(f"  Chain ID: {self.chain.chain_id}")
        logger.info(f"  Donation Address: {self.chain.donation_address}")
        logger.info(f"  Request Timeout: {self.chain.request_timeout} seconds")

        logger.info("Signers:")
        logger.info(f"  Mnemonic: {'[SET]' if self.signers.mnemonic else '[NOT SET]'}")
        if self.signers.signer_indexes:
            logger.info(f"  Signer Indexes: {', '.join(map(str, self.signers.signer_indexes))}")
        else:
            logger.warning("  Signer Indexes: none (minter mints will be rejected)")

        logger.info("=" * 60)
