"""Shared fixtures for the bridge relayer tests."""

from unittest.mock import MagicMock

import pytest

from bridge_relayer.chain_client import Web3ChainClient
from bridge_relayer.config import ChainConfig, RelayerConfig, SignerConfig
from bridge_relayer.identities import SignerIdentitySet

# Well-known development mnemonic (hardhat / anvil)
TEST_MNEMONIC = "test test test test test test test test test test test junk"

# m/44'/60'/0'/0/{i} addresses of TEST_MNEMONIC
HD_ADDRESSES = {
    0: "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
    1: "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    2: "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
    3: "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
    4: "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65",
}

DONATION_ADDRESS = "0x000000000000000000000000000000000000dEaD"
TOKEN_ADDRESS = "0x742d35cc6634c0532925a3b844bc9e7595f0beb7"
MINTER_ADDRESS = "0x85bfe05492afc3d04ff3b2ca6771acf6f853d90d"
RECIPIENT_ADDRESS = "0x1f54b7af3a462aabed01d5910a3e5911e76d4b51"
SOURCE_TX_HASH = "B2A3C4D5E6F708192A3B4C5D6E7F8091A2B3C4D5E6F708192A3B4C5D6E7F8091"
CHAIN_ID = 3


@pytest.fixture(scope="session")
def identities():
    """Relayer plus signers 1..3 derived from the test mnemonic."""
    return SignerIdentitySet.from_mnemonic(TEST_MNEMONIC, (1, 2, 3))


@pytest.fixture
def relayer_config():
    return RelayerConfig(
        chain=ChainConfig(
            rpc_url="http://localhost:8545",
            chain_id=CHAIN_ID,
            donation_address=DONATION_ADDRESS,
        ),
        signers=SignerConfig(mnemonic=TEST_MNEMONIC, signer_indexes=(1, 2, 3)),
    )


@pytest.fixture
def mock_w3():
    """Web3 stand-in for the RPC side; signing stays local."""
    mock = MagicMock()
    mock.eth.gas_price = 20_000_000_000
    mock.eth.chain_id = CHAIN_ID
    mock.eth.get_transaction_count = MagicMock(return_value=7)
    return mock


@pytest.fixture
def chain_client(mock_w3, identities):
    return Web3ChainClient(mock_w3, identities.accounts())
