#!/usr/bin/env python3
"""Tests for the web3 chain client."""

from unittest.mock import MagicMock, patch

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from hexbytes import HexBytes
from requests.exceptions import ConnectionError as RequestsConnectionError, ReadTimeout
from web3.exceptions import Web3RPCError

from bridge_relayer.chain_client import Web3ChainClient
from bridge_relayer.config import ChainConfig
from bridge_relayer.exceptions import BroadcastFailure, ChainUnavailable, SigningFailure

from conftest import CHAIN_ID, DONATION_ADDRESS, HD_ADDRESSES, TOKEN_ADDRESS


def tx_params(**overrides):
    params = {
        'from': HD_ADDRESSES[0],
        'to': TOKEN_ADDRESS,
        'value': 0,
        'gas': 100_000,
        'gasPrice': 1_000_000_000,
        'data': '0x',
        'nonce': 0,
        'chainId': CHAIN_ID,
    }
    params.update(overrides)
    return params


class TestWeb3ChainClient:
    """Test suite for Web3ChainClient."""

    @patch('bridge_relayer.utils.contract_utility.Web3')
    def test_from_config(self, mock_web3, identities):
        mock_w3_instance = MagicMock()
        mock_web3.return_value = mock_w3_instance
        mock_web3.HTTPProvider = MagicMock(return_value="mock_provider")
        config = ChainConfig(
            rpc_url="http://localhost:8545",
            chain_id=CHAIN_ID,
            donation_address=DONATION_ADDRESS,
            request_timeout=15,
        )

        client = Web3ChainClient.from_config(config, identities)

        mock_web3.HTTPProvider.assert_called_once_with(
            "http://localhost:8545", request_kwargs={"timeout": 15}
        )
        assert client.w3 is mock_w3_instance

    @pytest.mark.asyncio
    async def test_sign_message_personal_prefix(self, chain_client):
        message = b'\x11' * 32

        signature = await chain_client.sign_message(message, HD_ADDRESSES[2])

        assert len(signature) == 65
        recovered = Account.recover_message(encode_defunct(primitive=message), signature=signature)
        assert recovered == HD_ADDRESSES[2]

    @pytest.mark.asyncio
    async def test_sign_message_lowercase_address(self, chain_client):
        signature = await chain_client.sign_message(b'\x22' * 32, HD_ADDRESSES[1].lower())
        assert len(signature) == 65

    @pytest.mark.asyncio
    async def test_sign_message_unknown_address(self, chain_client):
        with pytest.raises(SigningFailure, match="No key available"):
            await chain_client.sign_message(b'\x00' * 32, TOKEN_ADDRESS)

    @pytest.mark.asyncio
    async def test_sign_transaction(self, chain_client):
        signed = await chain_client.sign_transaction(tx_params())

        assert Account.recover_transaction(signed.raw) == HD_ADDRESSES[0]
        assert len(signed.hash) == 32

    @pytest.mark.asyncio
    async def test_sign_transaction_unknown_sender(self, chain_client):
        with pytest.raises(SigningFailure, match="No key available"):
            await chain_client.sign_transaction(tx_params(**{'from': TOKEN_ADDRESS}))

    @pytest.mark.asyncio
    async def test_sign_transaction_malformed(self, chain_client):
        with pytest.raises(SigningFailure, match="Failed to sign transaction"):
            await chain_client.sign_transaction(tx_params(gas="lots"))

    @pytest.mark.asyncio
    async def test_send_raw_transaction_rejected(self, chain_client, mock_w3):
        mock_w3.eth.send_raw_transaction.side_effect = Web3RPCError("replacement transaction underpriced")

        with pytest.raises(BroadcastFailure, match="underpriced"):
            await chain_client.send_raw_transaction("0x01")

    @pytest.mark.asyncio
    async def test_send_raw_transaction(self, chain_client, mock_w3):
        mock_w3.eth.send_raw_transaction.return_value = HexBytes("0x" + "ab" * 32)

        tx_hash = await chain_client.send_raw_transaction(b'\x01\x02')

        assert tx_hash == "0x" + "ab" * 32
        mock_w3.eth.send_raw_transaction.assert_called_once_with(HexBytes(b'\x01\x02'))

    @pytest.mark.asyncio
    async def test_send_raw_transaction_connection_error(self, chain_client, mock_w3):
        mock_w3.eth.send_raw_transaction.side_effect = RequestsConnectionError("connection reset")

        with pytest.raises(BroadcastFailure, match="unreachable"):
            await chain_client.send_raw_transaction("0x01")

    @pytest.mark.asyncio
    async def test_read_timeout_is_chain_unavailable(self, chain_client, mock_w3):
        mock_w3.eth.get_transaction_count.side_effect = ReadTimeout("timed out")

        with pytest.raises(ChainUnavailable, match="transaction count"):
            await chain_client.get_transaction_count(HD_ADDRESSES[0])

    @pytest.mark.asyncio
    async def test_get_transaction_connection_error(self, chain_client, mock_w3):
        mock_w3.eth.get_transaction.side_effect = RequestsConnectionError("refused")

        with pytest.raises(ChainUnavailable):
            await chain_client.get_transaction("0x" + "ab" * 32)
