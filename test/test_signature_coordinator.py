#!/usr/bin/env python3
"""Tests for multi-signature collection."""

import asyncio

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from bridge_relayer.exceptions import SignerFailure, SigningFailure
from bridge_relayer.signature_coordinator import (
    SignatureCoordinator,
    authorization_message,
    normalize_signature,
)

MESSAGE = Web3.keccak(text="authorize")


class DelayedSigner:
    """Chain client stub answering each signer after its own delay."""

    def __init__(self, delays, v=0, fail_for=None):
        self.delays = delays
        self.v = v
        self.fail_for = fail_for
        self.cancelled = []

    async def sign_message(self, message, address):
        try:
            await asyncio.sleep(self.delays[address])
        except asyncio.CancelledError:
            self.cancelled.append(address)
            raise
        if address == self.fail_for:
            raise RuntimeError("signer offline")
        # r || s encode the address so the order can be checked
        body = Web3.to_bytes(hexstr=address).rjust(64, b'\0')
        return body + bytes([self.v])


class TestNormalizeSignature:
    """Tests for recovery byte normalization."""

    @pytest.mark.parametrize("v, expected", [(0, 27), (1, 28), (27, 27), (28, 28)])
    def test_recovery_byte(self, v, expected):
        signature = bytes(range(64)) + bytes([v])

        normalized = normalize_signature(signature)

        assert normalized[:64] == signature[:64]
        assert normalized[64] == expected

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError, match="65-byte"):
            normalize_signature(b'\x01' * 64)


class TestAuthorizationMessage:
    """Tests for the packed authorization hash."""

    def test_matches_packed_encoding(self):
        tx_hash = "0x" + "ab" * 32

        expected = Web3.keccak((5).to_bytes(32, 'big') + bytes.fromhex("ab" * 32))

        assert authorization_message(5, tx_hash) == bytes(expected)

    def test_depends_on_nonce(self):
        tx_hash = "0x" + "cd" * 32
        assert authorization_message(1, tx_hash) != authorization_message(2, tx_hash)


class TestSignatureCoordinator:
    """Test suite for SignatureCoordinator."""

    ADDRESSES = (
        "0x1000000000000000000000000000000000000001",
        "0x2000000000000000000000000000000000000002",
        "0x3000000000000000000000000000000000000003",
    )

    @pytest.mark.asyncio
    async def test_order_independent_of_arrival(self):
        """Test that the slowest signer's signature still comes first when it sorts first."""
        delays = {self.ADDRESSES[0]: 0.03, self.ADDRESSES[1]: 0.0, self.ADDRESSES[2]: 0.01}
        coordinator = SignatureCoordinator(DelayedSigner(delays), self.ADDRESSES)

        signatures = await coordinator.collect_signatures(MESSAGE)

        assert len(signatures) == 3
        for signature, address in zip(signatures, self.ADDRESSES):
            assert signature[:64].endswith(Web3.to_bytes(hexstr=address))

    @pytest.mark.asyncio
    async def test_signatures_normalized(self):
        delays = {address: 0 for address in self.ADDRESSES}
        coordinator = SignatureCoordinator(DelayedSigner(delays, v=1), self.ADDRESSES)

        signatures = await coordinator.collect_signatures(MESSAGE)

        assert all(signature[64] == 28 for signature in signatures)

    @pytest.mark.asyncio
    async def test_single_failure_fails_collection(self):
        """Test that one failing signer aborts the set and cancels the rest."""
        delays = {self.ADDRESSES[0]: 0.5, self.ADDRESSES[1]: 0.0, self.ADDRESSES[2]: 0.5}
        client = DelayedSigner(delays, fail_for=self.ADDRESSES[1])
        coordinator = SignatureCoordinator(client, self.ADDRESSES)

        with pytest.raises(SignerFailure) as exc_info:
            await coordinator.collect_signatures(MESSAGE)

        assert exc_info.value.signer == self.ADDRESSES[1]
        assert set(client.cancelled) == {self.ADDRESSES[0], self.ADDRESSES[2]}

    @pytest.mark.asyncio
    async def test_malformed_signature_is_signer_failure(self):
        class ShortSigner:
            async def sign_message(self, message, address):
                return b'\x00' * 10

        coordinator = SignatureCoordinator(ShortSigner(), self.ADDRESSES[:1])

        with pytest.raises(SignerFailure, match="65-byte"):
            await coordinator.collect_signatures(MESSAGE)

    @pytest.mark.asyncio
    async def test_no_signers_rejects_collection(self):
        client = DelayedSigner({})
        coordinator = SignatureCoordinator(client, ())

        with pytest.raises(SigningFailure, match="No authorization signers"):
            await coordinator.collect_signatures(MESSAGE)

    @pytest.mark.asyncio
    async def test_real_signatures_recover_in_order(self, chain_client, identities):
        """Test signatures from the web3 client recover to the sorted signer set."""
        coordinator = SignatureCoordinator(chain_client, identities.signer_addresses)

        signatures = await coordinator.collect_signatures(MESSAGE)

        recovered = [
            Account.recover_message(encode_defunct(primitive=bytes(MESSAGE)), signature=sig)
            for sig in signatures
        ]
        assert tuple(recovered) == identities.signer_addresses
        assert all(sig[64] in (27, 28) for sig in signatures)
