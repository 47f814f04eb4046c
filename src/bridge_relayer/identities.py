"""
Signer identity derivation.

The relaying identity and the authorization signers are all derived from one
HD wallet mnemonic. The authorization set is sorted once here; the verifier
contract checks signatures against ascending signer addresses, so nothing
downstream may reorder it.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount

logger = logging.getLogger(__name__)

DERIVATION_PATH = "m/44'/60'/0'/0/{index}"
RELAYER_INDEX = 0


def canonical_address_key(address: str) -> str:
    """Sort key for addresses: lower-case hex orders the same as the numeric value."""
    return address.lower()


@dataclass(frozen=True, slots=True)
class SignerIdentitySet:
    """Relaying identity plus the ordered authorization signers.

    Attributes:
        relayer: Account that sends (and pays for) relay transactions
        signers: Authorization accounts, sorted ascending by address
    """
    relayer: LocalAccount
    signers: tuple[LocalAccount, ...]

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.signers, key=lambda acc: canonical_address_key(acc.address)))
        if ordered != self.signers:
            object.__setattr__(self, 'signers', ordered)

    @classmethod
    def from_mnemonic(cls, mnemonic: str, signer_indexes: Iterable[int]) -> "SignerIdentitySet":
        """
        Derive the relayer (index 0) and signer accounts from an HD mnemonic.

        Args:
            mnemonic: BIP-39 mnemonic
            signer_indexes: HD indexes of the authorization signers

        Returns:
            SignerIdentitySet with the signers sorted by address
        """
        Account.enable_unaudited_hdwallet_features()

        relayer = Account.from_mnemonic(
            mnemonic, account_path=DERIVATION_PATH.format(index=RELAYER_INDEX)
        )
        signers = tuple(
            Account.from_mnemonic(mnemonic, account_path=DERIVATION_PATH.format(index=idx))
            for idx in signer_indexes
        )

        identities = cls(relayer=relayer, signers=signers)
        logger.info(f"Relayer address: {identities.relayer_address}")
        logger.info(f"Derived {len(identities.signers)} authorization signers")
        return identities

    @property
    def relayer_address(self) -> str:
        return self.relayer.address

    @property
    def signer_addresses(self) -> tuple[str, ...]:
        return tuple(acc.address for acc in self.signers)

    def accounts(self) -> dict[str, LocalAccount]:
        """Map every known address to its account."""
        keyring = {acc.address: acc for acc in self.signers}
        keyring[self.relayer.address] = self.relayer
        return keyring
