class RelayerError(Exception):
    """Base class for relayer errors."""


class SignerFailure(RelayerError):
    """Raised when an authorization signer fails to produce a signature."""

    def __init__(self, signer: str, reason: str) -> None:
        super().__init__(f"Signer {signer} failed: {reason}")
        self.signer = signer


class SigningFailure(RelayerError):
    """Raised when the chain client cannot sign a transaction."""


class BroadcastFailure(RelayerError):
    """Raised when the node rejects a signed transaction."""


class ChainUnavailable(RelayerError):
    """Raised when a read from the destination chain node fails."""
