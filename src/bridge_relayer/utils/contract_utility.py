import json
from functools import cache
from pathlib import Path

from web3 import LegacyWebSocketProvider, Web3
from web3.contract import Contract

CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts"


class ContractUtility:
    """
    Utility for Web3 connection setup and contract ABI loading.

    Can be used in two modes:
    1. Connected mode: initialize with an RPC URL to talk to a node
    2. ABI-only mode: initialize without a URL to just encode contract calls
    """

    def __init__(self, rpc_url: str = "", request_timeout: int = 30):
        """
        Initialize the ContractUtility.

        Args:
            rpc_url: HTTP(S) or WS(S) RPC endpoint (optional for ABI-only mode)
            request_timeout: RPC request timeout in seconds
        """
        self.rpc_url = rpc_url or None
        self.w3 = self.setup_web3(rpc_url, request_timeout) if rpc_url else Web3()

    @staticmethod
    def setup_web3(rpc_url: str, request_timeout: int = 30) -> Web3:
        if rpc_url.startswith(("ws:", "wss:")):
            provider = LegacyWebSocketProvider(rpc_url, websocket_timeout=request_timeout)
        else:
            provider = Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout})
        return Web3(provider)

    @staticmethod
    @cache
    def get_contract_abi(contract_name: str) -> list:
        """Fetches ABI of the given contract from the contracts folder"""
        contract_path = (CONTRACTS_DIR / f"{contract_name}.json").resolve()

        with contract_path.open() as file:
            contract_data = json.load(file)

        return contract_data["abi"]

    def contract(self, contract_name: str) -> type[Contract]:
        """Address-less contract used for encoding calls to any deployment."""
        return self.w3.eth.contract(abi=self.get_contract_abi(contract_name))
