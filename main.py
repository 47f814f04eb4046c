#!/usr/bin/env python3

import argparse
import asyncio
import json
import logging
import sys

from bridge_relayer.exceptions import RelayerError
from bridge_relayer.relay_processor import RelayProcessor
from bridge_relayer.relayer import Relayer

# Set up root logger
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bridge Relayer")
    subparsers = parser.add_subparsers(dest="command", required=True)

    relay_parser = subparsers.add_parser(
        "relay", help="Relay monitoring records read as JSON lines"
    )
    relay_parser.add_argument(
        "input",
        nargs="?",
        type=argparse.FileType("r"),
        default=sys.stdin,
        help="File with one monitoring record per line (default: stdin)"
    )

    ownership_parser = subparsers.add_parser(
        "transfer-ownership", help="Transfer wrapped token ownership to a minter"
    )
    ownership_parser.add_argument("--minter", required=True, help="New owner (minter contract)")
    ownership_parser.add_argument("--token", required=True, help="Wrapped token contract")

    subparsers.add_parser("gas-price", help="Print the current network gas price")

    tx_parser = subparsers.add_parser("tx", help="Look up a relayed transaction")
    tx_parser.add_argument("tx_hash", help="Destination chain transaction hash")

    return parser.parse_args(argv)


async def relay_lines(processor: RelayProcessor, lines) -> int:
    """Relay every record; returns the number of failures."""
    failures = 0
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            record = await processor.process_monitoring_data(json.loads(line))
        except (RelayerError, ValueError, KeyError) as e:
            logger.error(f"Failed to relay record {line}: {e}")
            failures += 1
            continue
        if record:
            print(record.tx_hash)
    logger.info(f"Relay stats: {processor.get_stats()}")
    return failures


async def main(argv=None) -> int:
    """Main entry point for the Bridge Relayer."""
    args = parse_args(argv)

    try:
        relayer = Relayer.from_env()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        logger.error("Required environment variables:")
        logger.error("  - ETH_MNEMONIC: Mnemonic of the relayer and signer wallet")
        logger.error("  - ETH_SIGNER_INDEXES: Comma separated HD indexes of the signers")
        logger.error("  - ETH_URL: Destination chain RPC endpoint")
        logger.error("  - ETH_DONATION: Fallback recipient for invalid addresses")
        logger.error("  - ETH_NETWORK_NUMBER: Destination chain id or network name")
        return 1

    try:
        await relayer.verify_chain_id()
        processor = RelayProcessor(relayer)

        match args.command:
            case "relay":
                return 1 if await relay_lines(processor, args.input) else 0
            case "transfer-ownership":
                record = await processor.transfer_ownership(args.minter, args.token)
                print(record.tx_hash)
            case "gas-price":
                print(await relayer.get_gas_price())
            case "tx":
                tx = await relayer.get_transaction(args.tx_hash)
                if tx is None:
                    logger.error(f"Transaction {args.tx_hash} not found")
                    return 1
                print(json.dumps(dict(tx), default=str, indent=2))
    except RelayerError as e:
        logger.error(f"Relay failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
