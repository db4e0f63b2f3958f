"""
Registry engine CLI entry point.

Rebuild a registry's Merkle tree from its event log and either print a
proof for one certificate or keep the registry's operation queue drained.

Usage::

    python -m zkcert_registry proof --rpc-url http://localhost:8545 \\
        --registry 0xRegistry --leaf 0x1234...
    python -m zkcert_registry process-queue --rpc-url http://localhost:8545 \\
        --registry 0xRegistry --metrics-port 9100

Options:
    --rpc-url        JSON-RPC endpoint of the node (required)
    --registry       Address of the registry contract (required)
    --first-block    Block the registry was deployed in (default: 0)
    --cache-dir      Directory of leaf log caches (default: $ZKCERT_CACHE_DIR)
    --leaf           Certificate hash to prove (proof only)
    --account        Sender account (process-queue only, default: node's first account)
    --metrics-port   Serve Prometheus metrics on this port (process-queue only)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from prometheus_client import start_http_server

from zkcert_registry.config import ZKCERT_CACHE_DIR
from zkcert_registry.field import Fr
from zkcert_registry.ledger import Web3RegistryLedger
from zkcert_registry.metrics import REGISTRY
from zkcert_registry.queue import QueueProcessor
from zkcert_registry.registry import RegistrySynchronizer
from zkcert_registry.sync import LeafLogCacheStore, LogReconciler
from zkcert_registry.types import RegistryError

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        timestamp = f"{self.CYAN}{self.formatTime(record, self.datefmt)}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{timestamp} {levelname} {name}: {message}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure root logging with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # web3 logs every request at DEBUG.
    logging.getLogger("web3").setLevel(logging.INFO)


def _progress(percent: str) -> None:
    logger.info("Scanning registry events: %s%%", percent)


async def _build(args: argparse.Namespace) -> tuple[Web3RegistryLedger, RegistrySynchronizer]:
    """Connect to the registry and rebuild its tree."""
    ledger = Web3RegistryLedger.from_url(args.rpc_url, args.registry, args.account)
    reconciler = LogReconciler(
        ledger=ledger,
        cache_store=LeafLogCacheStore(args.cache_dir),
        first_block=args.first_block,
        on_progress=_progress,
    )
    synchronizer = await RegistrySynchronizer.create(ledger, reconciler)
    return ledger, synchronizer


def parse_leaf(text: str) -> Fr:
    """Parse a certificate hash given in decimal or 0x-prefixed hex."""
    text = text.strip()
    if text.lower().startswith("0x"):
        return Fr.from_hex(text)
    return Fr(value=int(text))


async def run_proof(args: argparse.Namespace) -> None:
    """Print the Merkle proof of one certificate as JSON."""
    _, synchronizer = await _build(args)
    leaf = parse_leaf(args.leaf)
    index = synchronizer.tree.get_leaf_index(leaf)
    proof = synchronizer.tree.create_proof(index)
    print(proof.model_dump_json(by_alias=True, indent=2))


async def run_queue_processor(args: argparse.Namespace) -> None:
    """Drain the registry queue until SIGINT or SIGTERM."""
    ledger, synchronizer = await _build(args)
    if args.account is None:
        await ledger.connect_account()

    processor = QueueProcessor(ledger=ledger, tree=synchronizer.tree)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, processor.stop)

    if args.metrics_port is not None:
        start_http_server(args.metrics_port, registry=REGISTRY)
        logger.info("Serving metrics on port %d", args.metrics_port)

    logger.info("Sending queue transactions from %s", ledger.account)
    await processor.run()


def build_parser() -> argparse.ArgumentParser:
    """Command line parser with the `proof` and `process-queue` subcommands."""
    parser = argparse.ArgumentParser(description="zk-certificate registry engine")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored logging output",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--rpc-url", required=True, help="JSON-RPC endpoint of the node")
    common.add_argument("--registry", required=True, help="Registry contract address")
    common.add_argument(
        "--first-block",
        type=int,
        default=0,
        help="Block the registry was deployed in (default: 0)",
    )
    common.add_argument(
        "--cache-dir",
        type=Path,
        default=ZKCERT_CACHE_DIR,
        help=f"Directory of leaf log caches (default: {ZKCERT_CACHE_DIR})",
    )
    common.add_argument("--account", default=None, help="Sender account")

    commands = parser.add_subparsers(dest="command", required=True)

    proof = commands.add_parser("proof", parents=[common], help="Print a Merkle proof")
    proof.add_argument("--leaf", required=True, help="Certificate hash, decimal or 0x-hex")
    proof.set_defaults(handler=run_proof)

    queue = commands.add_parser(
        "process-queue", parents=[common], help="Process the registry queue"
    )
    queue.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port",
    )
    queue.set_defaults(handler=run_queue_processor)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.no_color)

    try:
        asyncio.run(args.handler(args))
    except RegistryError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
