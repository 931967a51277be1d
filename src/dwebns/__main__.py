"""Command-line interface for DWebNS records.

Examples:
    ```bash
    dwebns records alice
    dwebns set alice eth_address 0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0
    dwebns set alice ipfs_cid QmTestCID123 --label blog
    dwebns clear alice eth_address
    dwebns watch alice bob --log-level DEBUG
    ```

Exit codes: ``0`` success, ``1`` failure, ``2`` invalid input, ``130``
interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from dwebns.core.ledger import Ledger, LedgerConfig
from dwebns.core.logger import Logger, setup_logging
from dwebns.core.metrics import MetricsServer
from dwebns.core.yaml import load_yaml, section
from dwebns.exceptions import DWebNSError, InvalidValueError, UserCancelled
from dwebns.models.constants import RecordType, record_type_name
from dwebns.services.client import RecordsClient
from dwebns.services.listener import ListenerConfig


if TYPE_CHECKING:
    from dwebns.models import CommitHandle, RecordState


DEFAULT_CONFIG = Path("config") / "dwebns.yaml"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2
EXIT_INTERRUPTED = 130

logger = Logger("cli")


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------


def parse_record_type(text: str) -> int:
    """argparse ``type=`` adapter around ``RecordType.parse()``."""
    try:
        return RecordType.parse(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dwebns", description="DWebNS record client")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")

    commands = parser.add_subparsers(dest="command", required=True)

    records = commands.add_parser("records", help="Print the current records of a name")
    records.add_argument("name")
    records.add_argument("--all", action="store_true", help="Include cleared records")

    set_cmd = commands.add_parser("set", help="Set a record and wait for confirmation")
    set_cmd.add_argument("name")
    set_cmd.add_argument("type", type=parse_record_type, help="Type name (eth_address) or number")
    set_cmd.add_argument("value")
    set_cmd.add_argument("--label", default="", help="Record label (default: none)")

    clear_cmd = commands.add_parser("clear", help="Clear a record")
    clear_cmd.add_argument("name")
    clear_cmd.add_argument("type", type=parse_record_type, help="Type name (eth_address) or number")
    clear_cmd.add_argument("--label", default="", help="Record label (default: none)")

    watch = commands.add_parser("watch", help="Print records whenever they change")
    watch.add_argument("names", nargs="+", metavar="NAME")

    return parser


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def format_state(name: str, state: RecordState, *, include_cleared: bool = False) -> str:
    entries = state.sorted_entries() if include_cleared else state.live()
    if not entries:
        return f"{name}: no records"
    lines = [f"{name}:"]
    for entry in entries:
        label = entry.label or "-"
        value = entry.value if not entry.is_tombstone else "(cleared)"
        marker = " (malformed)" if entry.malformed else ""
        lines.append(f"  {entry.type_name:<14} {label:<16} {value}{marker}")
    return "\n".join(lines)


def format_commit(handle: CommitHandle) -> str:
    action = "cleared" if handle.cleared else "set"
    label = f" [{handle.label}]" if handle.label else ""
    return (
        f"{action} {handle.name} {record_type_name(handle.record_type)}{label} "
        f"in block {handle.block_number} ({handle.transaction_hash})"
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_records(client: RecordsClient, args: argparse.Namespace) -> int:
    state = await client.load_records(args.name)
    print(format_state(args.name, state, include_cleared=args.all))
    return EXIT_OK


async def cmd_set(client: RecordsClient, args: argparse.Namespace) -> int:
    handle = await client.submit(args.name, args.type, args.label, args.value)
    print(format_commit(handle))
    return EXIT_OK


async def cmd_clear(client: RecordsClient, args: argparse.Namespace) -> int:
    handle = await client.clear(args.name, args.type, args.label)
    print(format_commit(handle))
    return EXIT_OK


async def cmd_watch(client: RecordsClient, args: argparse.Namespace) -> int:
    listener = client.listener

    async def on_change(name: str) -> None:
        print(format_state(name, await client.load_records(name)), flush=True)

    for name in args.names:
        await client.subscribe(name, on_change)
        print(format_state(name, await client.load_records(name)), flush=True)

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        listener.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    metrics_config = listener.config.metrics
    async with MetricsServer(metrics_config):
        if metrics_config.enabled:
            logger.info(
                "metrics_server_started", host=metrics_config.host, port=metrics_config.port
            )
        await listener.run_forever()
    return EXIT_OK


COMMANDS = {
    "records": cmd_records,
    "set": cmd_set,
    "clear": cmd_clear,
    "watch": cmd_watch,
}


# ---------------------------------------------------------------------------
# Entry Points
# ---------------------------------------------------------------------------


def _load_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


def build_client(config: dict[str, Any]) -> RecordsClient:
    """Build a client from the ``ledger`` and ``listener`` config sections."""
    ledger = Ledger(LedgerConfig(**section(config, "ledger")))
    listener_config = ListenerConfig(**section(config, "listener"))
    return RecordsClient(ledger, listener_config=listener_config)


async def main(argv: list[str] | None = None) -> int:
    """Parse arguments, connect to the ledger, and run one command."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, json_output=args.log_json)

    try:
        client = build_client(_load_config(args.config))
        async with client:
            return await COMMANDS[args.command](client, args)
    except InvalidValueError as e:
        logger.error("invalid_input", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID
    except UserCancelled as e:
        logger.info("cancelled", reason=str(e))
        print("cancelled", file=sys.stderr)
        return EXIT_FAILURE
    except (DWebNSError, ValidationError, FileNotFoundError) as e:
        logger.error(f"{args.command}_failed", error=str(e), error_type=type(e).__name__)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.info("interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    cli()
