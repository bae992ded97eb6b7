"""
Command line entry point for thermoprint.

Prints, previews and pairs receipt printers. Uses the real Bluetooth
adapter unless --mock is given or THERMOPRINT_ENV=simulator.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from thermoprint.config.settings import get_settings
from thermoprint.core.errors import PrintError
from thermoprint.core.models import MerchantProfile, PrinterIdentity, Sale
from thermoprint.printing.manager import PrintManager, create_host

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PRINT_ERROR = 1
EXIT_BAD_INPUT = 2


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def load_json(path: str) -> Any:
    with Path(path).open(encoding="utf-8") as f:
        return json.load(f)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thermoprint",
        description="Print sale receipts on a Bluetooth ESC/POS thermal printer.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    print_cmd = commands.add_parser("print", help="Print a sale receipt")
    print_cmd.add_argument("sale", help="Path to the sale JSON file")
    print_cmd.add_argument("merchant", help="Path to the merchant profile JSON file")
    print_cmd.add_argument("--device-id", help="Saved printer identifier (MAC address or UUID)")
    print_cmd.add_argument("--device-name", help="Saved printer name")
    print_cmd.add_argument("--mock", action="store_true", help="Use the simulated printer")

    preview_cmd = commands.add_parser("preview", help="Show the receipt as plain text")
    preview_cmd.add_argument("sale", help="Path to the sale JSON file")
    preview_cmd.add_argument("merchant", help="Path to the merchant profile JSON file")

    pair_cmd = commands.add_parser("pair", help="Select a printer and print its identity")
    pair_cmd.add_argument("--mock", action="store_true", help="Use the simulated printer")

    devices_cmd = commands.add_parser("devices", help="List known printers")
    devices_cmd.add_argument("--mock", action="store_true", help="Use the simulated printer")

    return parser


async def run_command(args: argparse.Namespace, manager: PrintManager) -> int:
    """Run a parsed command against a print manager."""
    if args.command == "pair":
        identity = await manager.pair_printer()
        print(json.dumps(identity.to_dict(), ensure_ascii=False))
        return EXIT_OK

    if args.command == "devices":
        for identity in await manager.list_printers():
            print(f"{identity.device_id}\t{identity.name}")
        return EXIT_OK

    sale = Sale.from_dict(load_json(args.sale))
    merchant = MerchantProfile.from_dict(load_json(args.merchant))

    if args.command == "preview":
        print(manager.preview(sale, merchant))
        return EXIT_OK

    saved: Optional[PrinterIdentity] = None
    if args.device_id or args.device_name:
        saved = PrinterIdentity(device_id=args.device_id or "", name=args.device_name)

    result = await manager.print_receipt(sale, merchant, saved)
    print(result.message)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.debug or settings.debug)

    host = create_host(mock=getattr(args, "mock", False), settings=settings)
    manager = PrintManager(host, settings)

    try:
        return asyncio.run(run_command(args, manager))
    except PrintError as e:
        logger.error(f"Print failed: {e.kind.value}")
        print(e.message, file=sys.stderr)
        return EXIT_PRINT_ERROR
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Invalid input: {e}")
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_PRINT_ERROR


if __name__ == "__main__":
    sys.exit(main())
