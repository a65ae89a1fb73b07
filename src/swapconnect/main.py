"""Command line entry point.

Usage:
    swapconnect quote 10 USDC USDT --chain ethereum
    swapconnect health
    swapconnect config
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from dotenv import load_dotenv

from swapconnect.chains import DEFAULT_CHAIN, get_supported_chains
from swapconnect.config import Settings, get_settings
from swapconnect.errors import user_message
from swapconnect.factory import create_swap_service
from swapconnect.notifications.telegram import close_bot
from swapconnect.services.contracts import PriceRequest

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    log_level = logging.DEBUG if settings.debug else getattr(
        logging, settings.log_level.upper(), logging.INFO
    )
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swapconnect", description="DEX swap quotes")
    subparsers = parser.add_subparsers(dest="command", required=True)

    quote = subparsers.add_parser("quote", help="Get the best price across aggregators")
    quote.add_argument("amount", help="Amount to sell (e.g. 10.5)")
    quote.add_argument("from_symbol", help="Token to sell")
    quote.add_argument("to_symbol", help="Token to buy")
    quote.add_argument("--chain", default=DEFAULT_CHAIN, choices=get_supported_chains())

    subparsers.add_parser("health", help="Check every aggregator backend")
    subparsers.add_parser("config", help="Print settings with secrets redacted")
    return parser


async def run_quote(args: argparse.Namespace, settings: Settings) -> int:
    service = create_swap_service(settings)
    try:
        response = await service.get_price(
            PriceRequest(
                amount=args.amount,
                from_symbol=args.from_symbol,
                to_symbol=args.to_symbol,
                chain=args.chain,
            )
        )
    except Exception as e:
        print(user_message(e), file=sys.stderr)
        return 1
    finally:
        await close_bot()

    print(response.model_dump_json(indent=2))
    return 0


async def run_health(settings: Settings) -> int:
    service = create_swap_service(settings)
    clients = service.quote_service.selector.clients
    results = await asyncio.gather(*(client.health_check() for client in clients))
    status = {client.name: ok for client, ok in zip(clients, results)}
    await close_bot()

    print(json.dumps(status, indent=2))
    return 0 if all(results) else 1


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    if args.command == "config":
        print(json.dumps(settings.get_safe_dict(), indent=2))
        return 0
    if args.command == "health":
        return asyncio.run(run_health(settings))
    return asyncio.run(run_quote(args, settings))


if __name__ == "__main__":
    sys.exit(main())
